"""
Grouping of raw detections.

The scanner reports every window that passed the cascade, so a single object
shows up as a cluster of overlapping windows. Clusters with enough members
are collapsed into one averaged rectangle; lone windows are dropped as noise.
"""

from __future__ import annotations

from typing import List, Sequence

from .base import Rectangle

# Allowed position / size deviation between two windows of the same object
TOLERANCE = 0.2
SIZE_RATIO = 1.2


def rects_equivalent(r1: Rectangle, r2: Rectangle) -> bool:
    """
    Whether r2 is a near duplicate of r1.

    True when r2's origin is within 20% of r1's width of r1's origin and the
    widths are within 20% of each other, or when r1 lies inside r2.
    """
    distance = int(r1.width * TOLERANCE)

    if (
        r1.x - distance <= r2.x <= r1.x + distance
        and r1.y - distance <= r2.y <= r1.y + distance
        and r2.width <= int(r1.width * SIZE_RATIO)
        and int(r2.width * SIZE_RATIO) >= r1.width
    ):
        return True

    return (
        r1.x >= r2.x
        and r1.x + r1.width <= r2.x + r2.width
        and r1.y >= r2.y
        and r1.y + r1.height <= r2.y + r2.height
    )


def merge_rectangles(rects: Sequence[Rectangle], min_neighbours: int) -> List[Rectangle]:
    """
    Merge overlapping rectangles.

    Args:
        rects: Raw rectangles, in scan order.
        min_neighbours: Minimum cluster size for a cluster to be reported.

    Returns:
        One rectangle per accepted cluster, in order of first appearance. Each
        field is (sum * 2 + n) / (2 * n) over the n cluster members.
    """
    labels: List[int] = []
    n_classes = 0

    for i, rect in enumerate(rects):
        label = None
        for j in range(i):
            if rects_equivalent(rects[j], rect):
                label = labels[j]
        if label is None:
            label = n_classes
            n_classes += 1
        labels.append(label)

    neighbours = [0] * n_classes
    sums = [[0, 0, 0, 0] for _ in range(n_classes)]

    for rect, label in zip(rects, labels):
        neighbours[label] += 1
        total = sums[label]
        total[0] += rect.x
        total[1] += rect.y
        total[2] += rect.width
        total[3] += rect.height

    merged: List[Rectangle] = []
    for label in range(n_classes):
        n = neighbours[label]
        if n < min_neighbours:
            continue
        sx, sy, sw, sh = sums[label]
        merged.append(Rectangle(
            x=(sx * 2 + n) / (2 * n),
            y=(sy * 2 + n) / (2 * n),
            width=(sw * 2 + n) / (2 * n),
            height=(sh * 2 + n) / (2 * n),
        ))

    return merged
