"""
Haar cascade classifier model.

A trained cascade is an ordered list of boosted stages:

    Classifier -> Stage[] -> Feature[] -> Rect[]

All types are immutable value objects. They are created once when a cascade
is loaded and can be shared freely between detections (and threads).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

# Integral image tables indexed as table[x][y]
IntegralTable = Sequence[Sequence[float]]


@dataclass(frozen=True)
class Rect:
    """
    A weighted rectangle of a Haar feature.

    The field names follow the historic cascade encoding, where a rectangle
    written as "a b c d w" is stored as x1=a, x2=b, y1=c, y2=d. During
    evaluation the horizontal extent is x1 .. x1 + y1 and the vertical extent
    is x2 .. x2 + y2 (all relative to the window origin, before scaling).

    Attributes:
        x1: Horizontal offset.
        x2: Vertical offset.
        y1: Horizontal extent.
        y2: Vertical extent.
        weight: Signed weight applied to the rectangle sum.
    """
    x1: int
    x2: int
    y1: int
    y2: int
    weight: float

    @classmethod
    def from_string(cls, text: str) -> "Rect":
        """Create from a space separated "x1 x2 y1 y2 weight" string."""
        x1, x2, y1, y2, weight = text.split()
        return cls(x1=int(x1), x2=int(x2), y1=int(y1), y2=int(y2), weight=float(weight))

    @classmethod
    def from_list(cls, values: Sequence[Any]) -> "Rect":
        """Create from a [x1, x2, y1, y2, weight] list."""
        x1, x2, y1, y2, weight = values
        return cls(x1=int(x1), x2=int(x2), y1=int(y1), y2=int(y2), weight=float(weight))

    def to_list(self) -> List[Any]:
        return [self.x1, self.x2, self.y1, self.y2, self.weight]


@dataclass(frozen=True)
class Feature:
    """
    A Haar feature (a decision stump of a stage).

    Attributes:
        threshold: Stump threshold, scaled by the window's standard deviation.
        left_val: Contribution when the feature value is below the threshold.
        right_val: Contribution otherwise.
        size: Canonical (x, y) window size of the cascade.
        rects: The weighted rectangles making up the feature.
    """
    threshold: float
    left_val: float
    right_val: float
    size: Tuple[int, int]
    rects: Tuple[Rect, ...] = field(default_factory=tuple)

    def value(self, integral: IntegralTable, squares: IntegralTable, x: int, y: int, scale: float) -> float:
        """
        Evaluate the feature for the window at (x, y) and the given scale.

        Args:
            integral: Integral image of the luma values, indexed [x][y].
            squares: Integral image of the squared luma values, indexed [x][y].
            x: Window origin, horizontal.
            y: Window origin, vertical.
            scale: Current detection scale.

        Returns:
            left_val or right_val.
        """
        w = int(scale * self.size[0])
        h = int(scale * self.size[1])
        inv_area = 1.0 / (w * h)

        total_x = integral[x + w][y + h] + integral[x][y] - integral[x][y + h] - integral[x + w][y]
        total_x2 = squares[x + w][y + h] + squares[x][y] - squares[x][y + h] - squares[x + w][y]

        mean = total_x * inv_area
        variance = total_x2 * inv_area - mean * mean
        norm = math.sqrt(variance) if variance > 1 else 1

        rect_sum = 0
        for r in self.rects:
            rx1 = x + int(scale * r.x1)
            rx2 = x + int(scale * (r.x1 + r.y1))
            ry1 = y + int(scale * r.x2)
            ry2 = y + int(scale * (r.x2 + r.y2))

            area_sum = integral[rx2][ry2] - integral[rx1][ry2] - integral[rx2][ry1] + integral[rx1][ry1]
            rect_sum += int(area_sum * r.weight)

        if rect_sum * inv_area < self.threshold * norm:
            return self.left_val
        return self.right_val

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Feature":
        size = d["size"]
        return cls(
            threshold=float(d["threshold"]),
            left_val=float(d["left"]),
            right_val=float(d["right"]),
            size=(int(size[0]), int(size[1])),
            rects=tuple(Rect.from_list(r) for r in d["rects"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold": self.threshold,
            "left": self.left_val,
            "right": self.right_val,
            "size": [self.size[0], self.size[1]],
            "rects": [r.to_list() for r in self.rects],
        }


@dataclass(frozen=True)
class Stage:
    """A boosted cascade stage: passes when its features add up above threshold."""
    threshold: float
    features: Tuple[Feature, ...] = field(default_factory=tuple)

    def passes(self, integral: IntegralTable, squares: IntegralTable, x: int, y: int, scale: float) -> bool:
        total = 0.0
        for feature in self.features:
            total += feature.value(integral, squares, x, y, scale)
        return total > self.threshold

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Stage":
        return cls(
            threshold=float(d["threshold"]),
            features=tuple(Feature.from_dict(f) for f in d["features"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold": self.threshold,
            "features": [f.to_dict() for f in self.features],
        }


@dataclass(frozen=True)
class Classifier:
    """
    A Haar cascade classifier.

    Attributes:
        size_x: Width of the window the cascade was trained at.
        size_y: Height of the window the cascade was trained at.
        stages: Stages, evaluated in order.

    A classifier with a zero size is the null classifier: it detects nothing.
    """
    size_x: int = 0
    size_y: int = 0
    stages: Tuple[Stage, ...] = field(default_factory=tuple)

    @classmethod
    def null(cls) -> "Classifier":
        return cls(size_x=0, size_y=0, stages=())

    @property
    def is_valid(self) -> bool:
        return self.size_x > 0 and self.size_y > 0

    @property
    def size(self) -> Tuple[int, int]:
        return (self.size_x, self.size_y)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Classifier":
        """Create from the compact serialized form (sizeX, sizeY, stages)."""
        return cls(
            size_x=int(d.get("sizeX", 0)),
            size_y=int(d.get("sizeY", 0)),
            stages=tuple(Stage.from_dict(s) for s in d.get("stages", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sizeX": self.size_x,
            "sizeY": self.size_y,
            "stages": [s.to_dict() for s in self.stages],
        }
