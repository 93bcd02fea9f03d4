"""
Multi-scale sliding window scanner.

Implements the detection loop of Viola & Jones, "Rapid Object Detection
using a Boosted Cascade of Simple Features" (2001), the way OpenCV's legacy
Haar cascades expect it:

1. Convert the image to luma and build the integral image of the luma and
   of its square (summed-area tables).
2. Slide a square window over the image at increasing scales.
3. Run the cascade on every window, rejecting it at the first failed stage.

The result is the list of raw (unmerged) candidate windows.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np

from cascade.model import Classifier
from imaging.base import PixelSource

from .base import Rectangle

BASE_SCALE = 2.0
SCALE_INCREMENT = 1.25
STEP_RATIO = 0.1
# Training patch edge of the reference cascades
WINDOW_EDGE = 24
SCALING_TOLERANCE = 0.001


def luma(pixels: np.ndarray) -> np.ndarray:
    """
    Grey level of an RGB(A) array: (30 R + 59 G + 11 B) / 100.

    Returns:
        float64 array of shape (height, width).
    """
    rgb = pixels[..., :3].astype(np.int64)
    return (30 * rgb[..., 0] + 59 * rgb[..., 1] + 11 * rgb[..., 2]) / 100


def integral_images(pixels: np.ndarray) -> Tuple[List[List[float]], List[List[float]]]:
    """
    Build the integral image of the luma and of the squared luma.

    Both tables are indexed [x][y] and hold the inclusive sum over
    [0..x] x [0..y]. Sums are accumulated column by column, in a fixed order,
    so the same image always produces bit-identical tables.

    Returns:
        (integral, squares) as nested lists, for fast scalar access.
    """
    gray = luma(pixels).T
    width, height = gray.shape

    integral = np.zeros((width, height), dtype=np.float64)
    squares = np.zeros((width, height), dtype=np.float64)
    previous = np.zeros(height, dtype=np.float64)
    previous_sq = np.zeros(height, dtype=np.float64)

    for x in range(width):
        column = gray[x]
        column_sq = column * column

        # Running column sums, excluding the current row
        running = np.concatenate(([0.0], np.cumsum(column)[:-1]))
        running_sq = np.concatenate(([0.0], np.cumsum(column_sq)[:-1]))

        integral[x] = (previous + running) + column
        squares[x] = (previous_sq + running_sq) + column_sq
        previous = integral[x]
        previous_sq = squares[x]

    return integral.tolist(), squares.tolist()


def scales(max_scale: float) -> List[float]:
    """The detection scales below `max_scale`, smallest first."""
    out = []
    scale = BASE_SCALE
    while scale < max_scale:
        out.append(scale)
        scale *= SCALE_INCREMENT
    return out


def scan(classifier: Classifier, source: PixelSource) -> List[Rectangle]:
    """
    Scan a loaded pixel source with a cascade.

    Args:
        classifier: A valid (non-null) classifier.
        source: A pixel source with an image loaded.

    Returns:
        Raw candidate windows, in the coordinates of the original image
        (the source's resampling is undone).
    """
    width = source.width
    height = source.height
    integral, squares = integral_images(source.pixels())

    max_scale = min(width / classifier.size_x, height / classifier.size_y)
    found: List[Rectangle] = []

    for scale in scales(max_scale):
        step = int(scale * WINDOW_EDGE * STEP_RATIO)
        size = int(scale * WINDOW_EDGE)

        # Features read up to int(scale * cascade size) past the window origin
        x_end = width - max(size, int(scale * classifier.size_x))
        y_end = height - max(size, int(scale * classifier.size_y))

        for x in range(0, x_end, step):
            for y in range(0, y_end, step):
                if all(stage.passes(integral, squares, x, y, scale) for stage in classifier.stages):
                    found.append(Rectangle(x=x, y=y, width=size, height=size))

    factor = source.scaling_factor
    if abs(1.0 - factor) > SCALING_TOLERANCE:
        found = [r.scaled(factor) for r in found]

    logging.debug(f"Scanned {width}x{height} image: {len(found)} candidate windows")
    return found
