"""
Detection result type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Rectangle:
    """
    A detection rectangle.

    Raw scanner output may carry float values (after undoing the resampling
    of large images); the detector returns integer rectangles.
    """

    x: Number
    y: Number
    width: Number
    height: Number

    @property
    def corners(self) -> Tuple[Number, Number, Number, Number]:
        """Return as (x1, y1, x2, y2)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def scaled(self, factor: float) -> "Rectangle":
        return Rectangle(
            x=self.x * factor,
            y=self.y * factor,
            width=self.width * factor,
            height=self.height * factor,
        )

    def truncated(self) -> "Rectangle":
        """Integer rectangle (values truncated toward zero)."""
        return Rectangle(x=int(self.x), y=int(self.y), width=int(self.width), height=int(self.height))

    def as_tuple(self) -> Tuple[Number, Number, Number, Number]:
        """Return as (x, y, width, height)."""
        return (self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}
