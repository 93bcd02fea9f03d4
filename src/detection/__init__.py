"""
Haar cascade object detection.

Scanner (integral images + cascade evaluation), merging of raw detections,
and the detector entry points.
"""

from .base import Rectangle
from .detector import ObjectDetector, FaceDetector, detect, bounding_box
from .merge import merge_rectangles, rects_equivalent
from .scanner import scan, integral_images, luma

__all__ = [
    "Rectangle",
    "ObjectDetector",
    "FaceDetector",
    "detect",
    "bounding_box",
    "merge_rectangles",
    "rects_equivalent",
    "scan",
    "integral_images",
    "luma",
]
