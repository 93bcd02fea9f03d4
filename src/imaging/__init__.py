"""
Imaging layer: pluggable pixel sources.

This layer hides the imaging library used to decode images from the
detector. Each back end implements the PixelSource interface.
"""

from .base import PixelSource
from .pillow_source import PillowSource
from .opencv_source import OpenCVSource
from .factory import BACKENDS, available_backends, create_pixel_source

__all__ = [
    "PixelSource",
    "PillowSource",
    "OpenCVSource",
    "BACKENDS",
    "available_backends",
    "create_pixel_source",
]
