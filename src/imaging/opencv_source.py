"""
OpenCV-based pixel source.

Works on numpy arrays as OpenCV produces them:
- grayscale (H, W) or (H, W, 1)
- BGR (H, W, 3)
- BGRA (H, W, 4)

8-bit and 16-bit images are supported; 16-bit samples are reduced to 8 bits.
"""

from __future__ import annotations

import importlib.util
from typing import Any, Tuple

import numpy as np

from .base import PixelSource, gd_alpha


class OpenCVSource(PixelSource):
    """
    Pixel source backed by OpenCV / numpy images.

    In-memory images are expected in OpenCV channel order (BGR / BGRA).
    """

    name = "opencv"

    @classmethod
    def is_supported(cls) -> bool:
        return importlib.util.find_spec("cv2") is not None

    @classmethod
    def accepts(cls, image: Any) -> bool:
        if not isinstance(image, np.ndarray) or image.size == 0:
            return False
        if image.ndim == 2:
            return True
        return image.ndim == 3 and image.shape[2] in (1, 3, 4)

    def _decode_file(self, path: str) -> Any:
        import cv2

        image = cv2.imread(path, cv2.IMREAD_UNCHANGED)
        if image is None:
            raise RuntimeError(f"Unknown file format for {path}")
        return image

    def _dimensions(self, image: Any) -> Tuple[int, int]:
        return (int(image.shape[1]), int(image.shape[0]))

    def _resize(self, image: Any, width: int, height: int) -> Any:
        import cv2

        return cv2.resize(image, (width, height), interpolation=cv2.INTER_AREA)

    def _to_rgba(self, image: Any) -> np.ndarray:
        import cv2

        if image.dtype == np.uint16:
            image = (image >> 8).astype(np.uint8)
        elif image.dtype != np.uint8:
            image = np.clip(image, 0, 255).astype(np.uint8)

        if image.ndim == 2 or image.shape[2] == 1:
            rgba = cv2.cvtColor(image.reshape(image.shape[0], image.shape[1]), cv2.COLOR_GRAY2RGBA)
        elif image.shape[2] == 3:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
        else:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)

        rgba[..., 3] = gd_alpha(rgba[..., 3])
        return rgba
