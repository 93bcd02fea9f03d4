"""
PixelSource interface for pluggable image decoding back ends.

This defines the contract the scanner relies on, so the same detection
algorithm runs on top of any imaging library:
- Pillow (wide format support, ICC colour management)
- OpenCV (numpy arrays)

A source owns at most one decoded image at a time. Images decoded from a
file (and resampled copies) are owned and released by the source; images
handed over in memory are borrowed and never freed by it.
"""

from __future__ import annotations

import logging
import math
import os
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple, Union

import numpy as np

PathLike = Union[str, "os.PathLike[str]"]


class PixelSource(ABC):
    """
    Abstract base class for pixel sources.

    Lifecycle:
        1. Create instance
        2. Call load_file() or load_image()
        3. Read width / height / pixels() / color_at()
        4. Call release() (or leave the `with` block)

    Can also be used as a context manager:
        with PillowSource() as source:
            source.load_file("photo.jpg")
            rgba = source.pixels()

    Images whose surface reaches MAX_IMAGE_RESOLUTION are resampled on load so
    that their largest dimension becomes MAX_IMAGE_DIMENSION. The ratio
    between original and working size is kept in `scaling_factor`.
    """

    MAX_IMAGE_RESOLUTION = 589824
    MAX_IMAGE_DIMENSION = 386

    name = "base"

    def __init__(self):
        self._image: Any = None
        self._owns_image = False
        self._width = 0
        self._height = 0
        self._scaling_factor = 1.0
        self._pixels: Optional[np.ndarray] = None

    @classmethod
    @abstractmethod
    def is_supported(cls) -> bool:
        """Whether the imaging library behind this source is installed."""
        pass

    @classmethod
    @abstractmethod
    def accepts(cls, image: Any) -> bool:
        """Whether `image` is an in-memory image this source can read."""
        pass

    @property
    def width(self) -> int:
        """Working image width (after any resampling)."""
        return self._width

    @property
    def height(self) -> int:
        """Working image height (after any resampling)."""
        return self._height

    @property
    def scaling_factor(self) -> float:
        """Original size divided by working size; 1.0 when not resampled."""
        return self._scaling_factor

    @property
    def is_loaded(self) -> bool:
        return self._image is not None

    @property
    def owns_image(self) -> bool:
        """Whether the current image is released by this source."""
        return self._owns_image

    def load_file(self, path: PathLike) -> None:
        """
        Decode an image file.

        Raises:
            RuntimeError: If the file is missing, unreadable or not an image.
        """
        self.release()

        path = os.fspath(path)
        if not os.path.isfile(path) or not os.access(path, os.R_OK):
            raise RuntimeError(f"Could not open file: {path}")

        self._image = self._decode_file(path)
        self._owns_image = True
        self._width, self._height = self._dimensions(self._image)
        self._cap_resolution()

    def load_image(self, image: Any) -> None:
        """
        Use an already decoded image. The image is borrowed, not taken over.

        Raises:
            TypeError: If the image does not belong to this source's library.
        """
        self.release()

        if not self.accepts(image):
            raise TypeError(f"{type(image).__name__} is not a valid {self.name} image")

        self._image = image
        self._owns_image = False
        self._width, self._height = self._dimensions(image)
        self._cap_resolution()

    def pixels(self) -> np.ndarray:
        """
        Return the working image as a (height, width, 4) uint8 RGBA array.

        Alpha uses a 0 (opaque) .. 127 (transparent) scale.
        """
        if self._image is None:
            raise RuntimeError("No image loaded")
        if self._pixels is None:
            self._pixels = self._to_rgba(self._image)
        return self._pixels

    def color_at(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """Return the (r, g, b, a) colour of the working image at (x, y)."""
        r, g, b, a = self.pixels()[y, x]
        return (int(r), int(g), int(b), int(a))

    def release(self) -> None:
        """
        Drop the current image, freeing it if owned.

        Safe to call multiple times.
        """
        if self._image is not None and self._owns_image:
            self._free(self._image)

        self._image = None
        self._owns_image = False
        self._pixels = None
        self._width = 0
        self._height = 0
        self._scaling_factor = 1.0

    def _cap_resolution(self) -> None:
        if self._width * self._height < self.MAX_IMAGE_RESOLUTION:
            return

        factor = max(self._width, self._height) / self.MAX_IMAGE_DIMENSION
        new_width = max(1, math.floor(self._width / factor))
        new_height = max(1, math.floor(self._height / factor))

        resized = self._resize(self._image, new_width, new_height)
        if self._owns_image:
            self._free(self._image)

        logging.debug(
            f"{self.name}: resampled {self._width}x{self._height} image "
            f"to {new_width}x{new_height} (factor {factor:.4f})"
        )

        # The resampled copy is ours, even when the original was borrowed
        self._image = resized
        self._owns_image = True
        self._width, self._height = self._dimensions(resized)
        self._scaling_factor = factor

    @abstractmethod
    def _decode_file(self, path: str) -> Any:
        pass

    @abstractmethod
    def _dimensions(self, image: Any) -> Tuple[int, int]:
        """Return (width, height)."""
        pass

    @abstractmethod
    def _resize(self, image: Any, width: int, height: int) -> Any:
        pass

    @abstractmethod
    def _to_rgba(self, image: Any) -> np.ndarray:
        pass

    def _free(self, image: Any) -> None:
        """Free an owned image. Library specific; nothing to do by default."""
        pass

    def __enter__(self) -> "PixelSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def __del__(self):
        try:
            self.release()
        except Exception:  # pragma: no cover
            pass


def gd_alpha(alpha: np.ndarray) -> np.ndarray:
    """Map 8-bit opacity (255 = opaque) to the 0 (opaque) .. 127 scale."""
    return (127 - (alpha.astype(np.uint8) >> 1)).astype(np.uint8)
