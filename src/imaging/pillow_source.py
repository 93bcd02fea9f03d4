"""
Pillow-based pixel source.

Reads every format Pillow knows about (BMP, GIF, JPEG, PNG, WebP, TIFF, ...).
Embedded ICC profiles are applied so that pixel values are in sRGB, which is
what the cascades were trained on.
"""

from __future__ import annotations

import importlib.util
import io
import logging
from typing import Any, Tuple

import numpy as np

from .base import PixelSource, gd_alpha


def _to_srgb(image: Any) -> Any:
    """Return `image` converted to sRGB when it carries an ICC profile."""
    icc = image.info.get("icc_profile")
    if not icc or image.mode not in ("RGB", "RGBA", "CMYK"):
        return image

    from PIL import ImageCms

    output_mode = "RGB" if image.mode == "CMYK" else image.mode
    try:
        return ImageCms.profileToProfile(
            image,
            ImageCms.ImageCmsProfile(io.BytesIO(icc)),
            ImageCms.createProfile("sRGB"),
            outputMode=output_mode,
        )
    except (ImageCms.PyCMSError, OSError, ValueError) as e:
        logging.debug(f"Ignoring unusable ICC profile: {e}")
        return image


class PillowSource(PixelSource):
    """
    Pixel source backed by Pillow `Image` objects.

    Example:
        with PillowSource() as source:
            source.load_file("photo.jpg")
            r, g, b, a = source.color_at(10, 20)
    """

    name = "pillow"

    @classmethod
    def is_supported(cls) -> bool:
        return importlib.util.find_spec("PIL") is not None

    @classmethod
    def accepts(cls, image: Any) -> bool:
        if not cls.is_supported():
            return False
        from PIL import Image

        return isinstance(image, Image.Image)

    def _decode_file(self, path: str) -> Any:
        from PIL import Image, UnidentifiedImageError

        try:
            image = Image.open(path)
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise RuntimeError(f"Unknown file format for {path}") from e
        return image

    def _dimensions(self, image: Any) -> Tuple[int, int]:
        return image.size

    def _resize(self, image: Any, width: int, height: int) -> Any:
        from PIL import Image

        return image.resize((width, height), Image.Resampling.LANCZOS)

    def _to_rgba(self, image: Any) -> np.ndarray:
        rgba = np.array(_to_srgb(image).convert("RGBA"), dtype=np.uint8)
        rgba[..., 3] = gd_alpha(rgba[..., 3])
        return rgba

    def _free(self, image: Any) -> None:
        image.close()
