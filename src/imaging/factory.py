"""
Pixel source factory.

This is the single entrypoint the rest of the project should use to create a
pixel source. Back ends are tried in order of preference; the first one that
is installed (and can read the given in-memory image, if any) wins.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Type

from .base import PixelSource
from .opencv_source import OpenCVSource
from .pillow_source import PillowSource

# Order of preference for "auto"
BACKENDS: Dict[str, Type[PixelSource]] = {
    "pillow": PillowSource,
    "opencv": OpenCVSource,
}


def available_backends() -> List[str]:
    """Names of the installed back ends, in order of preference."""
    return [name for name, cls in BACKENDS.items() if cls.is_supported()]


def create_pixel_source(backend: Optional[str] = "auto", image: Any = None) -> PixelSource:
    """
    Create a pixel source.

    Args:
        backend: "auto" (or None) to pick the first suitable back end, or an
            explicit back end name from BACKENDS.
        image: Optional image the source will be used with. When it is an
            in-memory image, "auto" only considers back ends that can read it.

    Raises:
        ValueError: Unknown back end name.
        RuntimeError: The requested back end is not installed, or no back end
            is suitable.
    """
    if backend and backend != "auto":
        cls = BACKENDS.get(backend)
        if cls is None:
            raise ValueError(f"Unknown pixel source backend: {backend}")
        if not cls.is_supported():
            raise RuntimeError(f"Pixel source backend '{backend}' is not available")
        return cls()

    in_memory = image is not None and not isinstance(image, (str, os.PathLike))

    for cls in BACKENDS.values():
        if not cls.is_supported():
            continue
        if in_memory and not cls.accepts(image):
            continue
        return cls()

    raise RuntimeError("No suitable pixel source backend found")
