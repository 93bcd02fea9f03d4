"""
Object detection entry points.

Detection is best effort: a null classifier, an unreadable image or any
failure while scanning results in an empty list, never in an exception.
"""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional, Sequence, Tuple

from cascade import loader as cascade_loader
from cascade.model import Classifier
from imaging.factory import create_pixel_source

from .base import Number, Rectangle
from .merge import merge_rectangles
from .scanner import scan

MIN_NEIGHBOURS_FLOOR = 2
MIN_NEIGHBOURS_CEILING = 10

DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


def clamp_min_neighbours(min_neighbours: int) -> int:
    return min(max(MIN_NEIGHBOURS_FLOOR, int(min_neighbours)), MIN_NEIGHBOURS_CEILING)


def default_cascade_path() -> str:
    """
    Path of the frontal face cascade bundled with opencv-python.

    Raises:
        FileNotFoundError: If the installed OpenCV does not ship its Haar
            cascades (OpenCV 5 dropped them from `cv2.data`).
    """
    import cv2

    data_dir = getattr(getattr(cv2, "data", None), "haarcascades", None)
    path = os.path.join(data_dir or "", DEFAULT_CASCADE)
    if not data_dir or not os.path.isfile(path):
        raise FileNotFoundError(
            f"OpenCV {cv2.__version__} does not bundle {DEFAULT_CASCADE}; "
            "set detector.cascade in the config or pass --cascade"
        )
    return path


class ObjectDetector:
    """
    Haar cascade object detector.

    The minimum neighbours setting trades recall for confidence. The default
    (2) may report some uncertain objects; 3 is stricter and may drop objects
    in less clear images. Values are clamped to 2..10.

    Example:
        detector = ObjectDetector(cascade.load("haarcascade_frontalface_default.xml"))
        for rect in detector.detect("group_photo.jpg"):
            print(rect.x, rect.y, rect.width, rect.height)
    """

    def __init__(self, classifier: Classifier, backend: Optional[str] = "auto"):
        self._classifier = classifier
        self._backend = backend or "auto"

    @property
    def classifier(self) -> Classifier:
        return self._classifier

    @property
    def backend(self) -> str:
        return self._backend

    def detect(self, image: Any, min_neighbours: int = 2) -> List[Rectangle]:
        """
        Detect objects in an image.

        Args:
            image: Path of an image file, or an in-memory image (Pillow
                `Image` or OpenCV / numpy array).
            min_neighbours: Minimum number of overlapping raw detections an
                object needs.

        Returns:
            Integer rectangles in the coordinates of the given image.
        """
        if not self._classifier.is_valid:
            return []

        try:
            raw = self.scan(image)
        except Exception as e:
            logging.warning(f"Object detection failed: {e}")
            return []

        merged = merge_rectangles(raw, clamp_min_neighbours(min_neighbours))
        return [r.truncated() for r in merged]

    def scan(self, image: Any) -> List[Rectangle]:
        """
        Return the raw (unmerged) candidate windows for an image.

        Unlike detect(), errors propagate.
        """
        if not self._classifier.is_valid:
            return []

        with create_pixel_source(self._backend, image=image) as source:
            if isinstance(image, (str, os.PathLike)):
                source.load_file(image)
            else:
                source.load_image(image)
            return scan(self._classifier, source)


def detect(
    classifier: Classifier,
    image: Any,
    min_neighbours: int = 2,
    backend: Optional[str] = "auto",
) -> List[Rectangle]:
    """Detect objects in `image` with `classifier`. See ObjectDetector.detect()."""
    return ObjectDetector(classifier, backend=backend).detect(image, min_neighbours)


def bounding_box(rects: Sequence[Rectangle]) -> Optional[Tuple[Number, Number, Number, Number]]:
    """
    The box enclosing all rectangles, as (x1, y1, x2, y2).

    Returns:
        None when there are no rectangles.
    """
    if not rects:
        return None

    corners = [r.corners for r in rects]
    return (
        min(c[0] for c in corners),
        min(c[1] for c in corners),
        max(c[2] for c in corners),
        max(c[3] for c in corners),
    )


class FaceDetector:
    """
    Face detection with a cascade file loaded once.

    Args:
        cascade_path: Cascade markup or compact JSON file (optionally
            compressed). Defaults to OpenCV's bundled frontal face cascade.
        min_neighbours: See ObjectDetector.
        backend: Pixel source back end ("auto", "pillow" or "opencv").

    Raises:
        FileNotFoundError: No cascade_path was given and OpenCV has no bundled
            cascade to fall back to.
    """

    def __init__(
        self,
        cascade_path: Optional[str] = None,
        min_neighbours: int = 2,
        backend: Optional[str] = "auto",
    ):
        self.cascade_path = cascade_path or default_cascade_path()
        self.min_neighbours = min_neighbours

        classifier = cascade_loader.load(self.cascade_path)
        if not classifier.is_valid:
            logging.warning(f"No usable cascade in {self.cascade_path}; nothing will be detected")
        else:
            logging.info(
                f"Loaded cascade {self.cascade_path}: {len(classifier.stages)} stages, "
                f"window {classifier.size_x}x{classifier.size_y}"
            )

        self._detector = ObjectDetector(classifier, backend=backend)

    @property
    def classifier(self) -> Classifier:
        return self._detector.classifier

    def detect(self, image: Any) -> List[Rectangle]:
        return self._detector.detect(image, self.min_neighbours)

    def bounds(self, image: Any) -> Optional[Tuple[Number, Number, Number, Number]]:
        """Bounding box (x1, y1, x2, y2) of all faces, or None if there are none."""
        return bounding_box(self.detect(image))
