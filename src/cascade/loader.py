"""
Cascade loading and serialization.

Supported sources:
- OpenCV Haar cascade markup, both the legacy layout
  (stages/trees/feature/rects) and the current one
  (stages/weakClassifiers + shared features list, stump cascades only)
- Compact JSON produced by `dumps()` / `dump()`

Files may be compressed; the codec is picked from the file suffix:
.gz (gzip), .bz2 (bzip2), .zst / .zstd (Zstandard).

Loading never raises: anything malformed degrades to the null classifier,
which detects nothing.
"""

from __future__ import annotations

import bz2
import gzip
import json
import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import List, Optional, Union

import zstandard

from .model import Classifier, Feature, Rect, Stage

PathLike = Union[str, "os.PathLike[str]"]

_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")

COMPRESSION_SUFFIXES = (".gz", ".bz2", ".zst", ".zstd")


class UnsupportedCascadeError(ValueError):
    """Raised internally for cascade markup we cannot evaluate."""


def _compression_of(path: PathLike) -> Optional[str]:
    name = os.fspath(path).lower()
    for suffix in COMPRESSION_SUFFIXES:
        if name.endswith(suffix):
            return suffix
    return None


def decompress(data: bytes, suffix: Optional[str]) -> bytes:
    """Decompress `data` for the given compression suffix (None = as-is)."""
    if suffix == ".gz":
        return gzip.decompress(data)
    if suffix == ".bz2":
        return bz2.decompress(data)
    if suffix in (".zst", ".zstd"):
        return zstandard.ZstdDecompressor().decompressobj().decompress(data)
    return data


def compress(data: bytes, suffix: Optional[str]) -> bytes:
    """Compress `data` for the given compression suffix (None = as-is)."""
    if suffix == ".gz":
        return gzip.compress(data, compresslevel=9)
    if suffix == ".bz2":
        return bz2.compress(data, compresslevel=9)
    if suffix in (".zst", ".zstd"):
        return zstandard.ZstdCompressor(level=19).compress(data)
    return data


def read_compressed(path: PathLike) -> bytes:
    """
    Read a file, transparently decompressing it based on its suffix.

    Returns:
        The (decompressed) contents, or b"" when the file cannot be read or
        decompressed.
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        logging.warning(f"Cannot read cascade file {os.fspath(path)}: {e}")
        return b""

    try:
        return decompress(data, _compression_of(path))
    except (OSError, EOFError, ValueError, zstandard.ZstdError) as e:
        logging.warning(f"Cannot decompress cascade file {os.fspath(path)}: {e}")
        return b""


def write_compressed(path: PathLike, data: bytes) -> None:
    """Write a file, compressing it based on its suffix."""
    with open(path, "wb") as f:
        f.write(compress(data, _compression_of(path)))


def _text(node: Optional[ET.Element], tag: str) -> str:
    if node is None:
        raise UnsupportedCascadeError(f"Missing <{tag}>")
    child = node.find(tag)
    if child is None or child.text is None:
        raise UnsupportedCascadeError(f"Missing <{tag}>")
    return child.text.strip()


def _parse_legacy(cascade_node: ET.Element) -> Classifier:
    size_x, size_y = (int(v) for v in _text(cascade_node, "size").split())
    size = (size_x, size_y)

    stages: List[Stage] = []
    stages_node = cascade_node.find("stages")
    if stages_node is None:
        raise UnsupportedCascadeError("Missing <stages>")

    for stage_node in stages_node:
        trees_node = stage_node.find("trees")
        if trees_node is None:
            raise UnsupportedCascadeError("Missing <trees>")

        features: List[Feature] = []
        for tree_node in trees_node:
            node = tree_node.find("_")
            if node is None:
                raise UnsupportedCascadeError("Empty tree")
            rects_node = node.find("feature/rects")
            if rects_node is None:
                raise UnsupportedCascadeError("Missing feature rects")

            features.append(Feature(
                threshold=float(_text(node, "threshold")),
                left_val=float(_text(node, "left_val")),
                right_val=float(_text(node, "right_val")),
                size=size,
                rects=tuple(Rect.from_string(r.text or "") for r in rects_node),
            ))

        stages.append(Stage(threshold=float(_text(stage_node, "stage_threshold")), features=tuple(features)))

    return Classifier(size_x=size_x, size_y=size_y, stages=tuple(stages))


def _parse_current(cascade_node: ET.Element) -> Classifier:
    feature_type = cascade_node.findtext("featureType", default="HAAR").strip().upper()
    if feature_type != "HAAR":
        raise UnsupportedCascadeError(f"Unsupported feature type {feature_type}")

    size_x = int(_text(cascade_node, "width"))
    size_y = int(_text(cascade_node, "height"))
    size = (size_x, size_y)

    feature_rects: List[tuple] = []
    features_node = cascade_node.find("features")
    if features_node is None:
        raise UnsupportedCascadeError("Missing <features>")
    for feature_node in features_node:
        tilted = feature_node.findtext("tilted", default="0").strip()
        if tilted not in ("0", ""):
            raise UnsupportedCascadeError("Tilted features are not supported")
        rects_node = feature_node.find("rects")
        if rects_node is None:
            raise UnsupportedCascadeError("Missing feature rects")
        feature_rects.append(tuple(Rect.from_string(r.text or "") for r in rects_node))

    stages: List[Stage] = []
    stages_node = cascade_node.find("stages")
    if stages_node is None:
        raise UnsupportedCascadeError("Missing <stages>")

    for stage_node in stages_node:
        weak_node = stage_node.find("weakClassifiers")
        if weak_node is None:
            raise UnsupportedCascadeError("Missing <weakClassifiers>")

        features: List[Feature] = []
        for weak in weak_node:
            nodes = _text(weak, "internalNodes").split()
            leaves = _text(weak, "leafValues").split()
            if len(nodes) != 4 or len(leaves) != 2:
                raise UnsupportedCascadeError("Only stump based cascades are supported")

            features.append(Feature(
                threshold=float(nodes[3]),
                left_val=float(leaves[0]),
                right_val=float(leaves[1]),
                size=size,
                rects=feature_rects[int(nodes[2])],
            ))

        stages.append(Stage(threshold=float(_text(stage_node, "stageThreshold")), features=tuple(features)))

    return Classifier(size_x=size_x, size_y=size_y, stages=tuple(stages))


def parse_xml(text: Union[str, bytes]) -> Classifier:
    """
    Parse OpenCV Haar cascade markup.

    Returns:
        The classifier, or the null classifier if the markup is malformed or
        describes a cascade we cannot evaluate.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")

    text = _COMMENT_RE.sub("", text or "")

    try:
        root = ET.fromstring(text)
        cascade_node = root[0] if root.tag == "opencv_storage" else root
        if cascade_node.find("stageType") is not None or cascade_node.find("weakClassifiers") is not None:
            return _parse_current(cascade_node)
        if cascade_node.find("size") is None and cascade_node.find("width") is not None:
            return _parse_current(cascade_node)
        return _parse_legacy(cascade_node)
    except (ET.ParseError, IndexError, ValueError) as e:
        logging.warning(f"Invalid cascade markup: {e}")
        return Classifier.null()


def parse_json(text: Union[str, bytes]) -> Classifier:
    """Parse the compact JSON form. Malformed input yields the null classifier."""
    try:
        data = json.loads(text or "{}")
        if not isinstance(data, dict):
            raise TypeError("Cascade JSON must be an object")
        return Classifier.from_dict(data)
    except (ValueError, KeyError, TypeError, IndexError) as e:
        logging.warning(f"Invalid cascade JSON: {e}")
        return Classifier.null()


def load_xml(path: PathLike) -> Classifier:
    return parse_xml(read_compressed(path))


def load_json(path: PathLike) -> Classifier:
    return parse_json(read_compressed(path))


def load(path: PathLike) -> Classifier:
    """
    Load a cascade file, picking the parser from the file name.

    haarcascade_frontalface_default.xml and
    haarcascade_frontalface_default.json.gz both work.
    """
    name = os.fspath(path).lower()
    suffix = _compression_of(name)
    if suffix:
        name = name[: -len(suffix)]

    if name.endswith(".xml"):
        return load_xml(path)
    return load_json(path)


def dumps(classifier: Classifier) -> str:
    """Serialize a classifier to the compact JSON form."""
    return json.dumps(classifier.to_dict(), separators=(",", ":"))


def dump(classifier: Classifier, path: PathLike) -> None:
    """Write a classifier as compact JSON, compressed according to the suffix."""
    write_compressed(path, dumps(classifier).encode("utf-8"))


def convert(source: PathLike, destination: PathLike) -> Classifier:
    """
    Convert a cascade markup file to the compact (optionally compressed) form.

    Returns:
        The converted classifier.

    Raises:
        ValueError: If the source could not be parsed into a usable cascade.
    """
    classifier = load_xml(source)
    if not classifier.is_valid:
        raise ValueError(f"Cannot convert {os.fspath(source)}: not a usable Haar cascade")

    dump(classifier, destination)
    logging.info(
        f"Converted {os.fspath(source)} -> {os.fspath(destination)} "
        f"({len(classifier.stages)} stages, {classifier.size_x}x{classifier.size_y})"
    )
    return classifier
