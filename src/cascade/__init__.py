"""
Haar cascade model and codecs.

The model is immutable; load it once and share it between detections.
"""

from .model import Classifier, Stage, Feature, Rect
from .loader import load, load_json, load_xml, parse_json, parse_xml, dump, dumps, convert

__all__ = [
    # Model
    "Classifier",
    "Stage",
    "Feature",
    "Rect",
    # Codec
    "load",
    "load_json",
    "load_xml",
    "parse_json",
    "parse_xml",
    "dump",
    "dumps",
    "convert",
]
