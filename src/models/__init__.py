"""
Typed models for the detector application.
"""

from .config import Config, DetectorConfig

__all__ = [
    "Config",
    "DetectorConfig",
]
