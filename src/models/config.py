"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class DetectorConfig:
    """Detector configuration."""
    cascade: str = ""
    min_neighbours: int = 2
    backend: str = "auto"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectorConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            cascade=d.get("cascade") or "",
            min_neighbours=d.get("min_neighbours", 2),
            backend=d.get("backend", "auto"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cascade": self.cascade,
            "min_neighbours": self.min_neighbours,
            "backend": self.backend,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    log_path: str = "logs/detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            detector=DetectorConfig.from_dict(d.get("detector", {}) or {}),
            log_path=d.get("log_path", "logs/detector.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "detector": self.detector.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
