"""
Command line interface for the Haar cascade object detector.

Usage:
    python src/main.py detect photo.jpg [more.jpg ...] --bounds
    python src/main.py convert haarcascade_frontalface_default.xml frontalface.json.gz

Commands:
    detect: Print the objects found in each image as JSON
    convert: Convert a cascade from OpenCV markup to compact (compressed) JSON

Configuration is read from config/default.yaml, config/config.yaml and the
--config file, in that order; command line options override it.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import yaml

from cascade import loader as cascade_loader
from detection.detector import MIN_NEIGHBOURS_CEILING, MIN_NEIGHBOURS_FLOOR, FaceDetector, bounding_box
from imaging.factory import BACKENDS
from models.config import Config
from ops.logging import setup_logging


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - built-in defaults
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        merged = Config().to_dict()

        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        if os.path.exists(base_path):
            merged = _deep_merge(merged, _read_yaml(base_path))

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        if os.path.exists(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(local_overrides_path))

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(config_path))

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['detector', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    detector = config.get('detector')
    if not isinstance(detector, dict):
        return False, "detector must be a mapping"

    cascade = detector.get('cascade', '')
    if cascade is not None and not isinstance(cascade, str):
        return False, "detector.cascade must be a string (path to a cascade file)"

    min_neighbours = detector.get('min_neighbours', 2)
    if isinstance(min_neighbours, bool) or not isinstance(min_neighbours, int):
        return False, "detector.min_neighbours must be an integer"
    if not MIN_NEIGHBOURS_FLOOR <= min_neighbours <= MIN_NEIGHBOURS_CEILING:
        return False, (
            f"detector.min_neighbours must be between {MIN_NEIGHBOURS_FLOOR} and {MIN_NEIGHBOURS_CEILING}"
        )

    backends = ['auto'] + list(BACKENDS)
    if detector.get('backend', 'auto') not in backends:
        return False, f"detector.backend must be one of: {', '.join(backends)}"

    if config['log_path'] is not None and not isinstance(config['log_path'], str):
        return False, "log_path must be a string"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def run_detect(images: List[str], config: Config, show_bounds: bool = False) -> int:
    try:
        detector = FaceDetector(
            cascade_path=config.detector.cascade or None,
            min_neighbours=config.detector.min_neighbours,
            backend=config.detector.backend,
        )
    except FileNotFoundError as e:
        logging.error(f"No cascade available: {e}")
        return 1

    if not detector.classifier.is_valid:
        logging.error(f"Cascade {detector.cascade_path} could not be loaded")
        return 1

    for image in images:
        rects = detector.detect(image)
        result: Dict[str, Any] = {
            "image": image,
            "objects": [r.to_dict() for r in rects],
        }
        if show_bounds:
            bounds = bounding_box(rects)
            result["bounds"] = list(bounds) if bounds else None
        logging.info(f"{image}: {len(rects)} object(s)")
        print(json.dumps(result))

    return 0


def run_convert(source: str, destination: str) -> int:
    try:
        cascade_loader.convert(source, destination)
    except (ValueError, OSError) as e:
        logging.error(f"Conversion failed: {e}")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Haar cascade object detector')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')

    sub = parser.add_subparsers(dest='command', required=True)

    detect_parser = sub.add_parser('detect', help='Detect objects in images')
    detect_parser.add_argument('images', nargs='+', help='Image files to scan')
    detect_parser.add_argument('--cascade', type=str, default=None,
                               help='Cascade file (.xml or .json, optionally .gz/.bz2/.zst)')
    detect_parser.add_argument('--min-neighbours', type=int, default=None,
                               help='Minimum neighbours per detection (2-10)')
    detect_parser.add_argument('--backend', type=str, default=None,
                               help='Pixel source backend: auto, ' + ', '.join(BACKENDS))
    detect_parser.add_argument('--bounds', action='store_true',
                               help='Also print the box enclosing all detections')

    convert_parser = sub.add_parser('convert', help='Convert a cascade to compact JSON')
    convert_parser.add_argument('source', help='Cascade markup file (.xml)')
    convert_parser.add_argument('destination', help='Output file (.json, .json.gz, .json.bz2, .json.zst)')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config)

    if args.command == 'detect' and isinstance(config.get('detector'), dict):
        if args.cascade is not None:
            config['detector']['cascade'] = args.cascade
        if args.min_neighbours is not None:
            config['detector']['min_neighbours'] = args.min_neighbours
        if args.backend is not None:
            config['detector']['backend'] = args.backend

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])

    if args.command == 'convert':
        return run_convert(args.source, args.destination)

    return run_detect(args.images, Config.from_dict(config), show_bounds=args.bounds)


if __name__ == "__main__":
    sys.exit(main())
