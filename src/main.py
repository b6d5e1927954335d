"""
Salient region tracker - command line runner.

Reads frames from a camera or video file, detects salient regions (motion
or hybrid motion + light saliency), assigns persistent track ids and
optionally shows an overlay window.

Usage:
    python src/main.py --config config/config.yaml --source clip.mp4 --display

Arguments:
    --config: Path to configuration file
    --source: Camera index or video file path (overrides source.device_id)
    --display: Show the overlay window
    --max-frames: Stop after this many frames
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, Optional, Tuple

import yaml

from detection import BACKENDS, DetectorSetupError, create_detector_from_config
from models.config import SALIENCY_PRESETS, AppConfig
from observation import create_source_from_config
from ops.logging import VALID_LOG_LEVELS, setup_logging
from pipeline.engine import PipelineEngine
from tracking.tracker import IdentityTracker


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
    - `default.yaml` next to config_path (checked in)
    - `config.yaml` next to config_path (local overrides)
    - plus the explicitly provided `--config` path (treated as overrides)

    Raises:
        OSError / yaml.YAMLError: If a present file cannot be read or parsed.
    """
    config_dir = os.path.dirname(config_path)

    merged: Dict[str, Any] = {}
    base_path = os.path.join(config_dir, "default.yaml")
    if os.path.exists(base_path):
        merged = _read_yaml(base_path)

    local_overrides_path = os.path.join(config_dir, "config.yaml")
    if os.path.exists(local_overrides_path):
        merged = _deep_merge(merged, _read_yaml(local_overrides_path))

    # Explicit path last, unless it is one of the files already applied
    explicit = os.path.abspath(config_path)
    if os.path.exists(config_path) and explicit not in (
        os.path.abspath(base_path),
        os.path.abspath(local_overrides_path),
    ):
        merged = _deep_merge(merged, _read_yaml(config_path))

    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    for section in ("source", "detection", "log_level"):
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    source = config.get("source") or {}
    if "device_id" not in source:
        return False, "Missing source.device_id"
    if not isinstance(source["device_id"], (int, str)) or isinstance(source["device_id"], bool):
        return False, "source.device_id must be an integer (index) or string (file path)"
    if isinstance(source["device_id"], int) and source["device_id"] < 0:
        return False, "source.device_id integer must be non-negative"
    if source.get("fps") is not None and (not isinstance(source["fps"], int) or source["fps"] <= 0):
        return False, "source.fps must be a positive integer"

    detection = config.get("detection") or {}
    backend = detection.get("backend", "saliency")
    if backend not in BACKENDS:
        return False, f"detection.backend must be one of: {', '.join(BACKENDS)}"

    for name in ("motion", "saliency"):
        section = detection.get(name) or {}
        if "buffer_size" in section:
            size = section["buffer_size"]
            if not isinstance(size, int) or size < 2:
                return False, f"detection.{name}.buffer_size must be an integer >= 2"
        if "min_blob_area" in section:
            area = section["min_blob_area"]
            if not isinstance(area, int) or area <= 0:
                return False, f"detection.{name}.min_blob_area must be a positive integer"

    preset = (detection.get("saliency") or {}).get("preset")
    if preset is not None and preset not in SALIENCY_PRESETS:
        return False, f"detection.saliency.preset must be one of: {', '.join(SALIENCY_PRESETS)}"

    tracking = config.get("tracking") or {}
    if "iou_threshold" in tracking:
        iou = tracking["iou_threshold"]
        if not _is_number(iou) or not (0 < iou <= 1):
            return False, "tracking.iou_threshold must be between 0 and 1"
    for key in ("max_age", "min_hits", "history_length"):
        if key in tracking:
            value = tracking[key]
            if not isinstance(value, int) or value <= 0:
                return False, f"tracking.{key} must be a positive integer"
    if "velocity_alpha" in tracking:
        alpha = tracking["velocity_alpha"]
        if not _is_number(alpha) or not (0 <= alpha <= 1):
            return False, "tracking.velocity_alpha must be between 0 and 1"

    if config["log_level"] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Salient Region Tracker")
    parser.add_argument("--config", type=str, default="config/config.yaml",
                        help="Path to configuration file")
    parser.add_argument("--source", type=str, default=None,
                        help="Camera index or video file (overrides source.device_id)")
    parser.add_argument("--display", action="store_true",
                        help="Enable overlay display")
    parser.add_argument("--max-frames", type=int, default=None,
                        help="Stop after this many frames")
    return parser.parse_args(argv)


def build_engine(app_config: AppConfig) -> PipelineEngine:
    """Wire source, detector and tracker from the typed config."""
    detector = create_detector_from_config(app_config.detection)
    tracker = IdentityTracker(app_config.tracking)
    source = create_source_from_config(app_config.source)
    return PipelineEngine(source, detector, tracker, app_config.pipeline)


def main(argv=None) -> int:
    """Main application function."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        return 1

    # CLI overrides
    if args.source is not None:
        config.setdefault("source", {})["device_id"] = int(args.source) if args.source.isdigit() else args.source
    pipeline_cfg = config.setdefault("pipeline", {})
    if args.display:
        pipeline_cfg["display"] = True
    if args.max_frames is not None:
        pipeline_cfg["max_frames"] = args.max_frames

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    app_config = AppConfig.from_dict(config)
    setup_logging(app_config.log_path, app_config.log_level)
    logging.info("Starting Salient Region Tracker")

    try:
        engine = build_engine(app_config)
    except DetectorSetupError as e:
        logging.error(f"Detector setup failed: {e}")
        return 1

    try:
        engine.run()
    except RuntimeError as e:
        logging.error(f"Pipeline failed: {e}")
        return 1

    logging.info("Salient Region Tracker stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
