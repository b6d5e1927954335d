"""
Typed configuration models matching the YAML config structure.

Every struct carries documented defaults. Partial updates never mutate a
config in place: `merge_config(old, partial)` returns a new instance.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, List, Optional, Tuple, TypeVar, Union

# (radius, min_neighbors) pairs for successive erosion passes
ErodeSteps = List[Tuple[int, int]]

C = TypeVar("C")


def _normalize(name: str, value: Any) -> Any:
    # YAML yields lists of lists for erosion steps
    if name == "erode_steps" and value is not None:
        return [(int(r), int(n)) for r, n in value]
    if name == "dilate_radii" and value is not None:
        return [int(r) for r in value]
    return value


def _known_fields(cls_or_obj: Any) -> Dict[str, Any]:
    return {f.name: f for f in fields(cls_or_obj)}


def merge_config(old: C, partial: Optional[Dict[str, Any]]) -> C:
    """
    Merge a partial dict of overrides into a config and return a new config.

    Unknown keys are ignored with a warning. Values are not range-checked;
    out-of-range settings simply produce degenerate behavior.

    Args:
        old: Existing config dataclass instance (left untouched).
        partial: Field overrides, may be None or empty.

    Returns:
        New config instance of the same type.
    """
    if not partial:
        return replace(old)
    known = _known_fields(old)
    updates: Dict[str, Any] = {}
    for key, value in partial.items():
        if key not in known:
            logging.warning(f"Ignoring unknown {type(old).__name__} field: {key}")
            continue
        updates[key] = _normalize(key, value)
    return replace(old, **updates)


def _from_dict(cls, d: Optional[Dict[str, Any]]):
    return merge_config(cls(), d or {})


def _to_dict(cfg: Any) -> Dict[str, Any]:
    d = asdict(cfg)
    if "erode_steps" in d:
        d["erode_steps"] = [list(step) for step in d["erode_steps"]]
    return d


@dataclass
class TrackerConfig:
    """
    Identity tracker configuration.

    Attributes:
        iou_threshold: Minimum match score for a detection/track candidate pair.
        max_age: Tracks are dropped once time_since_update reaches this.
        min_hits: Age at which a track stays visible through misses.
        max_line_distance: Maximum distance for constellation lines (renderer).
        max_match_distance: Center distance below which a pair is always a candidate.
        history_length: Maximum number of past boxes kept per track.
        smooth_velocity: Exponentially smooth velocity after the first match.
        velocity_alpha: Weight of the newest displacement when smoothing.
        coast_frames: Misses during which a track keeps moving by its velocity.
        velocity_decay: Velocity damping per coasting frame.
    """
    iou_threshold: float = 0.2
    max_age: int = 2
    min_hits: int = 2
    max_line_distance: float = 300.0
    max_match_distance: float = 100.0
    history_length: int = 30
    smooth_velocity: bool = True
    velocity_alpha: float = 0.7
    coast_frames: int = 2
    velocity_decay: float = 0.9

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "TrackerConfig":
        return _from_dict(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class MotionDetectorConfig:
    """
    Frame-differencing motion detector configuration.

    Attributes:
        threshold: Luminance-weighted pixel difference threshold (0-255).
        min_blob_area: Minimum connected region area in pixels.
        buffer_size: Number of frames kept for differencing.
        merge_distance: Center distance below which regions are merged.
        erode_steps: Successive erosion passes as (radius, min_neighbors).
        dilate_radii: Successive dilation radii.
        max_blob_age: Frames an unmatched blob is kept before eviction.
        min_frames_seen: Matches required before a blob is reported.
        confidence_frames: Matches at which the score saturates to 1.
        min_match_radius: Lower bound of the blob matching radius.
        trail_length: Maximum centers kept per blob trail.
    """
    threshold: float = 30.0
    min_blob_area: int = 200
    buffer_size: int = 3
    merge_distance: float = 50.0
    erode_steps: ErodeSteps = field(default_factory=lambda: [(2, 7), (1, 5)])
    dilate_radii: List[int] = field(default_factory=lambda: [2, 2])
    max_blob_age: int = 10
    min_frames_seen: int = 2
    confidence_frames: int = 10
    min_match_radius: float = 100.0
    trail_length: int = 100

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "MotionDetectorConfig":
        return _from_dict(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class SaliencyConfig:
    """
    Hybrid motion + light saliency detector configuration.

    Weights need not sum to 1; fusion normalizes them at use time.
    """
    # Motion
    motion_threshold: float = 25.0
    motion_weight: float = 0.4
    # Luminance
    luminance_threshold: float = 200.0
    luminance_weight: float = 0.3
    adaptive_luminance: bool = True
    # Gradient
    gradient_threshold: float = 50.0
    gradient_weight: float = 0.15
    # Flicker
    flicker_threshold: float = 40.0
    flicker_weight: float = 0.15
    flicker_window_size: int = 5
    # General
    min_blob_area: int = 150
    merge_distance: float = 60.0
    buffer_size: int = 4
    # Tuning
    activation_threshold: float = 0.15
    fusion_exponent: float = 0.8
    erode_steps: ErodeSteps = field(default_factory=lambda: [(2, 5)])
    dilate_radii: List[int] = field(default_factory=lambda: [3, 2])
    max_region_age: int = 12
    min_frames_seen: int = 2
    confidence_frames: int = 8
    score_ema_alpha: float = 0.3
    scene_stats_alpha: float = 0.1
    scene_sample_stride: int = 8
    min_match_radius: float = 100.0
    trail_length: int = 100

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "SaliencyConfig":
        d = dict(d or {})
        preset = d.pop("preset", None)
        base = SALIENCY_PRESETS[preset] if preset else cls()
        return merge_config(base, d)

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


# Detection styles. Unlisted fields keep their defaults.
SALIENCY_PRESETS: Dict[str, SaliencyConfig] = {
    # Balanced detection for general use
    "default": SaliencyConfig(),
    # Many small particles, minimal merging
    "dust": SaliencyConfig(
        motion_threshold=15, motion_weight=0.15,
        luminance_threshold=160, luminance_weight=0.5,
        gradient_threshold=30, gradient_weight=0.25,
        flicker_threshold=25, flicker_weight=0.1, flicker_window_size=3,
        min_blob_area=8, merge_distance=5, buffer_size=2,
    ),
    # Elongated bright regions, beams of light
    "light_rays": SaliencyConfig(
        motion_threshold=30, motion_weight=0.1,
        luminance_threshold=180, luminance_weight=0.55,
        gradient_threshold=40, gradient_weight=0.25,
        flicker_threshold=50, flicker_weight=0.1, flicker_window_size=4,
        min_blob_area=50, merge_distance=100, buffer_size=3,
    ),
    # Strong edge/contour detection
    "edges": SaliencyConfig(
        motion_threshold=20, motion_weight=0.2,
        luminance_threshold=220, luminance_weight=0.1, adaptive_luminance=False,
        gradient_threshold=25, gradient_weight=0.6,
        flicker_threshold=60, flicker_weight=0.1, flicker_window_size=4,
        min_blob_area=30, merge_distance=20, buffer_size=3,
    ),
}


@dataclass
class DetectionConfig:
    """Detection backend selection plus per-backend settings."""
    backend: str = "saliency"
    motion: MotionDetectorConfig = field(default_factory=MotionDetectorConfig)
    saliency: SaliencyConfig = field(default_factory=SaliencyConfig)

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "DetectionConfig":
        d = d or {}
        return cls(
            backend=d.get("backend", "saliency"),
            motion=MotionDetectorConfig.from_dict(d.get("motion")),
            saliency=SaliencyConfig.from_dict(d.get("saliency")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "motion": self.motion.to_dict(),
            "saliency": self.saliency.to_dict(),
        }


@dataclass
class SourceConfig:
    """Frame source configuration."""
    device_id: Union[int, str] = 0
    source_id: str = "default"
    fps: Optional[int] = None
    max_retries: int = 3

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "SourceConfig":
        return _from_dict(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        max_consecutive_failures: Max frame read failures before stopping.
        stats_log_interval: Seconds between status log messages.
        display: Show an overlay window while running.
        max_frames: Stop after this many frames (0 = unbounded).
    """
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0
    display: bool = False
    max_frames: int = 0

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "PipelineConfig":
        return _from_dict(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class AppConfig:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    source: SourceConfig = field(default_factory=SourceConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    tracking: TrackerConfig = field(default_factory=TrackerConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    log_path: str = "logs/salient_tracker.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AppConfig":
        """Adapter: Create AppConfig from raw dictionary (e.g., from load_config)."""
        return cls(
            source=SourceConfig.from_dict(d.get("source")),
            detection=DetectionConfig.from_dict(d.get("detection")),
            tracking=TrackerConfig.from_dict(d.get("tracking")),
            pipeline=PipelineConfig.from_dict(d.get("pipeline")),
            log_path=d.get("log_path", "logs/salient_tracker.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "source": self.source.to_dict(),
            "detection": self.detection.to_dict(),
            "tracking": self.tracking.to_dict(),
            "pipeline": self.pipeline.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
