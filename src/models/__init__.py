"""
Typed models for the salient region tracker.

Value types shared by detectors, the identity tracker and the runner.
"""

from .frame import FrameData
from .detection import BoundingBox, Detection, SaliencyType
from .track import Track, TrackState, Velocity
from .config import (
    AppConfig,
    DetectionConfig,
    MotionDetectorConfig,
    PipelineConfig,
    SALIENCY_PRESETS,
    SaliencyConfig,
    SourceConfig,
    TrackerConfig,
    merge_config,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "BoundingBox",
    "Detection",
    "SaliencyType",
    # Tracking
    "Track",
    "TrackState",
    "Velocity",
    # Config
    "AppConfig",
    "DetectionConfig",
    "MotionDetectorConfig",
    "PipelineConfig",
    "SALIENCY_PRESETS",
    "SaliencyConfig",
    "SourceConfig",
    "TrackerConfig",
    "merge_config",
]
