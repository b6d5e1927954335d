"""
Salient Region Tracker - Detection Module

Per-frame detectors that turn raw frames into Detection lists.
"""

from .base import Detector, DetectorSetupError
from .factory import BACKENDS, create_detector_from_config
from .frame_buffer import FrameBuffer, to_rgb
from .motion import MotionDetector
from .saliency import SaliencyDetector

__all__ = [
    "BACKENDS",
    "Detector",
    "DetectorSetupError",
    "FrameBuffer",
    "MotionDetector",
    "SaliencyDetector",
    "create_detector_from_config",
    "to_rgb",
]
