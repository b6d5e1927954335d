"""
Detector construction from configuration.
"""

from __future__ import annotations

import logging

from models.config import DetectionConfig

from .base import Detector, DetectorSetupError
from .motion import MotionDetector
from .saliency import SaliencyDetector

BACKENDS = ("motion", "saliency")


def create_detector_from_config(config: DetectionConfig) -> Detector:
    """
    Build the detector selected by `config.backend`.

    Raises:
        DetectorSetupError: Unknown backend, or the detector cannot allocate
            its frame history.
    """
    backend = (config.backend or "").lower()
    if backend == "motion":
        detector: Detector = MotionDetector(config.motion)
    elif backend == "saliency":
        detector = SaliencyDetector(config.saliency)
    else:
        raise DetectorSetupError(f"Unknown detection backend: {config.backend!r} (expected one of {BACKENDS})")

    logging.info(f"Detection backend: {backend}")
    return detector
