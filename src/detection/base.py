"""
Detection interfaces.

We keep this lightweight so the project can support multiple backends:
- frame differencing (MotionDetector)
- hybrid motion + light saliency (SaliencyDetector)
- an external object detector feeding the same Detection type
"""

from __future__ import annotations

from typing import Any, Dict, List

import numpy as np

from models.detection import Detection


class DetectorSetupError(RuntimeError):
    """A detector could not acquire what it needs to process frames."""


class Detector:
    """
    Detector interface returning detections in pixel-space.

    Detectors are stateful across calls (frame history and internal region
    tracking) and are not thread-safe.
    """

    def detect(self, frame: np.ndarray) -> List[Detection]:
        raise NotImplementedError

    def reset(self) -> None:
        raise NotImplementedError

    def set_config(self, partial: Dict[str, Any]) -> None:
        raise NotImplementedError
