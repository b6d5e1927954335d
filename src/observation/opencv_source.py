"""
OpenCV-based observation source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- Video files (device_id as file path)

Frames are converted from OpenCV's BGR order to RGB before they leave
the source.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.config import SourceConfig
from models.frame import FrameData
from .base import ObservationConfig, ObservationSource


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV capture.

    Attributes:
        device_id: Camera index (int) or video file path (str).
        max_retries: Attempts to open the device before giving up.
        retry_delay: Base delay in seconds between open attempts (doubles each retry).
    """
    device_id: Union[int, str] = 0
    max_retries: int = 3
    retry_delay: float = 1.0

    @classmethod
    def from_source_config(cls, cfg: SourceConfig) -> "OpenCVSourceConfig":
        """Adapter: build from the typed `source` config section."""
        device_id = cfg.device_id
        # CLI and YAML may hand camera indices over as strings
        if isinstance(device_id, str) and device_id.isdigit():
            device_id = int(device_id)
        return cls(
            source_id=cfg.source_id,
            fps=cfg.fps,
            device_id=device_id,
            max_retries=max(1, cfg.max_retries),
        )


class OpenCVSource(ObservationSource):
    """
    Wraps cv2.VideoCapture and yields RGB FrameData.

    Example:
        with OpenCVSource(OpenCVSourceConfig(device_id="clip.mp4")) as source:
            for frame_data in source:
                tracks = engine.process_frame(frame_data.frame)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return
        self._initialize()
        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, device={self.device_id}, "
            f"info={self.get_video_info()}"
        )

    def _initialize(self) -> None:
        attempts = self._opencv_config.max_retries
        for attempt in range(attempts):
            if attempt > 0:
                wait_time = min(self._opencv_config.retry_delay * 2 ** (attempt - 1), 10)
                logging.info(f"Retrying open (attempt {attempt + 1}/{attempts}) after {wait_time}s")
                time.sleep(wait_time)

            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break
            self._cap.release()
            self._cap = None
            logging.warning(f"Failed to open device {self.device_id}")
        else:
            raise RuntimeError(f"Failed to open device {self.device_id} after {attempts} attempts")

        if isinstance(self.device_id, int) and self._opencv_config.fps:
            self._cap.set(cv2.CAP_PROP_FPS, self._opencv_config.fps)

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            if self.is_file:
                logging.info("End of video file reached")
            return None

        self._frame_index += 1
        return FrameData.from_rgb(
            self._to_rgb(frame),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    @staticmethod
    def _to_rgb(frame: np.ndarray) -> np.ndarray:
        if frame.ndim == 2:
            return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGB)
        if frame.shape[2] == 4:
            return cv2.cvtColor(frame, cv2.COLOR_BGRA2RGB)
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._is_open = False
        logging.info(f"OpenCVSource closed: source_id={self.source_id}")

    def get_video_info(self) -> Dict[str, Any]:
        """Get information about the open capture."""
        if self._cap is None or not self._cap.isOpened():
            return {}
        return {
            "width": int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": self._cap.get(cv2.CAP_PROP_FPS),
            "frame_count": int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT)) if self.is_file else None,
        }


def create_source_from_config(cfg: SourceConfig) -> OpenCVSource:
    """Factory: OpenCV source from the typed `source` config section."""
    return OpenCVSource(OpenCVSourceConfig.from_source_config(cfg))
