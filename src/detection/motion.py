"""
Motion detection module for finding moving regions in video frames.

Moving regions are found by differencing buffered frames, cleaning the
binary motion mask with morphology, extracting connected regions and only
reporting regions that persist across frames.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from algorithms.components import ComponentLabeler
from algorithms.morphology import clean
from algorithms.regions import merge_nearby_regions
from algorithms.saliency_maps import frame_difference
from algorithms.temporal import RegionTracker
from models.config import MotionDetectorConfig, merge_config
from models.detection import Detection

from .base import Detector, DetectorSetupError
from .frame_buffer import FrameBuffer, to_rgb


class MotionDetector(Detector):
    """Detect coherent moving regions using multi-frame differencing."""

    def __init__(self, config: Optional[MotionDetectorConfig] = None) -> None:
        """
        Initialize the motion detector.

        Args:
            config: Detector configuration (defaults when omitted).

        Raises:
            DetectorSetupError: If the frame history cannot hold a frame pair.
        """
        self.config = config if config is not None else MotionDetectorConfig()
        if self.config.buffer_size < 2:
            raise DetectorSetupError(
                f"MotionDetector needs buffer_size >= 2 to difference frames, got {self.config.buffer_size}"
            )

        self.frame_count = 0
        self._buffer = FrameBuffer(self.config.buffer_size)
        self._labeler = ComponentLabeler()
        self._regions = self._make_region_tracker()

        logging.info("Motion detector initialized")

    def _make_region_tracker(self) -> RegionTracker:
        return RegionTracker(
            max_age=self.config.max_blob_age,
            confidence_frames=self.config.confidence_frames,
            min_match_radius=self.config.min_match_radius,
            trail_length=self.config.trail_length,
        )

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """
        Detect moving regions in the frame.

        Args:
            frame: RGB/RGBA frame as (H, W, C) array.

        Returns:
            Detections for regions seen in at least min_frames_seen frames.
        """
        rgb = to_rgb(frame)
        if rgb is None:
            return []

        if self._buffer.push(rgb):
            self._regions.reset()

        if not self._buffer.ready:
            self.frame_count += 1
            return []

        mask = self._accumulated_motion_mask()
        cleaned = clean(mask, self.config.erode_steps, self.config.dilate_radii)
        raw_regions = self._labeler.find_regions(cleaned, min_area=self.config.min_blob_area)
        merged = merge_nearby_regions(raw_regions, self.config.merge_distance)
        self._regions.update(merged, self.frame_count)

        detections = [
            Detection(bbox=tracked.bbox, class_name="motion", score=tracked.confidence)
            for tracked in self._regions.confirmed(self.config.min_frames_seen)
        ]

        if detections:
            logging.debug(
                f"Motion frame={self.frame_count} raw={len(raw_regions)} "
                f"merged={len(merged)} reported={len(detections)}"
            )
        self.frame_count += 1
        return detections

    def _accumulated_motion_mask(self) -> np.ndarray:
        """
        Binary mask of pixels that changed in enough consecutive frame pairs.

        Requiring activations in about half of the pairs filters transient noise.
        """
        frames = self._buffer.frames
        counts = np.zeros(frames[0].shape[:2], dtype=np.uint16)
        for previous, current in zip(frames[:-1], frames[1:]):
            counts += frame_difference(current, previous) > self.config.threshold

        min_activations = max(1, (len(frames) - 1) // 2)
        return (counts >= min_activations).astype(np.uint8)

    def reset(self) -> None:
        """Reset frame history and internal region tracking."""
        self._buffer.clear()
        self._regions.reset()
        self.frame_count = 0
        logging.info("Motion detector reset")

    def set_config(self, partial: Dict[str, Any]) -> None:
        """Merge partial settings into the current configuration."""
        self.config = merge_config(self.config, partial)
        self._buffer.set_capacity(max(1, self.config.buffer_size))
        self._regions.max_age = self.config.max_blob_age
        self._regions.confidence_frames = self.config.confidence_frames
        self._regions.min_match_radius = self.config.min_match_radius
        self._regions.trail_length = self.config.trail_length
