"""
Saliency-based detector.

A hybrid detector that follows both motion and light. Four visual cues are
computed per pixel and fused:

1. Motion    - frame differencing for moving objects
2. Luminance - high-brightness regions (lights, reflections)
3. Gradient  - edges of illuminated areas (spotlights, glows)
4. Flicker   - rapid luminance changes (strobes, flashes)

Fused regions are classified by their dominant cue and only reported once
they persist across frames.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from algorithms.components import ComponentLabeler
from algorithms.morphology import clean
from algorithms.regions import merge_nearby_regions
from algorithms.saliency_maps import (
    SceneStats,
    flicker_map,
    fuse_maps,
    gradient_map,
    luminance,
    luminance_map,
    motion_map,
)
from algorithms.temporal import RegionTracker
from models.config import SaliencyConfig, merge_config
from models.detection import Detection, SaliencyType

from .base import Detector, DetectorSetupError
from .frame_buffer import FrameBuffer, to_rgb


class SaliencyDetector(Detector):
    """
    Hybrid motion + light detector.

    Example:
        detector = SaliencyDetector(SALIENCY_PRESETS["dust"])
        for frame in frames:
            detections = detector.detect(frame)
    """

    def __init__(self, config: Optional[SaliencyConfig] = None):
        self.config = config if config is not None else SaliencyConfig()
        if self.config.buffer_size < 2:
            raise DetectorSetupError(
                f"SaliencyDetector needs buffer_size >= 2 to difference frames, got {self.config.buffer_size}"
            )

        self.frame_count = 0
        self._buffer = FrameBuffer(*self._capacities())
        self._scene = SceneStats(alpha=self.config.scene_stats_alpha, stride=self.config.scene_sample_stride)
        self._labeler = ComponentLabeler()
        self._regions = RegionTracker(
            max_age=self.config.max_region_age,
            confidence_frames=self.config.confidence_frames,
            min_match_radius=self.config.min_match_radius,
            score_alpha=self.config.score_ema_alpha,
            trail_length=self.config.trail_length,
        )

        logging.info("Saliency detector initialized")

    def _capacities(self):
        # The luminance ring also feeds the flicker window
        frames = max(1, self.config.buffer_size)
        return frames, max(frames, self.config.flicker_window_size)

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """
        Detect salient (moving, bright, edged or flickering) regions.

        Args:
            frame: RGB/RGBA frame as (H, W, C) array.

        Returns:
            Detections whose class_name is the region's saliency type.
        """
        rgb = to_rgb(frame)
        if rgb is None:
            return []

        lum = luminance(rgb)
        if self._buffer.push(rgb, lum):
            self._regions.reset()
        self._scene.update(lum)

        if not self._buffer.ready:
            self.frame_count += 1
            return []

        maps = self.compute_maps(lum)
        fused = fuse_maps(
            maps["motion"],
            maps["luminance"],
            maps["gradient"],
            maps["flicker"],
            weights=(
                self.config.motion_weight,
                self.config.luminance_weight,
                self.config.gradient_weight,
                self.config.flicker_weight,
            ),
            exponent=self.config.fusion_exponent,
        )

        binary = (fused > self.config.activation_threshold).astype(np.uint8)
        cleaned = clean(binary, self.config.erode_steps, self.config.dilate_radii)
        regions = self._labeler.find_regions(cleaned, min_area=self.config.min_blob_area, cue_maps=maps)
        merged = merge_nearby_regions(regions, self.config.merge_distance)
        self._regions.update(merged, self.frame_count)

        detections = []
        for tracked in self._regions.confirmed(self.config.min_frames_seen):
            saliency_type = tracked.saliency_type or SaliencyType.HYBRID
            detections.append(
                Detection(
                    bbox=tracked.bbox,
                    class_name=saliency_type.value,
                    score=tracked.confidence,
                    saliency_type=saliency_type,
                )
            )

        if detections:
            logging.debug(
                f"Saliency frame={self.frame_count} regions={len(regions)} "
                f"merged={len(merged)} reported={len(detections)}"
            )
        self.frame_count += 1
        return detections

    def compute_maps(self, lum: np.ndarray) -> Dict[str, np.ndarray]:
        """
        Compute the four per-cue maps for the most recent frame.

        Args:
            lum: Luminance map of the most recent frame.

        Returns:
            Maps keyed by "motion", "luminance", "gradient", "flicker".
        """
        cfg = self.config
        threshold = self._scene.adaptive_threshold() if cfg.adaptive_luminance else cfg.luminance_threshold
        window = max(2, cfg.flicker_window_size)
        return {
            "motion": motion_map(self._buffer.frames, cfg.motion_threshold),
            "luminance": luminance_map(lum, threshold),
            "gradient": gradient_map(lum, cfg.gradient_threshold),
            "flicker": flicker_map(self._buffer.luminance_maps[-window:], cfg.flicker_threshold),
        }

    def scene_stats(self) -> Dict[str, float]:
        """Current scene luminance statistics (mean, std)."""
        return {"mean_luminance": self._scene.mean, "std_luminance": self._scene.std}

    def reset(self) -> None:
        """Reset buffers, internal region tracking and scene statistics."""
        self._buffer.clear()
        self._regions.reset()
        self._scene.reset()
        self.frame_count = 0
        logging.info("Saliency detector reset")

    def set_config(self, partial: Dict[str, Any]) -> None:
        """Merge partial settings into the current configuration."""
        self.config = merge_config(self.config, partial)
        self._buffer.set_capacity(*self._capacities())
        self._scene.alpha = self.config.scene_stats_alpha
        self._scene.stride = max(1, int(self.config.scene_sample_stride))
        self._regions.max_age = self.config.max_region_age
        self._regions.confidence_frames = self.config.confidence_frames
        self._regions.min_match_radius = self.config.min_match_radius
        self._regions.score_alpha = self.config.score_ema_alpha
        self._regions.trail_length = self.config.trail_length
