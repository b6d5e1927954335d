"""
Detector-internal temporal confirmation.

Per-frame regions are matched to previously seen regions so that only blobs
that persist across frames are reported. This is separate from the identity
tracker: it decides *whether* a blob is reported, not what identity it gets
downstream.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

from algorithms.components import Region
from algorithms.geometry import finite
from algorithms.saliency_maps import CueScores
from models.detection import BoundingBox, SaliencyType


@dataclass
class TrackedRegion:
    """A region followed across frames inside a detector."""
    id: int
    bbox: BoundingBox
    center_x: float
    center_y: float
    area: int
    frames_seen: int
    last_seen: int
    velocity_x: float = 0.0
    velocity_y: float = 0.0
    confidence: float = 0.0
    trail: Deque[Tuple[float, float]] = field(default_factory=lambda: deque(maxlen=100))
    scores: Optional[CueScores] = None
    saliency_type: Optional[SaliencyType] = None


class RegionTracker:
    """
    Nearest-center matcher with constant-velocity prediction.

    Each tracked region claims the closest unclaimed region within
    max(width, height, min_match_radius) of its predicted center.
    """

    def __init__(
        self,
        max_age: int = 10,
        confidence_frames: int = 10,
        min_match_radius: float = 100.0,
        score_alpha: float = 0.3,
        trail_length: int = 100,
    ):
        self.max_age = max_age
        self.confidence_frames = confidence_frames
        self.min_match_radius = min_match_radius
        self.score_alpha = score_alpha
        self.trail_length = trail_length
        self._regions: Dict[int, TrackedRegion] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._regions)

    @property
    def regions(self) -> List[TrackedRegion]:
        return list(self._regions.values())

    def reset(self) -> None:
        self._regions.clear()
        self._next_id = 1

    def _confidence(self, frames_seen: int) -> float:
        if self.confidence_frames <= 0:
            return 1.0
        return min(1.0, frames_seen / self.confidence_frames)

    def update(self, regions: List[Region], frame_index: int) -> None:
        """
        Match this frame's regions, spawn new tracked regions, evict stale ones.

        Args:
            regions: Merged regions of the current frame.
            frame_index: Monotonic frame counter of the owning detector.
        """
        matched_regions = set()
        matched_ids = set()

        for region_id, tracked in self._regions.items():
            predicted_x = tracked.center_x + tracked.velocity_x
            predicted_y = tracked.center_y + tracked.velocity_y
            max_distance = max(tracked.bbox.width, tracked.bbox.height, self.min_match_radius)

            best_match = -1
            best_distance = math.inf
            for i, region in enumerate(regions):
                if i in matched_regions:
                    continue
                distance = math.hypot(predicted_x - region.center_x, predicted_y - region.center_y)
                if distance < max_distance and distance < best_distance:
                    best_distance = distance
                    best_match = i

            if best_match < 0:
                continue

            region = regions[best_match]
            tracked.velocity_x = finite(region.center_x - tracked.center_x)
            tracked.velocity_y = finite(region.center_y - tracked.center_y)
            tracked.bbox = region.bbox
            tracked.center_x = region.center_x
            tracked.center_y = region.center_y
            tracked.area = region.area
            tracked.frames_seen += 1
            tracked.last_seen = frame_index
            tracked.confidence = self._confidence(tracked.frames_seen)
            if tracked.scores is not None and region.scores is not None:
                tracked.scores = tracked.scores.blend(region.scores, self.score_alpha)
            else:
                tracked.scores = region.scores
            tracked.saliency_type = region.saliency_type
            tracked.trail.append((region.center_x, region.center_y))

            matched_regions.add(best_match)
            matched_ids.add(region_id)

        for i, region in enumerate(regions):
            if i in matched_regions:
                continue
            region_id = self._next_id
            self._next_id += 1
            self._regions[region_id] = TrackedRegion(
                id=region_id,
                bbox=region.bbox,
                center_x=region.center_x,
                center_y=region.center_y,
                area=region.area,
                frames_seen=1,
                last_seen=frame_index,
                trail=deque([(region.center_x, region.center_y)], maxlen=self.trail_length),
                scores=region.scores,
                saliency_type=region.saliency_type,
            )

        stale = [
            region_id
            for region_id, tracked in self._regions.items()
            if region_id not in matched_ids and frame_index - tracked.last_seen > self.max_age
        ]
        for region_id in stale:
            del self._regions[region_id]

    def confirmed(self, min_frames_seen: int) -> List[TrackedRegion]:
        """Tracked regions matched at least `min_frames_seen` times."""
        return [t for t in self._regions.values() if t.frames_seen >= min_frames_seen]
