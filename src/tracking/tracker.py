"""
Identity tracking module for following detections across video frames.

This module implements a greedy IoU + distance tracker:
1. Predict each track's box this frame with a constant-velocity model
2. Score detection/track pairs by IoU with a center-distance fallback
3. Greedily assign pairs in descending score order
4. Update matched tracks, coast unmatched ones, spawn new tracks
5. Remove stale tracks and return the visible ones

The assignment is a greedy approximation of optimal bipartite matching.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Dict, List, Optional, Sequence, Tuple

from algorithms.geometry import center_delta, center_distance, finite, iou
from models.config import TrackerConfig, merge_config
from models.detection import BoundingBox, Detection
from models.track import Track, Velocity

# (detection index, track index, score)
Candidate = Tuple[int, int, float]


def predict_bbox(track: Track) -> BoundingBox:
    """Predict a track's box one frame ahead using its velocity."""
    return track.bbox.translated(track.velocity.x, track.velocity.y)


def match_score(detection_box: BoundingBox, predicted: BoundingBox) -> Tuple[float, float]:
    """
    Score a detection against a predicted track box.

    Returns:
        (score, center_distance). Overlapping pairs score IoU plus half the
        distance score; others fall back to 0.8 of the distance score.
    """
    overlap = iou(detection_box, predicted)
    distance = center_distance(detection_box, predicted)
    track_dim = max(predicted.width, predicted.height, 150.0)
    distance_score = max(0.0, 1.0 - distance / track_dim)
    if overlap > 0.05:
        score = overlap + 0.5 * distance_score
    else:
        score = 0.8 * distance_score
    return finite(score), distance


class IdentityTracker:
    """
    Assigns persistent integer ids to per-frame detections.

    This tracker is responsible for:
    - Predicting track positions from their velocity
    - Matching detections to tracks (greedy, score descending)
    - Coasting tracks through brief misses
    - Removing stale tracks

    Ids come from a counter owned by the instance; they start at 1, are never
    reused while the instance lives, and restart at 1 after reset().
    Not thread-safe: one update() in flight per instance.
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        """
        Initialize the identity tracker.

        Args:
            config: Tracker configuration (defaults when omitted).
        """
        self.config = config if config is not None else TrackerConfig()
        self.tracks: List[Track] = []
        self.next_id = 1

        logging.info("Identity tracker initialized")

    def update(self, detections: Sequence[Detection]) -> List[Track]:
        """
        Update tracker with the detections of one frame.

        Args:
            detections: Detections for this frame, any order, may be empty.

        Returns:
            Visible tracks: confirmed ones plus any matched this frame.
        """
        detections = list(detections)
        matched, unmatched_detections, unmatched_tracks = self._match(detections)

        for di, ti in matched:
            self._update_matched(self.tracks[ti], detections[di])

        for ti in unmatched_tracks:
            self._coast(self.tracks[ti])

        for di in unmatched_detections:
            self._spawn(detections[di])

        self._remove_old_tracks()

        min_hits = self.config.min_hits
        return [t for t in self.tracks if t.is_visible(min_hits)]

    def _candidates(self, detections: List[Detection]) -> List[Candidate]:
        candidates: List[Candidate] = []
        predictions = [predict_bbox(t) for t in self.tracks]
        for di, detection in enumerate(detections):
            for ti, predicted in enumerate(predictions):
                score, distance = match_score(detection.bbox, predicted)
                if score >= self.config.iou_threshold or distance < self.config.max_match_distance:
                    candidates.append((di, ti, score))
        return candidates

    def _match(
        self, detections: List[Detection]
    ) -> Tuple[List[Tuple[int, int]], List[int], List[int]]:
        """
        Greedy assignment over all candidate pairs.

        Returns:
            (matched [(det_idx, track_idx)], unmatched det idxs, unmatched track idxs)
        """
        candidates = self._candidates(detections)
        # Stable sort: equal scores keep candidate list order
        candidates.sort(key=lambda c: c[2], reverse=True)

        used_detections = set()
        used_tracks = set()
        matched: List[Tuple[int, int]] = []
        for di, ti, _ in candidates:
            if di in used_detections or ti in used_tracks:
                continue
            matched.append((di, ti))
            used_detections.add(di)
            used_tracks.add(ti)

        unmatched_detections = [i for i in range(len(detections)) if i not in used_detections]
        unmatched_tracks = [i for i in range(len(self.tracks)) if i not in used_tracks]
        return matched, unmatched_detections, unmatched_tracks

    def _update_matched(self, track: Track, detection: Detection) -> None:
        dx, dy = center_delta(track.bbox, detection.bbox)
        # The first match after creation has no prior velocity to smooth against
        if self.config.smooth_velocity and track.hits > 1:
            alpha = self.config.velocity_alpha
            dx = alpha * dx + (1 - alpha) * track.velocity.x
            dy = alpha * dy + (1 - alpha) * track.velocity.y
        track.velocity = Velocity(x=finite(dx), y=finite(dy))

        track.bbox = detection.bbox
        track.score = detection.score
        track.class_name = detection.class_name
        track.saliency_type = detection.saliency_type
        track.age += 1
        track.hits += 1
        track.time_since_update = 0
        track.history.append(detection.bbox)

    def _coast(self, track: Track) -> None:
        track.age += 1
        track.time_since_update += 1
        if track.time_since_update <= self.config.coast_frames:
            track.bbox = predict_bbox(track)
            track.history.append(track.bbox)
            decay = self.config.velocity_decay
            track.velocity = Velocity(x=track.velocity.x * decay, y=track.velocity.y * decay)

    def _spawn(self, detection: Detection) -> Track:
        track = Track(
            id=self.next_id,
            bbox=detection.bbox,
            class_name=detection.class_name,
            score=detection.score,
            age=1,
            time_since_update=0,
            velocity=Velocity(),
            history=deque([detection.bbox], maxlen=max(1, self.config.history_length)),
            saliency_type=detection.saliency_type,
        )
        self.next_id += 1
        self.tracks.append(track)
        return track

    def _remove_old_tracks(self) -> None:
        """Remove tracks that have gone unmatched for max_age frames."""
        before = len(self.tracks)
        self.tracks = [t for t in self.tracks if t.time_since_update < self.config.max_age]
        removed = before - len(self.tracks)
        if removed:
            logging.debug(f"Removed {removed} stale track(s), {len(self.tracks)} remaining")

    def get_tracks(self) -> List[Track]:
        """Get all internal tracks, including ones hidden by the visibility rule."""
        return list(self.tracks)

    def reset(self) -> None:
        """Drop all tracks and restart ids at 1."""
        self.tracks = []
        self.next_id = 1
        logging.info("Identity tracker reset")

    def set_config(self, partial: Dict[str, Any]) -> None:
        """
        Merge partial settings into the current configuration.

        A new history_length also rebounds the histories of live tracks,
        keeping their most recent boxes.
        """
        old_length = max(1, self.config.history_length)
        self.config = merge_config(self.config, partial)
        new_length = max(1, self.config.history_length)
        if new_length != old_length:
            for track in self.tracks:
                track.history = deque(track.history, maxlen=new_length)
