"""
Track models for identity tracking state.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional, Tuple

from .detection import BoundingBox, SaliencyType


@dataclass
class Velocity:
    """Per-frame displacement in pixels."""
    x: float = 0.0
    y: float = 0.0


@dataclass
class Track:
    """
    A detection granted persistent identity across frames.

    Attributes:
        id: Unique identifier within one tracker instance (starts at 1).
        bbox: Current bounding box (predicted while coasting).
        class_name: Class label of the last matched detection.
        score: Score of the last matched detection.
        age: Frames since creation (1 on the creating frame).
        hits: Detections assigned to the track, the creating one included.
        time_since_update: Frames since the last successful match.
        velocity: Estimated displacement per frame.
        history: Past bounding boxes, oldest first, bounded.
        saliency_type: Saliency type of the last matched detection, if any.
    """
    id: int
    bbox: BoundingBox
    class_name: str
    score: float
    age: int = 1
    hits: int = 1
    time_since_update: int = 0
    velocity: Velocity = field(default_factory=Velocity)
    history: Deque[BoundingBox] = field(default_factory=lambda: deque(maxlen=30))
    saliency_type: Optional[SaliencyType] = None

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    def is_confirmed(self, min_hits: int) -> bool:
        """Whether the track has lived long enough to survive brief misses on screen."""
        return self.age >= min_hits

    def is_visible(self, min_hits: int) -> bool:
        return self.is_confirmed(min_hits) or self.time_since_update == 0


@dataclass(frozen=True)
class TrackState:
    """
    Immutable snapshot of a track (for consumers that keep results across frames).
    """
    id: int
    bbox: BoundingBox
    class_name: str
    score: float
    age: int
    time_since_update: int
    velocity: Tuple[float, float]
    saliency_type: Optional[SaliencyType] = None

    @classmethod
    def from_track(cls, track: Track) -> "TrackState":
        """Create immutable snapshot from a Track."""
        return cls(
            id=track.id,
            bbox=track.bbox,
            class_name=track.class_name,
            score=track.score,
            age=track.age,
            time_since_update=track.time_since_update,
            velocity=(track.velocity.x, track.velocity.y),
            saliency_type=track.saliency_type,
        )
