"""
Detection models for salient region detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class SaliencyType(str, Enum):
    """Dominant visual cue of a salient region."""

    MOTION = "motion"
    LIGHT = "light"
    FLICKER = "flicker"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates (top-left origin).

    Attributes:
        x: Left edge x coordinate.
        y: Top edge y coordinate.
        width: Box width (non-negative).
        height: Box height (non-negative).
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def translated(self, dx: float, dy: float) -> "BoundingBox":
        """Return a copy shifted by (dx, dy)."""
        return BoundingBox(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def as_int_xyxy(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple, e.g. for drawing."""
        return (int(self.x), int(self.y), int(self.x2), int(self.y2))

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        """Create from corner coordinates."""
        return cls(x=x1, y=y1, width=max(0.0, x2 - x1), height=max(0.0, y2 - y1))


@dataclass(frozen=True)
class Detection:
    """
    A single detection for one frame.

    Attributes:
        bbox: Bounding box in pixel coordinates.
        class_name: Class label ("motion", a saliency type, or an external
            detector's label).
        score: Confidence score (0-1).
        saliency_type: Dominant cue when produced by the saliency detector.
    """
    bbox: BoundingBox
    class_name: str = "object"
    score: float = 1.0
    saliency_type: Optional[SaliencyType] = None

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    @classmethod
    def from_xywh(
        cls,
        x: float,
        y: float,
        width: float,
        height: float,
        class_name: str = "object",
        score: float = 1.0,
    ) -> "Detection":
        """Create Detection from x, y, width, height."""
        return cls(
            bbox=BoundingBox(x=x, y=y, width=width, height=height),
            class_name=class_name,
            score=score,
        )
