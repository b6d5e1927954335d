"""
Box geometry helpers shared by the tracker and the detectors.

All helpers return finite values: empty or degenerate inputs yield 0
instead of NaN so that scores and boxes stay usable downstream.
"""

from __future__ import annotations

import math
from typing import Tuple

from models.detection import BoundingBox


def safe_ratio(numerator: float, denominator: float) -> float:
    """Divide, returning 0.0 for a zero denominator or a non-finite result."""
    if denominator == 0:
        return 0.0
    value = numerator / denominator
    if not math.isfinite(value):
        return 0.0
    return value


def finite(value: float, default: float = 0.0) -> float:
    """Clamp NaN/inf to a default."""
    value = float(value)
    return value if math.isfinite(value) else default


def iou(box1: BoundingBox, box2: BoundingBox) -> float:
    """
    Calculate Intersection over Union (IoU) between two bounding boxes.

    Args:
        box1: First bounding box
        box2: Second bounding box

    Returns:
        IoU value between 0 and 1
    """
    x1 = max(box1.x, box2.x)
    y1 = max(box1.y, box2.y)
    x2 = min(box1.x2, box2.x2)
    y2 = min(box1.y2, box2.y2)

    intersection = max(0.0, x2 - x1) * max(0.0, y2 - y1)
    union = box1.area + box2.area - intersection

    if union <= 0:
        return 0.0
    return finite(intersection / union)


def center_distance(box1: BoundingBox, box2: BoundingBox) -> float:
    """Euclidean distance between two box centers."""
    c1 = box1.center
    c2 = box2.center
    return finite(math.hypot(c2[0] - c1[0], c2[1] - c1[1]), default=math.inf)


def union_box(box1: BoundingBox, box2: BoundingBox) -> BoundingBox:
    """Smallest box containing both boxes."""
    return BoundingBox.from_xyxy(
        min(box1.x, box2.x),
        min(box1.y, box2.y),
        max(box1.x2, box2.x2),
        max(box1.y2, box2.y2),
    )


def center_delta(old: BoundingBox, new: BoundingBox) -> Tuple[float, float]:
    """Displacement between two box centers (new - old)."""
    oc = old.center
    nc = new.center
    return (finite(nc[0] - oc[0]), finite(nc[1] - oc[1]))
