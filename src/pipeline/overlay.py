"""
Overlay drawing for tracked salient regions.

This is the render boundary: saliency types become display strings here,
and nowhere upstream.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import cv2
import numpy as np

from algorithms.geometry import center_distance
from models.detection import SaliencyType
from models.track import Track

# Colors (RGB, frames are RGB throughout)
COLOR_BOX = (0, 255, 0)
COLOR_LINE = (255, 255, 255)
COLOR_TEXT = (0, 0, 0)

DISPLAY_LABELS = {
    SaliencyType.MOTION: "motion",
    SaliencyType.LIGHT: "light",
    SaliencyType.FLICKER: "flash",
    SaliencyType.HYBRID: "salient",
}

# Each track links to at most this many nearest neighbours
MAX_NEIGHBORS = 3


def display_label(track: Track) -> str:
    """Display string for a track: saliency types map to friendly names, else the class name."""
    if track.saliency_type is not None:
        return DISPLAY_LABELS.get(track.saliency_type, "salient")
    return track.class_name


def neighbor_pairs(
    tracks: Sequence[Track],
    max_distance: float,
    max_neighbors: int = MAX_NEIGHBORS,
) -> List[Tuple[int, int, float]]:
    """
    Constellation links between nearby tracks.

    Each track connects to its `max_neighbors` nearest tracks closer than
    `max_distance` (center to center). Pairs are reported once with the
    lower index first.

    Returns:
        List of (index_a, index_b, distance).
    """
    pairs: List[Tuple[int, int, float]] = []
    seen = set()
    for i, track in enumerate(tracks):
        nearby = []
        for j, other in enumerate(tracks):
            if i == j:
                continue
            distance = center_distance(track.bbox, other.bbox)
            if distance < max_distance:
                nearby.append((distance, j))
        nearby.sort()
        for distance, j in nearby[:max_neighbors]:
            key = (min(i, j), max(i, j))
            if key in seen:
                continue
            seen.add(key)
            pairs.append((key[0], key[1], distance))
    return pairs


def draw_tracks(
    frame: np.ndarray,
    tracks: Sequence[Track],
    max_line_distance: float = 300.0,
    show_labels: bool = True,
    color: Tuple[int, int, int] = COLOR_BOX,
) -> np.ndarray:
    """
    Draw constellation lines, boxes and labels onto a copy of the frame.

    Args:
        frame: RGB frame (uint8).
        tracks: Tracks to draw (typically the visible tracks of this frame).
        max_line_distance: Maximum center distance for constellation lines.
        show_labels: Draw "#id label" tags above boxes.
        color: Box and tag color.

    Returns:
        The annotated frame.
    """
    canvas = np.ascontiguousarray(frame, dtype=np.uint8).copy()

    # Lines first so boxes stay on top
    for a, b, distance in neighbor_pairs(tracks, max_line_distance):
        ax, ay = tracks[a].center
        bx, by = tracks[b].center
        opacity = max(0.15, 1.0 - distance / max_line_distance) * 0.6
        line_color = tuple(int(c * opacity) for c in COLOR_LINE)
        cv2.line(canvas, (int(ax), int(ay)), (int(bx), int(by)), line_color, 1, cv2.LINE_AA)

    font = cv2.FONT_HERSHEY_SIMPLEX
    for track in tracks:
        x1, y1, x2, y2 = track.bbox.as_int_xyxy()
        cv2.rectangle(canvas, (x1, y1), (x2, y2), color, 1)
        if not show_labels:
            continue
        label = f"#{track.id} {display_label(track)}"
        (tw, th), _ = cv2.getTextSize(label, font, 0.4, 1)
        cv2.rectangle(canvas, (x1, y1 - th - 6), (x1 + tw + 4, y1), color, -1)
        cv2.putText(canvas, label, (x1 + 2, y1 - 4), font, 0.4, COLOR_TEXT, 1)

    return canvas
