"""
Connected-component extraction over binary masks.

Uses iterative 4-connected flood fill (cv2.floodFill, no recursion) with a
visited mask owned by the labeler and reused across frames of the same size.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from algorithms.saliency_maps import CueScores, classify_region
from models.detection import BoundingBox, SaliencyType


@dataclass(frozen=True)
class Region:
    """
    A connected blob of active mask pixels.

    Attributes:
        bbox: Inclusive pixel extent.
        center_x: Centroid x (pixel mean, or bbox center after merging).
        center_y: Centroid y.
        area: Active pixel count.
        scores: Per-cue means when cue maps were supplied.
        saliency_type: Dominant cue classification, if scored.
    """
    bbox: BoundingBox
    center_x: float
    center_y: float
    area: int
    scores: Optional[CueScores] = None
    saliency_type: Optional[SaliencyType] = None


class ComponentLabeler:
    """
    Finds 4-connected regions in binary masks.

    Traversal runs inside cv2.floodFill, one fill per unvisited active seed.
    The (H+2, W+2) fill mask doubles as the visited buffer: it is allocated
    once per frame size and cleared between calls.
    """

    # Mask values: freshly filled region, then visited once described
    _FILLED = 255
    _VISITED = 1
    _SEED_CHUNK = 4096

    def __init__(self) -> None:
        self._visited: Optional[np.ndarray] = None

    def _visited_for(self, height: int, width: int) -> np.ndarray:
        shape = (height + 2, width + 2)
        if self._visited is None or self._visited.shape != shape:
            self._visited = np.zeros(shape, dtype=np.uint8)
            logging.debug(f"Component labeler buffer allocated: {shape[1]}x{shape[0]}")
        else:
            self._visited.fill(0)
        return self._visited

    def find_regions(
        self,
        mask: np.ndarray,
        min_area: int = 1,
        cue_maps: Optional[Dict[str, np.ndarray]] = None,
    ) -> List[Region]:
        """
        Extract connected regions from a binary mask.

        Args:
            mask: 2D array, nonzero = active.
            min_area: Regions with fewer pixels are discarded.
            cue_maps: Optional per-pixel maps keyed by "motion", "luminance",
                "gradient", "flicker"; their per-region means populate
                `Region.scores`.

        Returns:
            Regions in row-major order of their first pixel.
        """
        if mask.ndim != 2 or mask.size == 0:
            return []

        height, width = mask.shape
        active = (np.asarray(mask) != 0).astype(np.uint8)
        visited = self._visited_for(height, width)
        inner = visited[1:-1, 1:-1]
        cues = (
            {name: np.asarray(m, dtype=np.float32) for name, m in cue_maps.items()}
            if cue_maps
            else None
        )
        flags = 4 | cv2.FLOODFILL_MASK_ONLY | cv2.FLOODFILL_FIXED_RANGE | (self._FILLED << 8)

        regions: List[Region] = []
        seeds = np.flatnonzero(active)
        for start in range(0, seeds.size, self._SEED_CHUNK):
            chunk = seeds[start:start + self._SEED_CHUNK]
            ys, xs = np.divmod(chunk, width)
            # Skip seeds already swallowed by earlier fills without a Python loop
            keep = inner[ys, xs] == 0
            for y, x in zip(ys[keep].tolist(), xs[keep].tolist()):
                if inner[y, x]:
                    continue
                area, _, _, rect = cv2.floodFill(active, visited, (x, y), 1, 0, 0, flags)
                region = self._describe(inner, rect, area, min_area, cues)
                if region is not None:
                    regions.append(region)
        return regions

    def _describe(
        self,
        inner: np.ndarray,
        rect: Tuple[int, int, int, int],
        area: int,
        min_area: int,
        cues: Optional[Dict[str, np.ndarray]],
    ) -> Optional[Region]:
        rx, ry, rw, rh = rect
        window = inner[ry:ry + rh, rx:rx + rw]
        filled = window == self._FILLED
        window[filled] = self._VISITED
        if area < min_area:
            return None

        ys, xs = np.nonzero(filled)
        ys = ys + ry
        xs = xs + rx

        scores = None
        saliency_type = None
        if cues is not None:
            scores = CueScores(
                motion=_mean(cues.get("motion"), ys, xs),
                luminance=_mean(cues.get("luminance"), ys, xs),
                gradient=_mean(cues.get("gradient"), ys, xs),
                flicker=_mean(cues.get("flicker"), ys, xs),
            )
            saliency_type = classify_region(scores)

        # The fill rect is the inclusive pixel extent
        return Region(
            bbox=BoundingBox(x=float(rx), y=float(ry), width=float(rw), height=float(rh)),
            center_x=float(xs.mean()),
            center_y=float(ys.mean()),
            area=int(area),
            scores=scores,
            saliency_type=saliency_type,
        )


def _mean(values: Optional[np.ndarray], ys: np.ndarray, xs: np.ndarray) -> float:
    if values is None or ys.size == 0:
        return 0.0
    mean = float(values[ys, xs].sum()) / ys.size
    return mean if np.isfinite(mean) else 0.0
