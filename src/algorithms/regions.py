"""
Region merging.

Raw per-frame blobs of one object are often fragmented; nearby fragments are
absorbed into a growing region until no more merges occur.
"""

from __future__ import annotations

import math
from typing import List

from algorithms.components import Region
from algorithms.geometry import safe_ratio, union_box
from algorithms.saliency_maps import CueScores, classify_region


def _absorb(current: Region, other: Region) -> Region:
    bbox = union_box(current.bbox, other.bbox)
    area = current.area + other.area
    cx, cy = bbox.center

    scores = current.scores
    saliency_type = current.saliency_type
    if current.scores is not None and other.scores is not None:
        a, b = current.area, other.area
        scores = CueScores(
            motion=safe_ratio(current.scores.motion * a + other.scores.motion * b, area),
            luminance=safe_ratio(current.scores.luminance * a + other.scores.luminance * b, area),
            gradient=safe_ratio(current.scores.gradient * a + other.scores.gradient * b, area),
            flicker=safe_ratio(current.scores.flicker * a + other.scores.flicker * b, area),
        )
        saliency_type = classify_region(scores)

    return Region(
        bbox=bbox,
        center_x=cx,
        center_y=cy,
        area=area,
        scores=scores,
        saliency_type=saliency_type,
    )


def merge_nearby_regions(regions: List[Region], merge_distance: float) -> List[Region]:
    """
    Merge regions whose centers lie within `merge_distance` of a growing region.

    Each region seeds a group in input order; every unclaimed region closer
    than `merge_distance` to the group's current center is absorbed, the
    center/bbox/area are recomputed, and the scan repeats until a full pass
    absorbs nothing. Quadratic in the number of regions.

    Args:
        regions: Regions from one frame.
        merge_distance: Center distance threshold in pixels.

    Returns:
        Merged regions.
    """
    if len(regions) <= 1:
        return list(regions)

    merged: List[Region] = []
    used = [False] * len(regions)

    for i, region in enumerate(regions):
        if used[i]:
            continue
        used[i] = True
        current = region

        changed = True
        while changed:
            changed = False
            for j, other in enumerate(regions):
                if used[j]:
                    continue
                distance = math.hypot(current.center_x - other.center_x, current.center_y - other.center_y)
                if distance < merge_distance:
                    current = _absorb(current, other)
                    used[j] = True
                    changed = True

        merged.append(current)

    return merged
