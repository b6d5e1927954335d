"""
Binary mask morphology.

Masks are 2D uint8 arrays holding 0/1. Only interior pixels (at least
`radius` away from every edge) are evaluated; the border band of the output
is always 0, matching a neighborhood that must fit inside the frame.
"""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple

import cv2
import numpy as np


def _interior(shape: Tuple[int, int], radius: int) -> np.ndarray:
    """Boolean mask of pixels whose (2r+1)^2 neighborhood fits in the frame."""
    h, w = shape
    inside = np.zeros((h, w), dtype=bool)
    if radius < 0 or h <= 2 * radius or w <= 2 * radius:
        return inside
    inside[radius:h - radius, radius:w - radius] = True
    return inside


def erode(mask: np.ndarray, radius: int, min_neighbors: int) -> np.ndarray:
    """
    Set an interior pixel when at least `min_neighbors` pixels of its
    (2r+1)x(2r+1) neighborhood (itself included) are active.

    Args:
        mask: Binary 0/1 mask.
        radius: Neighborhood radius.
        min_neighbors: Active-neighbor count required.

    Returns:
        New binary uint8 mask.
    """
    size = 2 * radius + 1
    counts = cv2.boxFilter(
        mask.astype(np.float32),
        cv2.CV_32F,
        (size, size),
        normalize=False,
        borderType=cv2.BORDER_CONSTANT,
    )
    # Counts are integral; the epsilon absorbs float summation error
    result = (counts >= min_neighbors - 0.5) & _interior(mask.shape, radius)
    return result.astype(np.uint8)


def dilate(mask: np.ndarray, radius: int) -> np.ndarray:
    """
    Activate the whole (2r+1)x(2r+1) neighborhood of every active interior pixel.

    Args:
        mask: Binary 0/1 mask.
        radius: Neighborhood radius.

    Returns:
        New binary uint8 mask.
    """
    seeds = (mask > 0) & _interior(mask.shape, radius)
    if radius <= 0:
        return seeds.astype(np.uint8)
    kernel = np.ones((2 * radius + 1, 2 * radius + 1), np.uint8)
    return cv2.dilate(
        seeds.astype(np.uint8),
        kernel,
        borderType=cv2.BORDER_CONSTANT,
        borderValue=0,
    )


def clean(
    mask: np.ndarray,
    erode_steps: Iterable[Tuple[int, int]],
    dilate_radii: Sequence[int],
) -> np.ndarray:
    """
    Suppress salt-and-pepper noise: erosion passes first, then dilation
    passes to restore blob extent.

    Args:
        mask: Binary 0/1 mask.
        erode_steps: (radius, min_neighbors) per erosion pass.
        dilate_radii: Radius per dilation pass.
    """
    current = mask.astype(np.uint8)
    for radius, min_neighbors in erode_steps:
        current = erode(current, radius, min_neighbors)
    for radius in dilate_radii:
        current = dilate(current, radius)
    return current
