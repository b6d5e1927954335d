"""
Bounded sliding window of recent frames and their luminance maps.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional, Tuple

import numpy as np


def to_rgb(frame: np.ndarray) -> Optional[np.ndarray]:
    """
    Normalize an input frame to a float32 (H, W, 3) RGB array.

    Accepts RGB, RGBA (alpha dropped) and single-channel frames.
    Returns None for empty or unsupported input.
    """
    if frame is None:
        return None
    arr = np.asarray(frame)
    if arr.ndim < 2 or arr.shape[0] == 0 or arr.shape[1] == 0:
        return None
    if arr.ndim == 2:
        arr = np.repeat(arr[:, :, None], 3, axis=2)
    elif arr.ndim == 3 and arr.shape[2] == 1:
        arr = np.repeat(arr, 3, axis=2)
    elif arr.ndim != 3 or arr.shape[2] < 3:
        return None
    rgb = arr[:, :, :3].astype(np.float32)
    # Non-finite pixels would poison every downstream map
    if not np.isfinite(rgb).all():
        rgb = np.nan_to_num(rgb, nan=0.0, posinf=255.0, neginf=0.0)
    return rgb


class FrameBuffer:
    """
    Ring buffers of raw frames and luminance maps for one fixed frame size.

    A frame of a different size flushes all history, since every map
    computed from the buffers assumes fixed dimensions.
    """

    def __init__(self, frame_capacity: int, luminance_capacity: int = 0):
        self._frames: Deque[np.ndarray] = deque(maxlen=max(1, frame_capacity))
        self._luminance: Deque[np.ndarray] = deque(maxlen=max(1, luminance_capacity or frame_capacity))
        self._shape: Optional[Tuple[int, int]] = None

    @property
    def shape(self) -> Optional[Tuple[int, int]]:
        """(height, width) of buffered frames, None when empty."""
        return self._shape

    @property
    def frames(self) -> List[np.ndarray]:
        return list(self._frames)

    @property
    def luminance_maps(self) -> List[np.ndarray]:
        return list(self._luminance)

    @property
    def ready(self) -> bool:
        """Whether at least two frames are buffered for differencing."""
        return len(self._frames) >= 2

    def __len__(self) -> int:
        return len(self._frames)

    def push(self, rgb: np.ndarray, lum: Optional[np.ndarray] = None) -> bool:
        """
        Append a frame (and optionally its luminance map).

        Returns:
            True if the frame size changed and history was flushed.
        """
        shape = rgb.shape[:2]
        resized = self._shape is not None and shape != self._shape
        if resized:
            logging.info(f"Frame size changed {self._shape} -> {shape}, flushing history")
            self.clear()
        self._shape = shape
        self._frames.append(rgb)
        if lum is not None:
            self._luminance.append(lum)
        return resized

    def set_capacity(self, frame_capacity: int, luminance_capacity: int = 0) -> None:
        """Resize the rings, keeping the most recent entries."""
        self._frames = deque(self._frames, maxlen=max(1, frame_capacity))
        self._luminance = deque(self._luminance, maxlen=max(1, luminance_capacity or frame_capacity))

    def clear(self) -> None:
        self._frames.clear()
        self._luminance.clear()
        self._shape = None
