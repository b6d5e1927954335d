"""
Frame payload handed from observation sources to the pipeline.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class FrameData:
    """
    One RGB frame plus where and when it was read.

    `frame_index` counts frames read since the source was opened,
    starting at 1.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_rgb(
        cls,
        frame: np.ndarray,
        frame_index: int = 0,
        source: Optional[str] = None,
        timestamp: Optional[float] = None,
    ) -> "FrameData":
        """Wrap an RGB array, taking width/height from its shape and stamping it now unless told otherwise."""
        height, width = frame.shape[:2]
        return cls(
            frame=frame,
            width=width,
            height=height,
            timestamp=time.time() if timestamp is None else timestamp,
            frame_index=frame_index,
            source=source,
        )
