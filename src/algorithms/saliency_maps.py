"""
Per-pixel saliency maps and their fusion.

Each map is a float32 array of shape (H, W) with values in [0, 1]:

1. Motion    - accumulated, threshold-gated frame differences
2. Luminance - bright regions above a (scene adaptive) threshold
3. Gradient  - Sobel edge magnitude of the luminance image
4. Flicker   - temporal standard deviation of luminance (strobes, flashes)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import cv2
import numpy as np

from models.detection import SaliencyType

# ITU-R BT.709 luma coefficients
BT709 = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)
# ITU-R BT.601 weights used for colour differences
BT601 = np.array([0.299, 0.587, 0.114], dtype=np.float32)


@dataclass(frozen=True)
class CueScores:
    """Mean per-cue saliency (0-1) over a region."""
    motion: float = 0.0
    luminance: float = 0.0
    gradient: float = 0.0
    flicker: float = 0.0

    def blend(self, other: "CueScores", alpha: float) -> "CueScores":
        """Exponential moving average: `alpha` weight on `other`."""
        keep = 1.0 - alpha
        return CueScores(
            motion=self.motion * keep + other.motion * alpha,
            luminance=self.luminance * keep + other.luminance * alpha,
            gradient=self.gradient * keep + other.gradient * alpha,
            flicker=self.flicker * keep + other.flicker * alpha,
        )


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Per-pixel luminance (0-255) of an (H, W, 3) RGB array."""
    return (rgb[..., :3].astype(np.float32) @ BT709).astype(np.float32)


def frame_difference(current: np.ndarray, previous: np.ndarray) -> np.ndarray:
    """Luminance-weighted absolute channel difference of two RGB frames."""
    diff = np.abs(current[..., :3].astype(np.float32) - previous[..., :3].astype(np.float32))
    return (diff @ BT601).astype(np.float32)


class SceneStats:
    """
    Running scene luminance statistics for adaptive thresholding.

    Mean and standard deviation are tracked with an exponential moving
    average over a strided pixel sample.
    """

    INITIAL_MEAN = 128.0
    INITIAL_STD = 50.0

    def __init__(self, alpha: float = 0.1, stride: int = 8):
        self.alpha = alpha
        self.stride = max(1, int(stride))
        self.mean = self.INITIAL_MEAN
        self.std = self.INITIAL_STD

    def update(self, lum: np.ndarray) -> None:
        sample = lum.reshape(-1)[:: self.stride].astype(np.float64)
        if sample.size == 0:
            return
        mean = float(sample.mean())
        variance = float((sample * sample).mean()) - mean * mean
        std = float(np.sqrt(max(0.0, variance)))
        if not (np.isfinite(mean) and np.isfinite(std)):
            return
        self.mean = self.mean * (1 - self.alpha) + mean * self.alpha
        self.std = self.std * (1 - self.alpha) + std * self.alpha

    def adaptive_threshold(self) -> float:
        return min(250.0, self.mean + 1.5 * self.std)

    def reset(self) -> None:
        self.mean = self.INITIAL_MEAN
        self.std = self.INITIAL_STD


def motion_map(frames: Sequence[np.ndarray], threshold: float) -> np.ndarray:
    """
    Accumulate gated frame differences over consecutive frame pairs.

    Differences above `threshold` contribute diff/255; the sum is divided by
    the number of comparisons and capped at 1.
    """
    if len(frames) < 2:
        h, w = frames[0].shape[:2] if frames else (0, 0)
        return np.zeros((h, w), dtype=np.float32)

    acc = np.zeros(frames[0].shape[:2], dtype=np.float32)
    for previous, current in zip(frames[:-1], frames[1:]):
        diff = frame_difference(current, previous)
        acc += np.where(diff > threshold, diff / 255.0, 0.0).astype(np.float32)

    comparisons = len(frames) - 1
    return np.minimum(1.0, acc / comparisons).astype(np.float32)


def luminance_map(lum: np.ndarray, threshold: float) -> np.ndarray:
    """Bright pixels above `threshold`, scaled linearly (x1.5) and capped at 1."""
    span = 255.0 - threshold
    if span <= 0:
        return np.zeros_like(lum, dtype=np.float32)
    scaled = np.minimum(1.0, (lum - threshold) / span * 1.5)
    return np.where(lum > threshold, scaled, 0.0).astype(np.float32)


def gradient_map(lum: np.ndarray, threshold: float) -> np.ndarray:
    """
    Sobel edge magnitude above `threshold`, normalized over a span of 200.

    The one-pixel frame border is left at 0.
    """
    h, w = lum.shape
    out = np.zeros((h, w), dtype=np.float32)
    if h < 3 or w < 3:
        return out
    src = lum.astype(np.float32)
    gx = cv2.Sobel(src, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(src, cv2.CV_32F, 0, 1, ksize=3)
    magnitude = cv2.magnitude(gx, gy)
    scaled = np.where(magnitude > threshold, np.minimum(1.0, (magnitude - threshold) / 200.0), 0.0)
    out[1:-1, 1:-1] = scaled[1:-1, 1:-1]
    return out


def flicker_map(lum_frames: Sequence[np.ndarray], threshold: float) -> np.ndarray:
    """Temporal luminance standard deviation above `threshold`, normalized over 100."""
    if len(lum_frames) < 2:
        h, w = lum_frames[0].shape if lum_frames else (0, 0)
        return np.zeros((h, w), dtype=np.float32)
    stack = np.stack(lum_frames).astype(np.float32)
    std = stack.std(axis=0)
    return np.where(std > threshold, np.minimum(1.0, (std - threshold) / 100.0), 0.0).astype(np.float32)


def fuse_maps(
    motion: np.ndarray,
    lum: np.ndarray,
    gradient: np.ndarray,
    flicker: np.ndarray,
    weights: Sequence[float],
    exponent: float = 0.8,
) -> np.ndarray:
    """
    Weighted sum of the four maps followed by a power boost.

    Weights are normalized to sum to 1; all-zero weights yield an empty map.
    """
    w_motion, w_lum, w_grad, w_flick = (float(w) for w in weights)
    total = w_motion + w_lum + w_grad + w_flick
    if total <= 0 or not np.isfinite(total):
        return np.zeros_like(motion, dtype=np.float32)
    combined = (
        motion * (w_motion / total)
        + lum * (w_lum / total)
        + gradient * (w_grad / total)
        + flicker * (w_flick / total)
    )
    combined = np.clip(np.nan_to_num(combined, nan=0.0, posinf=0.0, neginf=0.0), 0.0, None)
    return np.power(combined, exponent).astype(np.float32)


def classify_region(scores: CueScores) -> SaliencyType:
    """
    Label a region by its dominant cue.

    Flicker wins when strong and near the top score; otherwise motion or
    light win when 1.5x the other; everything else is hybrid.
    """
    top = max(scores.motion, scores.luminance, scores.flicker)
    if scores.flicker > 0.3 and scores.flicker >= top * 0.8:
        return SaliencyType.FLICKER
    if scores.motion >= scores.luminance * 1.5 and scores.motion > 0.2:
        return SaliencyType.MOTION
    if scores.luminance >= scores.motion * 1.5 and scores.luminance > 0.2:
        return SaliencyType.LIGHT
    return SaliencyType.HYBRID
