"""
Pipeline module for the salient region tracker.

The pipeline orchestrates the per-frame flow:
- Frame acquisition from observation sources
- Detection (primary plus optional auxiliary detectors)
- Identity tracking
- Optional overlay display
"""

from .engine import PipelineEngine, PipelineStats
from .overlay import display_label, draw_tracks, neighbor_pairs

__all__ = [
    "PipelineEngine",
    "PipelineStats",
    "display_label",
    "draw_tracks",
    "neighbor_pairs",
]
