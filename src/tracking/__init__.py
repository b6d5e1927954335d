"""
Tracking module.

The identity tracker implementation is in tracking.tracker.
"""

from .tracker import IdentityTracker, match_score, predict_bbox

__all__ = ["IdentityTracker", "match_score", "predict_bbox"]
