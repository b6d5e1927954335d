"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
source:
  device_id: 0
  fps: 30

detection:
  backend: "saliency"
  saliency:
    preset: "default"

tracking:
  iou_threshold: 0.2
  max_age: 2

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "source": {
            "device_id": 0,
            "fps": 30,
        },
        "detection": {
            "backend": "saliency",
            "motion": {"threshold": 30, "buffer_size": 3},
            "saliency": {"preset": "dust"},
        },
        "tracking": {
            "iou_threshold": 0.2,
            "max_age": 2,
            "min_hits": 2,
        },
        "pipeline": {
            "max_consecutive_failures": 10,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def black_frame():
    """Factory for black RGB frames."""
    def _make(width=160, height=80):
        return np.zeros((height, width, 3), dtype=np.uint8)
    return _make


@pytest.fixture
def square_frame(black_frame):
    """Factory for a black frame with one filled square."""
    def _make(x, y, size=16, value=120, width=160, height=80):
        frame = black_frame(width, height)
        frame[y:y + size, x:x + size] = value
        return frame
    return _make
