"""
Tests for the frame-differencing MotionDetector.
"""

import numpy as np
import pytest

from detection import DetectorSetupError, MotionDetector, create_detector_from_config
from detection.frame_buffer import FrameBuffer, to_rgb
from models.config import DetectionConfig, MotionDetectorConfig


def moving_square(t, size=20, step=30, value=200, width=200, height=80):
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    x = 10 + step * t
    frame[30:30 + size, x:x + size] = value
    return frame


class TestToRgb:
    def test_rgb_passthrough(self):
        out = to_rgb(np.full((4, 5, 3), 7, dtype=np.uint8))
        assert out.shape == (4, 5, 3)
        assert out.dtype == np.float32

    def test_rgba_alpha_dropped(self):
        frame = np.zeros((4, 4, 4), dtype=np.uint8)
        frame[..., 3] = 255
        assert to_rgb(frame).shape == (4, 4, 3)
        assert to_rgb(frame).max() == 0

    def test_grayscale_expanded(self):
        out = to_rgb(np.full((3, 3), 9, dtype=np.uint8))
        assert out.shape == (3, 3, 3)
        assert (out == 9).all()

    def test_empty_and_invalid(self):
        assert to_rgb(None) is None
        assert to_rgb(np.zeros((0, 0, 3))) is None
        assert to_rgb(np.zeros((4, 4, 2))) is None

    def test_nan_pixels_cleared(self):
        frame = np.full((2, 2, 3), np.nan, dtype=np.float32)
        assert np.isfinite(to_rgb(frame)).all()


class TestFrameBuffer:
    def test_ready_after_two_frames(self):
        buf = FrameBuffer(3)
        buf.push(np.zeros((4, 4, 3), np.float32))
        assert not buf.ready
        buf.push(np.zeros((4, 4, 3), np.float32))
        assert buf.ready

    def test_bounded(self):
        buf = FrameBuffer(2, luminance_capacity=4)
        for i in range(5):
            buf.push(np.full((2, 2, 3), i, np.float32), np.full((2, 2), i, np.float32))
        assert len(buf) == 2
        assert len(buf.luminance_maps) == 4
        assert buf.frames[-1][0, 0, 0] == 4

    def test_resize_flushes(self):
        buf = FrameBuffer(3)
        buf.push(np.zeros((4, 4, 3), np.float32))
        buf.push(np.zeros((4, 4, 3), np.float32))

        resized = buf.push(np.zeros((6, 4, 3), np.float32))

        assert resized is True
        assert len(buf) == 1
        assert buf.shape == (6, 4)


class TestMotionDetector:
    def test_defaults(self):
        detector = MotionDetector()
        assert detector.config == MotionDetectorConfig()

    def test_buffer_too_small_raises(self):
        with pytest.raises(DetectorSetupError):
            MotionDetector(MotionDetectorConfig(buffer_size=1))

    def test_first_frame_empty(self):
        detector = MotionDetector()
        assert detector.detect(moving_square(0)) == []

    def test_zero_sized_frame(self):
        detector = MotionDetector()
        assert detector.detect(np.zeros((0, 0, 3), dtype=np.uint8)) == []

    def test_static_scene_has_no_detections(self):
        detector = MotionDetector()
        frame = moving_square(0)
        for _ in range(6):
            assert detector.detect(frame) == []

    def test_moving_square_detected(self):
        detector = MotionDetector()

        results = [detector.detect(moving_square(t)) for t in range(4)]

        assert results[0] == []
        assert results[1] == []
        found = [d for frame_dets in results[2:] for d in frame_dets]
        assert found
        for detection in found:
            assert detection.class_name == "motion"
            assert detection.saliency_type is None
            assert 0.0 < detection.score <= 1.0
            assert detection.bbox.area > 0

    def test_rgba_input(self):
        detector = MotionDetector()
        frames = []
        for t in range(4):
            rgb = moving_square(t)
            alpha = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
            frames.append(np.concatenate([rgb, alpha], axis=2))

        results = [detector.detect(f) for f in frames]

        assert any(results[2:])

    def test_resize_flushes_history(self):
        detector = MotionDetector()
        for t in range(4):
            detector.detect(moving_square(t))
        assert len(detector._regions) > 0

        assert detector.detect(np.zeros((60, 100, 3), dtype=np.uint8)) == []
        assert len(detector._regions) == 0

    def test_reset(self):
        detector = MotionDetector()
        for t in range(4):
            detector.detect(moving_square(t))

        detector.reset()

        assert detector.frame_count == 0
        assert detector.detect(moving_square(4)) == []

    def test_blob_dropped_after_max_blob_age(self):
        detector = MotionDetector(MotionDetectorConfig(max_blob_age=2))
        for t in range(4):
            detector.detect(moving_square(t))

        # Motion stops: frames 4..7 repeat the last position
        results = [detector.detect(moving_square(3)) for _ in range(4)]

        assert results[-1] == []
        assert len(detector._regions) == 0

    def test_blob_lingers_with_longer_max_age(self):
        detector = MotionDetector(MotionDetectorConfig(max_blob_age=10))
        for t in range(4):
            detector.detect(moving_square(t))

        results = [detector.detect(moving_square(3)) for _ in range(4)]

        assert results[-1]
        assert len(detector._regions) > 0

    def test_set_config(self):
        detector = MotionDetector()

        detector.set_config({"buffer_size": 5, "max_blob_age": 3})

        assert detector.config.buffer_size == 5
        assert detector._regions.max_age == 3
        assert detector._buffer._frames.maxlen == 5


class TestDetectorFactory:
    def test_motion_backend(self):
        detector = create_detector_from_config(DetectionConfig(backend="motion"))
        assert isinstance(detector, MotionDetector)

    def test_unknown_backend_raises(self):
        with pytest.raises(DetectorSetupError):
            create_detector_from_config(DetectionConfig(backend="hailo"))

    def test_invalid_buffer_raises(self):
        config = DetectionConfig(backend="motion", motion=MotionDetectorConfig(buffer_size=0))
        with pytest.raises(DetectorSetupError):
            create_detector_from_config(config)
