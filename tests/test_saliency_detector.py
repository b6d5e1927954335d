"""
Tests for the hybrid motion + light SaliencyDetector.
"""

import numpy as np
import pytest

from detection import DetectorSetupError, SaliencyDetector, create_detector_from_config
from models.config import DetectionConfig, SALIENCY_PRESETS, SaliencyConfig
from models.detection import SaliencyType


def square_frame(x, y=30, size=20, value=100, width=200, height=80):
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[y:y + size, x:x + size] = value
    return frame


def raw_config(**overrides):
    """Config without morphology so region cue means are not diluted."""
    values = dict(buffer_size=2, erode_steps=[], dilate_radii=[], min_blob_area=50)
    values.update(overrides)
    return SaliencyConfig(**values)


class TestSaliencyDetectorSetup:
    def test_defaults(self):
        detector = SaliencyDetector()
        assert detector.config == SaliencyConfig()
        assert detector.scene_stats() == {"mean_luminance": 128.0, "std_luminance": 50.0}

    def test_buffer_too_small_raises(self):
        with pytest.raises(DetectorSetupError):
            SaliencyDetector(SaliencyConfig(buffer_size=1))

    def test_luminance_ring_covers_flicker_window(self):
        detector = SaliencyDetector(SaliencyConfig(buffer_size=2, flicker_window_size=5))
        assert detector._buffer._frames.maxlen == 2
        assert detector._buffer._luminance.maxlen == 5

    def test_factory_builds_saliency(self):
        detector = create_detector_from_config(DetectionConfig())
        assert isinstance(detector, SaliencyDetector)

    @pytest.mark.parametrize("name", sorted(SALIENCY_PRESETS))
    def test_presets_construct(self, name):
        detector = SaliencyDetector(SALIENCY_PRESETS[name])
        assert detector.detect(square_frame(10)) == []


class TestSaliencyDetectorEdgeCases:
    def test_first_frame_empty(self):
        assert SaliencyDetector().detect(square_frame(10)) == []

    def test_zero_sized_frame(self):
        assert SaliencyDetector().detect(np.zeros((0, 0, 4), dtype=np.uint8)) == []

    def test_dark_static_scene(self):
        detector = SaliencyDetector()
        frame = np.zeros((80, 200, 3), dtype=np.uint8)
        for _ in range(5):
            assert detector.detect(frame) == []

    def test_resize_flushes_history(self):
        detector = SaliencyDetector(raw_config())
        for t in range(3):
            detector.detect(square_frame(10 + 30 * t))
        assert len(detector._regions) > 0

        assert detector.detect(np.zeros((60, 100, 3), dtype=np.uint8)) == []
        assert len(detector._regions) == 0
        assert len(detector._buffer.luminance_maps) == 1

    def test_reset_restores_scene_stats(self):
        detector = SaliencyDetector()
        for t in range(3):
            detector.detect(square_frame(10 + 30 * t))
        assert detector.scene_stats()["mean_luminance"] < 128.0

        detector.reset()

        assert detector.scene_stats() == {"mean_luminance": 128.0, "std_luminance": 50.0}
        assert detector.frame_count == 0
        assert len(detector._regions) == 0

    def test_set_config_resizes_buffers(self):
        detector = SaliencyDetector()

        detector.set_config({"buffer_size": 6, "max_region_age": 3})

        assert detector._buffer._frames.maxlen == 6
        assert detector._buffer._luminance.maxlen == 6
        assert detector._regions.max_age == 3


class TestSaliencyClassification:
    def test_moving_dim_square_is_motion(self):
        detector = SaliencyDetector(raw_config())

        results = [detector.detect(square_frame(10 + 30 * t)) for t in range(3)]

        assert results[0] == []
        assert results[1] == []
        assert results[2]
        for detection in results[2]:
            assert detection.saliency_type is SaliencyType.MOTION
            assert detection.class_name == "motion"
            assert 0.0 < detection.score <= 1.0

    def test_static_bright_square_is_light(self):
        detector = SaliencyDetector()
        frame = square_frame(80, y=35, size=30, value=255, width=200, height=100)

        results = [detector.detect(frame) for _ in range(4)]

        found = [d for dets in results[2:] for d in dets]
        assert found
        assert all(d.saliency_type is SaliencyType.LIGHT for d in found)
        assert all(d.class_name == "light" for d in found)

    def test_strobing_square_is_flicker(self):
        detector = SaliencyDetector(raw_config(flicker_window_size=2))
        bright = square_frame(80, value=255)
        dark = np.zeros_like(bright)

        results = [detector.detect(bright if t % 2 else dark) for t in range(6)]

        found = [d for dets in results[2:] for d in dets]
        assert found
        assert all(d.saliency_type is SaliencyType.FLICKER for d in found)

    def test_default_config_reports_moving_square(self):
        detector = SaliencyDetector()

        results = [detector.detect(square_frame(10 + 30 * t)) for t in range(5)]

        found = [d for dets in results for d in dets]
        assert found
        assert all(d.class_name in {t.value for t in SaliencyType} for d in found)

    def test_detections_have_finite_boxes(self):
        detector = SaliencyDetector()
        for t in range(5):
            for detection in detector.detect(square_frame(10 + 30 * t)):
                assert np.isfinite(detection.bbox.as_tuple()).all()
                assert detection.bbox.width > 0
