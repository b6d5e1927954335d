"""
Tests for the pipeline engine and observation sources.
"""

import time
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from detection import MotionDetector
from models.config import PipelineConfig, SourceConfig
from models.detection import BoundingBox, Detection
from models.frame import FrameData
from observation import OpenCVSource, OpenCVSourceConfig, create_source_from_config
from observation.base import ObservationConfig, ObservationSource
from pipeline.engine import PipelineEngine
from tracking.tracker import IdentityTracker


class MockObservationSource(ObservationSource):
    """Mock source for testing."""

    def __init__(self, config: ObservationConfig, frames: list = None, max_frames: int = 10):
        super().__init__(config)
        self._frames = frames
        self._max_frames = max_frames
        self._pos = 0
        self.closed = False

    def open(self) -> None:
        self._is_open = True
        self._pos = 0
        self._frame_index = 0

    def read(self):
        if not self._is_open:
            return None

        if self._frames is not None:
            if self._pos >= len(self._frames):
                return None
            frame = self._frames[self._pos]
        else:
            if self._pos >= self._max_frames:
                return None
            frame = np.zeros((48, 64, 3), dtype=np.uint8)

        self._pos += 1
        self._frame_index += 1

        return FrameData(
            frame=frame,
            width=frame.shape[1],
            height=frame.shape[0],
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        self._is_open = False
        self.closed = True


class MockDetector:
    """Mock detector returning a fixed detection list."""

    def __init__(self, detections=None):
        self.detections = detections or []
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        return list(self.detections)


def _source(**kwargs):
    return MockObservationSource(ObservationConfig(source_id="test"), **kwargs)


class TestPipelineConfig:
    def test_default_values(self):
        config = PipelineConfig()
        assert config.max_consecutive_failures == 10
        assert config.stats_log_interval == 60.0
        assert config.display is False
        assert config.max_frames == 0


class TestProcessFrame:
    def test_without_source(self):
        detector = MockDetector([Detection(bbox=BoundingBox(0, 0, 10, 10))])
        engine = PipelineEngine(None, detector, IdentityTracker())

        tracks = engine.process_frame(np.zeros((10, 10, 3), dtype=np.uint8))

        assert [t.id for t in tracks] == [1]
        assert engine.stats.frame_count == 1
        assert engine.stats.detection_count == 1
        assert engine.last_tracks == tracks

    def test_aux_detections_concatenated(self):
        primary = MockDetector([Detection(bbox=BoundingBox(0, 0, 10, 10), class_name="motion")])
        external = MockDetector([Detection(bbox=BoundingBox(300, 300, 20, 20), class_name="person")])
        engine = PipelineEngine(None, primary, IdentityTracker(), aux_detectors=[external])

        tracks = engine.process_frame(np.zeros((10, 10, 3), dtype=np.uint8))

        assert sorted(t.class_name for t in tracks) == ["motion", "person"]
        assert primary.calls == external.calls == 1

    def test_run_without_source_raises(self):
        engine = PipelineEngine(None, MockDetector(), IdentityTracker())
        with pytest.raises(RuntimeError):
            engine.run()


class TestPipelineEngine:
    def test_engine_processes_frames(self):
        """Engine processes frames through the pipeline."""
        detector = MockDetector()
        engine = PipelineEngine(_source(max_frames=3), detector, IdentityTracker())

        engine.run()

        assert detector.calls == 3
        assert engine.stats.frame_count == 3

    def test_engine_stops_on_failures(self):
        """Engine stops after max consecutive failures."""
        source = _source(frames=[])
        engine = PipelineEngine(source, MockDetector(), IdentityTracker(), PipelineConfig(max_consecutive_failures=3))

        engine.run()

        assert engine.stats.consecutive_failures == 3
        assert engine.stats.frame_count == 0
        assert source.closed

    def test_engine_stops_at_max_frames(self):
        detector = MockDetector()
        engine = PipelineEngine(_source(max_frames=10), detector, IdentityTracker(), PipelineConfig(max_frames=4))

        engine.run()

        assert detector.calls == 4

    def test_engine_callbacks(self):
        """Engine calls registered callbacks."""
        detection = Detection(bbox=BoundingBox(5, 5, 10, 10))
        engine = PipelineEngine(_source(max_frames=2), MockDetector([detection]), IdentityTracker())

        callback_calls = []

        def my_callback(frame_data, tracks):
            callback_calls.append((frame_data.frame_index, [t.id for t in tracks]))

        engine.add_callback(my_callback)
        engine.run()

        assert callback_calls == [(1, [1]), (2, [1])]

    def test_callback_errors_do_not_stop_pipeline(self):
        engine = PipelineEngine(_source(max_frames=3), MockDetector(), IdentityTracker())
        engine.add_callback(MagicMock(side_effect=ValueError("boom")))

        engine.run()

        assert engine.stats.frame_count == 3

    def test_stop_from_callback(self):
        engine = PipelineEngine(_source(max_frames=10), MockDetector(), IdentityTracker())
        engine.add_callback(lambda frame_data, tracks: engine.stop())

        engine.run()

        assert engine.stats.frame_count == 1

    def test_end_to_end_with_motion_detector(self):
        frames = []
        for t in range(6):
            frame = np.zeros((80, 200, 3), dtype=np.uint8)
            x = 10 + 30 * t
            frame[30:50, x:x + 20] = 200
            frames.append(frame)
        engine = PipelineEngine(_source(frames=frames), MotionDetector(), IdentityTracker())
        seen_ids = set()
        engine.add_callback(lambda fd, tracks: seen_ids.update(t.id for t in tracks))

        engine.run()

        assert engine.stats.frame_count == 6
        assert seen_ids
        assert min(seen_ids) == 1


class TestOpenCVSource:
    def test_from_source_config(self):
        cfg = OpenCVSourceConfig.from_source_config(SourceConfig(device_id="2", source_id="cam", fps=15))

        assert cfg.device_id == 2
        assert cfg.source_id == "cam"
        assert cfg.fps == 15

    def test_factory(self):
        source = create_source_from_config(SourceConfig(device_id="clip.mp4"))
        assert isinstance(source, OpenCVSource)
        assert source.device_id == "clip.mp4"

    @patch("observation.opencv_source.cv2.VideoCapture")
    def test_read_converts_bgr_to_rgb(self, capture_cls):
        bgr = np.zeros((4, 4, 3), dtype=np.uint8)
        bgr[..., 0] = 255  # blue in BGR
        capture = capture_cls.return_value
        capture.isOpened.return_value = True
        capture.read.side_effect = [(True, bgr), (False, None)]

        with OpenCVSource(OpenCVSourceConfig(device_id=0, source_id="cam")) as source:
            frames = list(source)

        assert len(frames) == 1
        assert frames[0].frame[0, 0].tolist() == [0, 0, 255]
        assert frames[0].frame_index == 1
        assert frames[0].source == "cam"
        capture.release.assert_called()

    @patch("observation.opencv_source.cv2.VideoCapture")
    def test_video_info_from_capture(self, capture_cls):
        props = {
            cv2.CAP_PROP_FRAME_WIDTH: 640.0,
            cv2.CAP_PROP_FRAME_HEIGHT: 480.0,
            cv2.CAP_PROP_FPS: 25.0,
        }
        capture = capture_cls.return_value
        capture.isOpened.return_value = True
        capture.get.side_effect = lambda prop: props.get(prop, 0.0)
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))

        assert source.get_video_info() == {}
        source.open()

        assert source.get_video_info() == {"width": 640, "height": 480, "fps": 25.0, "frame_count": None}
        source.close()
        assert source.get_video_info() == {}

    @patch("observation.opencv_source.time.sleep")
    @patch("observation.opencv_source.cv2.VideoCapture")
    def test_open_failure_raises_after_retries(self, capture_cls, _sleep):
        capture_cls.return_value.isOpened.return_value = False
        source = OpenCVSource(OpenCVSourceConfig(device_id=3, max_retries=2))

        with pytest.raises(RuntimeError):
            source.open()

        assert capture_cls.call_count == 2
        assert not source.is_open

    def test_iterating_closed_source_raises(self):
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        with pytest.raises(RuntimeError):
            next(iter(source))
