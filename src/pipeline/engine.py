"""
Pipeline engine for the salient region tracker.

This module wraps the per-frame loop: read a frame from an observation
source, run one detect() per detector and one tracker update(), then hand
the visible tracks to callbacks and the optional overlay window.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import cv2
import numpy as np

from detection.base import Detector
from models.config import PipelineConfig
from models.detection import Detection
from models.frame import FrameData
from models.track import Track
from observation import ObservationSource
from tracking.tracker import IdentityTracker
from .overlay import draw_tracks

FrameCallback = Callable[[FrameData, List[Track]], None]


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    detection_count: int = 0
    max_visible_tracks: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)
    consecutive_failures: int = 0

    @property
    def fps(self) -> float:
        elapsed = time.time() - self.start_time
        return self.frame_count / elapsed if elapsed > 0 else 0.0


class PipelineEngine:
    """
    Main processing engine using an ObservationSource for frame input.

    Detections from the primary detector are concatenated with those of any
    auxiliary detectors (e.g. an external object detector producing the same
    Detection type) before a single tracker update.

    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        engine = PipelineEngine(source, SaliencyDetector(), IdentityTracker())
        engine.run()
    """

    def __init__(
        self,
        source: Optional[ObservationSource],
        detector: Detector,
        tracker: IdentityTracker,
        config: Optional[PipelineConfig] = None,
        aux_detectors: Optional[Sequence[Detector]] = None,
    ):
        self.source = source
        self.detector = detector
        self.tracker = tracker
        self.config = config if config is not None else PipelineConfig()
        self.aux_detectors = list(aux_detectors or [])
        self.stats = PipelineStats()
        self.last_tracks: List[Track] = []
        self._running = False
        self._callbacks: List[FrameCallback] = []

    def add_callback(self, callback: FrameCallback) -> None:
        """
        Add a callback to be called after each frame is processed.

        Args:
            callback: Function taking (frame_data, visible_tracks).
        """
        self._callbacks.append(callback)

    def process_frame(self, frame: np.ndarray) -> List[Track]:
        """
        Run detection and tracking for one frame.

        Returns:
            Visible tracks after this frame's update.
        """
        self.stats.frame_count += 1

        detections: List[Detection] = list(self.detector.detect(frame))
        for aux in self.aux_detectors:
            detections.extend(aux.detect(frame))
        self.stats.detection_count += len(detections)

        tracks = self.tracker.update(detections)
        self.last_tracks = tracks
        self.stats.max_visible_tracks = max(self.stats.max_visible_tracks, len(tracks))

        if self.stats.frame_count % 30 == 0 and tracks:
            logging.debug(
                f"[TRACK] frame={self.stats.frame_count} detections={len(detections)} "
                f"visible_ids={[t.id for t in tracks]}"
            )
        return tracks

    def run(self) -> None:
        """
        Run the main processing loop.

        Opens the observation source, processes frames until stopped,
        exhausted or max_frames is reached, then closes resources.
        """
        if self.source is None:
            raise RuntimeError("PipelineEngine.run() needs an observation source")

        self._running = True
        self.stats = PipelineStats()

        try:
            self.source.open()
            logging.info(f"Pipeline started: source={self.source.source_id}")

            while self._running:
                frame_data = self.source.read()

                if frame_data is None:
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        break
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    continue

                self.stats.consecutive_failures = 0
                tracks = self.process_frame(frame_data.frame)

                for callback in self._callbacks:
                    try:
                        callback(frame_data, tracks)
                    except Exception as e:
                        logging.warning(f"Callback error: {e}")

                if self.config.display:
                    if not self._handle_display(frame_data, tracks):
                        break  # User pressed 'q'

                self._handle_periodic_tasks()

                if self.config.max_frames and self.stats.frame_count >= self.config.max_frames:
                    logging.info(f"Reached max_frames={self.config.max_frames}")
                    break

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Signal the pipeline to stop after the current frame."""
        self._running = False

    def _handle_display(self, frame_data: FrameData, tracks: List[Track]) -> bool:
        """
        Show the annotated frame.

        Returns False if user pressed 'q' to quit.
        """
        annotated = draw_tracks(
            frame_data.frame, tracks, max_line_distance=self.tracker.config.max_line_distance
        )
        cv2.imshow("Salient Region Tracker", cv2.cvtColor(annotated, cv2.COLOR_RGB2BGR))
        key = cv2.waitKey(1) & 0xFF
        return key != ord('q')

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"detections={self.stats.detection_count}, "
                f"visible_tracks={len(self.last_tracks)}, fps={self.stats.fps:.1f}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        self._running = False

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        if self.config.display:
            cv2.destroyAllWindows()

        logging.info(
            f"Pipeline stopped: frames={self.stats.frame_count}, "
            f"max_visible_tracks={self.stats.max_visible_tracks}"
        )
