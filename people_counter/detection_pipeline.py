"""Counting pipeline that wires the frame source, inference and tracking core."""

import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from .config.defaults import TRACKING_CONSTANTS
from .config_manager import ConfigManager
from .exceptions import InitializationError
from .models.detection import CounterState, CrossingEvent, FrameResult
from .services.error_handler import ErrorHandler, ErrorSeverity, global_error_handler
from .services.event_store import AsyncEventWriter, EventStore
from .services.frame_scheduler import FrameScheduler
from .services.frame_source import CameraFrameSource
from .services.interfaces import DetectorInterface, EventStoreInterface, FrameSourceInterface, RawDetection
from .services.renderer import DetectionRenderer
from .services.report_exporter import ReportExporter
from .services.yolo_detector import YoloDetector
from .tracking_session import TrackingSession
from . import logging_config
from .logging_config import get_logger, log_performance

logger = get_logger("detection_pipeline")


class FramePacket:
    """Unit of work handed to the scheduler: a camera frame or ready-made detections."""

    __slots__ = ("frame", "raw_detections", "frame_width", "frame_height")

    def __init__(self, frame: Optional[np.ndarray] = None,
                 raw_detections: Optional[Sequence[RawDetection]] = None,
                 frame_width: int = 0, frame_height: int = 0):
        self.frame = frame
        self.raw_detections = raw_detections
        self.frame_width = frame_width
        self.frame_height = frame_height


class CountingPipeline:
    """Main counting pipeline that orchestrates all services.

    Frames arrive asynchronously from the frame source and are offered to a
    capacity-one scheduler; frames arriving while one is in flight are
    dropped. Each admitted frame runs inference and then the tracking
    session's normalize, track and count chain on the scheduler worker.
    Crossing events go to the async writer and never wait on storage.
    """

    def __init__(self,
                 config_manager: Optional[ConfigManager] = None,
                 detector: Optional[DetectorInterface] = None,
                 frame_source: Optional[FrameSourceInterface] = None,
                 event_store: Optional[EventStoreInterface] = None,
                 renderer: Optional[DetectionRenderer] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 enable_camera: bool = True):
        self.config_manager = config_manager or ConfigManager()
        self.config = self.config_manager.get_config()
        self.error_handler = error_handler or global_error_handler
        self.clock = clock
        self.enable_camera = enable_camera

        self.detector = detector
        self.frame_source = frame_source
        self.event_store = event_store
        self.renderer = renderer

        self.error_handler.register_component("counting_pipeline", max_recovery_attempts=0)

        # Per-run state
        self.session: Optional[TrackingSession] = None
        self.event_writer: Optional[AsyncEventWriter] = None
        self.scheduler: Optional[FrameScheduler] = None
        self.running = False
        self._lifecycle_lock = threading.RLock()

        # Latest rendered frame for the live feed
        self._frame_lock = threading.Lock()
        self._annotated_frame: Optional[np.ndarray] = None

        # Performance monitoring
        self.start_time: Optional[datetime] = None
        self.frames_received = 0
        self.frames_processed = 0
        self.current_fps = 0.0
        self.last_frame_time_ms = 0.0
        self.last_detection_time_ms = 0.0
        self._fps_window_start: Optional[float] = None
        self._fps_window_frames = 0

        logger.info("Counting pipeline initialized")

    def start(self) -> bool:
        """
        Start the counting pipeline.

        Returns:
            False if the pipeline is already running, True once started

        Raises:
            InitializationError: If the store, model or camera cannot be initialized
        """
        with self._lifecycle_lock:
            if self.running:
                logger.warning("Pipeline is already running")
                return False

            self.config = self.config_manager.get_config()
            # A fresh run starts with clean component health
            self.error_handler.reset_error_counts()

            try:
                store = self._ensure_event_store()

                if self.enable_camera or self.detector is not None:
                    self._load_detection_model()

                self.session = TrackingSession(
                    subject_label=self.config.subject_label,
                    match_threshold=self.config.match_threshold,
                    midline_y=self.config.midline_y,
                    clock=self.clock,
                    first_track_id=TRACKING_CONSTANTS["FIRST_TRACK_ID"]
                )

                self.event_writer = AsyncEventWriter(store, self.config.event_queue_size,
                                                     self.error_handler,
                                                     TRACKING_CONSTANTS["WRITER_POLL_SECONDS"])
                self.session.event_sink = self.event_writer
                self.event_writer.start()

                self.scheduler = FrameScheduler(self._process_packet, self.error_handler)
                self.scheduler.start()

                if self.config.render_enabled:
                    if self.renderer is None:
                        self.renderer = DetectionRenderer(self.config.midline_y)
                    else:
                        self.renderer.midline_y = self.config.midline_y

                self._reset_metrics()
                self.running = True

                if self.enable_camera:
                    if self.frame_source is None:
                        self.frame_source = CameraFrameSource(
                            camera_index=self.config.camera_index,
                            frame_width=self.config.frame_width,
                            frame_height=self.config.frame_height,
                            target_fps=self.config.target_fps,
                            error_handler=self.error_handler
                        )
                    self.frame_source.start(self.on_frame)

            except Exception as e:
                self.error_handler.handle_error("counting_pipeline", e, ErrorSeverity.CRITICAL)
                logger.error(f"Failed to start counting pipeline: {e}")
                self._teardown()
                if isinstance(e, InitializationError):
                    raise
                raise InitializationError(f"Failed to start counting pipeline: {e}") from e

            logger.info("Counting pipeline started successfully")
            log_performance("Pipeline started", {
                "camera_enabled": self.enable_camera,
                "match_threshold": self.config.match_threshold,
                "midline_y": self.config.midline_y,
            })
            return True

    def stop(self) -> None:
        """Stop the pipeline, persist pending events and discard the session."""
        with self._lifecycle_lock:
            if not self.running and self.session is None:
                return

            logger.info("Stopping counting pipeline...")
            final_state = self.session.get_counter_state() if self.session else None
            self._teardown()

            if final_state is not None:
                logger.info(f"Counting pipeline stopped ({final_state})")

    def _teardown(self) -> None:
        self.running = False

        if self.frame_source is not None and self.frame_source.is_running():
            self.frame_source.stop()

        timeout = TRACKING_CONSTANTS["THREAD_JOIN_TIMEOUT_SECONDS"]
        if self.scheduler is not None:
            self.scheduler.stop(timeout)
            self.scheduler = None

        if self.event_writer is not None:
            self.event_writer.stop(timeout)

        self.session = None

    def _ensure_event_store(self) -> EventStoreInterface:
        if self.event_store is None:
            self.event_store = EventStore(self.config.database_path, self.config.max_storage_days)
        return self.event_store

    def _load_detection_model(self) -> None:
        if self.detector is None:
            self.detector = YoloDetector(
                model_path=self.config.model_path,
                labels_path=self.config.labels_path,
                input_size=self.config.input_size,
                confidence_threshold=self.config.confidence_threshold,
                iou_threshold=self.config.iou_threshold,
                class_threshold=self.config.class_threshold
            )
        self.detector.load_model()

    def on_frame(self, frame: np.ndarray) -> bool:
        """Offer a camera frame for processing; False if it was dropped."""
        self.frames_received += 1
        scheduler = self.scheduler
        if not self.running or scheduler is None:
            return False

        height, width = frame.shape[:2]
        return scheduler.offer(FramePacket(frame=frame, frame_width=width, frame_height=height))

    def submit_detections(self, raw_detections: Sequence[RawDetection],
                          frame_width: int, frame_height: int,
                          frame: Optional[np.ndarray] = None) -> bool:
        """Offer detections computed elsewhere; False if the frame was dropped."""
        self.frames_received += 1
        scheduler = self.scheduler
        if not self.running or scheduler is None:
            return False

        return scheduler.offer(FramePacket(frame=frame, raw_detections=list(raw_detections or []),
                                           frame_width=frame_width, frame_height=frame_height))

    def _process_packet(self, packet: FramePacket) -> FrameResult:
        """Process one admitted frame on the scheduler worker."""
        session = self.session
        if session is None:
            raise RuntimeError("No active tracking session")

        frame_start = time.time()

        raw_detections = packet.raw_detections
        if raw_detections is None:
            detection_start = time.time()
            raw_detections = self.detector.detect(packet.frame)
            self.last_detection_time_ms = (time.time() - detection_start) * 1000

        result = session.process_frame(raw_detections, packet.frame_width, packet.frame_height)

        if packet.frame is not None and self.renderer is not None and self.config.render_enabled:
            annotated = self.renderer.render(packet.frame, result)
            with self._frame_lock:
                self._annotated_frame = annotated

        self.last_frame_time_ms = (time.time() - frame_start) * 1000
        self._update_performance_metrics()
        return result

    def _reset_metrics(self) -> None:
        self.start_time = self.clock()
        self.frames_received = 0
        self.frames_processed = 0
        self.current_fps = 0.0
        self._fps_window_start = time.time()
        self._fps_window_frames = 0
        with self._frame_lock:
            self._annotated_frame = None

    def _update_performance_metrics(self) -> None:
        self.frames_processed += 1
        self._fps_window_frames += 1

        # Recalculate FPS every 10 processed frames
        if self._fps_window_frames >= 10:
            now = time.time()
            elapsed = now - (self._fps_window_start or now)
            if elapsed > 0:
                self.current_fps = self._fps_window_frames / elapsed
            self._fps_window_start = now
            self._fps_window_frames = 0

    def get_snapshot(self) -> Optional[FrameResult]:
        """Latest frame result of the active session."""
        session = self.session
        return session.get_snapshot() if session else None

    def get_counter_state(self) -> CounterState:
        """Counters of the active session; zero when stopped."""
        session = self.session
        return session.get_counter_state() if session else CounterState()

    def get_annotated_frame(self) -> Optional[np.ndarray]:
        with self._frame_lock:
            return None if self._annotated_frame is None else self._annotated_frame.copy()

    def get_recent_events(self, limit: int = 20) -> List[CrossingEvent]:
        """Get recent persisted events, newest first."""
        return self._ensure_event_store().get_recent_events(limit)

    def export_report(self, path: Optional[str] = None) -> str:
        """Export the persisted event history to PDF and return its path."""
        if self.event_writer is not None and self.event_writer.running:
            self.event_writer.flush(TRACKING_CONSTANTS["THREAD_JOIN_TIMEOUT_SECONDS"])

        exporter = ReportExporter(self._ensure_event_store(), self.config.report_dir)
        return exporter.export_pdf(path)

    def cleanup_old_data(self) -> int:
        """Trigger cleanup of events past the retention period."""
        deleted = self._ensure_event_store().cleanup_old_data()
        logger.info(f"Data cleanup completed: {deleted} events removed")
        return deleted

    def update_configuration(self, **kwargs) -> bool:
        """
        Update and persist configuration.

        Counting settings are fixed for a session's lifetime and take effect
        on the next start.
        """
        success = self.config_manager.update_config(**kwargs)
        if success:
            self.config = self.config_manager.get_config()
            if logging_config.logging_manager is not None:
                logging_config.logging_manager.set_log_level(self.config_manager.get_log_level())
            if self.running:
                logger.info("Configuration saved; counting settings apply on next start")
        return success

    def get_status(self) -> Dict[str, Any]:
        """Get current pipeline status and statistics."""
        uptime = None
        if self.running and self.start_time:
            uptime = (self.clock() - self.start_time).total_seconds()

        state = self.get_counter_state()
        session = self.session
        scheduler = self.scheduler

        services: Dict[str, Any] = {}
        if self.frame_source is not None and hasattr(self.frame_source, "get_camera_info"):
            services["frame_source"] = self.frame_source.get_camera_info()
        if self.detector is not None and hasattr(self.detector, "get_model_info"):
            services["detector"] = self.detector.get_model_info()
        if self.event_writer is not None:
            services["event_writer"] = self.event_writer.get_stats()
        if scheduler is not None:
            services["frame_scheduler"] = scheduler.get_stats()

        return {
            "running": self.running,
            "uptime_seconds": uptime,
            "entered_count": state.entered_count,
            "exited_count": state.exited_count,
            "frames_received": self.frames_received,
            "frames_processed": self.frames_processed,
            "current_fps": round(self.current_fps, 2),
            "last_frame_time_ms": round(self.last_frame_time_ms, 2),
            "last_detection_time_ms": round(self.last_detection_time_ms, 2),
            "session": session.get_stats() if session else None,
            "services": services,
            "errors": self.error_handler.get_error_stats(),
            "error_summary": self.error_handler.get_error_summary(hours=24),
        }
