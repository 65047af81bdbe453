"""Camera frame source backed by OpenCV VideoCapture."""

import threading
import time
from typing import Any, Callable, Dict, Optional

import cv2
import numpy as np

from ..exceptions import CameraError
from .error_handler import ErrorHandler, ErrorSeverity, global_error_handler
from .interfaces import FrameSourceInterface
from ..logging_config import get_logger

logger = get_logger("frame_source")


class CameraFrameSource(FrameSourceInterface):
    """Pushes camera frames to a callback from a capture thread.

    The callback is expected to return quickly; frames are never buffered
    here, so a slow consumer simply sees fewer frames. A run of consecutive
    read failures is reported to the error handler, whose recovery callback
    reopens the device.
    """

    def __init__(self, camera_index: int = 0, frame_width: int = 640, frame_height: int = 480,
                 target_fps: float = 15.0,
                 capture_factory: Callable[[int], Any] = cv2.VideoCapture,
                 error_handler: Optional[ErrorHandler] = None,
                 max_consecutive_failures: int = 10,
                 max_recovery_attempts: int = 3,
                 failure_backoff: float = 0.5):
        self.camera_index = camera_index
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.target_fps = target_fps
        self.capture_factory = capture_factory
        self.error_handler = error_handler or global_error_handler
        self.max_consecutive_failures = max_consecutive_failures
        self.failure_backoff = failure_backoff

        self.capture = None
        self.running = False
        self._callback: Optional[Callable[[np.ndarray], Any]] = None
        self._capture_thread: Optional[threading.Thread] = None

        self.frames_captured = 0
        self.read_failures = 0
        self.consecutive_failures = 0
        self.callback_errors = 0
        self.reopen_count = 0
        self.last_frame_time: Optional[float] = None

        self.error_handler.register_component("frame_source", max_recovery_attempts)
        self.error_handler.register_recovery_callback("frame_source", self.reopen)

    def _open_capture(self):
        capture = self.capture_factory(self.camera_index)
        if capture is None or not capture.isOpened():
            if capture is not None:
                capture.release()
            raise CameraError(f"Could not open camera device {self.camera_index}")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)
        capture.set(cv2.CAP_PROP_FPS, self.target_fps)
        return capture

    def start(self, callback: Callable[[np.ndarray], Any]) -> None:
        """Open the camera and start pushing frames to callback."""
        if self.running:
            return

        self.capture = self._open_capture()
        self._callback = callback
        self.consecutive_failures = 0
        self.running = True
        self._capture_thread = threading.Thread(target=self._capture_loop, name="camera-capture", daemon=True)
        self._capture_thread.start()

        logger.info(f"Camera {self.camera_index} started at {self.frame_width}x{self.frame_height}, "
                    f"{self.target_fps} FPS")

    def stop(self) -> None:
        """Stop the capture thread and release the device."""
        self.running = False

        if self._capture_thread and self._capture_thread.is_alive():
            self._capture_thread.join(timeout=5.0)
        self._capture_thread = None

        if self.capture is not None:
            self.capture.release()
            self.capture = None
            logger.info(f"Camera {self.camera_index} released")

    def reopen(self) -> None:
        """Release and reopen the device; raises CameraError if it stays closed.

        Runs on the capture thread as the error handler's recovery callback.
        """
        if self.capture is not None:
            self.capture.release()
            self.capture = None

        self.capture = self._open_capture()
        self.consecutive_failures = 0
        self.reopen_count += 1
        logger.info(f"Camera {self.camera_index} reopened")

    def is_running(self) -> bool:
        return self.running

    def _capture_loop(self) -> None:
        """Main capture loop running in separate thread."""
        frame_interval = 1.0 / self.target_fps if self.target_fps > 0 else 0.0

        while self.running:
            loop_start = time.time()

            ok, frame = self.capture.read() if self.capture is not None else (False, None)
            if not ok or frame is None:
                self._handle_read_failure()
                continue

            self.consecutive_failures = 0
            self.frames_captured += 1
            self.last_frame_time = loop_start

            try:
                self._callback(frame)
            except Exception as e:
                self.callback_errors += 1
                logger.error(f"Frame callback failed: {e}")

            elapsed = time.time() - loop_start
            if frame_interval > elapsed:
                time.sleep(frame_interval - elapsed)

    def _handle_read_failure(self) -> None:
        self.read_failures += 1
        self.consecutive_failures += 1
        logger.warning(f"Could not read frame from camera {self.camera_index}")

        if self.consecutive_failures >= self.max_consecutive_failures:
            self.consecutive_failures = 0
            self.error_handler.handle_error(
                "frame_source",
                CameraError(f"Camera {self.camera_index} failed {self.max_consecutive_failures} reads in a row"),
                ErrorSeverity.HIGH
            )

        time.sleep(self.failure_backoff)

    def get_camera_info(self) -> Dict[str, Any]:
        """Get camera information."""
        return {
            "camera_index": self.camera_index,
            "resolution": f"{self.frame_width}x{self.frame_height}",
            "target_fps": self.target_fps,
            "running": self.running,
            "frames_captured": self.frames_captured,
            "read_failures": self.read_failures,
            "callback_errors": self.callback_errors,
            "reopen_count": self.reopen_count,
            "last_frame_time": self.last_frame_time,
        }
