"""Single-worker frame admission gate.

At most one frame is in processing at any instant. A frame offered while
another is in flight is dropped, never queued, so end-to-end latency stays
bounded under load. The guard is released when the handler returns or
raises; there is no cancellation and no per-frame timeout.
"""

import threading
import time
from queue import Queue, Empty
from typing import Any, Callable, Dict, Optional

from ..logging_config import get_logger
from .error_handler import ErrorHandler, ErrorSeverity, global_error_handler

logger = get_logger("frame_scheduler")


class FrameScheduler:
    """Runs a handler on one worker thread, dropping work that arrives while busy."""

    def __init__(self, handler: Callable[[Any], Any],
                 error_handler: Optional[ErrorHandler] = None,
                 component_name: str = "frame_scheduler"):
        self.handler = handler
        self.error_handler = error_handler or global_error_handler
        self.component_name = component_name

        self._busy = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._state_lock = threading.Lock()
        # Only ever holds the single admitted packet
        self._slot: Queue = Queue(maxsize=1)
        self._worker_thread: Optional[threading.Thread] = None
        self.running = False

        self._stats_lock = threading.Lock()
        self.frames_accepted = 0
        self.frames_dropped = 0
        self.frames_completed = 0
        self.frames_failed = 0
        self.last_processing_time_ms = 0.0

        self.error_handler.register_component(component_name, max_recovery_attempts=0)

    def start(self) -> None:
        """Start the worker thread."""
        with self._state_lock:
            if self.running:
                return
            self.running = True

        self._worker_thread = threading.Thread(target=self._worker_loop,
                                               name="frame-scheduler", daemon=True)
        self._worker_thread.start()
        logger.info("Frame scheduler started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the worker after the in-flight frame, if any, completes."""
        with self._state_lock:
            if not self.running:
                return
            self.running = False

        if self._worker_thread and self._worker_thread.is_alive():
            self._worker_thread.join(timeout=timeout)
        self._worker_thread = None
        logger.info("Frame scheduler stopped")

    def offer(self, packet: Any) -> bool:
        """Admit packet for processing if idle; drop it otherwise.

        Never blocks the caller. Returns True when the packet was admitted.
        """
        admitted = False
        if self._busy.acquire(blocking=False):
            # Admission and stop() serialize on the state lock
            with self._state_lock:
                if self.running:
                    self._idle.clear()
                    self._slot.put_nowait(packet)
                    admitted = True
                else:
                    self._busy.release()

        with self._stats_lock:
            if admitted:
                self.frames_accepted += 1
            else:
                self.frames_dropped += 1
        return admitted

    def is_busy(self) -> bool:
        return self._busy.locked()

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no frame is in flight; return False on timeout."""
        return self._idle.wait(timeout)

    def _worker_loop(self) -> None:
        while self.running or not self._slot.empty():
            try:
                packet = self._slot.get(timeout=0.5)
            except Empty:
                continue

            start_time = time.time()
            try:
                self.handler(packet)
                with self._stats_lock:
                    self.frames_completed += 1
            except Exception as e:
                with self._stats_lock:
                    self.frames_failed += 1
                logger.error(f"Frame abandoned after processing error: {e}")
                self.error_handler.handle_error(self.component_name, e, ErrorSeverity.MEDIUM)
            finally:
                self.last_processing_time_ms = (time.time() - start_time) * 1000
                with self._state_lock:
                    self._busy.release()
                    self._idle.set()

    def get_stats(self) -> Dict[str, Any]:
        """Get admission statistics."""
        with self._stats_lock:
            return {
                "running": self.running,
                "busy": self.is_busy(),
                "frames_accepted": self.frames_accepted,
                "frames_dropped": self.frames_dropped,
                "frames_completed": self.frames_completed,
                "frames_failed": self.frames_failed,
                "last_processing_time_ms": self.last_processing_time_ms,
            }
