"""Per-stream tracking session.

A session owns the detection normalizer, the centroid tracker and the
crossing counter for the lifetime of one stream. It is created when the
stream starts and discarded when it stops; track identities and counters
never outlive it.
"""

import threading
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from .models.detection import CounterState, CrossingEvent, FrameResult
from .services.centroid_tracker import CentroidTracker
from .services.crossing_counter import CrossingCounter
from .services.detection_normalizer import DetectionNormalizer
from .services.interfaces import EventSinkInterface, RawDetection
from .logging_config import get_logger

logger = get_logger("tracking_session")


class TrackingSession:
    """Runs normalize -> track -> count for each frame of a stream.

    ``process_frame`` must be called from a single worker at a time; the
    frame scheduler guarantees this. Snapshots may be read from any thread.
    """

    def __init__(self,
                 subject_label: str = "person",
                 match_threshold: float = 0.12,
                 midline_y: float = 0.5,
                 event_sink: Optional[EventSinkInterface] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 first_track_id: int = 1):
        self.normalizer = DetectionNormalizer(subject_label)
        self.tracker = CentroidTracker(match_threshold, first_track_id)
        self.counter = CrossingCounter(midline_y)
        self.event_sink = event_sink
        self.clock = clock

        self.started_at = clock()
        self.frames_processed = 0
        self.events_rejected = 0

        self._snapshot_lock = threading.Lock()
        self._latest: Optional[FrameResult] = None

        logger.info(f"Tracking session started (subject={subject_label}, "
                    f"threshold={match_threshold}, midline={midline_y})")

    def process_frame(self, raw_detections: Iterable[RawDetection],
                      frame_width: int, frame_height: int) -> FrameResult:
        """Process one frame of raw detections and publish the result."""
        timestamp = self.clock()

        boxes = self.normalizer.normalize(raw_detections, frame_width, frame_height)
        assignments = self.tracker.update(boxes, frame_width, frame_height)
        events = self.counter.update(assignments, timestamp)

        for event in events:
            self._submit(event)

        result = FrameResult(
            frame_index=self.tracker.frame_index,
            timestamp=timestamp,
            frame_width=frame_width,
            frame_height=frame_height,
            detections=[assignment.detection for assignment in assignments],
            events=events,
            counter_state=self.counter.get_state()
        )

        with self._snapshot_lock:
            self._latest = result
            self.frames_processed += 1

        return result

    def _submit(self, event: CrossingEvent) -> None:
        # Counts are already committed; a rejected event only affects storage
        if self.event_sink is None:
            return

        try:
            accepted = self.event_sink.submit(event)
        except Exception as e:
            logger.error(f"Event sink raised on submit: {e}")
            accepted = False

        if not accepted:
            self.events_rejected += 1
            logger.warning(f"Crossing event not persisted: {event.direction.value} "
                           f"track {event.track_id}")

    def get_counter_state(self) -> CounterState:
        """Get current counters."""
        return self.counter.get_state()

    def get_snapshot(self) -> Optional[FrameResult]:
        """Get the most recent frame result, or None before the first frame."""
        with self._snapshot_lock:
            return self._latest

    def get_active_track_ids(self) -> List[int]:
        return sorted(self.tracker.tracks)

    def get_stats(self) -> dict:
        """Get session statistics."""
        state = self.counter.get_state()
        with self._snapshot_lock:
            frames_processed = self.frames_processed
        return {
            "started_at": self.started_at.isoformat(),
            "frames_processed": frames_processed,
            "active_tracks": len(self.tracker),
            "next_track_id": self.tracker.next_track_id,
            "entered_count": state.entered_count,
            "exited_count": state.exited_count,
            "events_rejected": self.events_rejected,
        }
