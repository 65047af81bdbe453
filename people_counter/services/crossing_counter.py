"""Directional midline crossing counter."""

from datetime import datetime
from typing import Iterable, List, Optional

from ..models.detection import CounterState, CrossingDirection, CrossingEvent, TrackAssignment
from ..logging_config import get_logger

logger = get_logger("crossing_counter")


class CrossingCounter:
    """
    Counts tracks crossing a horizontal line at normalized height ``midline_y``.

    Moving down across the line (previous above, current on or below) is an
    ENTER; moving up across it is an EXIT. A previous position exactly on the
    line produces no event in either direction.

    Counters only ever increase for the lifetime of the counter.
    """

    def __init__(self, midline_y: float = 0.5):
        self.midline_y = midline_y
        self._entered_count = 0
        self._exited_count = 0

    def evaluate(self, previous_y: Optional[float], current_y: float) -> Optional[CrossingDirection]:
        """Decide whether a move from previous_y to current_y crossed the midline."""
        if previous_y is None:
            return None

        if previous_y < self.midline_y and current_y >= self.midline_y:
            return CrossingDirection.ENTER
        elif previous_y > self.midline_y and current_y <= self.midline_y:
            return CrossingDirection.EXIT

        return None

    def update(self, assignments: Iterable[TrackAssignment], timestamp: datetime) -> List[CrossingEvent]:
        """Evaluate every assignment of a frame and count the crossings."""
        events = []

        for assignment in assignments:
            previous_y = assignment.previous_center[1] if assignment.previous_center else None
            direction = self.evaluate(previous_y, assignment.current_center[1])
            if direction is None:
                continue

            if direction == CrossingDirection.ENTER:
                self._entered_count += 1
            else:
                self._exited_count += 1

            event = CrossingEvent(timestamp=timestamp, direction=direction, track_id=assignment.track_id)
            events.append(event)
            logger.info(f"Track {assignment.track_id} crossed midline: {direction.value} "
                        f"({self.get_state()})")

        return events

    def get_state(self) -> CounterState:
        """Get immutable counter snapshot."""
        return CounterState(entered_count=self._entered_count, exited_count=self._exited_count)

    def __repr__(self) -> str:
        return f"CrossingCounter(midline_y={self.midline_y}, {self.get_state()})"
