"""Detection, tracking and counting data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


Point = Tuple[float, float]


@dataclass(frozen=True)
class DetectionBox:
    """Canonical bounding box in frame pixel coordinates."""
    left: float
    top: float
    right: float
    bottom: float
    confidence: float
    class_label: str

    def width(self) -> float:
        return self.right - self.left

    def height(self) -> float:
        return self.bottom - self.top

    def center(self) -> Point:
        """Get the center point of the bounding box."""
        return ((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)


@dataclass
class Track:
    """A live identity kept by the centroid tracker."""
    track_id: int
    last_normalized_center: Point
    last_seen_frame: int


@dataclass
class TrackedDetection:
    """A canonical box paired with its resolved track identity, if any."""
    box: DetectionBox
    track_id: Optional[int] = None


@dataclass
class TrackAssignment:
    """Result of associating one detection with a track in the current frame."""
    detection: TrackedDetection
    current_center: Point
    previous_center: Optional[Point] = None

    @property
    def track_id(self) -> Optional[int]:
        return self.detection.track_id

    @property
    def is_new_track(self) -> bool:
        return self.previous_center is None


class CrossingDirection(Enum):
    """Direction of a midline crossing."""
    ENTER = "enter"
    EXIT = "exit"


@dataclass(frozen=True)
class CrossingEvent:
    """Immutable record of one directional crossing."""
    timestamp: datetime
    direction: CrossingDirection
    track_id: Optional[int] = None


@dataclass(frozen=True)
class CounterState:
    """Snapshot of the cumulative crossing counters."""
    entered_count: int = 0
    exited_count: int = 0

    def __str__(self) -> str:
        return f"IN={self.entered_count}, OUT={self.exited_count}"


@dataclass(frozen=True)
class FrameResult:
    """Read-only outcome of one processed frame."""
    frame_index: int
    timestamp: datetime
    frame_width: int
    frame_height: int
    detections: List[TrackedDetection] = field(default_factory=list)
    events: List[CrossingEvent] = field(default_factory=list)
    counter_state: CounterState = field(default_factory=CounterState)
