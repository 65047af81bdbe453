"""Service interfaces and abstract base classes."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping

import numpy as np

from ..models.detection import CrossingEvent

NDArray = np.ndarray

# Raw detection record as produced by an inference engine:
# {"tag" or "label": str, "box": [x1, y1, x2, y2, optional confidence]}
RawDetection = Mapping[str, Any]


class DetectorInterface(ABC):
    """Interface for the inference engine producing raw detections."""

    @abstractmethod
    def load_model(self) -> None:
        """Load the detection model; raise ModelLoadError on failure."""
        pass

    @abstractmethod
    def detect(self, frame: NDArray) -> List[Dict[str, Any]]:
        """Run inference on one BGR frame and return raw detection records."""
        pass


class FrameSourceInterface(ABC):
    """Interface for a frame producer that pushes frames asynchronously."""

    @abstractmethod
    def start(self, callback: Callable[[NDArray], Any]) -> None:
        """Start delivering frames to callback; raise CameraError if unavailable."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering frames and release the device."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check whether frames are being delivered."""
        pass


class EventSinkInterface(ABC):
    """Append-only, fire-and-forget destination for crossing events."""

    @abstractmethod
    def submit(self, event: CrossingEvent) -> bool:
        """Hand over an event without blocking; return False if it was dropped."""
        pass


class EventStoreInterface(ABC):
    """Interface for durable crossing event storage."""

    @abstractmethod
    def save_event(self, event: CrossingEvent) -> None:
        """Persist one crossing event."""
        pass

    @abstractmethod
    def get_all_events(self) -> List[CrossingEvent]:
        """Get the full event history ordered by timestamp."""
        pass

    @abstractmethod
    def get_event_history(self, start_date: datetime, end_date: datetime) -> List[CrossingEvent]:
        """Get events in a date range ordered by timestamp."""
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 20) -> List[CrossingEvent]:
        """Get the most recent events, newest first."""
        pass

    @abstractmethod
    def get_event_counts(self) -> Dict[str, int]:
        """Get persisted event totals per direction."""
        pass

    @abstractmethod
    def cleanup_old_data(self) -> int:
        """Delete events past the retention period and return how many were removed."""
        pass
