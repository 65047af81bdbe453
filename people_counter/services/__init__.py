"""Services for the people counter."""

from .interfaces import (
    DetectorInterface,
    FrameSourceInterface,
    EventSinkInterface,
    EventStoreInterface
)
from .detection_normalizer import DetectionNormalizer
from .centroid_tracker import CentroidTracker
from .crossing_counter import CrossingCounter
from .frame_scheduler import FrameScheduler

__all__ = [
    'DetectorInterface',
    'FrameSourceInterface',
    'EventSinkInterface',
    'EventStoreInterface',
    'DetectionNormalizer',
    'CentroidTracker',
    'CrossingCounter',
    'FrameScheduler'
]
