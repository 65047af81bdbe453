"""
People Counter

Counts people crossing a virtual horizontal line in a camera stream, using
per-frame object detections and lightweight nearest-centroid tracking.
"""

__version__ = "1.0.0"
__author__ = "People Counter"

# Import core components
from .config_manager import ConfigManager
from .exceptions import (
    PeopleCounterError,
    InitializationError,
    ModelLoadError,
    CameraError,
    StorageError
)
from .models import (
    DetectionBox,
    Track,
    TrackedDetection,
    TrackAssignment,
    CrossingDirection,
    CrossingEvent,
    CounterState,
    FrameResult,
    SystemConfig,
    StorageStats
)
from .tracking_session import TrackingSession
from . import utils

__all__ = [
    # Core management
    'ConfigManager',
    'TrackingSession',

    # Errors
    'PeopleCounterError',
    'InitializationError',
    'ModelLoadError',
    'CameraError',
    'StorageError',

    # Data models
    'DetectionBox',
    'Track',
    'TrackedDetection',
    'TrackAssignment',
    'CrossingDirection',
    'CrossingEvent',
    'CounterState',
    'FrameResult',
    'SystemConfig',
    'StorageStats',

    # Utilities
    'utils'
]
