"""Data models for the people counter."""

from .detection import (
    DetectionBox,
    Track,
    TrackedDetection,
    TrackAssignment,
    CrossingDirection,
    CrossingEvent,
    CounterState,
    FrameResult,
)
from .config import SystemConfig, StorageStats

__all__ = [
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
]
