"""Configuration components for the people counter."""

from .defaults import (
    DEFAULT_CONFIG,
    TRACKING_CONSTANTS,
    DEFAULT_PATHS,
    DIRECTION_LABELS
)

__all__ = [
    'DEFAULT_CONFIG',
    'TRACKING_CONSTANTS',
    'DEFAULT_PATHS',
    'DIRECTION_LABELS'
]
