"""Utility functions for the people counter."""

import os
from datetime import datetime


def ensure_directory_exists(path: str) -> None:
    """Ensure a directory exists, create if it doesn't."""
    if path and not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def ensure_parent_directory(file_path: str) -> None:
    """Create the directory holding file_path if needed."""
    ensure_directory_exists(os.path.dirname(file_path))


def format_timestamp(dt: datetime) -> str:
    """Format datetime for reports and the operator display."""
    return dt.strftime("%d/%m/%Y %H:%M:%S")


def get_file_size_mb(file_path: str) -> float:
    """Get file size in megabytes."""
    if os.path.exists(file_path):
        return os.path.getsize(file_path) / (1024 * 1024)
    return 0.0
