"""Configuration data models."""

from dataclasses import dataclass


@dataclass
class SystemConfig:
    """System configuration settings."""
    # Counting settings
    subject_label: str = "person"
    match_threshold: float = 0.12  # Normalized distance for centroid matching
    midline_y: float = 0.5  # Normalized vertical position of the counting line

    # Inference settings
    model_path: str = "models/yolov8n.onnx"
    labels_path: str = "models/labels.txt"
    input_size: int = 640
    confidence_threshold: float = 0.4
    iou_threshold: float = 0.4
    class_threshold: float = 0.5

    # Camera settings
    camera_index: int = 0
    frame_width: int = 640
    frame_height: int = 480
    target_fps: float = 15.0

    # Storage settings
    database_path: str = "data/people_counter.db"
    max_storage_days: int = 365
    event_queue_size: int = 256

    # Rendering and reports
    render_enabled: bool = True
    report_dir: str = "reports"

    # Web interface
    web_host: str = "0.0.0.0"
    web_port: int = 5000

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"


@dataclass
class StorageStats:
    """Event storage statistics."""
    database_size_mb: float
    event_count: int
    entered_count: int
    exited_count: int
    oldest_event: str
    newest_event: str
