"""Default configuration values and constants."""

from typing import Dict, Any

# Default system configuration
DEFAULT_CONFIG: Dict[str, Any] = {
    # Counting settings
    "subject_label": "person",
    "match_threshold": 0.12,
    "midline_y": 0.5,

    # Inference settings
    "model_path": "models/yolov8n.onnx",
    "labels_path": "models/labels.txt",
    "input_size": 640,
    "confidence_threshold": 0.4,
    "iou_threshold": 0.4,
    "class_threshold": 0.5,

    # Camera settings
    "camera_index": 0,
    "frame_width": 640,
    "frame_height": 480,
    "target_fps": 15.0,

    # Storage settings
    "database_path": "data/people_counter.db",
    "max_storage_days": 365,
    "event_queue_size": 256,

    # Rendering and reports
    "render_enabled": True,
    "report_dir": "reports",

    # Web interface
    "web_host": "0.0.0.0",
    "web_port": 5000,

    # Logging
    "log_level": "INFO",
    "log_dir": "logs",
}

# Tracking and counting constants
TRACKING_CONSTANTS = {
    "FIRST_TRACK_ID": 1,
    "WRITER_POLL_SECONDS": 0.5,
    "SCHEDULER_POLL_SECONDS": 0.5,
    "THREAD_JOIN_TIMEOUT_SECONDS": 5.0,
    "MAX_ERROR_HISTORY": 500,
    "LOG_ROTATION_SIZE_MB": 10,
}

# File paths and directories
DEFAULT_PATHS = {
    "config_file": "config.json",
    "storage_dir": "data",
    "logs_dir": "logs",
    "models_dir": "models",
    "reports_dir": "reports",
    "database_file": "data/people_counter.db",
}

# Label written on the operator overlay and reports for each direction
DIRECTION_LABELS = {
    "enter": "Entry",
    "exit": "Exit",
}
