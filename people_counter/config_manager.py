"""Configuration management with JSON file persistence."""

import json
import logging
import math
import os
from dataclasses import asdict, fields, replace
from typing import Optional, Dict, Any, Callable, List

from .models.config import SystemConfig
from .config.defaults import DEFAULT_PATHS
from .utils import ensure_parent_directory
from .logging_config import get_logger

logger = get_logger("config_manager")

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigManager:
    """Manages system configuration with file persistence and change callbacks."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or DEFAULT_PATHS["config_file"]
        self._config: Optional[SystemConfig] = None
        self._config_change_callbacks: List[Callable[[SystemConfig], None]] = []

        self.load_config()

    def load_config(self) -> SystemConfig:
        """Load configuration from file or create default."""
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r') as f:
                    config_dict = json.load(f)
                self._config = SystemConfig(**self._known_fields(config_dict))
                errors = self.get_validation_errors(self._config)
                if errors:
                    logger.error(f"Invalid config in {self.config_path}: {'; '.join(errors)}. Using defaults.")
                    self._config = SystemConfig()
            except (json.JSONDecodeError, TypeError, AttributeError) as e:
                logger.error(f"Error loading config {self.config_path}: {e}. Using defaults.")
                self._config = SystemConfig()
        else:
            self._config = SystemConfig()
            self.save_config()

        return self._config

    def save_config(self) -> None:
        """Save current configuration to file."""
        if self._config is None:
            return

        ensure_parent_directory(self.config_path)
        with open(self.config_path, 'w') as f:
            json.dump(asdict(self._config), f, indent=2)

    def get_config(self) -> SystemConfig:
        """Get current configuration."""
        if self._config is None:
            return self.load_config()
        return self._config

    def update_config(self, **kwargs) -> bool:
        """
        Update configuration with new values.

        Unknown keys are ignored. The update is rejected as a whole if the
        resulting configuration does not validate.

        Returns:
            True if the configuration was changed and saved
        """
        current = self.get_config()
        changes = self._known_fields(kwargs)
        ignored = set(kwargs) - set(changes)
        if ignored:
            logger.warning(f"Ignoring unknown config keys: {sorted(ignored)}")

        candidate = replace(current, **changes)
        errors = self.get_validation_errors(candidate)
        if errors:
            logger.error(f"Rejected config update: {'; '.join(errors)}")
            return False

        self._config = candidate
        self.save_config()
        logger.info(f"Configuration updated: {sorted(changes)}")
        self._notify_callbacks()
        return True

    def validate_config(self, config: Optional[SystemConfig] = None) -> bool:
        """Validate current (or given) configuration."""
        return not self.get_validation_errors(config or self._config)

    def get_validation_errors(self, config: Optional[SystemConfig]) -> List[str]:
        """List every validation problem with a configuration."""
        if config is None:
            return ["configuration not loaded"]

        # Range checks below assume well-typed values
        errors = self._type_errors(config)
        if errors:
            return errors

        # Counting settings
        if not config.subject_label or not str(config.subject_label).strip():
            errors.append("subject_label must not be empty")
        if not 0.0 < config.match_threshold <= 1.0:
            errors.append("match_threshold must be in (0, 1]")
        if not 0.0 < config.midline_y < 1.0:
            errors.append("midline_y must be in (0, 1)")

        # Inference settings
        for name in ("confidence_threshold", "iou_threshold", "class_threshold"):
            if not 0.0 <= getattr(config, name) <= 1.0:
                errors.append(f"{name} must be in [0, 1]")
        if config.input_size <= 0:
            errors.append("input_size must be positive")

        # Camera settings
        if config.camera_index < 0:
            errors.append("camera_index must not be negative")
        if config.frame_width <= 0 or config.frame_height <= 0:
            errors.append("frame size must be positive")
        if config.target_fps <= 0:
            errors.append("target_fps must be positive")

        # Storage settings
        if config.max_storage_days < 1:
            errors.append("max_storage_days must be at least 1")
        if config.event_queue_size < 1:
            errors.append("event_queue_size must be at least 1")

        # Web and logging
        if not 1 <= config.web_port <= 65535:
            errors.append("web_port must be in 1..65535")
        if str(config.log_level).upper() not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}")

        return errors

    def register_change_callback(self, callback: Callable[[SystemConfig], None]) -> None:
        """Register a callback to be called when config changes."""
        if callback not in self._config_change_callbacks:
            self._config_change_callbacks.append(callback)

    def unregister_change_callback(self, callback: Callable[[SystemConfig], None]) -> None:
        """Unregister a config change callback."""
        if callback in self._config_change_callbacks:
            self._config_change_callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        for callback in self._config_change_callbacks:
            try:
                callback(self._config)
            except Exception as e:
                logger.error(f"Error in config change callback: {e}")

    def get_log_level(self) -> int:
        return getattr(logging, str(self.get_config().log_level).upper(), logging.INFO)

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self._config = SystemConfig()
        self.save_config()
        logger.info("Configuration reset to defaults")
        self._notify_callbacks()

    def export_config(self) -> Dict[str, Any]:
        """Export current configuration as a dictionary."""
        if not self._config:
            return {}
        return asdict(self._config)

    def import_config(self, config_dict: Dict[str, Any]) -> bool:
        """
        Import configuration from a dictionary.

        Args:
            config_dict: Dictionary containing configuration values

        Returns:
            True if import was successful, False otherwise
        """
        try:
            candidate = SystemConfig(**config_dict)
        except (TypeError, ValueError) as e:
            logger.error(f"Error importing config: {e}")
            return False

        errors = self.get_validation_errors(candidate)
        if errors:
            logger.error(f"Rejected imported config: {'; '.join(errors)}")
            return False

        self._config = candidate
        self.save_config()
        self._notify_callbacks()
        return True

    @staticmethod
    def _known_fields(values: Dict[str, Any]) -> Dict[str, Any]:
        names = {f.name for f in fields(SystemConfig)}
        return {key: value for key, value in values.items() if key in names}

    @staticmethod
    def _type_errors(config: SystemConfig) -> List[str]:
        errors = []
        for f in fields(SystemConfig):
            value = getattr(config, f.name)
            if f.type is bool:
                valid = isinstance(value, bool)
            elif f.type is str:
                valid = isinstance(value, str)
            elif f.type is int:
                valid = isinstance(value, int) and not isinstance(value, bool)
            elif f.type is float:
                valid = (isinstance(value, (int, float)) and not isinstance(value, bool)
                         and math.isfinite(value))
            else:
                valid = True

            if not valid:
                errors.append(f"{f.name} must be of type {f.type.__name__}, got {value!r}")
        return errors
