"""Centralized logging configuration for the people counter."""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional, Dict, Any
from pathlib import Path

ROOT_LOGGER_NAME = "people_counter"
PERFORMANCE_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.performance"

BASE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
LOCATION_SUFFIX = " | %(pathname)s:%(lineno)d"


class StructuredFormatter(logging.Formatter):
    """Formatter that appends structured context to log records.

    Records logged through ``log_with_context`` carry a ``context`` dict that
    is rendered as ``key=value`` pairs; errors with exception info also get
    the source location.
    """

    def __init__(self, include_context: bool = True):
        super().__init__(BASE_FORMAT)
        self.include_context = include_context
        self._located = logging.Formatter(BASE_FORMAT + LOCATION_SUFFIX)

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.ERROR and record.exc_info:
            message = self._located.format(record)
        else:
            message = super().format(record)

        context = getattr(record, 'context', None)
        if self.include_context and context:
            pairs = " | ".join(f"{key}={value}" for key, value in context.items())
            message = f"{message} | Context: {pairs}"
        return message


class ContextFilter(logging.Filter):
    """Tags records with the component name and process id."""

    def __init__(self, component_name: Optional[str] = None):
        super().__init__()
        self.component_name = component_name
        self.process_id = os.getpid()

    def filter(self, record: logging.LogRecord) -> bool:
        record.process_id = self.process_id
        if self.component_name:
            record.component = self.component_name
        return True


class LoggingManager:
    """Installs console and rotating file handlers for the people counter."""

    MAX_LOG_BYTES = 10 * 1024 * 1024
    BACKUP_COUNT = 5

    def __init__(self, log_dir: str = "logs", log_level: int = logging.INFO):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_log_file = self.log_dir / "people_counter.log"
        self.error_log_file = self.log_dir / "errors.log"
        self.performance_log_file = self.log_dir / "performance.log"
        self.log_level = log_level

        self._console_handler: Optional[logging.Handler] = None
        self._install_handlers()

    def _rotating_handler(self, path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(path, maxBytes=self.MAX_LOG_BYTES,
                                                       backupCount=self.BACKUP_COUNT)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        return handler

    @staticmethod
    def _reset_handlers(logger: logging.Logger) -> None:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def _install_handlers(self) -> None:
        package_logger = logging.getLogger(ROOT_LOGGER_NAME)
        package_logger.setLevel(self.log_level)
        self._reset_handlers(package_logger)

        self._console_handler = logging.StreamHandler(sys.stdout)
        self._console_handler.setLevel(self.log_level)
        self._console_handler.setFormatter(StructuredFormatter(include_context=False))
        package_logger.addHandler(self._console_handler)

        package_logger.addHandler(self._rotating_handler(self.main_log_file, logging.DEBUG,
                                                         StructuredFormatter()))
        package_logger.addHandler(self._rotating_handler(self.error_log_file, logging.ERROR,
                                                         StructuredFormatter()))

        # Performance lines also propagate to the main log
        perf_logger = logging.getLogger(PERFORMANCE_LOGGER_NAME)
        self._reset_handlers(perf_logger)
        perf_logger.addHandler(self._rotating_handler(self.performance_log_file, logging.INFO,
                                                      logging.Formatter("%(asctime)s | %(message)s")))

        package_logger.info("Logging system initialized")

    def set_log_level(self, level: int) -> None:
        """Change the package and console level; file handlers keep theirs."""
        self.log_level = level
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)
        if self._console_handler is not None:
            self._console_handler.setLevel(level)

    def get_log_stats(self) -> Dict[str, Any]:
        files = {}
        for log_file in (self.main_log_file, self.error_log_file, self.performance_log_file):
            if log_file.exists():
                file_stat = log_file.stat()
                files[log_file.name] = {
                    "size_mb": file_stat.st_size / (1024 * 1024),
                    "modified": datetime.fromtimestamp(file_stat.st_mtime).isoformat()
                }

        return {
            "log_directory": str(self.log_dir),
            "log_files": files,
            "log_level": logging.getLevelName(self.log_level)
        }


logging_manager: Optional[LoggingManager] = None
_component_loggers: Dict[str, logging.Logger] = {}


def get_logger(component_name: str) -> logging.Logger:
    """Get or create the logger for a component."""
    logger = _component_loggers.get(component_name)
    if logger is None:
        logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component_name}")
        logger.addFilter(ContextFilter(component_name))
        _component_loggers[component_name] = logger
    return logger


def log_with_context(logger: logging.Logger, level: int, message: str,
                     context: Optional[Dict[str, Any]] = None) -> None:
    """Log message with additional key/value context."""
    extra = {'context': context} if context else None
    logger.log(level, message, extra=extra)


def log_performance(message: str, metrics: Optional[Dict[str, Any]] = None) -> None:
    """Log a line to the performance log, e.g. ``Frame processed | duration_ms=12.5``."""
    if metrics:
        message = " | ".join([message] + [f"{key}={value}" for key, value in metrics.items()])
    logging.getLogger(PERFORMANCE_LOGGER_NAME).info(message)


def setup_logging(log_level: str = "INFO", log_dir: str = "logs") -> LoggingManager:
    """Set up console and file logging for the package."""
    global logging_manager

    numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)
    logging_manager = LoggingManager(log_dir, numeric_level)
    return logging_manager
