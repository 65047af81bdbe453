"""Tests for logging configuration."""

import unittest
import logging
import tempfile
import shutil
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from people_counter.logging_config import (
    ROOT_LOGGER_NAME, get_logger, log_performance, log_with_context, setup_logging
)


class TestLoggingConfig(unittest.TestCase):
    """Test cases for the logging helpers."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()
        self.manager = setup_logging("DEBUG", self.test_dir)

    def tearDown(self):
        """Clean up test fixtures."""
        for name in (ROOT_LOGGER_NAME, f"{ROOT_LOGGER_NAME}.performance"):
            package_logger = logging.getLogger(name)
            for handler in list(package_logger.handlers):
                package_logger.removeHandler(handler)
                handler.close()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def flush(self):
        for name in (ROOT_LOGGER_NAME, f"{ROOT_LOGGER_NAME}.performance"):
            for handler in logging.getLogger(name).handlers:
                handler.flush()

    def read_log(self, filename):
        self.flush()
        with open(os.path.join(self.test_dir, filename)) as f:
            return f.read()

    def test_component_loggers_are_cached_and_namespaced(self):
        logger = get_logger("crossing_counter")

        self.assertIs(logger, get_logger("crossing_counter"))
        self.assertEqual(logger.name, f"{ROOT_LOGGER_NAME}.crossing_counter")

    def test_messages_reach_main_log(self):
        get_logger("tracker").info("track 3 created")

        self.assertIn("track 3 created", self.read_log("people_counter.log"))

    def test_errors_reach_error_log(self):
        logger = get_logger("event_writer")
        logger.info("routine")
        logger.error("write failed")

        content = self.read_log("errors.log")
        self.assertIn("write failed", content)
        self.assertNotIn("routine", content)

    def test_context_appended(self):
        log_with_context(get_logger("pipeline"), logging.INFO, "frame processed", {"frame_index": 7})

        self.assertIn("Context: frame_index=7", self.read_log("people_counter.log"))

    def test_performance_metrics(self):
        log_performance("Frame processed", {"duration_ms": 12.5})

        self.assertIn("Frame processed | duration_ms=12.5", self.read_log("performance.log"))

    def test_set_log_level(self):
        self.manager.set_log_level(logging.WARNING)

        self.assertEqual(logging.getLogger(ROOT_LOGGER_NAME).level, logging.WARNING)
        self.assertEqual(self.manager.get_log_stats()["log_level"], "WARNING")


if __name__ == '__main__':
    unittest.main()
