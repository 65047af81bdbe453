"""Unit tests for the camera frame source."""

import unittest
import threading
import time
from unittest.mock import Mock
import sys
import os

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from people_counter.exceptions import CameraError
from people_counter.services.error_handler import ComponentStatus, ErrorHandler
from people_counter.services.frame_source import CameraFrameSource


def make_capture(opened=True):
    capture = Mock()
    capture.isOpened.return_value = opened
    capture.read.return_value = (True, np.zeros((48, 64, 3), dtype=np.uint8))
    return capture


class TestCameraFrameSource(unittest.TestCase):
    """Test cases for CameraFrameSource."""

    def setUp(self):
        """Set up test fixtures."""
        self.error_handler = ErrorHandler()

    def test_unopened_camera_raises(self):
        capture = make_capture(opened=False)
        source = CameraFrameSource(camera_index=2, capture_factory=lambda index: capture,
                                   error_handler=self.error_handler)

        with self.assertRaises(CameraError):
            source.start(Mock())

        capture.release.assert_called_once()
        self.assertFalse(source.is_running())

    def test_frames_pushed_to_callback(self):
        capture = make_capture()
        received = threading.Event()
        frames = []

        def on_frame(frame):
            frames.append(frame)
            received.set()

        source = CameraFrameSource(target_fps=100.0, capture_factory=lambda index: capture,
                                   error_handler=self.error_handler)
        source.start(on_frame)
        try:
            self.assertTrue(received.wait(5.0))
        finally:
            source.stop()

        self.assertEqual(frames[0].shape, (48, 64, 3))
        self.assertFalse(source.is_running())
        capture.release.assert_called_once()
        self.assertGreaterEqual(source.get_camera_info()['frames_captured'], 1)

    def test_callback_errors_do_not_stop_capture(self):
        capture = make_capture()
        calls = []
        second_call = threading.Event()

        def on_frame(frame):
            calls.append(frame)
            if len(calls) >= 2:
                second_call.set()
            raise RuntimeError("consumer failed")

        source = CameraFrameSource(target_fps=100.0, capture_factory=lambda index: capture,
                                   error_handler=self.error_handler)
        source.start(on_frame)
        try:
            self.assertTrue(second_call.wait(5.0))
        finally:
            source.stop()

        self.assertGreaterEqual(source.get_camera_info()['callback_errors'], 2)

    def test_capture_configured(self):
        capture = make_capture()
        source = CameraFrameSource(frame_width=320, frame_height=240, target_fps=5.0,
                                   capture_factory=lambda index: capture,
                                   error_handler=self.error_handler)
        source.start(Mock())
        source.stop()

        self.assertEqual(capture.set.call_count, 3)
        self.assertEqual(source.get_camera_info()['resolution'], "320x240")

    def test_repeated_read_failures_reopen_camera(self):
        """A run of failed reads is reported and recovered by reopening the device."""
        dead = make_capture()
        dead.read.return_value = (False, None)
        healthy = make_capture()
        captures = [dead, healthy]
        received = threading.Event()

        source = CameraFrameSource(target_fps=100.0, capture_factory=lambda index: captures.pop(0),
                                   error_handler=self.error_handler,
                                   max_consecutive_failures=2, failure_backoff=0.01)
        source.start(lambda frame: received.set())
        try:
            self.assertTrue(received.wait(5.0))
        finally:
            source.stop()

        dead.release.assert_called_once()
        info = source.get_camera_info()
        self.assertEqual(info['reopen_count'], 1)
        self.assertEqual(info['read_failures'], 2)
        self.assertEqual(self.error_handler.get_component_health()['frame_source'], ComponentStatus.HEALTHY)
        self.assertEqual(self.error_handler.get_error_stats()['component_recovery_attempts']['frame_source'], 1)

    def test_failed_reopen_leaves_component_degraded(self):
        dead = make_capture()
        dead.read.return_value = (False, None)
        captures = [dead, make_capture(opened=False)]

        source = CameraFrameSource(target_fps=100.0, capture_factory=lambda index: captures.pop(0),
                                   error_handler=self.error_handler,
                                   max_consecutive_failures=2, max_recovery_attempts=1,
                                   failure_backoff=0.01)
        source.start(Mock())
        try:
            deadline = time.time() + 5.0
            while source.get_camera_info()['read_failures'] < 4 and time.time() < deadline:
                time.sleep(0.01)
        finally:
            source.stop()

        self.assertEqual(source.reopen_count, 0)
        self.assertIsNone(source.capture)
        self.assertEqual(self.error_handler.get_component_health()['frame_source'], ComponentStatus.DEGRADED)


if __name__ == '__main__':
    unittest.main()
