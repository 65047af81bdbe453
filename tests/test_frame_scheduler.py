"""Tests for the single-worker frame scheduler."""

import threading
import unittest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from people_counter.services.error_handler import ErrorHandler
from people_counter.services.frame_scheduler import FrameScheduler


class TestFrameScheduler(unittest.TestCase):
    """Test cases for FrameScheduler."""

    def setUp(self):
        """Set up test fixtures."""
        self.error_handler = ErrorHandler()
        self.processed = []
        self.release = threading.Event()
        self.started = threading.Event()

    def tearDown(self):
        """Clean up test fixtures."""
        self.release.set()
        if hasattr(self, 'scheduler'):
            self.scheduler.stop()

    def blocking_handler(self, packet):
        self.started.set()
        self.release.wait(5.0)
        self.processed.append(packet)

    def make_scheduler(self, handler):
        self.scheduler = FrameScheduler(handler, self.error_handler)
        self.scheduler.start()
        return self.scheduler

    def test_processes_offered_packet(self):
        scheduler = self.make_scheduler(self.processed.append)

        self.assertTrue(scheduler.offer("frame-1"))
        self.assertTrue(scheduler.wait_until_idle(5.0))

        self.assertEqual(self.processed, ["frame-1"])
        self.assertEqual(scheduler.get_stats()['frames_completed'], 1)

    def test_drops_frames_while_busy(self):
        """Frames offered while one is in flight are dropped without state change."""
        scheduler = self.make_scheduler(self.blocking_handler)

        self.assertTrue(scheduler.offer("frame-1"))
        self.assertTrue(self.started.wait(5.0))
        self.assertTrue(scheduler.is_busy())

        self.assertFalse(scheduler.offer("frame-2"))
        self.assertFalse(scheduler.offer("frame-3"))

        self.release.set()
        self.assertTrue(scheduler.wait_until_idle(5.0))

        self.assertEqual(self.processed, ["frame-1"])
        stats = scheduler.get_stats()
        self.assertEqual(stats['frames_accepted'], 1)
        self.assertEqual(stats['frames_dropped'], 2)

    def test_accepts_again_after_completion(self):
        scheduler = self.make_scheduler(self.processed.append)

        for i in range(3):
            self.assertTrue(scheduler.offer(i))
            self.assertTrue(scheduler.wait_until_idle(5.0))

        self.assertEqual(self.processed, [0, 1, 2])
        self.assertFalse(scheduler.is_busy())

    def test_handler_exception_releases_guard(self):
        """A failing frame is abandoned and the next frame is accepted."""
        calls = []

        def failing_then_ok(packet):
            calls.append(packet)
            if packet == "bad":
                raise ValueError("inference failed")

        scheduler = self.make_scheduler(failing_then_ok)

        self.assertTrue(scheduler.offer("bad"))
        self.assertTrue(scheduler.wait_until_idle(5.0))
        self.assertTrue(scheduler.offer("good"))
        self.assertTrue(scheduler.wait_until_idle(5.0))

        self.assertEqual(calls, ["bad", "good"])
        stats = scheduler.get_stats()
        self.assertEqual(stats['frames_failed'], 1)
        self.assertEqual(stats['frames_completed'], 1)
        self.assertEqual(self.error_handler.get_error_stats()['component_error_counts']['frame_scheduler'], 1)

    def test_offer_before_start_is_dropped(self):
        self.scheduler = FrameScheduler(self.processed.append, self.error_handler)

        self.assertFalse(self.scheduler.offer("frame"))
        self.assertEqual(self.scheduler.get_stats()['frames_dropped'], 1)

    def test_offer_after_stop_is_dropped(self):
        scheduler = self.make_scheduler(self.processed.append)
        scheduler.stop()

        self.assertFalse(scheduler.offer("frame"))
        self.assertFalse(scheduler.is_busy())
        self.assertTrue(scheduler.wait_until_idle(1.0))

    def test_stop_between_guard_and_handoff_releases_guard(self):
        """A stop landing after the guard is taken drops the frame instead of stranding it."""
        scheduler = self.make_scheduler(self.processed.append)
        real_guard = scheduler._busy

        class StopOnAcquire:
            def acquire(self, blocking=True):
                acquired = real_guard.acquire(blocking)
                scheduler.stop()
                return acquired

            def release(self):
                real_guard.release()

            def locked(self):
                return real_guard.locked()

        scheduler._busy = StopOnAcquire()

        self.assertFalse(scheduler.offer("frame"))

        self.assertFalse(scheduler.is_busy())
        self.assertTrue(scheduler.wait_until_idle(1.0))
        self.assertEqual(self.processed, [])
        stats = scheduler.get_stats()
        self.assertEqual(stats['frames_dropped'], 1)
        self.assertEqual(stats['frames_accepted'], 0)

    def test_stop_waits_for_in_flight_frame(self):
        scheduler = self.make_scheduler(self.blocking_handler)
        scheduler.offer("frame-1")
        self.assertTrue(self.started.wait(5.0))

        self.release.set()
        scheduler.stop()

        self.assertEqual(self.processed, ["frame-1"])
        self.assertFalse(scheduler.running)


if __name__ == '__main__':
    unittest.main()
