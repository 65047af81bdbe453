"""Unit tests for centroid tracker."""

import unittest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from people_counter.models.detection import DetectionBox
from people_counter.services.centroid_tracker import CentroidTracker

FRAME = 1000


def box_at(cx: float, cy: float, half: float = 0.05) -> DetectionBox:
    """Box on a 1000x1000 frame whose normalized center is (cx, cy)."""
    return DetectionBox(
        left=(cx - half) * FRAME,
        top=(cy - half) * FRAME,
        right=(cx + half) * FRAME,
        bottom=(cy + half) * FRAME,
        confidence=0.9,
        class_label='person'
    )


class TestCentroidTracker(unittest.TestCase):
    """Test cases for CentroidTracker."""

    def setUp(self):
        """Set up test fixtures."""
        self.tracker = CentroidTracker(match_threshold=0.12)

    def update(self, *centers):
        return self.tracker.update([box_at(cx, cy) for cx, cy in centers], FRAME, FRAME)

    def test_first_frame_mints_sequential_ids(self):
        assignments = self.update((0.2, 0.2), (0.8, 0.8))

        self.assertEqual([a.track_id for a in assignments], [1, 2])
        self.assertTrue(all(a.is_new_track for a in assignments))
        self.assertEqual(self.tracker.next_track_id, 3)
        self.assertEqual(len(self.tracker), 2)

    def test_small_move_keeps_identity(self):
        self.update((0.5, 0.40))
        assignments = self.update((0.5, 0.45))

        self.assertEqual(assignments[0].track_id, 1)
        self.assertFalse(assignments[0].is_new_track)
        self.assertAlmostEqual(assignments[0].previous_center[1], 0.40)
        self.assertAlmostEqual(assignments[0].current_center[1], 0.45)

    def test_move_beyond_threshold_creates_new_track(self):
        """A jump of 0.3 exceeds the 0.12 threshold."""
        self.update((0.5, 0.35))
        assignments = self.update((0.5, 0.65))

        self.assertEqual(assignments[0].track_id, 2)
        self.assertIsNone(assignments[0].previous_center)
        self.assertEqual(sorted(self.tracker.tracks), [2])

    def test_distance_equal_to_threshold_matches(self):
        tracker = CentroidTracker(match_threshold=0.25)
        tracker.update([box_at(0.5, 0.25, half=0.0625)], FRAME, FRAME)
        assignments = tracker.update([box_at(0.5, 0.5, half=0.0625)], FRAME, FRAME)

        self.assertEqual(assignments[0].track_id, 1)

    def test_tie_break_first_detection_claims_nearest(self):
        """Two detections equidistant from one track: the first one claims it."""
        self.update((0.5, 0.5))
        assignments = self.update((0.45, 0.5), (0.55, 0.5))

        self.assertEqual(assignments[0].track_id, 1)
        self.assertEqual(assignments[1].track_id, 2)
        self.assertIsNone(assignments[1].previous_center)

    def test_claimed_track_not_reused_within_frame(self):
        self.update((0.3, 0.3), (0.7, 0.7))
        # Track 1 is claimed by the first detection; track 2 is out of range for the second
        assignments = self.update((0.3, 0.32), (0.3, 0.28))

        self.assertEqual(assignments[0].track_id, 1)
        self.assertEqual(assignments[1].track_id, 3)

    def test_distinct_ids_beyond_threshold(self):
        assignments = self.update((0.1, 0.1), (0.5, 0.5), (0.9, 0.9))

        ids = [a.track_id for a in assignments]
        self.assertEqual(len(set(ids)), 3)

    def test_empty_frame_clears_pool(self):
        self.update((0.5, 0.5))
        self.assertEqual(self.update(), [])
        self.assertEqual(len(self.tracker), 0)

    def test_dropped_identity_never_resurrected(self):
        """A track missing for one frame gets a fresh identity when it reappears."""
        self.update((0.5, 0.5))
        self.update()
        assignments = self.update((0.5, 0.5))

        self.assertEqual(assignments[0].track_id, 2)
        self.assertIsNone(assignments[0].previous_center)

    def test_unmatched_tracks_dropped_immediately(self):
        self.update((0.2, 0.2), (0.8, 0.8))
        self.update((0.2, 0.22))

        self.assertEqual(sorted(self.tracker.tracks), [1])

    def test_centers_clamped_and_normalized(self):
        box = DetectionBox(left=600, top=400, right=640, bottom=480, confidence=0.5, class_label='person')

        center = CentroidTracker.normalized_center(box, 640, 480)

        self.assertAlmostEqual(center[0], 620 / 640)
        self.assertAlmostEqual(center[1], 440 / 480)

    def test_tracks_property_is_a_copy(self):
        self.update((0.5, 0.5))
        tracks = self.tracker.tracks
        tracks.clear()

        self.assertEqual(len(self.tracker), 1)

    def test_frame_index_and_last_seen(self):
        self.update((0.5, 0.5))
        self.update((0.5, 0.52))

        self.assertEqual(self.tracker.frame_index, 2)
        self.assertEqual(self.tracker.tracks[1].last_seen_frame, 2)


if __name__ == '__main__':
    unittest.main()
