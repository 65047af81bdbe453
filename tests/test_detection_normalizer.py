"""Unit tests for detection normalizer."""

import unittest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from people_counter.services.detection_normalizer import DetectionNormalizer, to_float, clamp


class TestToFloat(unittest.TestCase):
    """Test cases for numeric coercion."""

    def test_numbers_and_numeric_strings(self):
        self.assertEqual(to_float(3), 3.0)
        self.assertEqual(to_float(2.5), 2.5)
        self.assertEqual(to_float(" 12.5 "), 12.5)

    def test_rejects_non_numeric(self):
        self.assertIsNone(to_float("abc"))
        self.assertIsNone(to_float(None))
        self.assertIsNone(to_float(True))
        self.assertIsNone(to_float([1]))
        self.assertIsNone(to_float(float("nan")))
        self.assertIsNone(to_float(float("inf")))
        self.assertIsNone(to_float("nan"))

    def test_clamp(self):
        self.assertEqual(clamp(-5, 0, 10), 0)
        self.assertEqual(clamp(15, 0, 10), 10)
        self.assertEqual(clamp(5, 0, 10), 5)


class TestDetectionNormalizer(unittest.TestCase):
    """Test cases for DetectionNormalizer."""

    def setUp(self):
        """Set up test fixtures."""
        self.normalizer = DetectionNormalizer("person")

    def test_valid_detection(self):
        """Test a well-formed person detection."""
        boxes = self.normalizer.normalize([{'tag': 'person', 'box': [10, 20, 110, 220, 0.9]}], 640, 480)

        self.assertEqual(len(boxes), 1)
        box = boxes[0]
        self.assertEqual((box.left, box.top, box.right, box.bottom), (10.0, 20.0, 110.0, 220.0))
        self.assertAlmostEqual(box.confidence, 0.9)
        self.assertEqual(box.class_label, 'person')

    def test_label_is_case_insensitive_substring(self):
        raw = [
            {'tag': 'Person', 'box': [0, 0, 10, 10]},
            {'label': 'walking_PERSON', 'box': [0, 0, 10, 10]},
            {'tag': 'car', 'box': [0, 0, 10, 10]},
            {'box': [0, 0, 10, 10]},
        ]

        boxes = self.normalizer.normalize(raw, 100, 100)

        self.assertEqual([box.class_label for box in boxes], ['person', 'walking_person'])

    def test_clamps_to_frame(self):
        """Test out-of-bounds boxes are clamped into the frame."""
        boxes = self.normalizer.normalize([{'tag': 'person', 'box': [-50, -10, 700, 500, 0.5]}], 640, 480)

        self.assertEqual(len(boxes), 1)
        self.assertEqual((boxes[0].left, boxes[0].top, boxes[0].right, boxes[0].bottom),
                         (0.0, 0.0, 640.0, 480.0))

    def test_discards_collapsed_boxes(self):
        raw = [
            {'tag': 'person', 'box': [50, 50, 50, 100]},      # zero width
            {'tag': 'person', 'box': [100, 50, 40, 100]},     # inverted
            {'tag': 'person', 'box': [700, 10, 800, 100]},    # entirely right of frame
        ]

        self.assertEqual(self.normalizer.normalize(raw, 640, 480), [])

    def test_discards_malformed_boxes(self):
        raw = [
            {'tag': 'person', 'box': [1, 2, 3]},
            {'tag': 'person', 'box': [1, 'x', 30, 40]},
            {'tag': 'person', 'box': [1, 2, float('nan'), 40]},
            {'tag': 'person', 'box': "1,2,3,4"},
            {'tag': 'person', 'box': None},
            {'tag': 'person'},
            "not a record",
        ]

        self.assertEqual(self.normalizer.normalize(raw, 640, 480), [])

    def test_numeric_strings_and_missing_confidence(self):
        boxes = self.normalizer.normalize([
            {'tag': 'person', 'box': ['10', '10', '20', '20']},
            {'tag': 'person', 'box': [30, 30, 40, 40, 'high']},
        ], 100, 100)

        self.assertEqual(len(boxes), 2)
        self.assertEqual(boxes[0].confidence, 0.0)
        self.assertEqual(boxes[0].right, 20.0)
        self.assertEqual(boxes[1].confidence, 0.0)

    def test_degenerate_frame(self):
        raw = [{'tag': 'person', 'box': [0, 0, 10, 10]}]

        self.assertEqual(self.normalizer.normalize(raw, 0, 480), [])
        self.assertEqual(self.normalizer.normalize(raw, 640, -1), [])

    def test_preserves_input_order(self):
        raw = [
            {'tag': 'person', 'box': [300, 0, 310, 10, 0.1]},
            {'tag': 'person', 'box': [0, 0, 10, 10, 0.2]},
            {'tag': 'person', 'box': [100, 0, 110, 10, 0.3]},
        ]

        boxes = self.normalizer.normalize(raw, 640, 480)

        self.assertEqual([box.left for box in boxes], [300.0, 0.0, 100.0])

    def test_empty_input(self):
        self.assertEqual(self.normalizer.normalize([], 640, 480), [])
        self.assertEqual(self.normalizer.normalize(None, 640, 480), [])

    def test_custom_subject_label(self):
        normalizer = DetectionNormalizer("Cat")
        boxes = normalizer.normalize([
            {'tag': 'cat', 'box': [0, 0, 10, 10]},
            {'tag': 'person', 'box': [0, 0, 10, 10]},
        ], 100, 100)

        self.assertEqual(len(boxes), 1)


if __name__ == '__main__':
    unittest.main()
