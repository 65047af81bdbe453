"""Unit tests for the PDF report exporter."""

import unittest
import tempfile
import shutil
from datetime import datetime
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from people_counter.models.detection import CrossingDirection, CrossingEvent
from people_counter.services.event_store import EventStore
from people_counter.services.report_exporter import (
    EMPTY_HISTORY_TEXT, REPORT_TITLE, ReportExporter
)


def fixed_clock():
    return datetime(2024, 5, 2, 18, 30, 0)


class TestReportExporter(unittest.TestCase):
    """Test cases for ReportExporter."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()
        self.store = EventStore(os.path.join(self.test_dir, "events.db"))
        self.exporter = ReportExporter(self.store, os.path.join(self.test_dir, "reports"), clock=fixed_clock)

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_table_rows(self):
        events = [
            CrossingEvent(datetime(2024, 5, 1, 9, 5, 7), CrossingDirection.ENTER, 1),
            CrossingEvent(datetime(2024, 5, 1, 17, 45, 0), CrossingDirection.EXIT, 1),
        ]

        rows = ReportExporter.table_rows(events)

        self.assertEqual(rows, [
            ["Timestamp", "Direction"],
            ["01/05/2024 09:05:07", "Entry"],
            ["01/05/2024 17:45:00", "Exit"],
        ])

    def test_default_report_path(self):
        path = self.exporter.default_report_path()

        self.assertEqual(os.path.basename(path), "people_count_20240502_183000.pdf")

    def test_empty_history_story(self):
        story = self.exporter.build_story([])

        texts = [flowable.getPlainText() for flowable in story if hasattr(flowable, 'getPlainText')]
        self.assertIn(REPORT_TITLE, texts)
        self.assertIn(EMPTY_HISTORY_TEXT, texts)

    def test_export_pdf_writes_file(self):
        self.store.save_event(CrossingEvent(datetime(2024, 5, 1, 9, 0, 0), CrossingDirection.ENTER, 1))
        self.store.save_event(CrossingEvent(datetime(2024, 5, 1, 9, 1, 0), CrossingDirection.EXIT, 1))

        path = self.exporter.export_pdf()

        self.assertTrue(os.path.exists(path))
        with open(path, 'rb') as f:
            self.assertEqual(f.read(4), b'%PDF')

    def test_export_pdf_explicit_path_empty_history(self):
        target = os.path.join(self.test_dir, "nested", "out.pdf")

        path = self.exporter.export_pdf(target)

        self.assertEqual(path, target)
        self.assertGreater(os.path.getsize(target), 0)


if __name__ == '__main__':
    unittest.main()
