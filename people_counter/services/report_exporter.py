"""PDF export of the crossing event history."""

import os
from datetime import datetime
from typing import Callable, List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..config.defaults import DIRECTION_LABELS
from ..models.detection import CrossingDirection, CrossingEvent
from ..utils import ensure_directory_exists, format_timestamp
from .interfaces import EventStoreInterface
from ..logging_config import get_logger

logger = get_logger("report_exporter")

REPORT_TITLE = "People Counting Report"
TABLE_HEADERS = ["Timestamp", "Direction"]
EMPTY_HISTORY_TEXT = "No crossing events recorded."


def _footer(canvas, doc):
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.drawRightString(doc.pagesize[0] - doc.rightMargin, 30, f"Page {doc.page}")
    canvas.restoreState()


class ReportExporter:
    """Renders the full event history as a two-column PDF table."""

    def __init__(self, event_store: EventStoreInterface, report_dir: str = "reports",
                 clock: Callable[[], datetime] = datetime.now):
        self.event_store = event_store
        self.report_dir = report_dir
        self.clock = clock

    def default_report_path(self) -> str:
        return os.path.join(self.report_dir, f"people_count_{self.clock():%Y%m%d_%H%M%S}.pdf")

    def export_pdf(self, path: Optional[str] = None) -> str:
        """Write the report and return its path."""
        path = path or self.default_report_path()
        ensure_directory_exists(os.path.dirname(path))

        events = self.event_store.get_all_events()

        doc = SimpleDocTemplate(path, pagesize=A4,
                                rightMargin=56, leftMargin=56,
                                topMargin=56, bottomMargin=56,
                                title=REPORT_TITLE)
        doc.build(self.build_story(events), onFirstPage=_footer, onLaterPages=_footer)

        logger.info(f"Exported {len(events)} crossing events to {path}")
        return path

    def build_story(self, events: List[CrossingEvent]) -> list:
        """Build the platypus flowables for a list of events."""
        styles = getSampleStyleSheet()
        normal_style = styles["Normal"]

        entered = sum(1 for event in events if event.direction == CrossingDirection.ENTER)
        exited = len(events) - entered

        story = [
            Paragraph(REPORT_TITLE, styles["Title"]),
            Paragraph(f"Generated: {format_timestamp(self.clock())}", normal_style),
            Paragraph(f"Entries: {entered} &nbsp;&nbsp; Exits: {exited}", normal_style),
            Spacer(1, 20),
        ]

        if not events:
            story.append(Paragraph(EMPTY_HISTORY_TEXT, normal_style))
            return story

        story.append(self.build_table(events))
        return story

    @staticmethod
    def table_rows(events: List[CrossingEvent]) -> List[List[str]]:
        """Header row plus one row per event."""
        rows = [list(TABLE_HEADERS)]
        for event in events:
            rows.append([
                format_timestamp(event.timestamp),
                DIRECTION_LABELS.get(event.direction.value, event.direction.value),
            ])
        return rows

    def build_table(self, events: List[CrossingEvent]) -> Table:
        table = Table(self.table_rows(events), colWidths=[220, 120], repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ]))
        return table
