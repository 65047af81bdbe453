"""Operator overlay rendering."""

from typing import Optional, Tuple

import cv2
import numpy as np

from ..models.detection import FrameResult
from ..logging_config import get_logger

logger = get_logger("renderer")

# BGR colors
MIDLINE_COLOR = (0, 0, 255)
BOX_COLOR = (0, 255, 0)
LABEL_TEXT_COLOR = (0, 0, 0)
ENTER_TEXT_COLOR = (0, 255, 0)
EXIT_TEXT_COLOR = (0, 0, 255)


def format_detection_label(track_id: Optional[int], class_label: str, confidence: float) -> str:
    """Overlay label, e.g. ``ID 3 person 87%``."""
    track_text = track_id if track_id is not None else "-"
    return f"ID {track_text} {class_label} {confidence * 100:.0f}%"


class DetectionRenderer:
    """Draws the midline, tracked boxes and counters onto a frame copy.

    Rendering reads a published ``FrameResult`` only and has no effect on
    counting.
    """

    def __init__(self, midline_y: float = 0.5, line_thickness: int = 2, font_scale: float = 0.5):
        self.midline_y = midline_y
        self.line_thickness = line_thickness
        self.font_scale = font_scale
        self.font = cv2.FONT_HERSHEY_SIMPLEX

    def render(self, frame: np.ndarray, result: Optional[FrameResult]) -> np.ndarray:
        """Return an annotated copy of frame."""
        annotated = frame.copy()
        height, width = annotated.shape[:2]

        midline_px = int(round(self.midline_y * height))
        cv2.line(annotated, (0, midline_px), (width - 1, midline_px), MIDLINE_COLOR, self.line_thickness)

        if result is None:
            return annotated

        scale_x, scale_y = self._scale_factors(result, width, height)

        for detection in result.detections:
            box = detection.box
            x1 = int(box.left * scale_x)
            y1 = int(box.top * scale_y)
            x2 = int(box.right * scale_x)
            y2 = int(box.bottom * scale_y)

            cv2.rectangle(annotated, (x1, y1), (x2, y2), BOX_COLOR, self.line_thickness)
            self._draw_label(annotated, format_detection_label(detection.track_id, box.class_label,
                                                               box.confidence), x1, y1)

        self._draw_counters(annotated, result, width)
        return annotated

    def _scale_factors(self, result: FrameResult, width: int, height: int) -> Tuple[float, float]:
        if result.frame_width <= 0 or result.frame_height <= 0:
            return 1.0, 1.0
        return width / result.frame_width, height / result.frame_height

    def _draw_label(self, frame: np.ndarray, text: str, x: int, y: int) -> None:
        (text_width, text_height), baseline = cv2.getTextSize(text, self.font, self.font_scale, 1)
        # Above the box, pushed down when the box touches the top edge
        top = max(0, y - text_height - baseline - 4)
        cv2.rectangle(frame, (x, top), (x + text_width + 4, top + text_height + baseline + 4),
                      BOX_COLOR, cv2.FILLED)
        cv2.putText(frame, text, (x + 2, top + text_height + 2), self.font, self.font_scale,
                    LABEL_TEXT_COLOR, 1, cv2.LINE_AA)

    def _draw_counters(self, frame: np.ndarray, result: FrameResult, width: int) -> None:
        state = result.counter_state
        cv2.putText(frame, f"IN: {state.entered_count}", (10, 30), self.font, 0.8,
                    ENTER_TEXT_COLOR, 2, cv2.LINE_AA)

        exit_text = f"OUT: {state.exited_count}"
        (text_width, _), _ = cv2.getTextSize(exit_text, self.font, 0.8, 2)
        cv2.putText(frame, exit_text, (max(0, width - text_width - 10), 30), self.font, 0.8,
                    EXIT_TEXT_COLOR, 2, cv2.LINE_AA)


def encode_jpeg(frame: np.ndarray, quality: int = 85) -> Optional[bytes]:
    """Encode a BGR frame as JPEG bytes; None if encoding fails."""
    ok, buffer = cv2.imencode('.jpg', frame, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        logger.warning("JPEG encoding failed")
        return None
    return buffer.tobytes()
