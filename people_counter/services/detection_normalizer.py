"""Raw detection filtering and clamping into canonical boxes."""

import math
from numbers import Real
from typing import Any, Iterable, List, Optional, Sequence

from ..models.detection import DetectionBox
from ..logging_config import get_logger
from .interfaces import RawDetection

logger = get_logger("detection_normalizer")


def to_float(value: Any) -> Optional[float]:
    """Convert a numeric value or numeric string to a finite float, else None."""
    if isinstance(value, bool):
        return None

    if isinstance(value, Real):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    return result if math.isfinite(result) else None


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


class DetectionNormalizer:
    """Turns raw inference records into canonical, in-bounds subject boxes.

    Records whose label does not contain the subject label (case-insensitive)
    are discarded, as are records without four numeric box coordinates and
    boxes that collapse after clamping to the frame.
    """

    def __init__(self, subject_label: str = "person"):
        self.subject_label = subject_label.lower()

    def normalize(self, raw_detections: Iterable[RawDetection],
                  frame_width: float, frame_height: float) -> List[DetectionBox]:
        """Produce canonical boxes for one frame."""
        if frame_width <= 0 or frame_height <= 0:
            logger.debug(f"Degenerate frame {frame_width}x{frame_height} - no detections")
            return []

        boxes = []
        for item in raw_detections or []:
            box = self._normalize_record(item, float(frame_width), float(frame_height))
            if box is not None:
                boxes.append(box)

        return boxes

    def _normalize_record(self, item: RawDetection, width: float, height: float) -> Optional[DetectionBox]:
        if not hasattr(item, 'get'):
            logger.debug(f"Discarding non-mapping detection record: {item!r}")
            return None

        label = item.get('label', item.get('tag'))
        label = '' if label is None else str(label).lower()
        if self.subject_label not in label:
            return None

        coordinates = self._parse_box(item.get('box'))
        if coordinates is None:
            logger.debug(f"Discarding detection with malformed box: {item.get('box')!r}")
            return None

        x1, y1, x2, y2, confidence = coordinates

        left = clamp(x1, 0.0, width)
        top = clamp(y1, 0.0, height)
        right = clamp(x2, 0.0, width)
        bottom = clamp(y2, 0.0, height)

        if right <= left or bottom <= top:
            logger.debug(f"Discarding box collapsed after clamping: {(x1, y1, x2, y2)}")
            return None

        return DetectionBox(
            left=left,
            top=top,
            right=right,
            bottom=bottom,
            confidence=confidence,
            class_label=label
        )

    @staticmethod
    def _parse_box(raw_box: Any) -> Optional[tuple]:
        """Parse [x1, y1, x2, y2, optional confidence]; None if malformed."""
        if not isinstance(raw_box, Sequence) or isinstance(raw_box, (str, bytes)):
            return None
        if len(raw_box) < 4:
            return None

        coordinates = [to_float(value) for value in raw_box[:4]]
        if any(value is None for value in coordinates):
            return None

        confidence = to_float(raw_box[4]) if len(raw_box) > 4 else None
        return (*coordinates, confidence if confidence is not None else 0.0)
