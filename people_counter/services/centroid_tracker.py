"""Greedy nearest-centroid tracker.

Identity continuity across adjacent frames only: no occlusion handling, no
re-entry matching and no motion prediction. A track that receives no
detection in a frame is dropped immediately and its identity is never reused.
"""

import math
from typing import Dict, Iterable, List, Optional, Set

from ..models.detection import DetectionBox, Point, Track, TrackAssignment, TrackedDetection
from ..logging_config import get_logger
from .detection_normalizer import clamp

logger = get_logger("centroid_tracker")


class CentroidTracker:
    """Assigns persistent identities to detections by nearest normalized center."""

    def __init__(self, match_threshold: float = 0.12, first_track_id: int = 1):
        self.match_threshold = match_threshold
        self._next_track_id = first_track_id
        self._tracks: Dict[int, Track] = {}
        self._frame_index = 0

    @property
    def tracks(self) -> Dict[int, Track]:
        """Copy of the live track pool keyed by identity."""
        return {track_id: Track(track.track_id, track.last_normalized_center, track.last_seen_frame)
                for track_id, track in self._tracks.items()}

    @property
    def next_track_id(self) -> int:
        return self._next_track_id

    @property
    def frame_index(self) -> int:
        return self._frame_index

    def update(self, boxes: Iterable[DetectionBox],
               frame_width: float, frame_height: float) -> List[TrackAssignment]:
        """Associate this frame's boxes with tracks and replace the pool."""
        self._frame_index += 1

        assignments: List[TrackAssignment] = []
        new_tracks: Dict[int, Track] = {}
        claimed: Set[int] = set()

        for box in boxes:
            center = self.normalized_center(box, frame_width, frame_height)
            matched_id = self._find_nearest_track(center, claimed)

            if matched_id is None:
                track_id = self._next_track_id
                self._next_track_id += 1
                previous_center = None
            else:
                track_id = matched_id
                previous_center = self._tracks[matched_id].last_normalized_center

            claimed.add(track_id)
            new_tracks[track_id] = Track(
                track_id=track_id,
                last_normalized_center=center,
                last_seen_frame=self._frame_index
            )
            assignments.append(TrackAssignment(
                detection=TrackedDetection(box=box, track_id=track_id),
                current_center=center,
                previous_center=previous_center
            ))

        dropped = set(self._tracks) - claimed
        if dropped:
            logger.debug(f"Dropping unmatched tracks {sorted(dropped)} at frame {self._frame_index}")

        self._tracks = new_tracks
        return assignments

    def _find_nearest_track(self, center: Point, claimed: Set[int]) -> Optional[int]:
        """Nearest unclaimed track within the matching threshold, else None."""
        nearest_id = None
        nearest_distance = math.inf

        for track_id, track in self._tracks.items():
            if track_id in claimed:
                continue

            prev_x, prev_y = track.last_normalized_center
            distance = math.hypot(center[0] - prev_x, center[1] - prev_y)

            if distance < nearest_distance:
                nearest_distance = distance
                nearest_id = track_id

        if nearest_distance > self.match_threshold:
            return None

        return nearest_id

    @staticmethod
    def normalized_center(box: DetectionBox, frame_width: float, frame_height: float) -> Point:
        """Box center divided by frame size and clamped to [0, 1]."""
        center_x, center_y = box.center()
        return (
            clamp(center_x / frame_width, 0.0, 1.0),
            clamp(center_y / frame_height, 0.0, 1.0),
        )

    def __len__(self) -> int:
        return len(self._tracks)

    def __repr__(self) -> str:
        return f"CentroidTracker(tracked={len(self._tracks)}, next_id={self._next_track_id})"
