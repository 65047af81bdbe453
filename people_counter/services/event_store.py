"""Crossing event persistence.

``EventStore`` keeps the append-only event history in SQLite.
``AsyncEventWriter`` puts a bounded queue and a dedicated writer thread in
front of it so the counting path never waits on disk I/O.
"""

import sqlite3
import threading
import time
from datetime import datetime, timedelta
from queue import Queue, Empty, Full
from typing import Any, Dict, List, Optional

from ..exceptions import StorageError
from ..models.config import StorageStats
from ..models.detection import CrossingDirection, CrossingEvent
from ..utils import ensure_parent_directory, get_file_size_mb
from .error_handler import ErrorHandler, ErrorSeverity, global_error_handler, with_error_handling
from .interfaces import EventSinkInterface, EventStoreInterface
from ..logging_config import get_logger, log_performance

logger = get_logger("event_store")


class EventStore(EventStoreInterface):
    """SQLite store for crossing events."""

    def __init__(self, database_path: str = "data/people_counter.db", max_storage_days: int = 365):
        """
        Initialize event store.

        Args:
            database_path: Path to SQLite database file
            max_storage_days: Maximum days to keep events

        Raises:
            StorageError: If the database cannot be created
        """
        self.database_path = database_path
        self.max_storage_days = max_storage_days

        global_error_handler.register_component("event_store", max_recovery_attempts=3)

        self._initialize_database()

    def _initialize_database(self) -> None:
        """Initialize SQLite database with the crossing event table."""
        try:
            ensure_parent_directory(self.database_path)
            with sqlite3.connect(self.database_path) as conn:
                cursor = conn.cursor()

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS crossing_events (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        timestamp TEXT NOT NULL,
                        direction TEXT NOT NULL,
                        track_id INTEGER,
                        created_at TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_crossing_timestamp
                    ON crossing_events(timestamp)
                """)

                conn.commit()
                logger.debug(f"Event database initialized at {self.database_path}")

        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to initialize event database: {e}")
            raise StorageError(f"Cannot initialize event database {self.database_path}: {e}") from e

    def save_event(self, event: CrossingEvent) -> None:
        """Persist one crossing event."""
        with sqlite3.connect(self.database_path) as conn:
            conn.execute("""
                INSERT INTO crossing_events (timestamp, direction, track_id)
                VALUES (?, ?, ?)
            """, (event.timestamp.isoformat(), event.direction.value, event.track_id))
            conn.commit()

        logger.debug(f"Saved {event.direction.value} event for track {event.track_id}")

    def get_all_events(self) -> List[CrossingEvent]:
        """Get the full event history ordered by timestamp."""
        with sqlite3.connect(self.database_path) as conn:
            cursor = conn.execute("""
                SELECT timestamp, direction, track_id
                FROM crossing_events
                ORDER BY timestamp ASC, id ASC
            """)
            return [self._row_to_event(row) for row in cursor.fetchall()]

    def get_event_history(self, start_date: datetime, end_date: datetime) -> List[CrossingEvent]:
        """Get events in a date range ordered by timestamp."""
        try:
            with sqlite3.connect(self.database_path) as conn:
                cursor = conn.execute("""
                    SELECT timestamp, direction, track_id
                    FROM crossing_events
                    WHERE timestamp BETWEEN ? AND ?
                    ORDER BY timestamp ASC, id ASC
                """, (start_date.isoformat(), end_date.isoformat()))

                events = [self._row_to_event(row) for row in cursor.fetchall()]
                logger.debug(f"Retrieved {len(events)} events from {start_date} to {end_date}")
                return events

        except sqlite3.Error as e:
            logger.error(f"Failed to get event history: {e}")
            return []

    def get_recent_events(self, limit: int = 20) -> List[CrossingEvent]:
        """Get the most recent events, newest first."""
        with sqlite3.connect(self.database_path) as conn:
            cursor = conn.execute("""
                SELECT timestamp, direction, track_id
                FROM crossing_events
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
            """, (max(0, int(limit)),))
            return [self._row_to_event(row) for row in cursor.fetchall()]

    def get_event_counts(self) -> Dict[str, int]:
        """Get persisted event totals per direction."""
        counts = {direction.value: 0 for direction in CrossingDirection}

        with sqlite3.connect(self.database_path) as conn:
            cursor = conn.execute("""
                SELECT direction, COUNT(*) FROM crossing_events GROUP BY direction
            """)
            for direction, count in cursor.fetchall():
                counts[direction] = count

        return counts

    @with_error_handling("event_store", ErrorSeverity.LOW, default=0)
    def cleanup_old_data(self) -> int:
        """Delete events older than the retention period."""
        cutoff_date = datetime.now() - timedelta(days=self.max_storage_days)

        with sqlite3.connect(self.database_path) as conn:
            cursor = conn.execute("""
                DELETE FROM crossing_events WHERE timestamp < ?
            """, (cutoff_date.isoformat(),))
            deleted_count = cursor.rowcount
            conn.commit()

        logger.info(f"Cleanup completed: {deleted_count} events older than {cutoff_date:%Y-%m-%d} deleted")
        return deleted_count

    def get_storage_usage(self) -> StorageStats:
        """Get storage usage statistics."""
        try:
            with sqlite3.connect(self.database_path) as conn:
                cursor = conn.execute("""
                    SELECT COUNT(*), MIN(timestamp), MAX(timestamp) FROM crossing_events
                """)
                event_count, oldest, newest = cursor.fetchone()

            counts = self.get_event_counts()

            return StorageStats(
                database_size_mb=get_file_size_mb(self.database_path),
                event_count=event_count,
                entered_count=counts[CrossingDirection.ENTER.value],
                exited_count=counts[CrossingDirection.EXIT.value],
                oldest_event=oldest or "N/A",
                newest_event=newest or "N/A"
            )

        except sqlite3.Error as e:
            logger.error(f"Failed to get storage usage: {e}")
            return StorageStats(
                database_size_mb=0.0,
                event_count=0,
                entered_count=0,
                exited_count=0,
                oldest_event="N/A",
                newest_event="N/A"
            )

    def get_storage_info(self) -> Dict[str, Any]:
        """Get storage information for the status endpoint."""
        stats = self.get_storage_usage()
        return {
            "database_path": self.database_path,
            "max_storage_days": self.max_storage_days,
            "database_size_mb": round(stats.database_size_mb, 3),
            "event_count": stats.event_count,
            "entered_count": stats.entered_count,
            "exited_count": stats.exited_count,
            "oldest_event": stats.oldest_event,
            "newest_event": stats.newest_event,
        }

    @staticmethod
    def _row_to_event(row) -> CrossingEvent:
        timestamp_str, direction, track_id = row
        return CrossingEvent(
            timestamp=datetime.fromisoformat(timestamp_str),
            direction=CrossingDirection(direction),
            track_id=track_id
        )


class AsyncEventWriter(EventSinkInterface):
    """Fire-and-forget event sink backed by a writer thread.

    ``submit`` never blocks: a full queue drops the event. Write failures are
    counted and reported but never retried, and never touch the in-memory
    counters of the session that produced the event.
    """

    def __init__(self, store: EventStoreInterface, max_queue_size: int = 256,
                 error_handler: Optional[ErrorHandler] = None, poll_interval: float = 0.5):
        self.store = store
        self.max_queue_size = max_queue_size
        self.error_handler = error_handler or global_error_handler
        self.poll_interval = poll_interval

        self.event_queue: Queue = Queue(maxsize=max_queue_size)
        self.writer_thread: Optional[threading.Thread] = None
        self.running = False

        self._stats_lock = threading.Lock()
        self.events_submitted = 0
        self.events_written = 0
        self.events_dropped = 0
        self.write_failures = 0
        self.last_error: Optional[str] = None

        self.error_handler.register_component("event_writer", max_recovery_attempts=0)

    def start(self) -> None:
        """Start the writer thread."""
        if self.running:
            return

        self.running = True
        self.writer_thread = threading.Thread(target=self._writer_loop, name="event-writer", daemon=True)
        self.writer_thread.start()
        logger.info("Event writer started")

    def stop(self, timeout: float = 5.0) -> None:
        """Write out queued events, then stop the writer thread."""
        if not self.running:
            return

        self.flush(timeout)
        self.running = False
        if self.writer_thread and self.writer_thread.is_alive():
            self.writer_thread.join(timeout=timeout)
        self.writer_thread = None
        logger.info(f"Event writer stopped ({self.events_written} written, "
                    f"{self.write_failures} failed)")

    def submit(self, event: CrossingEvent) -> bool:
        """Queue an event for persistence without blocking."""
        with self._stats_lock:
            self.events_submitted += 1

        try:
            self.event_queue.put_nowait(event)
            return True
        except Full:
            error = StorageError("Event queue full, dropping crossing event")
            with self._stats_lock:
                self.events_dropped += 1
                self.write_failures += 1
                self.last_error = str(error)
            logger.error(f"{error}: {event.direction.value} track {event.track_id}")
            self.error_handler.handle_error("event_writer", error, ErrorSeverity.LOW)
            return False

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued event has been handled; False on timeout."""
        if not self.running:
            return self.event_queue.empty()

        deadline = None if timeout is None else time.time() + timeout
        while self.event_queue.unfinished_tasks:
            if deadline is not None and time.time() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def _writer_loop(self) -> None:
        while self.running:
            try:
                event = self.event_queue.get(timeout=self.poll_interval)
            except Empty:
                continue

            start_time = time.time()
            try:
                self.store.save_event(event)
                with self._stats_lock:
                    self.events_written += 1
                log_performance("Event persisted", {
                    "direction": event.direction.value,
                    "write_ms": round((time.time() - start_time) * 1000, 2),
                })
            except Exception as e:
                with self._stats_lock:
                    self.write_failures += 1
                    self.last_error = str(e)
                logger.error(f"Failed to persist crossing event: {e}")
                self.error_handler.handle_error("event_writer", e, ErrorSeverity.MEDIUM)
            finally:
                self.event_queue.task_done()

    def get_stats(self) -> Dict[str, Any]:
        """Get writer statistics."""
        with self._stats_lock:
            return {
                "running": self.running,
                "submitted": self.events_submitted,
                "written": self.events_written,
                "dropped": self.events_dropped,
                "write_failures": self.write_failures,
                "queue_size": self.event_queue.qsize(),
                "max_queue_size": self.max_queue_size,
                "last_error": self.last_error,
                "thread_alive": self.writer_thread.is_alive() if self.writer_thread else False,
            }
