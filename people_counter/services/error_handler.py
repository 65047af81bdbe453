"""Central error handling and recovery bookkeeping."""

import functools
import threading
import traceback
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from ..logging_config import get_logger

logger = get_logger("error_handler")


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ComponentStatus(Enum):
    """Component status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class ErrorRecord:
    """Record of an error occurrence."""
    component_name: str
    error: Exception
    severity: ErrorSeverity
    timestamp: datetime = field(default_factory=datetime.now)
    traceback_str: str = ""
    recovery_attempted: bool = False
    recovery_successful: bool = False


class ErrorHandler:
    """Records component errors, tracks component health and runs recovery callbacks."""

    def __init__(self, max_error_history: int = 500):
        self.error_records: Deque[ErrorRecord] = deque(maxlen=max_error_history)
        self.component_error_counts: Dict[str, int] = {}
        self.component_recovery_attempts: Dict[str, int] = {}
        self.component_max_recovery_attempts: Dict[str, int] = {}
        self.recovery_callbacks: Dict[str, List[Callable[[], Any]]] = {}
        self.component_status: Dict[str, ComponentStatus] = {}
        self.system_degraded = False
        self.degradation_start_time: Optional[datetime] = None
        self._lock = threading.Lock()

    def register_component(self, component_name: str, max_recovery_attempts: int = 3) -> None:
        """Register a component for error handling."""
        with self._lock:
            self.component_error_counts[component_name] = 0
            self.component_recovery_attempts[component_name] = 0
            self.component_max_recovery_attempts[component_name] = max_recovery_attempts
            self.recovery_callbacks.setdefault(component_name, [])
            self.component_status[component_name] = ComponentStatus.HEALTHY
        logger.debug(f"Component registered: {component_name}")

    def register_recovery_callback(self, component_name: str, callback: Callable[[], Any]) -> None:
        """Register a recovery callback for a component."""
        with self._lock:
            self.recovery_callbacks.setdefault(component_name, []).append(callback)
        logger.debug(f"Recovery callback registered for {component_name}")

    def handle_error(self, component_name: str, error: Exception,
                     severity: ErrorSeverity = ErrorSeverity.MEDIUM) -> ErrorRecord:
        """Record an error from a component and attempt its recovery callbacks."""
        error_record = ErrorRecord(
            component_name=component_name,
            error=error,
            severity=severity,
            traceback_str="".join(traceback.format_exception(type(error), error, error.__traceback__))
        )

        with self._lock:
            self.error_records.append(error_record)
            self.component_error_counts[component_name] = \
                self.component_error_counts.get(component_name, 0) + 1

            if severity == ErrorSeverity.CRITICAL:
                self.component_status[component_name] = ComponentStatus.FAILED
                self.system_degraded = True
                if self.degradation_start_time is None:
                    self.degradation_start_time = datetime.now()
            elif severity == ErrorSeverity.HIGH:
                self.component_status[component_name] = ComponentStatus.DEGRADED
            else:
                self.component_status.setdefault(component_name, ComponentStatus.HEALTHY)

        logger.error(f"Error in {component_name}: {error} (Severity: {severity.value})")

        if severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            self._attempt_recovery(error_record)

        return error_record

    def _attempt_recovery(self, error_record: ErrorRecord) -> None:
        """Run recovery callbacks for a component, bounded by its attempt limit."""
        component_name = error_record.component_name
        callbacks = self.recovery_callbacks.get(component_name)
        if not callbacks:
            return

        attempts = self.component_recovery_attempts.get(component_name, 0)
        max_attempts = self.component_max_recovery_attempts.get(component_name, 3)
        if attempts >= max_attempts:
            logger.warning(f"Max recovery attempts reached for {component_name}")
            return

        self.component_recovery_attempts[component_name] = attempts + 1
        error_record.recovery_attempted = True

        try:
            for callback in callbacks:
                callback()
            error_record.recovery_successful = True
            self.component_status[component_name] = ComponentStatus.HEALTHY
            logger.info(f"Recovery attempted for {component_name} (Attempt {attempts + 1})")
        except Exception as e:
            logger.error(f"Recovery failed for {component_name}: {e}")

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        with self._lock:
            return {
                "total_errors": len(self.error_records),
                "component_error_counts": dict(self.component_error_counts),
                "component_recovery_attempts": dict(self.component_recovery_attempts),
                "component_status": {name: status.value for name, status in self.component_status.items()},
                "system_degraded": self.system_degraded,
            }

    def get_component_health(self) -> Dict[str, ComponentStatus]:
        """Get health status of all registered components."""
        with self._lock:
            return dict(self.component_status)

    def get_error_summary(self, hours: int = 24) -> Dict[str, Any]:
        """Get summary of errors in the last N hours."""
        cutoff_time = datetime.now() - timedelta(hours=hours)

        with self._lock:
            recent_errors = [e for e in self.error_records if e.timestamp >= cutoff_time]

        component_counts: Dict[str, int] = {}
        severity_counts = {severity.value: 0 for severity in ErrorSeverity}

        for error in recent_errors:
            component_counts[error.component_name] = component_counts.get(error.component_name, 0) + 1
            severity_counts[error.severity.value] += 1

        return {
            "total_errors": len(recent_errors),
            "component_counts": component_counts,
            "severity_counts": severity_counts,
            "time_period_hours": hours
        }

    def reset_error_counts(self, component_name: Optional[str] = None) -> None:
        """Reset error counts for a component or all components."""
        with self._lock:
            names = [component_name] if component_name else list(self.component_error_counts)
            for name in names:
                if name in self.component_error_counts:
                    self.component_error_counts[name] = 0
                    self.component_recovery_attempts[name] = 0
                    self.component_status[name] = ComponentStatus.HEALTHY
            if component_name is None:
                self.system_degraded = False
                self.degradation_start_time = None

    def is_system_degraded(self) -> bool:
        return self.system_degraded


# Shared error handler for components that are not given one explicitly
global_error_handler = ErrorHandler()


def with_error_handling(component_name: str, severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                        default: Any = None):
    """Decorator that reports exceptions to the error handler.

    Critical errors are re-raised; anything else returns ``default``.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                global_error_handler.handle_error(component_name, e, severity)
                if severity == ErrorSeverity.CRITICAL:
                    raise
                return default
        return wrapper
    return decorator
