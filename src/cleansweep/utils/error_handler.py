"""
Error categorization and reporting for the organizer.
Every recoverable failure is turned into a log entry and a status message.
"""

import logging
import threading
from typing import Dict, Any
from enum import Enum

from ..file_access.mover import MoveError
from ..file_access.watcher import WatchError
from .settings_store import SettingsError

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Categorization of different error types."""

    CONFIGURATION = "configuration"
    FILE_ACCESS = "file_access"
    WATCH = "watch"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
}


class ErrorHandler:
    """Categorize errors, log them, and render them as status text."""

    def __init__(self):
        self.logger = logging.getLogger("cleansweep.errors")
        self._lock = threading.Lock()
        self.error_counts: Dict[ErrorType, int] = {
            error_type: 0 for error_type in ErrorType
        }

    def handle_error(self, error: Exception, context: str) -> str:
        """
        Record an error and produce the status message for it.

        Args:
            error: The exception to handle
            context: Short description of what was being done

        Returns:
            Message suitable for the status channel
        """
        error_type = self._categorize_error(error)
        severity = self._determine_severity(error, error_type)

        with self._lock:
            self.error_counts[error_type] += 1

        message = f"{context}: {error}" if context else str(error)
        self.logger.log(
            _LOG_LEVELS[severity],
            message,
            extra={"error_type": error_type.value, "severity": severity.value},
        )
        return message

    def _categorize_error(self, error: Exception) -> ErrorType:
        """Categorize the error type."""
        if isinstance(error, (SettingsError, ValueError)):
            return ErrorType.CONFIGURATION
        elif isinstance(error, WatchError):
            return ErrorType.WATCH
        elif isinstance(error, (MoveError, OSError)):
            return ErrorType.FILE_ACCESS
        else:
            return ErrorType.UNKNOWN

    def _determine_severity(
        self, error: Exception, error_type: ErrorType
    ) -> ErrorSeverity:
        """Determine error severity based on error type and specifics."""
        if error_type == ErrorType.FILE_ACCESS:
            cause = getattr(error, "cause", error)
            if isinstance(cause, FileNotFoundError):
                # vanished before we got to it; the next scan sorts it out
                return ErrorSeverity.LOW
            return ErrorSeverity.MEDIUM
        elif error_type == ErrorType.CONFIGURATION:
            return ErrorSeverity.MEDIUM
        else:
            return ErrorSeverity.HIGH

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get counts of errors handled so far, by category."""
        with self._lock:
            return {
                "total_errors": sum(self.error_counts.values()),
                "error_counts_by_type": {
                    error_type.value: count
                    for error_type, count in self.error_counts.items()
                },
            }
