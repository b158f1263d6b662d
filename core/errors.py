"""
Error Handling Module
---------------------
Typed errors with classification and exit-code mapping.

Startup errors abort the process. After authentication only transport
and protocol errors end the session; a failed command is logged and the
loop keeps going (unless strict mode asks for the old behavior).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, List, Optional
import logging
import traceback


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""
    CONFIG_MISSING = auto()     # No configuration file
    CONFIG_INVALID = auto()     # Configuration did not validate
    AUTH_REJECTED = auto()      # Server refused the credentials
    TRANSPORT_FAILURE = auto()  # Socket/HTTP level failure
    MALFORMED_MESSAGE = auto()  # Frame did not match the envelope
    FUNCTION_NOT_FOUND = auto() # Exec id resolved to nothing
    LAUNCH_FAILURE = auto()     # Command could not be spawned


# Process exit status per category. Anything unlisted exits with 1.
EXIT_CODES: Dict[ErrorCategory, int] = {
    ErrorCategory.AUTH_REJECTED: 2,
}

RECOVERABLE: frozenset = frozenset({
    ErrorCategory.FUNCTION_NOT_FOUND,
    ErrorCategory.LAUNCH_FAILURE,
})


class MacronError(Exception):
    """Base class for every error the agent raises on purpose."""

    category: ErrorCategory = ErrorCategory.TRANSPORT_FAILURE

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def recoverable(self) -> bool:
        return self.category in RECOVERABLE

    @property
    def exit_code(self) -> int:
        return EXIT_CODES.get(self.category, 1)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.category.name}: {self.message})"


class ConfigMissing(MacronError):
    category = ErrorCategory.CONFIG_MISSING


class ConfigInvalid(MacronError):
    category = ErrorCategory.CONFIG_INVALID


class AuthRejected(MacronError):
    category = ErrorCategory.AUTH_REJECTED


class TransportFailure(MacronError):
    category = ErrorCategory.TRANSPORT_FAILURE


class MalformedMessage(MacronError):
    category = ErrorCategory.MALFORMED_MESSAGE


class FunctionNotFound(MacronError):
    category = ErrorCategory.FUNCTION_NOT_FOUND

    def __init__(self, key: int, details: Optional[Dict[str, Any]] = None):
        super().__init__("Function not found", details={"key": key, **(details or {})})
        self.key = key


class LaunchFailure(MacronError):
    category = ErrorCategory.LAUNCH_FAILURE


def exit_code_for(exc: BaseException) -> int:
    """Map an exception escaping the agent to a process exit status."""
    if isinstance(exc, MacronError):
        return exc.exit_code
    if isinstance(exc, KeyboardInterrupt):
        return 130
    return 1


@dataclass
class ErrorRecord:
    """An error as seen by the handler, kept for stats."""
    category: ErrorCategory
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    stack_trace: Optional[str] = None

    @classmethod
    def from_exception(cls, exception: MacronError) -> "ErrorRecord":
        stack_trace = None
        if exception.__traceback__ is not None:
            stack_trace = "".join(traceback.format_exception(
                type(exception), exception, exception.__traceback__
            ))
        return cls(
            category=exception.category,
            message=exception.message,
            details=dict(exception.details),
            stack_trace=stack_trace,
        )


class ErrorHandler:
    """
    Central error handler with logging and bounded history.
    """

    LEVELS: Dict[ErrorCategory, int] = {
        ErrorCategory.FUNCTION_NOT_FOUND: logging.WARNING,
        ErrorCategory.LAUNCH_FAILURE: logging.ERROR,
        ErrorCategory.MALFORMED_MESSAGE: logging.ERROR,
        ErrorCategory.TRANSPORT_FAILURE: logging.ERROR,
        ErrorCategory.AUTH_REJECTED: logging.ERROR,
        ErrorCategory.CONFIG_INVALID: logging.CRITICAL,
        ErrorCategory.CONFIG_MISSING: logging.CRITICAL,
    }

    def __init__(self, max_history: int = 100):
        self._logger = logging.getLogger("macron.errors")
        self._history: List[ErrorRecord] = []
        self._max_history = max_history

    def handle(self, error: MacronError) -> ErrorRecord:
        """Log an error and remember it."""
        record = ErrorRecord.from_exception(error)
        level = self.LEVELS.get(record.category, logging.ERROR)

        self._logger.log(
            level,
            f"{record.category.name}: {record.message}",
            extra={"details": record.details},
        )
        if record.stack_trace and level >= logging.ERROR:
            self._logger.debug(f"Stack trace:\n{record.stack_trace}")

        self._history.append(record)
        if len(self._history) > self._max_history:
            self._history.pop(0)

        return record

    @property
    def history(self) -> List[ErrorRecord]:
        return self._history.copy()

    def get_error_stats(self) -> Dict[str, int]:
        """Count handled errors per category name."""
        stats: Dict[str, int] = {}
        for record in self._history:
            key = record.category.name
            stats[key] = stats.get(key, 0) + 1
        return stats

    def clear_history(self) -> None:
        self._history.clear()
