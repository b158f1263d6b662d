"""
Macron Logging
--------------
Structured logging with message_id propagation.

Design:
- Every inbound frame gets a unique message_id
- message_id follows the frame through decode, dispatch and execution
- Console output through Rich, optional JSON-lines file output
- Severity discipline: INFO=lifecycle, WARNING=recoverable, ERROR=abort

Usage:
    from infra.logging import get_logger, MessageContext

    logger = get_logger("core.dispatcher")

    with MessageContext() as message_id:
        logger.info("Dispatching")
"""

import contextvars
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler


ROOT_LOGGER = "macron"
LOG_LEVEL_ENV_VAR = "MACRON_LOG"

_message_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "message_id", default=None
)


def generate_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:12]}"


def get_message_id() -> Optional[str]:
    return _message_id_var.get()


class MessageContext:
    """
    Context manager scoping log records to one inbound message.

    Usage:
        with MessageContext() as message_id:
            logger.info("Processing...")
    """

    def __init__(self, message_id: Optional[str] = None):
        self._message_id = message_id or generate_message_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _message_id_var.set(self._message_id)
        return self._message_id

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _message_id_var.reset(self._token)


class MessageIdFilter(logging.Filter):
    """Adds message_id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "message_id", None) is None:
            record.message_id = get_message_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured file logging."""

    EXTRA_KEYS = ("details", "function", "exec_id", "execution_time_ms", "success")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "message_id": getattr(record, "message_id", "-"),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_KEYS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Prefixes the message id when a record belongs to a message."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        message_id = getattr(record, "message_id", "-")
        if message_id and message_id != "-":
            return f"[{message_id}] {message}"
        return message


def parse_level(level: Union[str, int, None], default: int = logging.INFO) -> int:
    """Turn 'debug' / 'INFO' / 10 into a logging level."""
    if level is None or level == "":
        return default
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else default


def configure_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the macron logger tree.

    Args:
        level: Logging level for the console
        log_file: Optional JSON-lines file that receives everything
        console: Rich console to render to (stderr by default)

    Calling it again replaces the previous handlers.
    """
    level = parse_level(level)

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG if log_file else level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    id_filter = MessageIdFilter()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(ConsoleFormatter("%(message)s", datefmt="[%X]"))
    console_handler.addFilter(id_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(path), mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(id_filter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the macron namespace."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
