"""Structured logging configuration for the gateway and its collaborators."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

# Create module-level logger
logger = logging.getLogger("bybitgw")

_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class LoggerProtocol(Protocol):
    """Logging collaborator accepted by the gateway.

    ``logging.Logger`` satisfies it; tests may pass any recorder with the
    same four methods.
    """

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


class StructuredFormatter(logging.Formatter):
    """JSON-like structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured output."""
        timestamp = datetime.now(timezone.utc).isoformat()
        entry = f"[{timestamp}] [{record.levelname}] {record.name}: {record.getMessage()}"

        extra_fields: dict[str, Any] = {
            key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            entry += f" | {extra_fields}"

        if record.exc_info:
            entry += "\n" + self.formatException(record.exc_info)

        return entry


def _make_handler(output: str) -> logging.Handler:
    """Build a handler for ``stdout``, ``stderr`` or a file path."""
    target = output.strip().lower()
    if target == "stdout":
        return logging.StreamHandler(sys.stdout)
    if target == "stderr":
        return logging.StreamHandler(sys.stderr)

    log_file = Path(output)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_file, encoding="utf-8")


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    output: str = "stderr",
) -> None:
    """Configure application logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            ``warn`` is accepted as an alias of WARNING.
        log_file: Optional path to an additional log file
        output: Primary destination: ``stdout``, ``stderr`` or a file path
    """
    level_name = level.upper()
    if level_name == "WARN":
        level_name = "WARNING"
    log_level = getattr(logging, level_name, logging.INFO)

    logger.setLevel(log_level)
    logger.handlers.clear()

    handlers = [_make_handler(output)]
    if log_file:
        handlers.append(_make_handler(str(log_file)))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

    logger.debug("Logging configured", extra={"level": level, "output": output})


def get_logger(name: str) -> logging.Logger:
    """Get a child logger for the specified module.

    Args:
        name: Module name (will be prefixed with 'bybitgw.')

    Returns:
        Configured logger instance
    """
    return logging.getLogger(f"bybitgw.{name}")
