"""Structured logging setup for the claims autopilot."""

import contextvars
import logging
from contextlib import contextmanager
from typing import Optional, Dict, Any, Iterator
from pathlib import Path

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [claim=%(claim_id)s] %(message)s"

# Claims are processed on worker threads, so context lives in a ContextVar
_log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "autopilot_log_context", default={}
)


class ContextFilter(logging.Filter):
    """Add context information to log records."""

    defaults: Dict[str, Any] = {"claim_id": "-"}

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context fields to log record."""
        for key, value in self.defaults.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        for key, value in _log_context.get().items():
            setattr(record, key, value)
        return True


# Global context filter instance
_context_filter = ContextFilter()


def setup_logging(
    level: str = "INFO",
    log_format: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up structured logging with optional file output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string for log messages
        log_file: Optional path to log file

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(_context_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(_context_filter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_context() -> Dict[str, Any]:
    """Return a copy of the context attached to log records on this thread."""
    return dict(_log_context.get())


@contextmanager
def claim_context(**kwargs) -> Iterator[None]:
    """
    Attach context fields to every log record emitted inside the block.

    Example:
        with claim_context(claim_id="CLM-123"):
            logger.info("Processing claim")  # record carries claim_id
    """
    merged = {**_log_context.get(), **kwargs}
    token = _log_context.set(merged)
    try:
        yield
    finally:
        _log_context.reset(token)
