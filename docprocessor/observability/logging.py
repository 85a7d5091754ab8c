"""Centralised logging helpers for the doc processor."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

_LOGGER_CACHE: Dict[str, logging.Logger] = {}

LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str = "docprocessor") -> logging.Logger:
    """Return a cached :class:`logging.Logger` instance."""

    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = logging.getLogger(name)
    return _LOGGER_CACHE[name]


def log_processing_event(
    event: str,
    message: str,
    *,
    level: int = logging.INFO,
    logger: Optional[logging.Logger] = None,
    **data: Any,
) -> None:
    """Emit a structured log entry about a processing run."""

    target_logger = logger or get_logger("docprocessor.engine")
    target_logger.log(
        level,
        message,
        extra={"docprocessor_event": event, "docprocessor_data": data},
    )


class _ConsoleLogFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras: Dict[str, Any] = {}
        if hasattr(record, "docprocessor_event"):
            extras["event"] = record.docprocessor_event  # type: ignore[attr-defined]
        if getattr(record, "docprocessor_data", None):
            extras["data"] = record.docprocessor_data  # type: ignore[attr-defined]
        if extras:
            return f"{base} | {json.dumps(extras, default=str)}"
        return base


def configure_logging(level: str = "info") -> logging.Logger:
    """Attach a console handler to the ``docprocessor`` logger once."""

    numeric_level = LEVELS.get(level.lower(), logging.INFO)
    root_logger = get_logger("docprocessor")
    root_logger.setLevel(numeric_level)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(_ConsoleLogFormatter())
        root_logger.addHandler(handler)
        # Prevent propagation to root logger to avoid duplicate messages
        root_logger.propagate = False
    return root_logger
