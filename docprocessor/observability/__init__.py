"""Logging helpers shared by the engine, the processors and the CLI."""

from __future__ import annotations

from .logging import configure_logging, get_logger, log_processing_event

__all__ = [
    "configure_logging",
    "get_logger",
    "log_processing_event",
]
