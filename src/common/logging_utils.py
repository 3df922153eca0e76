"""Centralized logging helpers.

All modules log through the standard ``logging`` package with a module-level
``logger = logging.getLogger(__name__)``. This module only configures the root
logger once and provides small helpers for structured DEBUG records.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

from constants import Constants

_CONTEXT_KEY = "context"


class _ContextFormatter(logging.Formatter):
    """Append structured context (from ``extra_context``) to DEBUG records."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        ctx = getattr(record, _CONTEXT_KEY, None)
        if ctx and record.levelno <= logging.DEBUG:
            pairs = " ".join(f"{k}={v}" for k, v in ctx.items())
            return f"{base} | {pairs}"
        return base


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger.

    The level is taken from ``level`` when given, otherwise from the
    LOCALPM_LOG_LEVEL environment variable, defaulting to INFO. Calling this
    more than once replaces the handler installed by the previous call.
    """
    level_name = (level or os.environ.get(Constants.LOG_LEVEL_ENV) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_localpm_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(_ContextFormatter(Constants.LOG_FORMAT))
    handler._localpm_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level_value)


def add_file_handler(path: str) -> logging.Handler:
    """Mirror all log output to ``path``."""
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(
        _ContextFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    logging.getLogger().addHandler(file_handler)
    return file_handler


def is_debug_enabled(logger: logging.Logger) -> bool:
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build the ``extra=`` mapping for a structured log record.

    None values are dropped so records stay compact.
    """
    return {_CONTEXT_KEY: {k: v for k, v in kwargs.items() if v is not None}}


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
