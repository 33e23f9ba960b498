"""Centralized logging helpers.

Provides the root logger configuration used by the CLI entrypoint, a helper
for structured ``extra`` payloads, a cheap DEBUG guard and a small timer used
around network and filesystem operations.
"""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Dict, Optional

from constants import Constants

_REDACT_PARAMS = re.compile(r"(?i)(private_token|access_token|client_secret|token)=([^&#]+)")


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    The level is taken from ``level`` when given, otherwise from the
    ``COMPKG_LOG_LEVEL`` environment variable, defaulting to INFO.

    Args:
        level: Optional level name (DEBUG, INFO, ...).
        log_file: Optional path of an additional log file.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        root.addHandler(file_handler)

    root.setLevel(level_value)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for structured log records.

    None values are dropped so handlers only see populated fields.
    """
    return {key: value for key, value in fields.items() if value is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def redact(text: Optional[str]) -> str:
    """Mask credential-looking query parameters."""
    if not text:
        return ""
    return _REDACT_PARAMS.sub(lambda m: f"{m.group(1)}=[REDACTED]", text)


def safe_url(url: Optional[str]) -> str:
    """Return a URL safe to print in logs."""
    return redact(url)


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self):
        self.start = 0.0
        self.end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds, measured up to now while still running."""
        end = self.end if self.end is not None else time.perf_counter()
        return int((end - self.start) * 1000)
