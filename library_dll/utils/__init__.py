"""Utilities for library_dll."""

from .log_config import configure_logging
from .log_config import log_level_for

__all__ = [
    "configure_logging",
    "log_level_for",
]
