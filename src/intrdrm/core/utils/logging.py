"""Logging helpers for Intrdrm components.

The CLI installs a Rich handler through ``logging.basicConfig``; this module
only resolves the level it should use.
"""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "INTRDRM_LOG_LEVEL"


def resolve_level(level: int | str | None = None) -> int:
    """Translate a level name or number (or the environment default) to an int."""

    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


__all__ = ["LOG_LEVEL_ENV", "resolve_level"]
