"""Idempotent stderr logging setup.

``EARSHOT_LOG_LEVEL`` (a level name such as ``DEBUG`` or a number) overrides
the caller's default level; an explicit ``level`` argument overrides both.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "EARSHOT_LOG_LEVEL"

_CONFIGURED = False


def resolve_level(value: str | int | None, default: int = logging.INFO) -> int:
    """Turn a level name or number into a logging level. Unknown values give ``default``."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else default


def setup_logging(level: int | None = None, default: int = logging.INFO) -> None:
    """Configure earshot logging to stderr. Safe to call multiple times."""
    global _CONFIGURED  # noqa: PLW0603
    if _CONFIGURED:
        return

    if level is None:
        level = resolve_level(os.environ.get(LOG_LEVEL_ENV), default)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )

    logger = logging.getLogger("earshot")
    logger.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True
