"""Utility functions related to reading the environment."""

import logging
import os
from typing import Final, Tuple

logger = logging.getLogger("todoist-mcp.utils.environment")

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")
_FALSY: Final[Tuple[str, ...]] = ("false", "0", "no", "n", "off")


def env_flag(name: str, default: bool = False) -> bool:
    """Return the boolean value of *name*, falling back to *default*.

    Unrecognised values keep the default and are reported once in the logs.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    logger.warning("Ignoring unrecognised boolean value for %s", name)
    return default


def env_list(name: str, *, separators: str = ",") -> list[str]:
    """Split a delimiter-separated variable into non-empty, stripped items."""
    raw = os.getenv(name) or ""
    for sep in separators[1:]:
        raw = raw.replace(sep, separators[0])
    return [item.strip() for item in raw.split(separators[0]) if item.strip()]


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-integer value for %s", name)
        return default


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-numeric value for %s", name)
        return default
