"""Clock abstraction for testable time handling in the OAuth core.

Every expiry decision in :mod:`todoist_mcp.central_auth` (pending relay
states, authorization codes, issued bearer tokens) depends on an injected
``Clock`` instead of calling ``time.time()`` directly, so tests can move time
forward deterministically.

Example
-------
>>> from todoist_mcp.central_auth.clock import default_clock
>>> now = default_clock()
>>> isinstance(now, float)
True
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning *seconds* since the UNIX epoch."""

    def __call__(self) -> float: ...


def default_clock() -> float:
    """Default implementation that delegates to ``time.time()``.

    Returns
    -------
    float
        Seconds since the UNIX epoch.
    """
    return time.time()


def now_seconds(clock: Clock = default_clock) -> int:
    """Return the current time from *clock* truncated to whole seconds."""
    return int(clock())
