"""Identifier shapes accepted at the tool boundary.

Todoist is migrating from decimal numeric ids (*legacy*) to 26-character
Crockford base32 ids (*canonical*).  Both shapes are accepted on input; any
other string is rejected before it reaches the upstream API.
"""

from __future__ import annotations

import re
from enum import Enum

from todoist_mcp.todoist.errors import InvalidIdentifierError

_CANONICAL_RE = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}$")
_LEGACY_RE = re.compile(r"^\d+$")


class IdKind(str, Enum):
    CANONICAL = "canonical"
    LEGACY = "legacy"


def is_canonical(value: object) -> bool:
    return isinstance(value, str) and _CANONICAL_RE.fullmatch(value) is not None


def is_legacy(value: object) -> bool:
    # re's \d also matches non-ASCII digits
    return (
        isinstance(value, str)
        and value.isascii()
        and _LEGACY_RE.fullmatch(value) is not None
    )


def classify(value: object) -> IdKind:
    """Return the shape of *value*.

    Raises:
        InvalidIdentifierError: if *value* is neither canonical nor legacy.
    """
    if is_canonical(value):
        return IdKind.CANONICAL
    if is_legacy(value):
        return IdKind.LEGACY
    raise InvalidIdentifierError(value)


def require_identifier(value: object, field: str = "id") -> str:
    """Validate *value* as an identifier and return it as a string.

    Integers are accepted and converted, since some clients send legacy ids as
    JSON numbers.
    """
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        value = str(value)
    if is_canonical(value) or is_legacy(value):
        return value  # type: ignore[return-value]
    raise InvalidIdentifierError(value, field=field)
