"""Cached legacy → canonical identifier lookups.

Mappings are immutable upstream, so a resolved pair is cached for the life of
the process and never refreshed.  The cache is keyed by
``(resource_type, legacy_id)``: nothing guarantees a task and a project never
share a numeric id.

Two concurrent calls missing the same id may both query upstream; the second
write stores the same value.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Literal

from todoist_mcp.todoist.client import TodoistClient
from todoist_mcp.todoist.errors import TodoistError
from todoist_mcp.todoist.ids import is_canonical, is_legacy

logger = logging.getLogger("todoist-mcp.todoist.resolver")

ResourceType = Literal["tasks", "projects", "sections"]
RESOURCE_TYPES: tuple[str, ...] = ("tasks", "projects", "sections")


def _parse_mapping(payload: Any) -> dict[str, str]:
    """Accept either ``{old: new}`` or ``[{"old_id": .., "new_id": ..}, ...]``."""
    pairs: dict[str, str] = {}
    if isinstance(payload, dict):
        items = payload.items()
    elif isinstance(payload, list):
        items = (
            (entry.get("old_id"), entry.get("new_id"))
            for entry in payload
            if isinstance(entry, dict)
        )
    else:
        return pairs
    for old, new in items:
        if old is None or new is None:
            continue
        old, new = str(old), str(new)
        if is_legacy(old) and is_canonical(new):
            pairs[old] = new
    return pairs


class LegacyIdResolver:
    """Resolve legacy ids to canonical ones, at most one lookup per id."""

    def __init__(self, client: TodoistClient) -> None:
        self._client = client
        self._cache: dict[tuple[str, str], str] = {}

    def cached(self, resource_type: str, legacy_id: str) -> str | None:
        return self._cache.get((resource_type, legacy_id))

    def __len__(self) -> int:
        return len(self._cache)

    async def resolve(self, resource_type: ResourceType, ids: Iterable[str]) -> dict[str, str]:
        """Return ``{legacy_id: canonical_id}`` for every id a mapping exists for.

        Failures never propagate: a failed lookup is logged and the uncached
        ids are simply absent from the result.
        """
        if resource_type not in RESOURCE_TYPES:
            raise ValueError(f"Unknown resource type: {resource_type!r}")

        requested = list(dict.fromkeys(str(i) for i in ids if i is not None))
        result: dict[str, str] = {}
        missing: list[str] = []
        for legacy_id in requested:
            hit = self._cache.get((resource_type, legacy_id))
            if hit is not None:
                result[legacy_id] = hit
            elif is_legacy(legacy_id):
                missing.append(legacy_id)

        if not missing:
            return result

        try:
            payload = await self._client.id_mappings(resource_type, missing)
        except TodoistError as exc:
            logger.warning(
                "Id mapping lookup for %d %s failed; leaving them unresolved: %s",
                len(missing),
                resource_type,
                exc,
            )
            return result

        fetched = _parse_mapping(payload)
        for legacy_id in missing:
            canonical = fetched.get(legacy_id)
            if canonical is None:
                continue
            self._cache[(resource_type, legacy_id)] = canonical
            result[legacy_id] = canonical

        logger.debug(
            "Resolved %d/%d legacy %s ids", len(fetched), len(missing), resource_type
        )
        return result
