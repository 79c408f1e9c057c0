"""Rewrite legacy identifiers in tool output to their canonical form."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import MutableMapping, Sequence
from typing import Any, Literal

from todoist_mcp.todoist.ids import is_legacy
from todoist_mcp.todoist.resolver import LegacyIdResolver

logger = logging.getLogger("todoist-mcp.todoist.normalizer")

EntityKind = Literal["task", "project", "section"]

# field name -> resource type of the id it holds
ID_FIELDS: dict[str, dict[str, str]] = {
    "task": {
        "id": "tasks",
        "project_id": "projects",
        "section_id": "sections",
        "parent_id": "tasks",
    },
    "project": {
        "id": "projects",
        "parent_id": "projects",
    },
    "section": {
        "id": "sections",
        "project_id": "projects",
    },
}


class ResponseNormalizer:
    """Replace legacy ids of entities in place, where a mapping is known.

    Unmapped legacy values are left untouched.  Entities that carry no legacy
    id cause no lookups at all.
    """

    def __init__(self, resolver: LegacyIdResolver) -> None:
        self._resolver = resolver

    async def normalize(
        self, kind: EntityKind, entities: Sequence[MutableMapping[str, Any]]
    ) -> Sequence[MutableMapping[str, Any]]:
        fields = ID_FIELDS[kind]

        # one lookup per resource type, shared by every field of that type
        wanted: dict[str, dict[str, None]] = {}
        for field, resource_type in fields.items():
            for entity in entities:
                value = entity.get(field)
                if value is not None and is_legacy(str(value)):
                    wanted.setdefault(resource_type, {})[str(value)] = None

        if not wanted:
            return entities

        resource_types = list(wanted)
        mappings = await asyncio.gather(
            *(self._resolver.resolve(t, list(wanted[t])) for t in resource_types)
        )
        by_type = dict(zip(resource_types, mappings))

        replaced = 0
        for entity in entities:
            for field, resource_type in fields.items():
                value = entity.get(field)
                if value is None or resource_type not in by_type:
                    continue
                canonical = by_type[resource_type].get(str(value))
                if canonical is not None:
                    entity[field] = canonical
                    replaced += 1

        logger.debug("Normalized %d legacy %s id field(s)", replaced, kind)
        return entities

    async def normalize_one(
        self, kind: EntityKind, entity: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        await self.normalize(kind, [entity])
        return entity
