"""Schema identity index.

Maps the :class:`~specreader.models.RefKey` of every location where a schema
was seen to either a :class:`~specreader.models.SchemaRef` (the location is a
``$ref`` pointing elsewhere) or the decoded :class:`~specreader.models.Schema`.
A key holds at most one resolved schema; recording a second one for the same
key keeps the first, which is what gives each schema a single identity no
matter how many places reference it.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional, Union

from specreader.exceptions import UnresolvedRefError
from specreader.models import RefKey, Schema, SchemaRef

logger = logging.getLogger(__name__)

SchemaEntry = Union[Schema, SchemaRef]


class SchemaIndex:
    """Record-once store of schema entries keyed by defining location."""

    def __init__(self) -> None:
        self._entries: dict[RefKey, SchemaEntry] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RefKey]:
        return iter(self._entries)

    def items(self) -> list[tuple[RefKey, SchemaEntry]]:
        return list(self._entries.items())

    def get(self, key: RefKey) -> Optional[SchemaEntry]:
        return self._entries.get(key)

    def resolved(self, key: RefKey) -> Optional[Schema]:
        """Return the decoded schema stored under *key*, if any."""
        entry = self._entries.get(key)
        return entry if isinstance(entry, Schema) else None

    def record(self, key: RefKey, entry: SchemaEntry) -> SchemaEntry:
        """Store *entry* under *key* and return the entry that ends up stored.

        A resolved schema already stored under *key* is never replaced; it is
        returned instead so the caller can use the canonical instance.
        """
        existing = self._entries.get(key)
        if isinstance(existing, Schema):
            if existing is not entry:
                logger.debug("Schema at %s already resolved, keeping first instance", key)
            return existing
        self._entries[key] = entry
        return entry

    def unresolved_targets(self) -> list[RefKey]:
        """Targets of recorded refs that have no entry of their own yet."""
        targets: list[RefKey] = []
        for entry in self._entries.values():
            if isinstance(entry, SchemaRef) and entry.target not in self._entries:
                if entry.target not in targets:
                    targets.append(entry.target)
        return targets

    def resolve(self, value: Union[SchemaEntry, RefKey]) -> Schema:
        """Follow refs from *value* until a decoded schema is reached.

        Raises:
            UnresolvedRefError: If a ref points at a location with no entry,
                or a chain of refs loops back on itself.
        """
        seen: set[RefKey] = set()
        entry: Union[SchemaEntry, RefKey, None] = value
        while not isinstance(entry, Schema):
            key = entry.target if isinstance(entry, SchemaRef) else entry
            if key in seen:
                raise UnresolvedRefError(str(key), "", reason="reference chain loops back on itself")
            seen.add(key)
            entry = self._entries.get(key)
            if entry is None:
                raise UnresolvedRefError(str(key), key.path[-1] if key.path else "")
        return entry
