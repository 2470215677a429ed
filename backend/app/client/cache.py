"""Client-side normalized cache.

Entities are stored once under ``"<Type>:<id>"``; query results only hold
references to them. Writing an entity through any query or mutation is
therefore visible to every cached query that references it.
"""

from __future__ import annotations

import json
from typing import Any


def query_key(operation_name: str, variables: dict[str, Any] | None = None) -> str:
    return f"{operation_name}({json.dumps(variables or {}, sort_keys=True)})"


def entity_ref(typename: str, entity_id: str) -> str:
    return f"{typename}:{entity_id}"


class NormalizedCache:
    def __init__(self) -> None:
        self.entities: dict[str, dict[str, Any]] = {}
        # query key -> (operation name, variables, ref or list of refs)
        self.queries: dict[str, tuple[str, dict[str, Any], str | list[str]]] = {}

    def write_entity(self, typename: str, entity: dict[str, Any]) -> str:
        ref = entity_ref(typename, entity["id"])
        self.entities[ref] = {**self.entities.get(ref, {}), **entity}
        return ref

    def read_entity(self, typename: str, entity_id: str) -> dict[str, Any] | None:
        entity = self.entities.get(entity_ref(typename, entity_id))
        return dict(entity) if entity is not None else None

    def write_query(
        self,
        operation_name: str,
        variables: dict[str, Any] | None,
        typename: str,
        result: dict[str, Any] | list[dict[str, Any]],
    ) -> None:
        if isinstance(result, list):
            refs: str | list[str] = [self.write_entity(typename, item) for item in result]
        else:
            refs = self.write_entity(typename, result)
        self.queries[query_key(operation_name, variables)] = (operation_name, dict(variables or {}), refs)

    def read_query(self, operation_name: str, variables: dict[str, Any] | None = None) -> Any | None:
        """Denormalized result, or None when missing or referencing an evicted entity."""
        entry = self.queries.get(query_key(operation_name, variables))
        if entry is None:
            return None

        refs = entry[2]
        if isinstance(refs, str):
            return dict(self.entities[refs]) if refs in self.entities else None
        if any(ref not in self.entities for ref in refs):
            return None
        return [dict(self.entities[ref]) for ref in refs]

    def has_query(self, operation_name: str, variables: dict[str, Any] | None = None) -> bool:
        return query_key(operation_name, variables) in self.queries

    def cached_variables(self, operation_name: str) -> list[dict[str, Any]]:
        return [dict(variables) for name, variables, _ in self.queries.values() if name == operation_name]

    def evict(self, typename: str, entity_id: str) -> None:
        self.entities.pop(entity_ref(typename, entity_id), None)

    def evict_query(self, operation_name: str, variables: dict[str, Any] | None = None) -> None:
        if variables is not None:
            self.queries.pop(query_key(operation_name, variables), None)
            return
        for key in [k for k, entry in self.queries.items() if entry[0] == operation_name]:
            del self.queries[key]

    def clear(self) -> None:
        self.entities.clear()
        self.queries.clear()
