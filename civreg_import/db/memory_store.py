from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Any

from ..models.entity import EntityDefinition
from ..models.record import CanonicalRecord
from .record_store import RecordStoreError

"""In-process RecordStore.

Backs --dry-run / DISABLE_DB_CONNECT=1 (mock mode) and the test suite. Rows
are kept per kind as natural key -> full value dict, with the same
insert-or-replace semantics as the PostgreSQL upsert.
"""

__all__ = [
    "InMemoryRecordStore",
]


class InMemoryRecordStore:
    def __init__(self, entities: dict[str, EntityDefinition]) -> None:
        self._entities = entities
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self.lookup_calls = 0
        self.upsert_calls = 0

    def _entity(self, kind: str) -> EntityDefinition:
        try:
            return self._entities[kind]
        except KeyError:
            raise RecordStoreError(f"unknown entity kind: {kind}") from None

    def rows(self, kind: str) -> dict[str, dict[str, Any]]:
        """Snapshot of stored rows for ``kind`` (natural key -> values)."""
        with self._lock:
            return {k: dict(v) for k, v in self._tables.get(kind, {}).items()}

    def seed(self, kind: str, key: str, values: dict[str, Any]) -> None:
        entity = self._entity(kind)
        with self._lock:
            table = self._tables.setdefault(kind, {})
            table[key] = {**values, entity.natural_key: key}

    def lookup_by_keys(self, kind: str, keys: Sequence[str]) -> dict[str, dict[str, Any]]:
        entity = self._entity(kind)
        with self._lock:
            self.lookup_calls += 1
            table = self._tables.get(kind, {})
            return {
                k: {f: table[k].get(f) for f in entity.protected_fields}
                for k in keys
                if k in table
            }

    def upsert(self, kind: str, records: Sequence[CanonicalRecord], conflict_key: str) -> int:
        entity = self._entity(kind)
        if conflict_key != entity.natural_key:
            raise RecordStoreError(
                f"conflict key '{conflict_key}' is not the natural key of {kind}"
            )
        with self._lock:
            self.upsert_calls += 1
            table = self._tables.setdefault(kind, {})
            for rec in records:
                table[rec.values[conflict_key]] = {c: rec.values.get(c) for c in entity.columns}
            return len(records)
