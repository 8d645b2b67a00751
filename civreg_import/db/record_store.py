from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any, Protocol

import psycopg2

from ..models.entity import EntityDefinition
from ..models.record import CanonicalRecord
from .batch_upsert import BatchMetrics, BatchUpsertError, batch_upsert

"""Record store collaborator.

The import core makes exactly two calls against the store:

- lookup_by_keys(kind, keys): read-only, protected fields of existing rows,
  called with bounded key chunks, possibly from several threads at once
- upsert(kind, records, conflict_key): one insert-or-update over the whole
  batch, returns the affected row count

Any failure surfaces as RecordStoreError; the orchestrator turns it into a
failed import.
"""

__all__ = [
    "RecordStore",
    "RecordStoreError",
    "PostgresRecordStore",
]

logger = logging.getLogger(__name__)


class RecordStoreError(Exception):
    """Lookup or upsert failed at the store."""


class RecordStore(Protocol):
    def lookup_by_keys(self, kind: str, keys: Sequence[str]) -> dict[str, dict[str, Any]]:
        ...

    def upsert(self, kind: str, records: Sequence[CanonicalRecord], conflict_key: str) -> int:
        ...


class PostgresRecordStore:
    """RecordStore over a psycopg2 connection.

    Lookups open their own cursor per call (psycopg2 connections may be shared
    between threads, cursors may not) and run one at a time under a lock; a
    failed lookup rolls the connection back before the lock is released so the
    next lookup, or the next workbook, starts on a clean transaction. The
    upsert runs inside ``with conn:`` so it commits on success and rolls back
    on any error.
    """

    def __init__(
        self,
        connection: Any,
        entities: dict[str, EntityDefinition],
        page_size: int = 1000,
    ) -> None:
        self._conn = connection
        self._entities = entities
        self.page_size = page_size
        self.last_metrics: BatchMetrics | None = None
        self._lookup_lock = threading.Lock()

    def _entity(self, kind: str) -> EntityDefinition:
        try:
            return self._entities[kind]
        except KeyError:
            raise RecordStoreError(f"unknown entity kind: {kind}") from None

    def lookup_by_keys(self, kind: str, keys: Sequence[str]) -> dict[str, dict[str, Any]]:
        entity = self._entity(kind)
        if not keys or not entity.protected_fields:
            return {}
        cols = [entity.natural_key, *entity.protected_fields]
        cols_sql = ",".join(f'"{c}"' for c in cols)
        sql = f'SELECT {cols_sql} FROM {entity.table} WHERE "{entity.natural_key}" = ANY(%s)'
        with self._lookup_lock:
            try:
                with self._conn.cursor() as cur:
                    cur.execute(sql, (list(keys),))
                    fetched = cur.fetchall()
            except psycopg2.Error as e:
                self._rollback()
                raise RecordStoreError(f"lookup failed table={entity.table}: {e}") from e

        existing: dict[str, dict[str, Any]] = {}
        for row in fetched:
            key = str(row[0])
            existing[key] = dict(zip(entity.protected_fields, row[1:], strict=True))
        logger.debug("lookup table=%s keys=%d found=%d", entity.table, len(keys), len(existing))
        return existing

    def _rollback(self) -> None:
        # a failed statement leaves the open transaction aborted
        try:
            self._conn.rollback()
        except psycopg2.Error as e:
            logger.warning("rollback after failed lookup failed: %s", e)

    def upsert(self, kind: str, records: Sequence[CanonicalRecord], conflict_key: str) -> int:
        entity = self._entity(kind)
        columns = entity.columns
        rows = [rec.as_row(columns) for rec in records]

        def _keep_metrics(m: BatchMetrics) -> None:
            self.last_metrics = m

        try:
            with self._conn:
                with self._conn.cursor() as cur:
                    result = batch_upsert(
                        cur,
                        table=entity.table,
                        columns=columns,
                        rows=rows,
                        conflict_key=conflict_key,
                        page_size=self.page_size,
                        metrics_callback=_keep_metrics,
                    )
        except (BatchUpsertError, psycopg2.Error) as e:
            raise RecordStoreError(f"upsert failed table={entity.table}: {e}") from e
        return result.affected_rows
