from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Keyed batch upsert over psycopg2.extras.execute_values.

One call writes the whole batch with INSERT ... ON CONFLICT (key) DO UPDATE,
so re-importing the same file converges to the same stored state instead of
appending rows. ``RETURNING 1`` is fetched across all pages to count the
affected rows.

Callers own the transaction boundary (see db.record_store).
"""


class BatchUpsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing for a single upsert call."""
    batch_size: int
    elapsed_seconds: float
    start_time: float
    end_time: float


@dataclass(frozen=True)
class UpsertResult:
    affected_rows: int


def build_upsert_sql(table: str, columns: Sequence[str], conflict_key: str) -> str:
    """INSERT ... VALUES %s ON CONFLICT ("key") DO UPDATE SET col = EXCLUDED.col ..."""
    if conflict_key not in columns:
        raise BatchUpsertError(f"conflict key '{conflict_key}' not among columns {list(columns)}")
    cols_sql = ",".join(f'"{c}"' for c in columns)
    updates = [f'"{c}" = EXCLUDED."{c}"' for c in columns if c != conflict_key]
    if updates:
        on_conflict = f'ON CONFLICT ("{conflict_key}") DO UPDATE SET {", ".join(updates)}'
    else:
        on_conflict = f'ON CONFLICT ("{conflict_key}") DO NOTHING'
    return f"INSERT INTO {table} ({cols_sql}) VALUES %s {on_conflict} RETURNING 1"


def batch_upsert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    conflict_key: str,
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> UpsertResult:
    """Insert-or-update ``rows`` keyed on ``conflict_key``.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table (validated identifier from entity definitions)
    columns: column order of every row
    rows: row sequences; must not repeat a conflict key (Postgres rejects
        touching the same row twice in one statement)
    conflict_key: unique column the upsert is keyed on
    page_size: execute_values page size
    metrics_callback: receives BatchMetrics after the call; not invoked for
        an empty batch
    """
    rows_list = list(rows)
    if not rows_list:
        return UpsertResult(affected_rows=0)

    sql = build_upsert_sql(table, columns, conflict_key)

    start_time = time.time()
    try:
        returned = execute_values(cursor, sql, rows_list, page_size=page_size, fetch=True)
    except Exception as e:
        raise BatchUpsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    return UpsertResult(affected_rows=len(returned or []))
