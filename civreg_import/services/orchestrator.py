from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from ..db.record_store import RecordStore, RecordStoreError
from ..logging.error_log import ErrorLogBuffer
from ..models.entity import EntityDefinition
from ..models.error_record import ErrorRecord
from ..models.import_result import ImportResult, ImportStage
from .alias_resolver import AliasResolver
from .date_normalizer import DateNormalizer
from .deduplicator import deduplicate
from .merger import merge_existing
from .row_normalizer import normalize_row, observed_headers
from .validator import partition_records

"""Import orchestration: one batch of raw rows -> one ImportResult.

Pipeline (see models.import_result.ImportStage):

    normalize headers -> resolve aliases / dates -> validate -> dedup
    -> merge protected fields from the store -> one keyed upsert -> report

The store is touched only when at least one valid unique record remains.
Store failures during MERGING or PERSISTING raise ImportFailedError; nothing
is reported as imported in that case.
"""

__all__ = [
    "ImportFailedError",
    "run_import",
    "activity_description",
]

logger = logging.getLogger(__name__)

ActivityLog = Callable[[str, str], None]


class ImportFailedError(Exception):
    """The import aborted at a record store call."""

    def __init__(self, stage: ImportStage, kind: str, message: str) -> None:
        super().__init__(f"import failed kind={kind} stage={stage.value}: {message}")
        self.stage = stage
        self.kind = kind


def activity_description(count: int) -> str:
    return f"Mengimport {count} data via Excel"


def _enter(stage: ImportStage, kind: str) -> ImportStage:
    logger.debug("stage=%s kind=%s", stage.value, kind)
    return stage


def run_import(
    rows: Sequence[Mapping[str, Any]],
    entity: EntityDefinition,
    store: RecordStore,
    *,
    chunk_size: int = 1000,
    max_workers: int = 4,
    date_normalizer: DateNormalizer | None = None,
    error_log: ErrorLogBuffer | None = None,
    source_name: str = "<rows>",
    first_row_number: int = 1,
    activity_log: ActivityLog | None = None,
    headers: Sequence[str] | None = None,
) -> ImportResult:
    """Reconcile ``rows`` of one entity kind into ``store``.

    Args:
        rows: raw rows, header string -> cell value
        entity: definition of the kind being imported
        store: RecordStore used for the protected-field lookup and the upsert
        chunk_size: keys per lookup call
        max_workers: parallel lookup calls
        date_normalizer: shared normalizer (carries the prefix list)
        error_log: receives one ErrorRecord per rejected row
        source_name: file name recorded in the rejection log
        first_row_number: row number given to ``rows[0]`` (spreadsheet line)
        activity_log: called as ``(action, description)`` after a successful upsert
        headers: header row as read from the sheet; reported with the row keys
            when no row is valid, so a sheet without data rows still shows them

    Returns:
        ImportResult in stage REPORTED.

    Raises:
        ImportFailedError: a lookup or the upsert failed at the store.
    """
    started = time.perf_counter()
    kind = entity.kind

    stage = _enter(ImportStage.PARSING, kind)
    resolver = AliasResolver(entity, date_normalizer)
    candidates = [
        resolver.resolve(normalize_row(raw), first_row_number + i)
        for i, raw in enumerate(rows)
    ]

    stage = _enter(ImportStage.VALIDATING, kind)
    valid, rejected = partition_records(candidates, entity)
    for rej in rejected:
        logger.debug("reject row=%d %s: %s", rej.row_number, rej.error_type, rej.message)
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    file=source_name,
                    kind=kind,
                    row=rej.row_number,
                    error_type=rej.error_type,
                    message=rej.message,
                )
            )

    def _report(upserted: int, duplicates: int, sample_headers: list[str] | None) -> ImportResult:
        return ImportResult(
            kind=kind,
            total_rows=len(rows),
            valid_count=len(valid),
            invalid_count=len(rejected),
            duplicate_count=duplicates,
            inserted_or_updated_count=upserted,
            sample_headers=sample_headers,
            stage=_enter(ImportStage.REPORTED, kind),
            elapsed_seconds=time.perf_counter() - started,
        )

    if not valid:
        return _report(0, 0, observed_headers(rows, headers or ()))

    stage = _enter(ImportStage.DEDUPLICATING, kind)
    dedup = deduplicate(valid)

    try:
        stage = _enter(ImportStage.MERGING, kind)
        merged = merge_existing(
            store,
            entity,
            dedup.records,
            chunk_size=chunk_size,
            max_workers=max_workers,
        )

        stage = _enter(ImportStage.PERSISTING, kind)
        upserted = store.upsert(kind, merged, entity.natural_key)
    except RecordStoreError as e:
        _enter(ImportStage.FAILED, kind)
        raise ImportFailedError(stage, kind, str(e)) from e

    if activity_log is not None:
        action = entity.activity_label or f"IMPORT DATA {kind.upper()}"
        activity_log(action, activity_description(len(merged)))

    return _report(upserted, dedup.duplicate_count, None)
