from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from ..db.record_store import RecordStore
from ..models.entity import EntityDefinition
from ..models.record import CanonicalRecord

"""Existing-record merge.

Fields marked protected on an entity (tipe_akta, foto_dokumen, map
coordinates) are curated by hand after the first import. Before the upsert the
stored values of those fields are read back for every key in the batch and
written over the imported ones, so a re-import never clobbers them.

Lookups are split into chunks and run on a thread pool; all chunks must finish
(barrier) before the index is used. One failing chunk fails the whole merge.
"""

__all__ = [
    "chunked",
    "build_existing_index",
    "apply_protected",
    "merge_existing",
]

logger = logging.getLogger(__name__)

ExistingIndex = dict[str, dict[str, Any]]


def chunked(keys: Sequence[str], size: int) -> Iterator[list[str]]:
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    for start in range(0, len(keys), size):
        yield list(keys[start:start + size])


def build_existing_index(
    store: RecordStore,
    kind: str,
    keys: Sequence[str],
    chunk_size: int = 1000,
    max_workers: int = 4,
) -> ExistingIndex:
    """Look up ``keys`` in parallel chunks and join the results.

    Exceptions raised by the store propagate unchanged once every submitted
    chunk has finished; no partial index is returned.
    """
    chunks = list(chunked(keys, chunk_size))
    if not chunks:
        return {}

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(chunks)))) as pool:
        futures = [pool.submit(store.lookup_by_keys, kind, chunk) for chunk in chunks]
    # leaving the with block waits for every chunk

    index: ExistingIndex = {}
    for future in futures:
        index.update(future.result())
    logger.debug(
        "existing index kind=%s keys=%d chunks=%d found=%d",
        kind,
        len(keys),
        len(chunks),
        len(index),
    )
    return index


def apply_protected(
    records: Sequence[CanonicalRecord],
    index: ExistingIndex,
    protected_fields: Sequence[str],
) -> list[CanonicalRecord]:
    """Overwrite protected fields with stored values for keys already present."""
    merged: list[CanonicalRecord] = []
    for rec in records:
        stored = index.get(rec.natural_key)
        if stored is None:
            merged.append(rec)
            continue
        updates = {f: stored[f] for f in protected_fields if f in stored}
        merged.append(rec.with_values(updates))
    return merged


def merge_existing(
    store: RecordStore,
    entity: EntityDefinition,
    records: Sequence[CanonicalRecord],
    chunk_size: int = 1000,
    max_workers: int = 4,
) -> list[CanonicalRecord]:
    if not entity.protected_fields:
        return list(records)
    index = build_existing_index(
        store,
        entity.kind,
        [r.natural_key for r in records],
        chunk_size=chunk_size,
        max_workers=max_workers,
    )
    return apply_protected(records, index, entity.protected_fields)
