from __future__ import annotations

import logging
from dataclasses import dataclass

from ..models.record import CanonicalRecord

"""Intra-batch deduplication.

Policy: last occurrence wins, for every entity kind. A later spreadsheet row
with the same natural key replaces the earlier one; the surviving record keeps
the position of the first occurrence so batch order stays stable.
"""

__all__ = [
    "DedupResult",
    "deduplicate",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DedupResult:
    """Unique records plus the number of valid rows they replaced."""
    records: list[CanonicalRecord]
    duplicate_count: int

    @property
    def keys(self) -> list[str]:
        return [r.natural_key for r in self.records]


def deduplicate(records: list[CanonicalRecord]) -> DedupResult:
    """Collapse records sharing a natural key; ``duplicate_count = len(records) - unique``."""
    by_key: dict[str, CanonicalRecord] = {}
    for rec in records:
        previous = by_key.get(rec.natural_key)
        if previous is not None:
            logger.debug(
                "duplicate key=%s row=%d replaces row=%d",
                rec.natural_key,
                rec.row_number,
                previous.row_number,
            )
        by_key[rec.natural_key] = rec
    unique = list(by_key.values())
    return DedupResult(records=unique, duplicate_count=len(records) - len(unique))
