from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Import result models for the civil-registry importer.

ImportStage is the per-invocation state machine:

    PARSING -> VALIDATING -> DEDUPLICATING -> MERGING -> PERSISTING -> REPORTED

with two short-circuit edges:
- VALIDATING / DEDUPLICATING -> REPORTED when no valid unique record remains
- MERGING / PERSISTING -> FAILED on any record store error

ImportResult is only ever produced in the REPORTED stage. A FAILED import
raises instead of returning a result.
"""

__all__ = [
    "ImportStage",
    "ImportResult",
]


class ImportStage(Enum):
    PARSING = "parsing"
    VALIDATING = "validating"
    DEDUPLICATING = "deduplicating"
    MERGING = "merging"
    PERSISTING = "persisting"
    REPORTED = "reported"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportResult:
    """Aggregated outcome of one import invocation.

    ``sample_headers`` is only populated when nothing was importable: it lists
    the distinct normalized headers actually seen so an operator can spot a
    header-naming mismatch without developer help.
    """
    kind: str
    total_rows: int  # rows received
    valid_count: int  # rows that passed validation (before dedup)
    invalid_count: int  # rows rejected by validation
    duplicate_count: int  # valid rows replaced by a later row with the same key
    inserted_or_updated_count: int  # affected rows reported by the store
    sample_headers: list[str] | None = None
    stage: ImportStage = ImportStage.REPORTED
    elapsed_seconds: float = 0.0

    @property
    def skipped_count(self) -> int:
        return self.invalid_count + self.duplicate_count

    @property
    def unique_count(self) -> int:
        return self.valid_count - self.duplicate_count

    @property
    def is_noop(self) -> bool:
        """True when the import short-circuited before touching the store."""
        return self.unique_count == 0
