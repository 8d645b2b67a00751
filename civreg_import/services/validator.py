from __future__ import annotations

from dataclasses import dataclass

from ..models.entity import EntityDefinition
from ..models.record import CanonicalRecord

"""Record validation.

A candidate is accepted iff its natural key is non-empty (and matches the
kind's fixed format when it has one, e.g. 16-digit NIK / no_kk) and every
identity field is non-empty. Free-form certificate numbers are accepted
as-is. Rejections are returned, never dropped: the orchestrator counts them
and writes them to the rejection log.
"""

__all__ = [
    "Rejection",
    "validate_record",
    "partition_records",
    "MISSING_NATURAL_KEY",
    "MALFORMED_NATURAL_KEY",
    "MISSING_IDENTITY_FIELD",
]

MISSING_NATURAL_KEY = "MISSING_NATURAL_KEY"
MALFORMED_NATURAL_KEY = "MALFORMED_NATURAL_KEY"
MISSING_IDENTITY_FIELD = "MISSING_IDENTITY_FIELD"


@dataclass(frozen=True)
class Rejection:
    row_number: int
    error_type: str
    message: str


def validate_record(record: CanonicalRecord, entity: EntityDefinition) -> Rejection | None:
    key = record.natural_key.strip()
    if not key:
        return Rejection(
            record.row_number,
            MISSING_NATURAL_KEY,
            f"{entity.natural_key} is empty",
        )
    if not entity.key_matches(key):
        return Rejection(
            record.row_number,
            MALFORMED_NATURAL_KEY,
            f"{entity.natural_key}={key!r} does not match {entity.key_pattern}",
        )
    missing = [f for f in entity.identity_fields if not str(record.get(f) or "").strip()]
    if missing:
        return Rejection(
            record.row_number,
            MISSING_IDENTITY_FIELD,
            f"{entity.natural_key}={key} missing {', '.join(missing)}",
        )
    return None


def partition_records(
    records: list[CanonicalRecord], entity: EntityDefinition
) -> tuple[list[CanonicalRecord], list[Rejection]]:
    """Split candidates into (valid, rejected), preserving row order."""
    valid: list[CanonicalRecord] = []
    rejected: list[Rejection] = []
    for rec in records:
        rejection = validate_record(rec, entity)
        if rejection is None:
            valid.append(rec)
        else:
            rejected.append(rejection)
    return valid, rejected
