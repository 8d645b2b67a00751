from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the rejection log.

Every row the validator rejects, and every file whose import fails at the
record store, becomes one ErrorRecord. Records are buffered by
ErrorLogBuffer and flushed as JSON Lines so an operator can see exactly which
spreadsheet lines were left out and why.

row=-1 marks a file-level entry (store failure, unreadable workbook) where no
single row is to blame.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured rejection record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: source file name ("<rows>" when rows were handed over directly)
        kind: entity kind being imported
        row: 1-based row number within the input rows, -1 for file-level entries
        error_type: classification in UPPER_SNAKE_CASE
        message: human-readable detail
    """
    timestamp: str  # ISO8601 UTC
    file: str
    kind: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, kind: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            kind=kind,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
