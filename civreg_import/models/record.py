from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

"""CanonicalRecord model.

A CanonicalRecord is one spreadsheet line after header normalization, alias
resolution and date normalization. It is transient: it only ever reaches the
record store through the single upsert call at the end of an import.
"""

__all__ = [
    "CanonicalRecord",
]


@dataclass(frozen=True)
class CanonicalRecord:
    """Entity-typed record ready for validation, dedup, merge and persistence."""
    kind: str
    row_number: int  # 1-based position in the input row sequence
    natural_key: str  # "" when no alias supplied it (validator rejects)
    values: dict[str, Any]  # canonical field -> value, one entry per entity column

    def get(self, field_name: str, default: Any = None) -> Any:
        return self.values.get(field_name, default)

    def with_values(self, updates: dict[str, Any]) -> CanonicalRecord:
        """Return a copy with ``updates`` applied over the current values."""
        merged = dict(self.values)
        merged.update(updates)
        return replace(self, values=merged)

    def as_row(self, columns: list[str]) -> list[Any]:
        """Values in ``columns`` order, for the batch upsert."""
        return [self.values.get(c) for c in columns]
