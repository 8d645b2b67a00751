from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

from ..models.entity import EntityDefinition
from ..models.record import CanonicalRecord
from .date_normalizer import DateNormalizer
from .row_normalizer import is_blank

"""Column alias resolution: normalized row -> CanonicalRecord.

Driven entirely by EntityDefinition.aliases. For every canonical field the
header spellings are tried in priority order and the first non-empty cell
wins; no header at all resolves to "" (text), None (number / date) or the
entity default.
"""

__all__ = [
    "AliasResolver",
    "first_alias_value",
    "to_text",
    "to_number",
]

logger = logging.getLogger(__name__)


def first_alias_value(row: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """Value of the first alias present and non-empty in ``row``, else None."""
    for alias in aliases:
        value = row.get(alias)
        if not is_blank(value):
            return value
    return None


def to_text(value: Any) -> str:
    """Cell value as text.

    Spreadsheet tools store NIK / no_kk as numbers, so integral floats drop
    their ".0" (3201010101010001.0 -> "3201010101010001").
    """
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def to_number(value: Any) -> float | None:
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if "," in text and "." not in text:
        text = text.replace(",", ".")  # decimal comma
    try:
        return float(text)
    except ValueError:
        return None


class AliasResolver:
    """Resolves normalized rows of one entity kind into canonical records."""

    def __init__(self, entity: EntityDefinition, date_normalizer: DateNormalizer | None = None) -> None:
        self.entity = entity
        self.dates = date_normalizer or DateNormalizer()
        self._columns = entity.columns

    def resolve(self, row: Mapping[str, Any], row_number: int) -> CanonicalRecord:
        entity = self.entity
        values: dict[str, Any] = {}

        # dates last: their fallback source (the record code) must be resolved first
        for fname, aliases in entity.aliases.items():
            if fname in entity.date_fields:
                continue
            raw = first_alias_value(row, aliases)
            if raw is None:
                values[fname] = self._missing(fname)
            elif fname in entity.numeric_fields:
                values[fname] = to_number(raw)
            else:
                values[fname] = to_text(raw)

        for fname, source_field in entity.date_fields.items():
            raw = first_alias_value(row, entity.aliases.get(fname, ()))
            fallback = values.get(source_field) if source_field else None
            values[fname] = self.dates.normalize(raw, fallback_source=fallback)

        for fname in self._columns:
            if fname not in values:
                values[fname] = entity.defaults.get(fname)

        return CanonicalRecord(
            kind=entity.kind,
            row_number=row_number,
            natural_key=values.get(entity.natural_key) or "",
            values=values,
        )

    def _missing(self, fname: str) -> Any:
        if fname in self.entity.defaults:
            return self.entity.defaults[fname]
        if fname in self.entity.numeric_fields:
            return None
        return ""
