from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any

"""Entity definition model for the civil-registry importer.

An EntityDefinition is the per-kind data that drives the whole import pipeline:
which headers feed which canonical field, which field is the natural key, which
fields a human curates by hand (protected) and which fields are dates.

Adding a record kind means adding one entry to config/entities.yml; nothing in
the services layer branches on the kind name.
"""

__all__ = [
    "EntityDefinition",
]


@dataclass(frozen=True)
class EntityDefinition:
    """Static description of one record kind (ktp, kk, akta_kelahiran, ...).

    ``aliases`` keeps insertion order twice over: fields are resolved in the
    order they are declared, and each field's header spellings are tried in
    priority order (first non-empty wins).
    """
    kind: str  # e.g. "akta_kelahiran"
    table: str  # target table in the record store
    natural_key: str  # business-unique field (nik, no_kk, no_akta, ...)
    identity_fields: tuple[str, ...]  # must be non-empty for a row to be valid
    aliases: dict[str, tuple[str, ...]]  # canonical field -> ordered header spellings
    key_pattern: str | None = None  # fixed-format keys only (NIK / no_kk: 16 digits)
    date_fields: dict[str, str | None] = field(default_factory=dict)  # date field -> fallback source field
    numeric_fields: frozenset[str] = frozenset()
    protected_fields: tuple[str, ...] = ()  # stored value wins over imported value
    defaults: dict[str, Any] = field(default_factory=dict)  # value when no alias supplies the field
    activity_label: str | None = None  # "IMPORT DATA KTP", ...

    @property
    def columns(self) -> list[str]:
        """Every column a canonical record of this kind carries, in stable order.

        Alias-fed fields first (declaration order), then default-only and
        protected fields that no spreadsheet header supplies.
        """
        cols: list[str] = list(self.aliases.keys())
        for extra in (*self.defaults.keys(), *self.protected_fields):
            if extra not in cols:
                cols.append(extra)
        return cols

    def key_matches(self, key: str) -> bool:
        if self.key_pattern is None:
            return True
        return re.fullmatch(self.key_pattern, key) is not None

    def with_overrides(
        self, table: str | None = None, extra_aliases: dict[str, list[str]] | None = None
    ) -> EntityDefinition:
        """Return a copy with a config-supplied table name and extra header spellings.

        Extra spellings are appended after the built-in ones so the documented
        priority order still decides when both are populated.
        """
        merged: dict[str, tuple[str, ...]] = dict(self.aliases)
        for fname, spellings in (extra_aliases or {}).items():
            current = list(merged.get(fname, ()))
            for s in spellings:
                s_norm = " ".join(str(s).split()).upper()
                if s_norm not in current:
                    current.append(s_norm)
            merged[fname] = tuple(current)
        return replace(self, table=table or self.table, aliases=merged)
