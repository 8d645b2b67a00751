from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd

"""Header normalization for raw spreadsheet rows.

Keys are trimmed, upper-cased and have internal whitespace collapsed (header
cells often carry line breaks), so "No. Akta", " NO. AKTA " and "no.\\nakta"
all become "NO. AKTA". Values are passed through untouched.
"""

__all__ = [
    "normalize_header",
    "normalize_row",
    "observed_headers",
    "is_blank",
]


def normalize_header(key: Any) -> str:
    return " ".join(str(key).split()).upper()


def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and strings that are empty after strip()."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_row(raw: Mapping[Any, Any]) -> dict[str, Any]:
    """Return a copy of ``raw`` with normalized keys.

    When two raw headers collapse onto the same key, a populated cell is never
    masked by a blank one; between two populated cells the first wins.
    """
    row: dict[str, Any] = {}
    for key, value in raw.items():
        nkey = normalize_header(key)
        if nkey in row and not is_blank(row[nkey]):
            continue
        row[nkey] = value
    return row


def observed_headers(rows: Iterable[Mapping[str, Any]], columns: Iterable[Any] = ()) -> list[str]:
    """Distinct normalized headers in first-seen order, ``columns`` first."""
    seen: dict[str, None] = dict.fromkeys(normalize_header(c) for c in columns)
    for r in rows:
        for key in r.keys():
            seen.setdefault(normalize_header(key), None)
    return list(seen)
