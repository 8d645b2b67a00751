from __future__ import annotations

import logging
import numbers
import re
import warnings
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

from .row_normalizer import is_blank

"""Staged date normalization for spreadsheet cells.

Spreadsheet exports carry dates as real date cells, as serial numbers, as
free text in Indonesian ("DI TERBITKAN 12 JULI 2002") or only inside the
document code ("AK-12012023-001"). DateNormalizer turns all of those into an
ISO ``YYYY-MM-DD`` string, or None when no date can be recovered. It never
raises: a missing date is a valid outcome, not an error.

Stages (each a public function so it can be tested on its own):
0. native_date        date / datetime / Timestamp / serial number up to 2099
1. strip_prefixes     "DI TERBITKAN 12 JULI 2002" -> "12 JULI 2002"
2. substitute_months  "12 JULI 2002" -> "12 July 2002" (whole words only)
3. parse_standard     pandas.to_datetime, day-first unless year-led; needs a day
4. extract_embedded   -DDMMYYYY- (preferred) or any 8-digit run
"""

__all__ = [
    "DEFAULT_PREFIXES",
    "MONTHS",
    "DateNormalizer",
    "native_date",
    "strip_prefixes",
    "substitute_months",
    "parse_standard",
    "extract_embedded",
]

logger = logging.getLogger(__name__)

DEFAULT_PREFIXES: tuple[str, ...] = (
    "DI TERBITKAN",
    "DITERBITKAN",
    "TANGGAL TERBIT",
    "TGL TERBIT",
    "TGL. TERBIT",
    "TERBIT",
)

MONTHS: dict[str, str] = {
    "JANUARI": "January",
    "JAN": "January",
    "FEBRUARI": "February",
    "PEBRUARI": "February",
    "FEB": "February",
    "PEB": "February",
    "MARET": "March",
    "MAR": "March",
    "APRIL": "April",
    "APR": "April",
    "MEI": "May",
    "JUNI": "June",
    "JUN": "June",
    "JULI": "July",
    "JUL": "July",
    "AGUSTUS": "August",
    "AGT": "August",
    "AGS": "August",
    "AGU": "August",
    "SEPTEMBER": "September",
    "SEPT": "September",
    "SEP": "September",
    "OKTOBER": "October",
    "OKT": "October",
    "NOVEMBER": "November",
    "NOPEMBER": "November",
    "NOV": "November",
    "NOP": "November",
    "DESEMBER": "December",
    "DES": "December",
}

# longest first so the alternation never stops on an abbreviation
_MONTH_RE = re.compile(
    r"\b(" + "|".join(sorted(MONTHS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)
_YEAR_RE = re.compile(r"\d{4}")
_YEAR_FIRST_RE = re.compile(r"^\s*\d{4}[/.\-]")
_TOKEN_RE = re.compile(r"[^\W\d_]+|\d+")
_DELIMITED_RUN_RE = re.compile(r"-(\d{8})-")
_ANY_RUN_RE = re.compile(r"(?<!\d)(\d{8})(?!\d)")

# spreadsheet serial dates count days from 1899-12-30
_SERIAL_EPOCH = date(1899, 12, 30)
_SERIAL_MAX = 73050  # 2099-12-31
# integral numbers in this range are years on their own, not serials
_BARE_YEARS = range(1900, 2101)


def native_date(value: Any) -> str | None:
    """Stage 0: dates the spreadsheet reader already typed."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        try:
            days = int(value)
        except (OverflowError, ValueError):
            return None
        if days == value and days in _BARE_YEARS:
            return None
        if 1 <= days <= _SERIAL_MAX:
            return (_SERIAL_EPOCH + timedelta(days=days)).isoformat()
    return None


def _prefix_pattern(prefixes: Iterable[str]) -> re.Pattern[str]:
    ordered = sorted({p.strip() for p in prefixes if p.strip()}, key=len, reverse=True)
    alternation = "|".join(re.escape(p) for p in ordered)
    return re.compile(rf"^\s*(?:{alternation})\b[\s:,.\-]*", re.IGNORECASE)


_DEFAULT_PREFIX_RE = _prefix_pattern(DEFAULT_PREFIXES)


def strip_prefixes(text: str, prefixes: Iterable[str] | None = None) -> str:
    """Stage 1: drop one known literal lead-in, case-insensitively."""
    pattern = _DEFAULT_PREFIX_RE if prefixes is None else _prefix_pattern(prefixes)
    return pattern.sub("", text, count=1).strip()


def substitute_months(text: str) -> str:
    """Stage 2: Indonesian month names -> English, whole words only."""
    return _MONTH_RE.sub(lambda m: MONTHS[m.group(1).upper()], text)


def parse_standard(text: str) -> str | None:
    """Stage 3: generic parse, day-first unless the text leads with a 4-digit year.

    Requires a 4-digit year and at least three tokens (day, month, year);
    partial dates such as "JULI 2002" are rejected rather than given a day.
    """
    if not _YEAR_RE.search(text) or len(_TOKEN_RE.findall(text)) < 3:
        return None
    year_first = _YEAR_FIRST_RE.match(text) is not None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            ts = pd.to_datetime(text, dayfirst=not year_first, yearfirst=year_first, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.date().isoformat()


def _cell_text(value: Any) -> str:
    # 12012023.0 from a numeric cell reads as the digit run 12012023
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()



def _date_from_run(run: str) -> str | None:
    day, month, year = int(run[:2]), int(run[2:4]), int(run[4:])
    if not (1 <= day <= 31 and 1 <= month <= 12 and year > 1900):
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        # 31-02-2020 passes the range check but is not a calendar date
        return None


def extract_embedded(source: str) -> str | None:
    """Stage 4: DDMMYYYY inside a code. ``-DDMMYYYY-`` runs are tried before bare runs."""
    for pattern in (_DELIMITED_RUN_RE, _ANY_RUN_RE):
        for m in pattern.finditer(source):
            iso = _date_from_run(m.group(1))
            if iso is not None:
                return iso
    return None


class DateNormalizer:
    """Runs the stages in order and returns the first ISO date recovered."""

    def __init__(self, prefixes: Iterable[str] | None = None) -> None:
        self.prefixes = tuple(prefixes) if prefixes is not None else DEFAULT_PREFIXES
        self._prefix_re = _prefix_pattern(self.prefixes) if self.prefixes else None

    def normalize(self, value: Any, fallback_source: Any = None) -> str | None:
        """Return ``YYYY-MM-DD`` or None.

        ``fallback_source`` is usually the record's own code (no_akta); it is
        scanned for an embedded date before the cell text itself.
        """
        text: str | None = None
        if not is_blank(value):
            iso = native_date(value)
            if iso is not None:
                return iso
            text = _cell_text(value)
            iso = self._parse_text(text)
            if iso is not None:
                return iso

        for candidate in (fallback_source, text):
            if is_blank(candidate):
                continue
            iso = extract_embedded(str(candidate))
            if iso is not None:
                logger.debug("date recovered from embedded code %r -> %s", candidate, iso)
                return iso
        return None

    def _parse_text(self, text: str) -> str | None:
        if self._prefix_re is not None:
            text = self._prefix_re.sub("", text, count=1).strip()
        return parse_standard(substitute_months(text))
