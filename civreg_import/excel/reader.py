from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook -> raw rows.

Thin pandas adapter used only at the CLI edge; the import core consumes plain
header -> value mappings. The sheet is read without a header so the header
row can sit anywhere (``header_row``, 0-based); rows above it are titles and
ignored, fully empty rows are dropped, NaN cells become None.
"""

__all__ = [
    "SheetHeaderError",
    "SheetData",
    "read_rows",
]


class SheetHeaderError(Exception):
    """Raised when the configured header row does not exist or is empty."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]


def read_rows(path: Path, header_row: int = 0, sheet: int | str = 0) -> SheetData:
    """Read one sheet of ``path`` into raw rows keyed by header text.

    Header cells are kept as written (stripped only); RowNormalizer does the
    real normalization. Unnamed header cells are skipped along with their column.
    """
    with pd.ExcelFile(path) as xls:
        sheet_name = sheet if isinstance(sheet, str) else str(xls.sheet_names[sheet])
        df = xls.parse(sheet_name, header=None, dtype=object)

    if df.shape[0] <= header_row:
        raise SheetHeaderError(f"sheet '{sheet_name}' has no header row at line {header_row + 1}")
    header = df.iloc[header_row].tolist()
    columns = [None if pd.isna(c) else str(c).strip() for c in header]
    if not any(columns):
        raise SheetHeaderError(f"sheet '{sheet_name}' header row {header_row + 1} is empty")

    rows: list[dict[str, Any]] = []
    for _, raw in df.iloc[header_row + 1:].iterrows():
        if raw.isna().all():
            continue
        row: dict[str, Any] = {}
        for col, val in zip(columns, raw.tolist(), strict=False):
            if not col:
                continue
            row[col] = None if pd.isna(val) else val
        rows.append(row)

    return SheetData(sheet_name=sheet_name, columns=[c for c in columns if c], rows=rows)
