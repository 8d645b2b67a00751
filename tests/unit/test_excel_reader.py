from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

from civreg_import.excel.reader import SheetHeaderError, read_rows


def _write(path: Path, rows: list[list]) -> Path:
    # header=False: the first list is written as an ordinary row
    pd.DataFrame(rows).to_excel(path, header=False, index=False, engine="openpyxl")
    return path


def test_read_rows_header_in_first_row(tmp_path: Path):
    f = _write(
        tmp_path / "lahir.xlsx",
        [
            ["No. Akta", "Nama Anak", "Tanggal Lahir"],
            ["A-1", "Budi", datetime(2002, 7, 12)],
            [None, None, None],
            ["A-2", None, None],
        ],
    )
    sheet = read_rows(f)
    assert sheet.columns == ["No. Akta", "Nama Anak", "Tanggal Lahir"]
    assert len(sheet.rows) == 2
    assert sheet.rows[0]["No. Akta"] == "A-1"
    assert pd.Timestamp(sheet.rows[0]["Tanggal Lahir"]).date().isoformat() == "2002-07-12"
    assert sheet.rows[1]["Nama Anak"] is None


def test_read_rows_title_above_header(tmp_path: Path):
    f = _write(
        tmp_path / "kk.xlsx",
        [
            ["DATA KARTU KELUARGA 2023", None],
            ["NO. KK", "KEPALA KELUARGA"],
            ["3201010101010002", "Andi"],
        ],
    )
    sheet = read_rows(f, header_row=1)
    assert sheet.rows == [{"NO. KK": "3201010101010002", "KEPALA KELUARGA": "Andi"}]


def test_read_rows_missing_header_row(tmp_path: Path):
    f = _write(tmp_path / "short.xlsx", [["only", "one"]])
    with pytest.raises(SheetHeaderError):
        read_rows(f, header_row=3)
