from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd

from civreg_import.excel.reader import read_rows
from civreg_import.logging.error_log import ErrorLogBuffer
from civreg_import.services.date_normalizer import DateNormalizer
from civreg_import.services.orchestrator import run_import

"""End-to-end: workbook -> reader -> import pipeline -> in-memory store."""


def _birth_workbook(path: Path) -> Path:
    rows = [
        ["REKAP AKTA KELAHIRAN 2023", None, None, None, None],
        ["Kode Arsip", "No. Akta", "Nama Anak", "Tanggal Lahir", "Di Terbitkan"],
        ["ARS-001", "3201-LU-12012023-0001", "Budi", datetime(2023, 1, 2), "DI TERBITKAN 12 JANUARI 2023"],
        [None, "AK-05022023-002", "Sari", "3 Februari 2023", None],
        ["ARS-001", "3201-LU-12012023-0001", "Budi Santoso", datetime(2023, 1, 2), None],
        [None, None, "Tanpa Nomor", None, None],
    ]
    pd.DataFrame(rows).to_excel(path, header=False, index=False, engine="openpyxl")
    return path


def _import(path: Path, entities, store, log: ErrorLogBuffer):
    sheet = read_rows(path, header_row=1)
    return run_import(
        sheet.rows,
        entities["akta_kelahiran"],
        store,
        chunk_size=1,
        max_workers=3,
        date_normalizer=DateNormalizer(),
        error_log=log,
        source_name=path.name,
    )


def test_workbook_import(tmp_path: Path, entities, memory_store):
    log = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    result = _import(_birth_workbook(tmp_path / "lahir.xlsx"), entities, memory_store, log)

    assert result.total_rows == 4
    assert result.valid_count == 3
    assert result.invalid_count == 1
    assert result.duplicate_count == 1
    assert result.inserted_or_updated_count == 2

    stored = memory_store.rows("akta_kelahiran")
    assert set(stored) == {"ARS-001", "AK-05022023-002"}
    budi = stored["ARS-001"]
    assert budi["nama_anak"] == "Budi Santoso"
    assert budi["tgl_lahir_anak"] == "2023-01-02"
    # last row had no issue date; ARS-001 carries no embedded date
    assert budi["tanggal_terbit"] is None
    sari = stored["AK-05022023-002"]
    assert sari["tanggal_terbit"] == "2023-02-05"
    assert sari["tgl_lahir_anak"] == "2023-02-03"
    assert sari["tipe_akta"] == "LU"
    assert [r.row for r in log.records] == [4]


def test_reimport_same_batch_same_state(tmp_path: Path, entities, memory_store):
    path = _birth_workbook(tmp_path / "lahir.xlsx")
    log = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    _import(path, entities, memory_store, log)
    first = memory_store.rows("akta_kelahiran")
    _import(path, entities, memory_store, log)
    assert memory_store.rows("akta_kelahiran") == first


def test_reimport_keeps_curated_fields(tmp_path: Path, entities, memory_store):
    path = _birth_workbook(tmp_path / "lahir.xlsx")
    log = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    _import(path, entities, memory_store, log)

    # an operator reclassifies the certificate and attaches a scan
    memory_store.seed(
        "akta_kelahiran",
        "ARS-001",
        {**memory_store.rows("akta_kelahiran")["ARS-001"], "tipe_akta": "LT", "foto_dokumen": "scans/ars-001.jpg"},
    )
    _import(path, entities, memory_store, log)
    budi = memory_store.rows("akta_kelahiran")["ARS-001"]
    assert budi["tipe_akta"] == "LT"
    assert budi["foto_dokumen"] == "scans/ars-001.jpg"
