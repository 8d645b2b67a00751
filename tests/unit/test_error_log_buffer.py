from __future__ import annotations

import json
import re
from pathlib import Path

from civreg_import.logging.error_log import ErrorLogBuffer
from civreg_import.models.error_record import ErrorRecord

FIELDS = {"timestamp", "file", "kind", "row", "error_type", "message"}


def test_error_record_creation_and_json_line():
    rec = ErrorRecord.create(
        file="lahir.xlsx",
        kind="akta_kelahiran",
        row=10,
        error_type="MISSING_NATURAL_KEY",
        message="no_akta is empty",
    )
    data = json.loads(rec.to_json_line())
    assert data["file"] == "lahir.xlsx"
    assert data["kind"] == "akta_kelahiran"
    assert data["row"] == 10
    assert data["timestamp"].endswith("Z")
    assert set(data) == FIELDS


def test_non_ascii_kept_readable():
    rec = ErrorRecord.create("f.xlsx", "ktp", 1, "X", "nama 'Sité' ditolak")
    assert "Sité" in rec.to_json_line()


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("f1.xlsx", "ktp", 1, "MALFORMED_NATURAL_KEY", "nik='12'"))
    buf.append(ErrorRecord.create("f1.xlsx", "ktp", -1, "STORE_ERROR", "upsert failed"))
    path = buf.flush()
    assert path is not None and path.exists()
    assert path.parent == Path("logs")
    assert re.fullmatch(r"errors-\d{8}-\d{6}\.log", path.name)
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    for raw in lines:
        assert set(json.loads(raw)) == FIELDS
    assert len(buf) == 0


def test_flush_empty_buffer_writes_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_second_flush_appends_same_file(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    buf.append(ErrorRecord.create("a.xlsx", "kk", 1, "X", "m"))
    first = buf.flush()
    buf.append(ErrorRecord.create("b.xlsx", "kk", 2, "X", "m"))
    second = buf.flush()
    assert first == second
    assert len(second.read_text(encoding="utf-8").splitlines()) == 2
