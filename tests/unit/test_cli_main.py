from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from civreg_import.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL, main as cli_main


@pytest.fixture(autouse=True)
def mock_mode(monkeypatch, clean_logging):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def _workbook(path: Path, rows: list[dict]) -> Path:
    pd.DataFrame(rows).to_excel(path, index=False, engine="openpyxl")
    return path


def test_cli_no_files_success(write_config, temp_workdir: Path, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    assert "INFO no .xlsx files to import" in out


def test_cli_directory_missing(write_config, temp_workdir: Path, capsys):
    cfg_path = temp_workdir / "config" / "import.yml"
    cfg_path.write_text(cfg_path.read_text(encoding="utf-8").replace("./data", "./missing_dir"), encoding="utf-8")
    code = cli_main([])
    assert code == EXIT_FATAL
    assert "ERROR directory not found:" in capsys.readouterr().out


def test_cli_missing_config(temp_workdir: Path, capsys):
    code = cli_main([])
    assert code == EXIT_FATAL
    assert "ERROR config:" in capsys.readouterr().out


def test_cli_unknown_kind(write_config, temp_workdir: Path, capsys):
    code = cli_main(["--kind", "passport"])
    assert code == EXIT_FATAL
    assert "unknown entity kind: passport" in capsys.readouterr().out


def test_cli_imports_directory(write_config, temp_workdir: Path, capsys):
    _workbook(
        temp_workdir / "data" / "lahir.xlsx",
        [
            {"KODE ARSIP": "A-1", "NAMA ANAK": "Budi", "DI TERBITKAN": "DI TERBITKAN 12 JULI 2002"},
            {"KODE ARSIP": "A-1", "NAMA ANAK": "Budi K", "DI TERBITKAN": None},
            {"KODE ARSIP": None, "NAMA ANAK": "Tanpa Kode", "DI TERBITKAN": None},
        ],
    )
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    assert "INFO mode=mock kind=akta_kelahiran files=1" in out
    assert (
        "SUMMARY kind=akta_kelahiran rows=3 valid=2 invalid=1 duplicates=1 skipped=2 upserted=1 elapsed_sec="
        in out
    )
    assert "activity action='IMPORT DATA AKTA KELAHIRAN'" in out

    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    entry = json.loads(logs[0].read_text(encoding="utf-8").strip())
    assert entry["file"] == "lahir.xlsx"
    assert entry["error_type"] == "MISSING_NATURAL_KEY"


def test_cli_extra_alias_from_config(write_config, temp_workdir: Path, capsys):
    f = _workbook(temp_workdir / "lahir.xlsx", [{"Nomor Akta": "A-5", "Nama Anak": "Sari"}])
    code = cli_main(["--kind", "akta_kelahiran", str(f)])
    assert code == EXIT_SUCCESS_ALL
    assert "valid=1 invalid=0" in capsys.readouterr().out


def test_cli_zero_valid_warns_with_headers(write_config, temp_workdir: Path, capsys):
    _workbook(temp_workdir / "data" / "ktp.xlsx", [{"Nomor": "1", "Nama Orang": "Andi"}])
    code = cli_main(["--kind", "ktp"])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    assert "WARN ktp.xlsx: no valid ktp rows; headers seen: ['NOMOR', 'NAMA ORANG']" in out
    assert "upserted=0" in out


def test_cli_header_only_sheet_warns_with_headers(write_config, temp_workdir: Path, capsys):
    pd.DataFrame(columns=["Nomor", "Nama Orang"]).to_excel(
        temp_workdir / "data" / "kosong.xlsx", index=False, engine="openpyxl"
    )
    code = cli_main(["--kind", "ktp"])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    assert "WARN kosong.xlsx: no valid ktp rows; headers seen: ['NOMOR', 'NAMA ORANG']" in out
    assert "rows=0" in out


def test_cli_unreadable_file_is_partial_failure(write_config, temp_workdir: Path, capsys):
    (temp_workdir / "data" / "broken.xlsx").write_bytes(b"not a workbook")
    _workbook(temp_workdir / "data" / "ok.xlsx", [{"NO AKTA": "A-1", "NAMA ANAK": "Budi"}])
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == EXIT_PARTIAL_FAILURE
    assert "ERROR read: broken.xlsx" in out
    assert "upserted=1" in out
    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    entry = json.loads(logs[0].read_text(encoding="utf-8").strip())
    assert entry["row"] == -1
    assert entry["error_type"] == "READ_ERROR"


def test_cli_inspect_headers(write_config, temp_workdir: Path, capsys):
    _workbook(temp_workdir / "data" / "lahir.xlsx", [{" no. akta ": "A-1", "Nama\nAnak": "Budi"}])
    code = cli_main(["--inspect-headers"])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    assert "headers=['NO. AKTA', 'NAMA ANAK']" in out
    assert "SUMMARY" not in out


def test_cli_debug_mode(write_config, temp_workdir: Path, capsys):
    _workbook(temp_workdir / "data" / "lahir.xlsx", [{"NO AKTA": "A-1", "NAMA ANAK": "Budi"}])
    code = cli_main(["--debug", "--dry-run"])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG stage=persisting kind=akta_kelahiran" in out
