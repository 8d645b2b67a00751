# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from civreg_import.config.entities import load_entities
from civreg_import.db.memory_store import InMemoryRecordStore
from civreg_import.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
default_kind: akta_kelahiran
lookup:
  chunk_size: 2
  max_workers: 2
upsert_page_size: 500
entities:
  akta_kelahiran:
    extra_aliases:
      no_akta: [NOMOR AKTA]
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def entities():
    return load_entities()


@pytest.fixture()
def memory_store(entities) -> InMemoryRecordStore:
    return InMemoryRecordStore(entities)


@pytest.fixture()
def clean_logging():
    reset_logging()
    yield
    reset_logging()
