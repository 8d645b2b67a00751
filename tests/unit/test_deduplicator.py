from __future__ import annotations

from civreg_import.models.record import CanonicalRecord
from civreg_import.services.deduplicator import deduplicate


def _rec(key, row, name):
    return CanonicalRecord("akta_kelahiran", row, key, {"no_akta": key, "nama_anak": name})


def test_last_occurrence_wins():
    result = deduplicate([_rec("A-1", 1, "first"), _rec("A-2", 2, "other"), _rec("A-1", 3, "last")])
    assert result.duplicate_count == 1
    assert result.keys == ["A-1", "A-2"]
    survivor = result.records[0]
    assert survivor.values["nama_anak"] == "last"
    assert survivor.row_number == 3


def test_no_duplicates():
    result = deduplicate([_rec("A-1", 1, "a"), _rec("A-2", 2, "b")])
    assert result.duplicate_count == 0
    assert len(result.records) == 2


def test_empty_input():
    result = deduplicate([])
    assert result.records == []
    assert result.duplicate_count == 0
