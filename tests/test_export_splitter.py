"""
tests/test_export_splitter.py

Splitting a raw hierarchical export into per-entity array files.
"""

from __future__ import annotations

import json

import pytest

from station_etl.errors import SourceFileError
from station_etl.extractors.rtdb_export import (
    SUMMARY_FILE,
    ExportSplitter,
    collection_to_records,
    get_nested,
)


@pytest.fixture()
def raw_export(tmp_path):
    dump = {
        "operators": {
            "op1": {"name": "Phuong Trang", "code": "PT"},
            "op2": {"name": "Thanh Buoi", "code": "TB"},
        },
        "datasheet": {
            "Xe": {"x1": {"BIENSOXE": "51B-12345"}},
            "DONVIVANTAI": "not a collection",
        },
        "system_settings": {"maintenance": True},
    }
    path = tmp_path / "firebase-export.json"
    path.write_text(json.dumps(dump), encoding="utf-8")
    return path


def load(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestHelpers:
    def test_get_nested(self) -> None:
        data = {"datasheet": {"Xe": {"x1": {}}}}
        assert get_nested(data, "datasheet.Xe") == {"x1": {}}
        assert get_nested(data, "datasheet.PHUHIEUXE") is None

    def test_keys_become_legacy_ids(self) -> None:
        assert collection_to_records({"k1": {"a": 1}}) == [{"_firebase_id": "k1", "a": 1}]

    def test_scalar_values_keep_only_the_key(self) -> None:
        assert collection_to_records({"maintenance": True}) == [{"_firebase_id": "maintenance"}]

    def test_sparse_lists_use_their_index(self) -> None:
        assert collection_to_records([None, {"a": 1}]) == [{"_firebase_id": "1", "a": 1}]


class TestExportSplitter:
    def test_writes_one_file_per_present_collection(self, raw_export, tmp_path) -> None:
        out = tmp_path / "2024-05-01"
        ExportSplitter().split(str(raw_export), str(out))

        operators = load(out / "operators.json")
        assert [r["_firebase_id"] for r in operators] == ["op1", "op2"]
        assert load(out / "datasheet_vehicles.json") == [{"_firebase_id": "x1", "BIENSOXE": "51B-12345"}]
        assert not (out / "drivers.json").exists()
        assert not (out / "datasheet_operators.json").exists()

    def test_missing_collections_are_marked_skipped(self, raw_export, tmp_path) -> None:
        results = ExportSplitter().split(str(raw_export), str(tmp_path / "out"))

        by_path = {r.collection: r for r in results}
        assert by_path["operators"].success
        assert by_path["operators"].record_count == 2
        assert not by_path["drivers"].success
        assert not by_path["datasheet.DONVIVANTAI"].success

    def test_summary_file(self, raw_export, tmp_path) -> None:
        out = tmp_path / "out"
        results = ExportSplitter().split(str(raw_export), str(out))

        summary = load(out / SUMMARY_FILE)
        assert summary["input_file"] == str(raw_export)
        assert summary["total_collections"] == len(results)
        assert summary["successful_collections"] == 3
        assert summary["total_records"] == 4
        assert "parsed_at" in summary

    def test_unreadable_input(self, tmp_path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2", encoding="utf-8")
        with pytest.raises(SourceFileError):
            ExportSplitter().split(str(bad), str(tmp_path / "out"))
