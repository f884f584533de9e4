"""
tests/test_json_extractor.py

Reading an entity from its origin files.
"""

from __future__ import annotations

import pytest

from station_etl.errors import SourceFileError
from station_etl.extractors import ORIGIN_KEY, JSONExportExtractor, read_json_array

VEHICLE_ORIGINS = ("vehicles.json", "datasheet_vehicles.json")


class TestJSONExportExtractor:
    def test_origins_are_concatenated_in_order_and_tagged(self, export_dir, write_export) -> None:
        write_export("vehicles.json", [{"_firebase_id": "v1"}])
        write_export("datasheet_vehicles.json", [{"_firebase_id": "x1"}, {"_firebase_id": "x2"}])

        result = JSONExportExtractor("vehicles", str(export_dir), VEHICLE_ORIGINS).extract()

        assert [r["_firebase_id"] for r in result.records] == ["v1", "x1", "x2"]
        assert [r[ORIGIN_KEY] for r in result.records] == [
            "vehicles.json", "datasheet_vehicles.json", "datasheet_vehicles.json",
        ]
        assert result.source_count == 3

    def test_missing_origin_is_a_warning(self, export_dir, write_export) -> None:
        write_export("vehicles.json", [{"_firebase_id": "v1"}])

        result = JSONExportExtractor("vehicles", str(export_dir), VEHICLE_ORIGINS).extract()

        assert result.origin_counts == {"vehicles.json": 1, "datasheet_vehicles.json": 0}
        assert len(result.warnings) == 1

    def test_unreadable_origin_makes_the_count_unknown(self, export_dir, write_export) -> None:
        write_export("vehicles.json", [{"_firebase_id": "v1"}])
        (export_dir / "datasheet_vehicles.json").write_text("{}", encoding="utf-8")

        extractor = JSONExportExtractor("vehicles", str(export_dir), VEHICLE_ORIGINS)

        assert extractor.extract().source_count == -1

    def test_non_object_items_are_dropped(self, export_dir) -> None:
        path = export_dir / "shifts.json"
        path.write_text('[{"_firebase_id": "s1"}, 3, null, "x"]', encoding="utf-8")
        assert read_json_array(path) == [{"_firebase_id": "s1"}]

    def test_read_json_array_errors(self, export_dir) -> None:
        with pytest.raises(FileNotFoundError):
            read_json_array(export_dir / "missing.json")

        bad = export_dir / "bad.json"
        bad.write_text("not json", encoding="utf-8")
        with pytest.raises(SourceFileError):
            read_json_array(bad)
