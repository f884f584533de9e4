"""
tests/test_analyzer.py

Pre-import data quality analysis: one test per issue type plus the report.
"""

from __future__ import annotations

import json

from station_etl.services.analyzer import (
    REPORT_FILE,
    DataAnalyzer,
    IssueType,
    latest_export_dir,
)


def analyze(export_dir):
    return DataAnalyzer(str(export_dir)).analyze()


class TestDataAnalyzer:
    def test_duplicates_are_case_and_space_insensitive(self, export_dir, write_export) -> None:
        write_export("operators.json", [
            {"_firebase_id": "op1", "name": "A", "code": "PT"},
            {"_firebase_id": "op2", "name": "B", "code": " pt "},
            {"_firebase_id": "op2", "name": "C", "code": "XX"},
        ])
        issues = analyze(export_dir).of_type(IssueType.DUPLICATE)

        assert {(i.record_id, i.field) for i in issues} == {("op2", "code"), ("op2", "id")}

    def test_invalid_foreign_key(self, export_dir, write_export) -> None:
        write_export("operators.json", [{"_firebase_id": "op1", "name": "A", "code": "A"}])
        write_export("drivers.json", [
            {"_firebase_id": "d1", "name": "X", "operator_id": "op1"},
            {"_firebase_id": "d2", "name": "Y", "operator_id": "ghost"},
        ])
        issues = analyze(export_dir).of_type(IssueType.INVALID_FK)

        assert [(i.collection, i.record_id, i.field) for i in issues] == [("drivers", "d2", "operator_id")]

    def test_required_fields(self, export_dir, write_export) -> None:
        write_export("users.json", [
            {"_firebase_id": "u1", "email": "a@x.vn"},
            {"_firebase_id": "u2", "phone": "0909"},
            {"_firebase_id": "u3"},
        ])
        write_export("vehicles.json", [{"_firebase_id": "v1", "plate_number": " "}])
        issues = analyze(export_dir).of_type(IssueType.NULL_REQUIRED)

        assert {(i.collection, i.record_id) for i in issues} == {("users", "u3"), ("vehicles", "v1")}

    def test_type_mismatches(self, export_dir, write_export) -> None:
        write_export("vehicles.json", [{
            "_firebase_id": "v1",
            "id": 17,
            "plate_number": "51B-1",
            "seat_count": "forty",
            "created_at": "yesterday-ish",
            "is_active": "maybe",
        }])
        issues = analyze(export_dir).of_type(IssueType.TYPE_MISMATCH)

        assert {i.field for i in issues} == {"id", "seat_count", "created_at", "is_active"}

    def test_report_is_written(self, export_dir, write_export) -> None:
        write_export("drivers.json", [{"_firebase_id": "d1"}])
        analyzer = DataAnalyzer(str(export_dir))
        path = analyzer.write_report(analyzer.analyze())

        assert path.name == REPORT_FILE
        report = json.loads(path.read_text(encoding="utf-8"))
        assert report["total_issues"] == 1
        assert report["issues_by_type"]["null_required"] == 1
        assert report["issues_by_collection"] == {"drivers": 1}
        assert set(report) == {
            "analyzed_at", "export_dir", "total_issues", "issues_by_type", "issues_by_collection", "issues",
        }

    def test_clean_export(self, export_dir, write_export) -> None:
        write_export("operators.json", [{"_firebase_id": "op1", "name": "A", "code": "A", "is_active": True}])
        assert analyze(export_dir).total_issues == 0


class TestLatestExportDir:
    def test_picks_most_recent_dated_folder(self, tmp_path) -> None:
        for name in ("2024-04-30", "2024-05-02", "2024-05-01", "scratch"):
            (tmp_path / name).mkdir()
        assert latest_export_dir(str(tmp_path)).name == "2024-05-02"

    def test_none_when_nothing_matches(self, tmp_path) -> None:
        assert latest_export_dir(str(tmp_path / "missing")) is None
