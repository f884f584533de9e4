"""
tests/test_fk_reporter.py

Tests for the append-only invalid foreign key report.
"""

from __future__ import annotations

import json

from station_etl.services.fk_reporter import REPORT_FILE, InvalidFKReporter


class TestInvalidFKReporter:
    def test_entries_accumulate_in_order(self, export_dir) -> None:
        reporter = InvalidFKReporter(str(export_dir))
        reporter.report("drivers", "d1", "operator_id", "ghost", "operators")
        reporter.report("vehicles", "v1", "vehicle_type_id", "vt9", "vehicle_types")

        entries = reporter.entries()
        assert [e.record_id for e in entries] == ["d1", "v1"]
        assert reporter.reported == 2

    def test_report_file_uses_camel_case_keys(self, export_dir) -> None:
        InvalidFKReporter(str(export_dir)).report("drivers", "d1", "operator_id", "ghost", "operators")

        data = json.loads((export_dir / REPORT_FILE).read_text(encoding="utf-8"))
        assert len(data) == 1
        assert data[0]["recordId"] == "d1"
        assert data[0]["fkField"] == "operator_id"
        assert data[0]["fkValue"] == "ghost"
        assert data[0]["targetCollection"] == "operators"
        assert "timestamp" in data[0]

    def test_earlier_runs_are_preserved(self, export_dir) -> None:
        InvalidFKReporter(str(export_dir)).report("drivers", "d1", "operator_id", "x", "operators")
        InvalidFKReporter(str(export_dir)).report("drivers", "d2", "operator_id", "y", "operators")

        assert len(InvalidFKReporter(str(export_dir)).entries()) == 2

    def test_corrupt_report_is_set_aside(self, export_dir) -> None:
        (export_dir / REPORT_FILE).write_text("{not json", encoding="utf-8")

        reporter = InvalidFKReporter(str(export_dir))
        reporter.report("drivers", "d1", "operator_id", "x", "operators")

        assert len(reporter.entries()) == 1
        backups = list(export_dir.glob(f"{REPORT_FILE}.*.bak"))
        assert len(backups) == 1
        assert backups[0].read_text(encoding="utf-8") == "{not json"

    def test_reset_removes_the_file(self, export_dir) -> None:
        reporter = InvalidFKReporter(str(export_dir))
        reporter.report("drivers", "d1", "operator_id", "x", "operators")
        reporter.reset()

        assert not (export_dir / REPORT_FILE).exists()
        assert reporter.entries() == []
        assert reporter.reported == 0
