"""
tests/test_batch.py

Batch insert strategy: in-memory natural key deduplication, grouped
inserts, and per-record fallback when a batch is poisoned.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

import pytest

from station_etl.errors import TargetStoreError
from station_etl.importers.fleet import VehicleBadgeBatchImporter, VehicleBatchImporter
from station_etl.loaders import SQLTargetStore
from station_etl.models import EntityType
from station_etl.services.id_mapping import IdMappingStore


class PoisonedStore(SQLTargetStore):
    """Fails any write that carries the poisoned legacy ID."""

    poisoned_id = "poison"

    def _is_poisoned(self, record: Dict[str, Any]) -> bool:
        return record.get("legacy_id") == self.poisoned_id

    def insert(self, table: str, record: Dict[str, Any]):
        if self._is_poisoned(record):
            raise TargetStoreError(f"{table}: value rejected by target")
        return super().insert(table, record)

    def insert_many(self, table: str, records: Sequence[Dict[str, Any]]):
        if any(self._is_poisoned(r) for r in records):
            raise TargetStoreError(f"{table}: value rejected by target")
        return super().insert_many(table, records)


def run_vehicles(store, export_dir, batch_size: int = 100):
    importer = VehicleBatchImporter(store, show_progress=False, batch_size=batch_size)
    return importer.run(str(export_dir))


# ---------------------------------------------------------------------------
# Natural key deduplication
# ---------------------------------------------------------------------------


class TestNaturalKeyDeduplication:
    def test_same_plate_in_both_origins_yields_one_row(self, store, export_dir, write_export) -> None:
        write_export("vehicles.json", [{"_firebase_id": "v1", "plate_number": "51B-12345"}])
        write_export("datasheet_vehicles.json", [{"_firebase_id": "x1", "plate_number": "51b 123.45"}])

        stats = run_vehicles(store, export_dir)

        assert stats.imported == 1
        assert stats.skipped == 1
        assert store.select("vehicles", columns=["plate_number", "legacy_id"]) == [
            {"plate_number": "51B12345", "legacy_id": "v1"},
        ]

    def test_records_without_plate_are_skipped(self, store, export_dir, write_export) -> None:
        write_export("vehicles.json", [
            {"_firebase_id": "v1", "plate_number": ""},
            {"_firebase_id": "v2", "plate_number": "51B-2"},
        ])
        stats = run_vehicles(store, export_dir)

        assert stats.imported == 1
        assert stats.skipped == 1

    def test_second_run_is_idempotent(self, store, mappings, export_dir, write_export) -> None:
        write_export("vehicles.json", [
            {"_firebase_id": f"v{i}", "plate_number": f"51B-{i:05d}"} for i in range(5)
        ])
        run_vehicles(store, export_dir, batch_size=2)
        stats = run_vehicles(store, export_dir, batch_size=2)

        assert stats.imported == 0
        assert stats.skipped == 5
        assert store.count("vehicles") == 5
        assert mappings.count(EntityType.VEHICLES) == 5

    def test_every_batch_is_mapped(self, store, mappings, export_dir, write_export) -> None:
        write_export("vehicles.json", [
            {"_firebase_id": f"v{i}", "plate_number": f"51B-{i:05d}"} for i in range(7)
        ])
        stats = run_vehicles(store, export_dir, batch_size=3)

        assert stats.imported == 7
        assert mappings.count(EntityType.VEHICLES) == 7


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------


class TestPoisonedBatch:
    def test_one_bad_record_costs_only_itself(self, engine, export_dir, write_export) -> None:
        store = PoisonedStore(engine)
        records = [{"_firebase_id": f"v{i}", "plate_number": f"51B-{i:05d}"} for i in range(99)]
        records.insert(50, {"_firebase_id": "poison", "plate_number": "51B-99999"})
        write_export("vehicles.json", records)

        stats = run_vehicles(store, export_dir, batch_size=100)

        assert stats.imported == 99
        assert stats.failed == 1
        assert store.count("vehicles") == 99
        mappings = IdMappingStore(store)
        assert mappings.count(EntityType.VEHICLES) == 99
        assert mappings.resolve("poison", EntityType.VEHICLES) is None


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class TestVehicleBadgeBatchImporter:
    @pytest.fixture()
    def vehicles(self, store, export_dir, write_export):
        write_export("vehicles.json", [{"_firebase_id": "v1", "plate_number": "51B-12345"}])
        run_vehicles(store, export_dir)

    def test_datasheet_badge(self, store, export_dir, write_export, vehicles) -> None:
        write_export("datasheet_vehicle_badges.json", [{
            "_firebase_id": "b1",
            "SOPHUHIEU": "PH-001",
            "vehicle_id": "v1",
            "issue_date": "01/02/2023",
            "expiry_date": "31/01/2026",
            "status": "Thu hồi",
            "badge_color": "xanh",
        }])
        importer = VehicleBadgeBatchImporter(store, show_progress=False)
        stats = importer.run(str(export_dir))

        assert stats.imported == 1
        row = store.select(
            "vehicle_badges",
            columns=["badge_number", "plate_number", "issue_date", "expiry_date", "is_active", "source"],
        )[0]
        assert row == {
            "badge_number": "PH-001",
            "plate_number": "51B12345",
            "issue_date": "2023-02-01",
            "expiry_date": "2026-01-31",
            "is_active": False,
            "source": "google_sheets",
        }

    def test_app_and_datasheet_rows_share_one_batch(self, store, export_dir, write_export, vehicles) -> None:
        write_export("vehicle_badges.json", [
            {"_firebase_id": "b1", "badge_number": "PH-001", "vehicle_id": "v1", "issue_date": "2023-02-01"},
        ])
        write_export("datasheet_vehicle_badges.json", [
            {"_firebase_id": "b2", "SOPHUHIEU": "PH-002", "BIENSOXE": "51c-777.77", "status": "Hiệu lực"},
        ])
        stats = VehicleBadgeBatchImporter(store, show_progress=False).run(str(export_dir))

        assert stats.imported == 2
        plates = {r["badge_number"]: r["plate_number"] for r in store.select(
            "vehicle_badges", columns=["badge_number", "plate_number"],
        )}
        assert plates == {"PH-001": "51B12345", "PH-002": "51C77777"}
