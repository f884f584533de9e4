"""
tests/test_id_mapping.py

Integration tests for IdMappingStore and SQLTargetStore against a scratch
SQLite database.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from station_etl.errors import DuplicateKeyError, DuplicateMappingError, TargetStoreError, UnknownTableError
from station_etl.loaders.sql_store import is_unique_violation
from station_etl.models import EntityType


# ---------------------------------------------------------------------------
# IdMappingStore
# ---------------------------------------------------------------------------


class TestIdMappingStore:
    def test_unknown_legacy_id_resolves_to_none(self, mappings) -> None:
        assert mappings.resolve("never-imported", EntityType.OPERATORS) is None

    @pytest.mark.parametrize("legacy_id", [None, "", "   "])
    def test_empty_legacy_id_resolves_to_none(self, mappings, legacy_id) -> None:
        assert mappings.resolve(legacy_id, EntityType.OPERATORS) is None

    def test_record_then_resolve(self, mappings) -> None:
        target_id = uuid.uuid4()
        mappings.record("op1", target_id, EntityType.OPERATORS)
        assert mappings.resolve("op1", EntityType.OPERATORS) == target_id

    def test_same_legacy_id_under_two_entity_types(self, mappings) -> None:
        operator_id, driver_id = uuid.uuid4(), uuid.uuid4()
        mappings.record("x1", operator_id, EntityType.OPERATORS)
        mappings.record("x1", driver_id, "drivers")

        assert mappings.resolve("x1", EntityType.OPERATORS) == operator_id
        assert mappings.resolve("x1", EntityType.DRIVERS) == driver_id

    def test_second_mapping_for_same_pair_is_rejected(self, mappings) -> None:
        mappings.record("op1", uuid.uuid4(), EntityType.OPERATORS)
        with pytest.raises(DuplicateMappingError):
            mappings.record("op1", uuid.uuid4(), EntityType.OPERATORS)
        assert mappings.count(EntityType.OPERATORS) == 1

    def test_record_many_is_all_or_nothing(self, mappings) -> None:
        mappings.record("a", uuid.uuid4(), EntityType.VEHICLES)

        with pytest.raises(DuplicateMappingError):
            mappings.record_many([("b", uuid.uuid4()), ("a", uuid.uuid4())], EntityType.VEHICLES)

        assert mappings.resolve("b", EntityType.VEHICLES) is None
        assert mappings.count(EntityType.VEHICLES) == 1

    def test_preload_all_is_scoped_to_entity_type(self, mappings) -> None:
        v1, v2 = uuid.uuid4(), uuid.uuid4()
        mappings.record_many([("v1", v1), ("v2", v2)], EntityType.VEHICLES)
        mappings.record("d1", uuid.uuid4(), EntityType.DRIVERS)

        assert mappings.preload_all(EntityType.VEHICLES) == {"v1": v1, "v2": v2}


# ---------------------------------------------------------------------------
# SQLTargetStore
# ---------------------------------------------------------------------------


class TestSQLTargetStore:
    def test_insert_returns_generated_id(self, store) -> None:
        row_id = store.insert("operators", {"code": "PT", "name": "Phuong Trang"})
        rows = store.select("operators", columns=["id", "code"])
        assert rows == [{"id": row_id, "code": "PT"}]

    def test_metadata_column_accepts_its_database_name(self, store) -> None:
        store.insert("operators", {"code": "PT", "name": "Phuong Trang", "metadata": {"k": "v"}})
        assert store.count("operators") == 1

    def test_unique_violation_becomes_duplicate_key_error(self, store) -> None:
        store.insert("operators", {"code": "PT", "name": "A"})
        with pytest.raises(DuplicateKeyError):
            store.insert("operators", {"code": "PT", "name": "B"})

    def test_insert_many_is_atomic(self, store) -> None:
        with pytest.raises(DuplicateKeyError):
            store.insert_many("operators", [
                {"code": "A", "name": "A"},
                {"code": "A", "name": "A again"},
            ])
        assert store.count("operators") == 0

    def test_count_with_bound_predicate(self, store) -> None:
        store.insert_many("operators", [
            {"code": "A", "name": "A", "source": "google_sheets"},
            {"code": "B", "name": "B", "source": "firebase_migration"},
        ])
        assert store.count("operators", where={"source": "google_sheets"}) == 1

    def test_update(self, store) -> None:
        row_id = store.insert("operators", {"code": "A", "name": "Old"})
        assert store.update("operators", row_id, {"name": "New"}) == 1
        assert store.select("operators", columns=["name"]) == [{"name": "New"}]

    @pytest.mark.parametrize("table", ["pg_user", "operators; DROP TABLE users", ""])
    def test_identifiers_outside_allow_list_are_rejected(self, store, table) -> None:
        with pytest.raises(UnknownTableError):
            store.count(table)
        with pytest.raises(UnknownTableError):
            store.truncate(table)

    def test_unknown_column_is_rejected(self, store) -> None:
        with pytest.raises(UnknownTableError):
            store.select("operators", where={"1=1 OR code": "x"})

    def test_validate_connection(self, store) -> None:
        assert store.validate_connection() is True


# ---------------------------------------------------------------------------
# Unique violation detection
# ---------------------------------------------------------------------------


class DriverError(Exception):
    def __init__(self, message, **attrs):
        super().__init__(message)
        for name, value in attrs.items():
            setattr(self, name, value)


def integrity_error(orig) -> IntegrityError:
    return IntegrityError("INSERT INTO operators ...", {}, orig)


class TestIsUniqueViolation:
    def test_unique_sqlstate(self) -> None:
        orig = DriverError("duplicate key value violates unique constraint", sqlstate="23505")
        assert is_unique_violation(integrity_error(orig)) is True

    def test_other_sqlstate_ignores_message_words(self) -> None:
        orig = DriverError(
            'new row violates check constraint "ck_code" DETAIL: Failing row contains (duplicate-unique)',
            sqlstate="23514",
        )
        assert is_unique_violation(integrity_error(orig)) is False

    def test_not_null_sqlstate_is_not_a_duplicate(self) -> None:
        orig = DriverError('null value in column "name" of relation "unique_routes"', sqlstate="23502")
        assert is_unique_violation(integrity_error(orig)) is False

    def test_sqlite_not_null_failure(self) -> None:
        orig = DriverError("NOT NULL constraint failed: operators.name", sqlite_errorname="SQLITE_CONSTRAINT_NOTNULL")
        assert is_unique_violation(integrity_error(orig)) is False

    def test_message_is_used_without_structured_code(self) -> None:
        assert is_unique_violation(integrity_error(DriverError("Duplicate entry 'PT' for key"))) is True

    def test_real_sqlite_not_null_is_a_store_error(self, store) -> None:
        with pytest.raises(TargetStoreError) as excinfo:
            store.insert("operators", {"code": "duplicate", "name": None})
        assert not isinstance(excinfo.value, DuplicateKeyError)
