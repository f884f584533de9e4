"""
tests/conftest.py

Shared fixtures: a scratch SQLite target with foreign keys enforced, the
real SQLTargetStore on top of it, and helpers for writing export files.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest

from station_etl.db import create_all, create_db_engine
from station_etl.loaders import SQLTargetStore
from station_etl.services.id_mapping import IdMappingStore


@pytest.fixture()
def engine(tmp_path: Path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'target.db'}")
    create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def store(engine) -> SQLTargetStore:
    return SQLTargetStore(engine)


@pytest.fixture()
def mappings(store: SQLTargetStore) -> IdMappingStore:
    return IdMappingStore(store)


@pytest.fixture()
def export_dir(tmp_path: Path) -> Path:
    path = tmp_path / "export"
    path.mkdir()
    return path


@pytest.fixture()
def write_export(export_dir: Path) -> Callable[[str, List[Dict[str, Any]]], Path]:
    """Write one origin file (a JSON array) into the export directory."""

    def _write(filename: str, records: List[Dict[str, Any]]) -> Path:
        path = export_dir / filename
        path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
        return path

    return _write
