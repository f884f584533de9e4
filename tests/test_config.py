"""
tests/test_config.py

Database URL resolution and the migration config file.
"""

from __future__ import annotations

import os

import pytest

from station_etl.db.config import normalize_postgres_url, resolve_database_url
from station_etl.errors import DatabaseNotInitializedError
from station_etl.models import MigrationConfig

URL_VARS = ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL", "ENVIRONMENT")


@pytest.fixture()
def clean_env(monkeypatch, tmp_path):
    """No URL variables and no .env files in the working directory."""
    for name in URL_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


# ---------------------------------------------------------------------------
# URL resolution
# ---------------------------------------------------------------------------


class TestNormalizePostgresUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgres://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
            ("postgresql://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
            ("postgresql+psycopg://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
            ("sqlite:///station.db", "sqlite:///station.db"),
        ],
    )
    def test_normalize(self, url, expected) -> None:
        assert normalize_postgres_url(url) == expected


class TestResolveDatabaseUrl:
    def test_explicit_url_wins(self, clean_env) -> None:
        clean_env.setenv("DATABASE_URL", "postgres://env/db")
        assert resolve_database_url("postgres://cli/db") == "postgresql+psycopg://cli/db"

    def test_database_url(self, clean_env) -> None:
        clean_env.setenv("DATABASE_URL", "postgres://env/db")
        clean_env.setenv("LOCAL_DATABASE_URL", "postgres://local/db")
        assert resolve_database_url() == "postgresql+psycopg://env/db"

    def test_cloud_url_only_in_cloud_environments(self, clean_env) -> None:
        clean_env.setenv("CLOUD_DATABASE_URL", "postgres://cloud/db")
        clean_env.setenv("LOCAL_DATABASE_URL", "postgres://local/db")

        assert resolve_database_url() == "postgresql+psycopg://local/db"
        clean_env.setenv("ENVIRONMENT", "Production")
        assert resolve_database_url() == "postgresql+psycopg://cloud/db"

    def test_dotenv_file_is_loaded(self, clean_env, tmp_path) -> None:
        (tmp_path / ".env").write_text("LOCAL_DATABASE_URL=sqlite:///from-dotenv.db\n", encoding="utf-8")
        try:
            assert resolve_database_url() == "sqlite:///from-dotenv.db"
        finally:
            os.environ.pop("LOCAL_DATABASE_URL", None)

    def test_nothing_configured(self, clean_env) -> None:
        with pytest.raises(DatabaseNotInitializedError):
            resolve_database_url()


# ---------------------------------------------------------------------------
# MigrationConfig
# ---------------------------------------------------------------------------


class TestMigrationConfig:
    def test_defaults(self) -> None:
        config = MigrationConfig()
        assert config.batch_size == 100
        assert config.use_batch_importers is True
        assert config.validation_tolerance == 0.10

    def test_from_dict_and_tolerance_overrides(self) -> None:
        config = MigrationConfig.from_dict({
            "batch_size": "250",
            "validation_tolerance": 0.05,
            "tolerance_overrides": {"dispatch_records": "0.2"},
            "only": ["operators"],
        })
        assert config.batch_size == 250
        assert config.only == ["operators"]
        assert config.validation_tolerance == 0.05
        assert config.tolerance_overrides == {"dispatch_records": 0.2}

    def test_round_trip_omits_database_url(self) -> None:
        data = MigrationConfig(database_url="postgres://secret@h/db").to_dict()
        assert "database_url" not in data
        assert MigrationConfig.from_dict(data).batch_size == 100
