"""
SQLAlchemy engine factory for the target database.
"""

from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from .config import resolve_database_url


def _get_bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create the engine for the target database.

    PostgreSQL gets a bounded pool sized from DB_POOL_SIZE / DB_MAX_OVERFLOW.
    SQLite (used for local runs and tests) gets foreign keys switched on.
    """
    url = resolve_database_url(database_url)
    echo = _get_bool_env("SQL_ECHO", default=False)

    if url.startswith("postgresql"):
        return create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_recycle=_get_int_env("DB_POOL_RECYCLE", 1800),
            pool_size=_get_int_env("DB_POOL_SIZE", 5),
            max_overflow=_get_int_env("DB_MAX_OVERFLOW", 10),
        )

    engine = create_engine(url, echo=echo)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine
