"""Target database configuration, engine and schema."""

from .config import load_env_files, normalize_postgres_url, resolve_database_url
from .schema import ALLOWED_TABLES, Base, create_all, get_table
from .session import create_db_engine

__all__ = [
    "ALLOWED_TABLES",
    "Base",
    "create_all",
    "create_db_engine",
    "get_table",
    "load_env_files",
    "normalize_postgres_url",
    "resolve_database_url",
]
