"""
Environment-driven database configuration helpers.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..errors import DatabaseNotInitializedError

CLOUD_LIKE_ENVIRONMENTS = {"prod", "production", "staging", "cloud"}


def load_env_files(root: Optional[Path] = None) -> None:
    """
    Load `.env` and `.env.local` from the working directory (if present).
    Existing process environment variables are not overwritten.
    """

    root = root or Path.cwd()
    for filename in (".env", ".env.local"):
        env_path = root / filename
        if env_path.exists():
            load_dotenv(env_path, override=False)


def normalize_postgres_url(url: str) -> str:
    """
    Normalize postgres URLs to SQLAlchemy's psycopg 3 driver form.
    """

    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def resolve_database_url(explicit_url: Optional[str] = None) -> str:
    """
    Resolve the target database URL.

    Priority:
    1) explicit_url (from --database-url or the config file)
    2) DATABASE_URL
    3) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    4) LOCAL_DATABASE_URL
    """

    if explicit_url:
        return normalize_postgres_url(explicit_url)

    load_env_files()

    direct_url = os.getenv("DATABASE_URL")
    if direct_url:
        return normalize_postgres_url(direct_url)

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_url = os.getenv("CLOUD_DATABASE_URL")
    if environment in CLOUD_LIKE_ENVIRONMENTS and cloud_url:
        return normalize_postgres_url(cloud_url)

    local_url = os.getenv("LOCAL_DATABASE_URL")
    if local_url:
        return normalize_postgres_url(local_url)

    raise DatabaseNotInitializedError(
        "Database not initialized. Check DATABASE_URL environment variable."
    )
