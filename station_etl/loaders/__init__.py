"""Target stores for writing migrated data."""

from .base import TargetStore
from .sql_store import SQLTargetStore, is_unique_violation

__all__ = [
    "TargetStore",
    "SQLTargetStore",
    "is_unique_violation",
]
