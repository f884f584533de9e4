"""
Exceptions raised by the migration engine.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base exception for migration failures."""


class DatabaseNotInitializedError(MigrationError):
    """Raised when the target database is not configured or not reachable."""


class TargetStoreError(MigrationError):
    """Raised when a target store operation fails."""


class DuplicateKeyError(TargetStoreError):
    """Raised when a write violates a uniqueness constraint."""


class DuplicateMappingError(DuplicateKeyError):
    """Raised when a (legacy_id, entity_type) mapping already exists."""


class UnknownTableError(MigrationError, ValueError):
    """Raised when a table or entity name is not on the allow-list."""


class SourceFileError(MigrationError):
    """Raised when a source export file cannot be read or parsed."""
