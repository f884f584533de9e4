"""Base interface for the target store."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
import uuid


class TargetStore(ABC):
    """
    Base class for target stores.

    A target store is the only component that talks to the destination
    database. Importers, the mapping store, the validator and the rollback
    tool all go through it. Every call is its own unit of work, so a failed
    write never leaves the store in a state that blocks the next one.

    Write failures are raised as `TargetStoreError`; uniqueness violations
    as its `DuplicateKeyError` subclass. Table names outside the allow-list
    raise `UnknownTableError`.
    """

    @abstractmethod
    def insert(self, table: str, record: Dict[str, Any]) -> uuid.UUID:
        """
        Insert one row.

        Args:
            table: Target table name
            record: Column -> value mapping. An `id` is generated if absent.

        Returns:
            The new row's UUID
        """
        pass

    @abstractmethod
    def insert_many(self, table: str, records: Sequence[Dict[str, Any]]) -> List[uuid.UUID]:
        """
        Insert several rows as one atomic statement.

        Either every row is written or none is. The returned IDs are in the
        same order as `records`.
        """
        pass

    @abstractmethod
    def update(self, table: str, row_id: uuid.UUID, values: Dict[str, Any]) -> int:
        """Update one row by primary key. Returns the number of rows changed."""
        pass

    @abstractmethod
    def select(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        where: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Select rows matching equality predicates.

        Args:
            table: Target table name
            columns: Columns to return (all columns if None)
            where: Column -> value equality filters, ANDed together

        Returns:
            List of row dictionaries
        """
        pass

    @abstractmethod
    def count(self, table: str, where: Optional[Dict[str, Any]] = None) -> int:
        """Count rows, optionally filtered by equality predicates."""
        pass

    @abstractmethod
    def truncate(self, table: str) -> None:
        """Remove every row from a table, cascading to dependents where supported."""
        pass

    @abstractmethod
    def table_exists(self, table: str) -> bool:
        """Check whether an allow-listed table exists in the target."""
        pass

    def validate_connection(self) -> bool:
        """Validate the connection to the target store."""
        return True
