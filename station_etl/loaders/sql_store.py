"""
Target store backed by SQLAlchemy Core.

Works against PostgreSQL (psycopg 3) in production and SQLite for local
runs and tests.
"""

from typing import Any, Dict, List, Optional, Sequence
import uuid
import logging

from sqlalchemy import Table, inspect, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .base import TargetStore
from ..db.schema import ALLOWED_TABLES, get_table
from ..db.session import create_db_engine
from ..errors import DuplicateKeyError, TargetStoreError, UnknownTableError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"
SQLITE_UNIQUE_ERRORS = ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY")


def is_unique_violation(exc: IntegrityError) -> bool:
    """Tell uniqueness violations apart from other integrity failures."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION_SQLSTATE
    error_name = getattr(orig, "sqlite_errorname", None)
    if error_name is not None:
        return error_name in SQLITE_UNIQUE_ERRORS or str(orig).startswith("UNIQUE constraint failed")
    # Drivers without structured codes only leave the message
    message = str(orig).lower()
    return "unique" in message or "duplicate" in message


class SQLTargetStore(TargetStore):
    """
    Target store on a SQLAlchemy engine.

    Primary keys are generated client-side so grouped inserts can return
    their IDs without relying on RETURNING support.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: Optional[str] = None) -> "SQLTargetStore":
        """Create a store from an explicit URL or the environment."""
        return cls(create_db_engine(database_url))

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def _table(self, name: str) -> Table:
        table = get_table(name)
        if table is None:
            raise UnknownTableError(f"Table not allowed: {name}")
        return table

    def _check_columns(self, table: Table, names: Sequence[str]) -> None:
        for name in names:
            if name not in table.c:
                raise UnknownTableError(f"Unknown column {table.name}.{name}")

    def _translate(self, table: str, exc: SQLAlchemyError) -> TargetStoreError:
        if isinstance(exc, IntegrityError) and is_unique_violation(exc):
            return DuplicateKeyError(f"duplicate key in {table}: {exc.orig}")
        detail = exc.orig if getattr(exc, "orig", None) is not None else exc
        return TargetStoreError(f"{table}: {detail}")

    def _prepare(self, target: Table, record: Dict[str, Any]) -> Dict[str, Any]:
        """Key a row by column key, accepting database column names too."""
        names = {column.name: column.key for column in target.columns}
        row = {names.get(name, name): value for name, value in record.items()}
        if row.get("id") is None:
            row["id"] = uuid.uuid4()
        return row

    def insert(self, table: str, record: Dict[str, Any]) -> uuid.UUID:
        target = self._table(table)
        row = self._prepare(target, record)
        try:
            with self.engine.begin() as conn:
                conn.execute(target.insert(), row)
        except SQLAlchemyError as e:
            raise self._translate(table, e) from e
        return row["id"]

    def insert_many(self, table: str, records: Sequence[Dict[str, Any]]) -> List[uuid.UUID]:
        if not records:
            return []

        target = self._table(table)
        rows = [self._prepare(target, r) for r in records]
        try:
            with self.engine.begin() as conn:
                conn.execute(target.insert(), rows)
        except SQLAlchemyError as e:
            raise self._translate(table, e) from e
        return [row["id"] for row in rows]

    def update(self, table: str, row_id: uuid.UUID, values: Dict[str, Any]) -> int:
        target = self._table(table)
        self._check_columns(target, list(values))
        stmt = target.update().where(target.c.id == row_id).values(**values)
        try:
            with self.engine.begin() as conn:
                return conn.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise self._translate(table, e) from e

    def select(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        where: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        target = self._table(table)
        if columns:
            self._check_columns(target, columns)
            stmt = select(*[target.c[name] for name in columns])
        else:
            stmt = select(target)

        for name, value in (where or {}).items():
            self._check_columns(target, [name])
            stmt = stmt.where(target.c[name] == value)

        try:
            with self.engine.connect() as conn:
                return [dict(row._mapping) for row in conn.execute(stmt)]
        except SQLAlchemyError as e:
            raise self._translate(table, e) from e

    def count(self, table: str, where: Optional[Dict[str, Any]] = None) -> int:
        if table not in ALLOWED_TABLES:
            raise UnknownTableError(f"Table not allowed: {table}")

        sql = f'SELECT COUNT(*) FROM "{table}"'
        params: Dict[str, Any] = {}
        if where:
            target = self._table(table)
            self._check_columns(target, list(where))
            clauses = []
            for i, (name, value) in enumerate(where.items()):
                clauses.append(f'"{name}" = :p{i}')
                params[f"p{i}"] = value
            sql += " WHERE " + " AND ".join(clauses)

        try:
            with self.engine.connect() as conn:
                return int(conn.execute(text(sql), params).scalar() or 0)
        except SQLAlchemyError as e:
            raise self._translate(table, e) from e

    def truncate(self, table: str) -> None:
        if table not in ALLOWED_TABLES:
            raise UnknownTableError(f"Table not allowed: {table}")

        if self.dialect == "postgresql":
            sql = f'TRUNCATE TABLE "{table}" CASCADE'
        else:
            sql = f'DELETE FROM "{table}"'

        try:
            with self.engine.begin() as conn:
                conn.execute(text(sql))
        except SQLAlchemyError as e:
            raise self._translate(table, e) from e
        logger.debug(f"Truncated {table}")

    def table_exists(self, table: str) -> bool:
        if table not in ALLOWED_TABLES:
            raise UnknownTableError(f"Table not allowed: {table}")
        return inspect(self.engine).has_table(table)

    def validate_connection(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Target connection check failed: {e}")
            return False
