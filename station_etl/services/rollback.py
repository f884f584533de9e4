"""Truncating rollback of a migration."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import TargetStoreError
from ..loaders.base import TargetStore

logger = logging.getLogger(__name__)

# Children first, mappings last
ROLLBACK_ORDER = [
    "invoices",
    "dispatch_records",
    "vehicle_badges",
    "routes",
    "drivers",
    "vehicles",
    "shifts",
    "users",
    "vehicle_types",
    "operators",
    "id_mappings",
]


@dataclass
class RollbackResult:
    truncated: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


class RollbackTool:
    """
    Empties every migrated table in reverse dependency order.

    Only the target is touched; the source export is never modified.
    """

    def __init__(self, store: TargetStore, tables: Optional[List[str]] = None):
        self.store = store
        self.tables = tables or ROLLBACK_ORDER

    def rollback(self) -> RollbackResult:
        result = RollbackResult()

        for table in self.tables:
            if not self.store.table_exists(table):
                logger.warning(f"Table {table} does not exist, skipping")
                print(f"  ⚠ Table {table} does not exist, skipping...")
                result.missing.append(table)
                continue

            try:
                self.store.truncate(table)
            except TargetStoreError as e:
                logger.error(f"Failed to truncate {table}: {e}")
                print(f"  ✗ Failed to truncate {table}: {e}")
                result.failed.append(table)
                continue

            print(f"  ✓ Truncated {table}")
            result.truncated.append(table)

        return result


def print_rollback_banner(tables: List[str], confirm: bool) -> None:
    print("=" * 60)
    print("Migration Rollback")
    print("=" * 60)
    print("\n⚠️  WARNING: This will DELETE ALL DATA from the target tables:")
    print(f"    {', '.join(tables)}")
    print("    The source export will NOT be affected.\n")

    if not confirm:
        print("To proceed, run with --confirm flag:")
        print("  station-etl rollback --confirm")
