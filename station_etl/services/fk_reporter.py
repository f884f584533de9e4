"""Deferred reporting of foreign keys that did not resolve."""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from ..models.record import InvalidFKRecord

logger = logging.getLogger(__name__)

REPORT_FILE = "invalid-fk-report.json"


class InvalidFKReporter:
    """
    Append-only log of unresolved foreign keys, kept as a JSON array in the
    export directory.

    Reporting never raises into the import loop and never drops an earlier
    entry: the file is rewritten by read-modify-write on each new entry.
    """

    def __init__(self, export_dir: str):
        self.path = Path(export_dir) / REPORT_FILE
        self.reported = 0

    def _read_raw(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self._set_aside(f"unreadable report: {e}")
            return []

        if not isinstance(data, list):
            self._set_aside("report is not a JSON array")
            return []
        return data

    def _set_aside(self, reason: str) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        backup = self.path.with_name(f"{self.path.name}.{stamp}.bak")
        logger.warning(f"Moving {self.path.name} to {backup.name} ({reason})")
        os.replace(self.path, backup)

    def _write_raw(self, entries: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(entries, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)

    def report(
        self,
        collection: str,
        record_id: str,
        fk_field: str,
        fk_value: Any,
        target_collection: str,
    ) -> InvalidFKRecord:
        """Append one unresolved-FK entry to the report."""
        entry = InvalidFKRecord(
            collection=collection,
            record_id=str(record_id),
            fk_field=fk_field,
            fk_value=str(fk_value),
            target_collection=target_collection,
        )
        logger.warning(
            f"Invalid FK: {collection}.{fk_field}={fk_value} "
            f"(record {record_id}) not found in {target_collection}"
        )

        try:
            entries = self._read_raw()
            entries.append(entry.to_dict())
            self._write_raw(entries)
        except OSError as e:
            logger.error(f"Could not write {self.path}: {e}")

        self.reported += 1
        return entry

    def entries(self) -> List[InvalidFKRecord]:
        """Every entry currently in the report."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Cannot read {self.path}: {e}")
            return []
        if not isinstance(data, list):
            return []
        return [InvalidFKRecord.from_dict(item) for item in data if isinstance(item, dict)]

    def reset(self) -> None:
        """Remove the report file, starting a fresh log for this run."""
        if self.path.exists():
            self.path.unlink()
            logger.info(f"Reset {self.path}")
        self.reported = 0
