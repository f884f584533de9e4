"""Pre-import data quality analysis of an export directory."""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from ..errors import SourceFileError
from ..extractors.json_extractor import read_json_array
from .normalizers import is_numeric, parse_date

logger = logging.getLogger(__name__)

REPORT_FILE = "data-issues-report.json"
EXPORT_DIR_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class IssueType(str, Enum):
    DUPLICATE = "duplicate"
    INVALID_FK = "invalid_fk"
    NULL_REQUIRED = "null_required"
    TYPE_MISMATCH = "type_mismatch"


COLLECTION_LEVELS = [
    ["operators", "vehicle_types", "provinces", "users", "shifts"],
    ["vehicles", "drivers", "routes"],
    ["vehicle_badges", "dispatch_records"],
    ["invoices"],
]

FK_RELATIONSHIPS: Dict[str, List[tuple]] = {
    "vehicles": [("operator_id", "operators"), ("vehicle_type_id", "vehicle_types")],
    "drivers": [("operator_id", "operators")],
    "vehicle_badges": [("vehicle_id", "vehicles"), ("route_id", "routes")],
    "dispatch_records": [
        ("vehicle_id", "vehicles"),
        ("driver_id", "drivers"),
        ("route_id", "routes"),
        ("operator_id", "operators"),
        ("user_id", "users"),
        ("shift_id", "shifts"),
    ],
    "invoices": [("dispatch_record_id", "dispatch_records")],
}

UNIQUE_FIELDS: Dict[str, List[str]] = {
    "operators": ["code"],
    "vehicles": ["plate_number", "biensoxe"],
    "drivers": ["phone"],
    "users": ["email", "phone"],
    "routes": ["code"],
}

REQUIRED_FIELDS: Dict[str, List[str]] = {
    "operators": ["name", "code"],
    "vehicles": ["plate_number"],
    "drivers": ["name"],
    "routes": ["name", "code"],
}

DATE_FIELDS = ["created_at", "updated_at", "synced_at", "last_login"]
NUMERIC_FIELDS: Dict[str, List[str]] = {
    "vehicles": ["seat_count", "soghe"],
    "invoices": ["amount", "total"],
}
BOOLEAN_FIELDS = ["is_active"]


@dataclass
class DataIssue:
    collection: str
    record_id: str
    issue_type: IssueType
    field: str
    details: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "record_id": self.record_id,
            "issue_type": self.issue_type.value,
            "field": self.field,
            "details": self.details,
        }


@dataclass
class AnalysisReport:
    export_dir: str
    issues: List[DataIssue] = field(default_factory=list)
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_issues(self) -> int:
        return len(self.issues)

    @property
    def issues_by_type(self) -> Dict[str, int]:
        counts = {t.value: 0 for t in IssueType}
        for issue in self.issues:
            counts[issue.issue_type.value] += 1
        return counts

    @property
    def issues_by_collection(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for issue in self.issues:
            counts[issue.collection] = counts.get(issue.collection, 0) + 1
        return counts

    def of_type(self, issue_type: IssueType) -> List[DataIssue]:
        return [i for i in self.issues if i.issue_type == issue_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analyzed_at": self.analyzed_at.isoformat(),
            "export_dir": self.export_dir,
            "total_issues": self.total_issues,
            "issues_by_type": self.issues_by_type,
            "issues_by_collection": self.issues_by_collection,
            "issues": [i.to_dict() for i in self.issues],
        }


def _record_id(record: Dict[str, Any]) -> str:
    return str(record.get("_firebase_id") or record.get("id") or "")


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def latest_export_dir(exports_root: str) -> Optional[Path]:
    """The most recent `YYYY-MM-DD` directory under `exports_root`, if any."""
    root = Path(exports_root)
    if not root.is_dir():
        return None
    dated = sorted(p for p in root.iterdir() if p.is_dir() and EXPORT_DIR_RE.match(p.name))
    return dated[-1] if dated else None


class DataAnalyzer:
    """
    Finds duplicate, invalid-FK, missing-required and type-mismatch issues
    in the per-entity export files before anything is imported.
    """

    def __init__(self, export_dir: str):
        self.export_dir = Path(export_dir)
        self._cache: Dict[str, List[Dict[str, Any]]] = {}

    def load(self, collection: str) -> List[Dict[str, Any]]:
        if collection not in self._cache:
            path = self.export_dir / f"{collection}.json"
            try:
                self._cache[collection] = read_json_array(path)
            except FileNotFoundError:
                self._cache[collection] = []
            except SourceFileError as e:
                logger.error(f"Failed to parse {collection}.json: {e}")
                self._cache[collection] = []
        return self._cache[collection]

    def _ids(self, collection: str) -> Set[str]:
        return {_record_id(r) for r in self.load(collection)}

    def check_duplicates(self, collection: str, data: List[Dict[str, Any]], issues: List[DataIssue]) -> None:
        seen_ids: Set[str] = set()
        unique_fields = UNIQUE_FIELDS.get(collection, [])
        seen_values: Dict[str, Set[str]] = {f: set() for f in unique_fields}

        for record in data:
            record_id = _record_id(record)
            if record_id in seen_ids:
                issues.append(DataIssue(
                    collection, record_id, IssueType.DUPLICATE, "id", f"Duplicate ID: {record_id}"
                ))
            seen_ids.add(record_id)

            for name in unique_fields:
                value = record.get(name)
                if _is_blank(value):
                    continue
                normalized = str(value).strip().lower()
                if normalized in seen_values[name]:
                    issues.append(DataIssue(
                        collection, record_id, IssueType.DUPLICATE, name, f"Duplicate {name}: {value}"
                    ))
                seen_values[name].add(normalized)

    def check_foreign_keys(self, collection: str, data: List[Dict[str, Any]], issues: List[DataIssue]) -> None:
        relationships = FK_RELATIONSHIPS.get(collection)
        if not relationships:
            return

        target_ids = {target: self._ids(target) for _, target in relationships}
        for record in data:
            record_id = _record_id(record)
            for fk_field, target in relationships:
                value = record.get(fk_field)
                if _is_blank(value) or str(value) in target_ids[target]:
                    continue
                issues.append(DataIssue(
                    collection, record_id, IssueType.INVALID_FK, fk_field,
                    f"Invalid FK: {fk_field}={value} ({target} not found)",
                ))

    def check_required_fields(self, collection: str, data: List[Dict[str, Any]], issues: List[DataIssue]) -> None:
        for record in data:
            record_id = _record_id(record)

            # Users need an email or a phone, not both
            if collection == "users":
                if _is_blank(record.get("email")) and _is_blank(record.get("phone")):
                    issues.append(DataIssue(
                        collection, record_id, IssueType.NULL_REQUIRED, "email|phone",
                        "Missing required: at least one of email or phone",
                    ))
                continue

            for name in REQUIRED_FIELDS.get(collection, []):
                if _is_blank(record.get(name)):
                    issues.append(DataIssue(
                        collection, record_id, IssueType.NULL_REQUIRED, name,
                        f"Missing required field: {name}",
                    ))

    def check_types(self, collection: str, data: List[Dict[str, Any]], issues: List[DataIssue]) -> None:
        for record in data:
            record_id = _record_id(record)

            raw_id = record.get("id")
            if raw_id and not isinstance(raw_id, str):
                issues.append(DataIssue(
                    collection, record_id, IssueType.TYPE_MISMATCH, "id",
                    f"ID should be string, got {type(raw_id).__name__}",
                ))

            for name in DATE_FIELDS:
                value = record.get(name)
                if value and parse_date(value) is None:
                    issues.append(DataIssue(
                        collection, record_id, IssueType.TYPE_MISMATCH, name,
                        f"Invalid date format: {name}={value}",
                    ))

            for name in NUMERIC_FIELDS.get(collection, []):
                value = record.get(name)
                if value is None or isinstance(value, bool) or value == "":
                    continue
                if not is_numeric(value):
                    issues.append(DataIssue(
                        collection, record_id, IssueType.TYPE_MISMATCH, name,
                        f"Should be numeric: {name}={value}",
                    ))

            for name in BOOLEAN_FIELDS:
                value = record.get(name)
                if value is None or isinstance(value, bool):
                    continue
                if value not in ("true", "false", 0, 1):
                    issues.append(DataIssue(
                        collection, record_id, IssueType.TYPE_MISMATCH, name,
                        f"Invalid boolean: {name}={value}",
                    ))

    def analyze(self) -> AnalysisReport:
        """Run every check over every collection, in dependency order."""
        report = AnalysisReport(export_dir=str(self.export_dir))

        for level in COLLECTION_LEVELS:
            for collection in level:
                data = self.load(collection)
                if not data:
                    logger.info(f"{collection}: no data found")
                    continue

                before = len(report.issues)
                self.check_duplicates(collection, data, report.issues)
                self.check_foreign_keys(collection, data, report.issues)
                self.check_required_fields(collection, data, report.issues)
                self.check_types(collection, data, report.issues)
                logger.info(
                    f"{collection}: {len(data)} records, {len(report.issues) - before} issues"
                )

        return report

    def write_report(self, report: AnalysisReport) -> Path:
        path = self.export_dir / REPORT_FILE
        with open(path, "w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, ensure_ascii=False, indent=2, default=str)
        return path


def print_analysis_summary(report: AnalysisReport) -> None:
    print("\n" + "=" * 60)
    print("Analysis Summary")
    print("=" * 60)
    print(f"\nTotal Issues: {report.total_issues}")

    print("\nIssues by Type:")
    for issue_type, count in report.issues_by_type.items():
        if count > 0:
            print(f"  {issue_type}: {count}")

    print("\nIssues by Collection:")
    for collection, count in report.issues_by_collection.items():
        print(f"  {collection}: {count}")

    if report.total_issues > 0:
        print(f"\n⚠ Data quality issues detected. Review {REPORT_FILE}")
    else:
        print("\n✓ No data quality issues found!")
    print("=" * 60)
