"""
Split a raw hierarchical export dump into per-entity JSON array files.

The dump is one JSON object; collections are nested objects keyed by the
legacy record key. Each mapped collection becomes `<name>.json`, a list of
records carrying their key under `_firebase_id`.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pathlib import Path
import json
import logging

from ..errors import SourceFileError

logger = logging.getLogger(__name__)

LEGACY_KEY = "_firebase_id"
SUMMARY_FILE = "_summary.json"

# Dotted collection path in the dump -> output file stem
COLLECTION_MAPPING: Dict[str, str] = {
    # Bulk collections imported from spreadsheets
    "datasheet.DONVIVANTAI": "datasheet_operators",
    "datasheet.Xe": "datasheet_vehicles",
    "datasheet.PHUHIEUXE": "datasheet_vehicle_badges",
    "datasheet.DANHMUCTUYENCODINH": "datasheet_routes",
    # App-authored collections
    "operators": "operators",
    "vehicles": "vehicles",
    "drivers": "drivers",
    "routes": "routes",
    "shifts": "shifts",
    "vehicle_types": "vehicle_types",
    "vehicle_badges": "vehicle_badges",
    "vehicle_documents": "vehicle_documents",
    "dispatch_records": "dispatch_records",
    "users": "users",
    "invoices": "invoices",
    "schedules": "schedules",
    "services": "services",
    "service_charges": "service_charges",
    "service_formulas": "service_formulas",
    "service_formula_usage": "service_formula_usage",
    "driver_operators": "driver_operators",
    "locations": "locations",
    "route_stops": "route_stops",
    "violation_types": "violation_types",
    "system_settings": "system_settings",
}


@dataclass
class SplitResult:
    """Outcome for one collection path."""
    collection: str
    output_file: str
    record_count: int = 0
    success: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "output_file": self.output_file,
            "record_count": self.record_count,
            "success": self.success,
            "error": self.error,
        }


def get_nested(data: Any, path: str) -> Any:
    """Resolve a dotted path through nested dictionaries."""
    current = data
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return None
    return current


def collection_to_records(collection: Any) -> List[Dict[str, Any]]:
    """
    Convert `{key: record}` into `[{"_firebase_id": key, **record}]`.

    Sparse integer-keyed collections come out of the export as lists with
    null holes; their index is used as the key.
    """
    if isinstance(collection, list):
        items = [(str(i), v) for i, v in enumerate(collection) if v is not None]
    else:
        items = list(collection.items())

    records = []
    for key, value in items:
        record: Dict[str, Any] = {LEGACY_KEY: key}
        if isinstance(value, dict):
            record.update(value)
        records.append(record)
    return records


class ExportSplitter:
    """Split one export dump into the per-entity files the importers read."""

    def __init__(self, mapping: Optional[Dict[str, str]] = None):
        self.mapping = mapping or COLLECTION_MAPPING

    def load(self, input_path: str) -> Dict[str, Any]:
        path = Path(input_path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SourceFileError(f"Cannot read export {path}: {e}") from e

        if not isinstance(data, dict):
            raise SourceFileError(f"Export {path} is not a JSON object")

        logger.info(f"Loaded export {path} ({path.stat().st_size / 1024 / 1024:.2f} MB)")
        return data

    def split(self, input_path: str, output_dir: str) -> List[SplitResult]:
        """
        Write one array file per present collection, plus `_summary.json`.

        Args:
            input_path: Raw export dump
            output_dir: Directory to write the per-entity files into

        Returns:
            One SplitResult per mapped collection path
        """
        data = self.load(input_path)
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)

        results: List[SplitResult] = []
        for collection_path, name in self.mapping.items():
            output_file = out / f"{name}.json"
            result = SplitResult(collection=collection_path, output_file=str(output_file))

            collection = get_nested(data, collection_path)
            if not collection or not isinstance(collection, (dict, list)):
                result.error = "Collection not found or empty"
                results.append(result)
                logger.info(f"[SKIP] {collection_path}: not found")
                continue

            try:
                records = collection_to_records(collection)
                with open(output_file, "w", encoding="utf-8") as f:
                    json.dump(records, f, ensure_ascii=False, indent=2, default=str)
            except OSError as e:
                result.error = str(e)
                results.append(result)
                logger.error(f"[ERROR] {collection_path}: {e}")
                continue

            result.record_count = len(records)
            result.success = True
            results.append(result)
            logger.info(f"[OK] {collection_path}: {len(records)} records -> {name}.json")

        self.write_summary(input_path, out, results)
        return results

    def write_summary(self, input_path: str, output_dir: Path, results: List[SplitResult]) -> Path:
        successful = [r for r in results if r.success]
        summary = {
            "parsed_at": datetime.now(timezone.utc).isoformat(),
            "input_file": str(input_path),
            "total_collections": len(results),
            "successful_collections": len(successful),
            "total_records": sum(r.record_count for r in successful),
            "results": [r.to_dict() for r in results],
        }
        path = output_dir / SUMMARY_FILE
        with open(path, "w", encoding="utf-8") as f:
            json.dump(summary, f, ensure_ascii=False, indent=2)
        return path


def print_split_summary(results: List[SplitResult]) -> None:
    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    print("\n=== Summary ===")
    print(f"Successful: {len(successful)}/{len(results)} collections")
    print(f"Total records: {sum(r.record_count for r in successful)}")
    if failed:
        print(f"Failed/Skipped: {', '.join(r.collection for r in failed)}")
