"""JSON export file extractor."""

from typing import Any, Dict, List, Optional, Sequence
from pathlib import Path
import json
import logging

from .base import BaseExtractor, ExtractionResult, ORIGIN_KEY
from ..errors import SourceFileError

logger = logging.getLogger(__name__)


def read_json_array(path: Path) -> List[Dict[str, Any]]:
    """
    Read a JSON array of objects from `path`.

    Raises:
        FileNotFoundError: if the file does not exist
        SourceFileError: if the file cannot be read, does not parse, or is not an array
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SourceFileError(f"Cannot parse {path.name}: {e}") from e

    if not isinstance(data, list):
        raise SourceFileError(f"{path.name} is not a JSON array")

    return [item for item in data if isinstance(item, dict)]


class JSONExportExtractor(BaseExtractor):
    """
    Extract an entity's records from per-entity JSON array files.

    Origins are read in the order given and concatenated. A missing origin
    is a warning and contributes nothing; so is one that does not parse.
    """

    def __init__(self, entity: str, export_dir: str, origins: Sequence[str]):
        super().__init__(entity)
        self.export_dir = Path(export_dir)
        self.origins = list(origins)

    def _read_origin(self, origin: str) -> Optional[List[Dict[str, Any]]]:
        path = self.export_dir / origin
        try:
            records = read_json_array(path)
        except FileNotFoundError:
            self.add_warning(f"{origin} not found, skipping")
            return []
        except SourceFileError as e:
            self.add_warning(f"Failed to read {origin}: {e}")
            return None

        logger.info(f"Loaded {len(records)} {self.entity} from {origin}")
        return records

    def extract(self) -> ExtractionResult:
        self.reset()
        result = ExtractionResult(entity=self.entity)

        for origin in self.origins:
            records = self._read_origin(origin)
            if records is None:
                result.origin_counts[origin] = -1
                continue

            result.origin_counts[origin] = len(records)
            for record in records:
                tagged = dict(record)
                tagged[ORIGIN_KEY] = origin
                result.records.append(tagged)

        result.warnings = self._warnings.copy()
        return result
