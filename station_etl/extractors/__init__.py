"""Source extractors for the legacy export."""

from .base import BaseExtractor, ExtractionResult, ORIGIN_KEY
from .json_extractor import JSONExportExtractor, read_json_array
from .rtdb_export import COLLECTION_MAPPING, ExportSplitter, SplitResult

__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "ORIGIN_KEY",
    "JSONExportExtractor",
    "read_json_array",
    "COLLECTION_MAPPING",
    "ExportSplitter",
    "SplitResult",
]
