"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)

# Key every extracted record is tagged with, holding its origin file name
ORIGIN_KEY = "_origin"


@dataclass
class ExtractionResult:
    """Result of an extraction operation."""
    entity: str
    records: List[Dict[str, Any]] = field(default_factory=list)
    # Origin file -> record count. 0 for a missing file, -1 for an unreadable one.
    origin_counts: Dict[str, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def source_count(self) -> int:
        """Sum of records across origins, or -1 if any origin was unreadable."""
        if any(count < 0 for count in self.origin_counts.values()):
            return -1
        return sum(self.origin_counts.values())


class BaseExtractor(ABC):
    """
    Base class for source extractors.

    Extractors read an entity's records from one or more origins and tag
    each record with the origin it came from.
    """

    def __init__(self, entity: str):
        self.entity = entity
        self._warnings: List[str] = []

    @abstractmethod
    def extract(self) -> ExtractionResult:
        """
        Extract all records for the entity.

        Returns:
            ExtractionResult containing every record from every origin
        """
        pass

    def add_warning(self, message: str) -> None:
        """Add a warning to the extraction."""
        self._warnings.append(message)
        logger.warning(f"Extraction warning: {message}")

    def reset(self) -> None:
        """Clear warnings from a previous extraction."""
        self._warnings = []
