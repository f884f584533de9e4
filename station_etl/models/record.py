"""Record models for legacy export data."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone
import uuid


class RecordStatus(str, Enum):
    """Status of a record during import."""
    PENDING = "pending"
    TRANSFORMED = "transformed"
    LOADED = "loaded"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ImportUnit:
    """
    One legacy record on its way into the target store.

    `raw` holds the legacy fields exactly as exported; `values` is the
    target-shaped row built from them. Foreign keys that could not be
    resolved stay in `values` as None.
    """
    legacy_id: str
    entity_type: str
    raw: Dict[str, Any]
    origin: Optional[str] = None  # Source file the record came from
    values: Dict[str, Any] = field(default_factory=dict)
    foreign_keys: Dict[str, Optional[uuid.UUID]] = field(default_factory=dict)
    natural_key: Optional[str] = None
    status: RecordStatus = RecordStatus.PENDING
    target_id: Optional[uuid.UUID] = None
    error: Optional[str] = None

    def get(self, *names: str, default: Any = None) -> Any:
        """Return the first legacy field among `names` holding a usable value."""
        for name in names:
            value = self.raw.get(name)
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            return value
        return default

    @property
    def record_id(self) -> str:
        """The record's own `id` field, falling back to the legacy ID."""
        value = self.raw.get("id")
        return str(value) if value not in (None, "") else self.legacy_id


@dataclass
class InvalidFKRecord:
    """A foreign key present in the source but missing from the mapping store."""
    collection: str
    record_id: str
    fk_field: str
    fk_value: str
    target_collection: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the report file's representation."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "collection": self.collection,
            "recordId": self.record_id,
            "fkField": self.fk_field,
            "fkValue": self.fk_value,
            "targetCollection": self.target_collection,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvalidFKRecord":
        """Create from the report file's representation."""
        timestamp = data.get("timestamp")
        return cls(
            collection=data.get("collection", ""),
            record_id=data.get("recordId", ""),
            fk_field=data.get("fkField", ""),
            fk_value=data.get("fkValue", ""),
            target_collection=data.get("targetCollection", ""),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(timezone.utc),
        )
