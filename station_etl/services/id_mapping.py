"""Persistent legacy ID -> target UUID mapping store."""

import logging
import uuid
from typing import Dict, Optional, Sequence, Tuple

from ..errors import DuplicateKeyError, DuplicateMappingError
from ..loaders.base import TargetStore
from ..models.migration import EntityType

logger = logging.getLogger(__name__)

MAPPING_TABLE = "id_mappings"


def _entity_value(entity_type) -> str:
    return entity_type.value if isinstance(entity_type, EntityType) else str(entity_type)


class IdMappingStore:
    """
    Records which target row each imported legacy record became.

    One mapping exists per (legacy_id, entity_type); the same legacy ID may
    appear under several entity types. Mappings are written once and never
    updated. Only the rollback tool removes them.
    """

    def __init__(self, store: TargetStore):
        self.store = store

    def resolve(self, legacy_id: Optional[str], entity_type) -> Optional[uuid.UUID]:
        """
        Look up the target ID for a legacy ID.

        Returns None when the record was never imported (or its import
        failed). Empty legacy IDs resolve to None without a query.
        """
        if legacy_id is None or str(legacy_id).strip() == "":
            return None

        rows = self.store.select(
            MAPPING_TABLE,
            columns=["target_id"],
            where={"legacy_id": str(legacy_id), "entity_type": _entity_value(entity_type)},
        )
        return rows[0]["target_id"] if rows else None

    def record(self, legacy_id: str, target_id: uuid.UUID, entity_type) -> None:
        """
        Store one mapping.

        Raises:
            DuplicateMappingError: if (legacy_id, entity_type) is already mapped
        """
        try:
            self.store.insert(MAPPING_TABLE, {
                "legacy_id": str(legacy_id),
                "target_id": target_id,
                "entity_type": _entity_value(entity_type),
            })
        except DuplicateKeyError as e:
            raise DuplicateMappingError(
                f"{_entity_value(entity_type)} mapping for {legacy_id} already exists"
            ) from e

    def record_many(
        self,
        entries: Sequence[Tuple[str, uuid.UUID]],
        entity_type,
    ) -> int:
        """
        Store a batch of (legacy_id, target_id) mappings in one write.

        The write is all-or-nothing.

        Raises:
            DuplicateMappingError: if any pair is already mapped
        """
        if not entries:
            return 0

        entity = _entity_value(entity_type)
        rows = [
            {"legacy_id": str(legacy_id), "target_id": target_id, "entity_type": entity}
            for legacy_id, target_id in entries
        ]
        try:
            self.store.insert_many(MAPPING_TABLE, rows)
        except DuplicateKeyError as e:
            raise DuplicateMappingError(f"duplicate {entity} mapping in batch") from e
        return len(rows)

    def preload_all(self, entity_type) -> Dict[str, uuid.UUID]:
        """Load every mapping of one entity type into memory."""
        entity = _entity_value(entity_type)
        rows = self.store.select(
            MAPPING_TABLE,
            columns=["legacy_id", "target_id"],
            where={"entity_type": entity},
        )
        mappings = {row["legacy_id"]: row["target_id"] for row in rows}
        logger.info(f"Loaded {len(mappings)} {entity} ID mappings into memory")
        return mappings

    def count(self, entity_type) -> int:
        """Number of mappings for one entity type."""
        return self.store.count(MAPPING_TABLE, where={"entity_type": _entity_value(entity_type)})
