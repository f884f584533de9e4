"""
Bus Station Legacy Migration

A one-time migration toolkit that moves the bus-station legacy export
(JSON documents keyed by opaque string IDs) into the normalized relational
schema with UUID primary keys and foreign-key constraints.

Supports:
- Splitting a raw hierarchical export into per-entity JSON files
- Pre-import data-quality analysis
- Dependency-ordered entity imports with legacy -> UUID ID translation
- Batch inserts with per-record fallback for large entities
- Deferred reporting of unresolved foreign keys
- Count-based validation and truncating rollback
"""

__version__ = "0.1.0"
