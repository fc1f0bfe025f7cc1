"""Storage backends and loaders for the baseball ETL pipeline."""

from .bulk import ConflictPolicy, StageAndMergeLoader, build_merge_sql
from .postgres import PostgresStorageBackend, validate_identifier
from .refresh import DatasetRefreshTracker, build_refresh_upsert

__all__ = [
    "ConflictPolicy",
    "DatasetRefreshTracker",
    "PostgresStorageBackend",
    "StageAndMergeLoader",
    "build_merge_sql",
    "build_refresh_upsert",
    "validate_identifier",
]
