"""Table descriptors for the baseball ETL pipeline."""

from .models import FieldMetadata, TableSchema
from .registry import (
    EJECTIONS,
    GAME_LOG_COLUMNS,
    GAMES,
    NEGRO_LEAGUES_GAME_COLUMNS,
    NEGRO_LEAGUES_GAMES,
    PARK_FACTORS,
    PLAYS,
    WOBA_CONSTANTS,
    get_schema,
    list_schemas,
)

__all__ = [
    "EJECTIONS",
    "FieldMetadata",
    "GAME_LOG_COLUMNS",
    "GAMES",
    "NEGRO_LEAGUES_GAME_COLUMNS",
    "NEGRO_LEAGUES_GAMES",
    "PARK_FACTORS",
    "PLAYS",
    "TableSchema",
    "WOBA_CONSTANTS",
    "get_schema",
    "list_schemas",
]
