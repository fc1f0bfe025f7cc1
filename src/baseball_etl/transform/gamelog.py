"""Retrosheet game log transformer.

Game logs ship without a header: one CRLF-terminated line per game with 161
positional fields. The canonical output adds the header and a trailing
``game_type`` column carrying the caller's tag.
"""

from typing import Optional

from ..errors import MalformedRowError
from ..schema.models import TableSchema
from ..schema.registry import GAME_LOG_COLUMNS, GAMES
from .base import RecordTransformer

MAX_GAME_TYPE_LENGTH = 20


def validate_game_type(game_type: str) -> str:
    """Check a game type tag before it is written into every row.

    Raises:
        ValueError: If the tag is empty, too long or contains a separator
    """
    if not game_type or not game_type.strip():
        raise ValueError("game_type must not be empty")
    if len(game_type) > MAX_GAME_TYPE_LENGTH:
        raise ValueError(f"game_type longer than {MAX_GAME_TYPE_LENGTH} characters: {game_type!r}")
    if any(ch in game_type for ch in ",\r\n\""):
        raise ValueError(f"game_type contains a separator or quote: {game_type!r}")
    return game_type


class GameLogTransformer(RecordTransformer):
    """Inject the game-log header and append ``game_type`` to every row."""

    def __init__(self, game_type: str = "regular", schema: TableSchema = GAMES):
        self.game_type = validate_game_type(game_type)
        self.schema = schema
        self.field_count = len(GAME_LOG_COLUMNS)

    def output_header(self, source_header: Optional[list[str]]) -> list[str]:
        return self.schema.column_names()

    def transform_row(self, row: list[str], source: str, line: int) -> list[str]:
        if len(row) != self.field_count:
            raise MalformedRowError(
                source, line, f"expected {self.field_count} fields, found {len(row)}"
            )
        return row + [self.game_type]
