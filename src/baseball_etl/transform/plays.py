"""Retrosheet play-by-play transformer."""

from typing import Iterable, Optional

from ..errors import MalformedRowError
from .base import RecordTransformer

DEFAULT_NULL_TOKENS = frozenset({"?"})
NEGRO_LEAGUES_NULL_TOKENS = frozenset({"?", "??"})


class PlaysTransformer(RecordTransformer):
    """Blank out placeholder tokens and re-serialize plays with strict quoting.

    The source header is kept as the output header; every row must have as
    many fields as the header.
    """

    source_header_rows = 1

    def __init__(self, null_tokens: Iterable[str] = DEFAULT_NULL_TOKENS):
        self.null_tokens = frozenset(null_tokens)
        self._width = 0

    def output_header(self, source_header: Optional[list[str]]) -> list[str]:
        self._width = len(source_header)
        return source_header

    def transform_row(self, row: list[str], source: str, line: int) -> list[str]:
        if len(row) != self._width:
            raise MalformedRowError(
                source, line, f"expected {self._width} fields, found {len(row)}"
            )
        return ["" if value in self.null_tokens else value for value in row]
