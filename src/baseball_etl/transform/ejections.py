"""Retrosheet ejections transformer.

Some seasons carry one extra field ahead of the team column; those 12-field
rows are collapsed to the canonical 11 by dropping offset 5.
"""

from typing import Optional

from ..errors import MalformedRowError
from ..schema.registry import EJECTIONS
from .base import RecordTransformer

REDUNDANT_OFFSET = 5


class EjectionsTransformer(RecordTransformer):
    """Write the canonical ejections header and collapse 12-field rows."""

    source_header_rows = 1

    def __init__(self):
        self.columns = EJECTIONS.column_names()

    def output_header(self, source_header: Optional[list[str]]) -> list[str]:
        # the source header differs in naming across releases
        return self.columns

    def transform_row(self, row: list[str], source: str, line: int) -> list[str]:
        width = len(self.columns)
        if len(row) == width:
            return row
        if len(row) == width + 1:
            return row[:REDUNDANT_OFFSET] + row[REDUNDANT_OFFSET + 1:]
        raise MalformedRowError(
            source, line, f"expected {width} or {width + 1} fields, found {len(row)}"
        )
