"""FanGraphs reference constant transformers.

Both exports are headered CSVs whose column names differ from the database
columns; columns are matched by name, not position, so reordered exports
still load.
"""

from typing import Optional

from ..errors import MalformedRowError, MappingError
from ..schema.registry import PARK_FACTORS, WOBA_CONSTANTS
from .base import RecordTransformer
from .lookup import ParkMapping

# FanGraphs "Guts" column -> woba_constants column
WOBA_COLUMN_MAP: dict[str, str] = {
    "Season": "season",
    "wOBA": "woba",
    "wOBAScale": "woba_scale",
    "wBB": "w_bb",
    "wHBP": "w_hbp",
    "w1B": "w_1b",
    "w2B": "w_2b",
    "w3B": "w_3b",
    "wHR": "w_hr",
    "runSB": "run_sb",
    "runCS": "run_cs",
    "R/PA": "r_pa",
    "R/W": "r_w",
    "cFIP": "c_fip",
}

# FanGraphs park factor column -> park_factors column
PARK_FACTOR_COLUMN_MAP: dict[str, str] = {
    "Basic (5yr)": "basic_5yr",
    "3yr": "basic_3yr",
    "1yr": "basic_1yr",
    "1B": "factor_1b",
    "2B": "factor_2b",
    "3B": "factor_3b",
    "HR": "factor_hr",
    "SO": "factor_so",
    "BB": "factor_bb",
    "GB": "factor_gb",
    "FB": "factor_fb",
    "LD": "factor_ld",
    "IFFB": "factor_iffb",
    "FIP": "factor_fip",
}


class HeaderMappedTransformer(RecordTransformer):
    """Select source columns by header name."""

    source_header_rows = 1
    required_columns: tuple[str, ...] = ()

    def __init__(self):
        self._index: dict[str, int] = {}
        self._width = 0

    def index_header(self, source_header: list[str], source: str = "<header>") -> None:
        """Record column positions and check that every required column exists."""
        self._index = {name: pos for pos, name in enumerate(source_header)}
        self._width = len(source_header)
        missing = [c for c in self.required_columns if c not in self._index]
        if missing:
            raise MalformedRowError(source, 1, f"missing columns: {', '.join(missing)}")

    def field(self, row: list[str], column: str) -> str:
        return row[self._index[column]].strip()

    def check_width(self, row: list[str], source: str, line: int) -> None:
        if len(row) < self._width:
            raise MalformedRowError(
                source, line, f"expected {self._width} fields, found {len(row)}"
            )


class WobaConstantsTransformer(HeaderMappedTransformer):
    """FanGraphs Guts export -> woba_constants rows."""

    required_columns = tuple(WOBA_COLUMN_MAP)

    def output_header(self, source_header: Optional[list[str]]) -> list[str]:
        self.index_header(source_header)
        return WOBA_CONSTANTS.column_names()

    def transform_row(self, row: list[str], source: str, line: int) -> list[str]:
        self.check_width(row, source, line)
        by_target = {target: self.field(row, src) for src, target in WOBA_COLUMN_MAP.items()}
        return [by_target[col] for col in WOBA_CONSTANTS.column_names()]


class ParkFactorsTransformer(HeaderMappedTransformer):
    """FanGraphs park factor export -> park_factors rows.

    FanGraphs identifies teams by nickname; each row is resolved to a
    Retrosheet park and team for its season through the park mapping.
    """

    required_columns = ("Season", "Team", *PARK_FACTOR_COLUMN_MAP)

    def __init__(self, park_mapping: ParkMapping):
        super().__init__()
        self.park_mapping = park_mapping

    def output_header(self, source_header: Optional[list[str]]) -> list[str]:
        self.index_header(source_header)
        return PARK_FACTORS.column_names()

    def transform_row(self, row: list[str], source: str, line: int) -> list[str]:
        self.check_width(row, source, line)

        raw_season = self.field(row, "Season")
        try:
            season = int(raw_season)
        except ValueError as e:
            raise MalformedRowError(source, line, f"invalid season {raw_season!r}") from e

        team = self.field(row, "Team")
        assignment = self.park_mapping.resolve(team, season)
        if assignment is None:
            raise MappingError(source, line, team, season=str(season))

        values = {target: self.field(row, src) for src, target in PARK_FACTOR_COLUMN_MAP.items()}
        values.update(park_id=assignment.park_id, season=str(season), team_id=assignment.team_id)
        return [values[col] for col in PARK_FACTORS.column_names()]
