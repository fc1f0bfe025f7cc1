"""Negro Leagues game info transformer.

``gameinfo.csv`` has its own positional layout (35+ fields). Only the
columns that map onto the games table are kept, numeric placeholders are
blanked, and both teams' leagues are filled in from the team lookup.
"""

import logging
from typing import Optional

from ..errors import MalformedRowError
from ..schema.registry import NEGRO_LEAGUES_GAME_COLUMNS
from .base import RecordTransformer
from .lookup import TeamLeagueLookup

logger = logging.getLogger(__name__)

MIN_FIELDS = 35
DEFAULT_GAME_TYPE = "regular"

# Source offsets in gameinfo.csv
VISITING_TEAM = 1
HOME_TEAM = 2
SITE = 3
DATE = 4
GAME_NUMBER = 5
DAY_NIGHT = 7
TIME_OF_GAME = 12
ATTENDANCE = 13
UMPIRES = slice(23, 29)  # home plate, 1B, 2B, 3B, LF, RF
PITCHERS = slice(29, 32)  # winning, losing, saving
GAME_TYPE = 32
VISITING_RUNS = 33
HOME_RUNS = 34

NUMERIC_PLACEHOLDERS = frozenset({"", "unknown", "-1"})


def clean_numeric(value: str) -> str:
    """Blank out placeholder values in a numeric column.

    Nulls empty strings, ``unknown``, ``-1``, uncertain values ending in
    ``?`` and bounds such as ``<100`` or ``>5000``.
    """
    value = value.strip()
    if value.lower() in NUMERIC_PLACEHOLDERS:
        return ""
    if value.endswith("?") or value.startswith(("<", ">")):
        return ""
    return value


class NegroLeaguesGameInfoTransformer(RecordTransformer):
    """Reorder gameinfo.csv into games columns and tag team leagues."""

    source_header_rows = 1

    def __init__(self, team_lookup: TeamLeagueLookup):
        self.team_lookup = team_lookup
        self.unmapped_teams: set[str] = set()

    def output_header(self, source_header: Optional[list[str]]) -> list[str]:
        return list(NEGRO_LEAGUES_GAME_COLUMNS)

    def league_for(self, team_id: str) -> str:
        league = self.team_lookup.lookup(team_id)
        if league is None:
            if team_id not in self.unmapped_teams:
                logger.warning(f"No league mapping for Negro Leagues team {team_id!r}")
                self.unmapped_teams.add(team_id)
            return ""
        return league

    def transform_row(self, row: list[str], source: str, line: int) -> list[str]:
        if len(row) < MIN_FIELDS:
            raise MalformedRowError(
                source, line, f"expected at least {MIN_FIELDS} fields, found {len(row)}"
            )

        fields = [value.strip() for value in row]
        home_team = fields[HOME_TEAM]
        visiting_team = fields[VISITING_TEAM]

        return [
            fields[DATE],
            fields[GAME_NUMBER],
            home_team,
            visiting_team,
            fields[SITE],
            fields[DAY_NIGHT],
            clean_numeric(fields[ATTENDANCE]),
            clean_numeric(fields[TIME_OF_GAME]),
            clean_numeric(fields[VISITING_RUNS]),
            clean_numeric(fields[HOME_RUNS]),
            *fields[PITCHERS],
            *fields[UMPIRES],
            fields[GAME_TYPE] or DEFAULT_GAME_TYPE,
            self.league_for(home_team),
            self.league_for(visiting_team),
        ]
