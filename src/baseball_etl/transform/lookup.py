"""Reference lookups injected into transformers.

- Team -> league, for Negro Leagues game info
- FanGraphs team + season -> Retrosheet park and team, for park factors
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol, Union

from ..storage.postgres import PostgresStorageBackend

logger = logging.getLogger(__name__)


class TeamLeagueLookup(Protocol):
    """Resolve a team code to its league code."""

    def lookup(self, team_id: str) -> Optional[str]:
        """Return the league for a team, or None when the team is unmapped."""
        ...


class StaticTeamLeagueLookup:
    """Team -> league lookup over an in-memory mapping."""

    def __init__(self, mapping: dict[str, str]):
        self.mapping = dict(mapping)

    def lookup(self, team_id: str) -> Optional[str]:
        return self.mapping.get(team_id.strip())

    def __len__(self) -> int:
        return len(self.mapping)


class CsvTeamLeagueLookup(StaticTeamLeagueLookup):
    """Team -> league lookup read from a ``team,league`` CSV file.

    Lines starting with ``#`` are comments; the first remaining row is a
    header. Rows missing either value are ignored.
    """

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "CsvTeamLeagueLookup":
        """Load the mapping file.

        Args:
            path: Path to the mapping CSV

        Returns:
            CsvTeamLeagueLookup instance

        Raises:
            FileNotFoundError: If the mapping file doesn't exist
        """
        mapping: dict[str, str] = {}
        with open(path, newline="", encoding="utf-8") as fh:
            lines = (line for line in fh if not line.startswith("#"))
            reader = csv.reader(lines, skipinitialspace=True)
            next(reader, None)
            for record in reader:
                if len(record) < 2:
                    continue
                team_id, league = record[0].strip(), record[1].strip()
                if team_id and league:
                    mapping[team_id] = league

        logger.info(f"Loaded {len(mapping)} team-league mappings from {path}")
        return cls(mapping)


@dataclass(frozen=True)
class TeamParkMapping:
    """One row of the FanGraphs team to Retrosheet park map."""

    fangraphs_team: str
    retrosheet_team_id: str
    primary_park_id: str
    start_year: Optional[int] = None
    end_year: Optional[int] = None

    def covers(self, season: int) -> bool:
        """Check whether the mapping is valid for a season (None = open bound)."""
        if self.start_year is not None and season < self.start_year:
            return False
        if self.end_year is not None and season > self.end_year:
            return False
        return True


@dataclass(frozen=True)
class ParkAssignment:
    """Resolved park and team for a park-factor row."""

    park_id: str
    team_id: str


class ParkMapping(Protocol):
    """Resolve a FanGraphs team name for a season."""

    def resolve(self, team: str, season: int) -> Optional[ParkAssignment]:
        """Return the park and team, or None when no mapping covers the season."""
        ...


class StaticParkMapping:
    """Park mapping over an in-memory list of entries."""

    def __init__(self, entries: Iterable[TeamParkMapping]):
        self.entries = list(entries)

    def resolve(self, team: str, season: int) -> Optional[ParkAssignment]:
        team = team.strip()
        for entry in self.entries:
            if entry.fangraphs_team == team and entry.covers(season):
                return ParkAssignment(park_id=entry.primary_park_id, team_id=entry.retrosheet_team_id)
        return None


class DatabaseParkMapping(StaticParkMapping):
    """Park mapping read once from the ``fangraphs_team_park_map`` table."""

    def __init__(self, backend: PostgresStorageBackend):
        self.backend = backend
        self._loaded = False
        super().__init__([])

    def load(self) -> None:
        rows = self.backend.query(
            """
            SELECT fangraphs_team, retrosheet_team_id, primary_park_id, start_year, end_year
            FROM fangraphs_team_park_map
            ORDER BY fangraphs_team, start_year NULLS FIRST
            """
        )
        self.entries = [TeamParkMapping(**row) for row in rows]
        self._loaded = True
        logger.info(f"Loaded {len(self.entries)} FanGraphs team-park mappings")

    def resolve(self, team: str, season: int) -> Optional[ParkAssignment]:
        if not self._loaded:
            self.load()
        return super().resolve(team, season)
