"""Pipeline facade for historical baseball data loads.

Orchestrates the flow:
    Archive → extracted member → canonical CSV → stage → merge

Supports:
- Retrosheet game logs, play-by-play and ejections
- Negro Leagues game info and plays
- FanGraphs wOBA constants and park factors
- Win expectancy rebuilds and dataset refresh bookkeeping
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

from ..analytics.win_expectancy import (
    DEFAULT_MIN_SAMPLE_SIZE,
    WinExpectancyBuilder,
    get_win_expectancy,
)
from ..ingestion.archive import extract_member, staging_directory
from ..ingestion.config import EtlConfig
from ..migrations.runner import MigrationRunner, MigrationSource
from ..models.refresh import DatasetRefresh, WinExpectancyEntry
from ..schema.registry import (
    EJECTIONS,
    GAMES,
    NEGRO_LEAGUES_GAMES,
    PARK_FACTORS,
    PLAYS,
    WOBA_CONSTANTS,
)
from ..storage.bulk import ConflictPolicy, StageAndMergeLoader
from ..storage.postgres import PostgresStorageBackend
from ..storage.refresh import DatasetRefreshTracker
from ..transform.base import RecordTransformer
from ..transform.constants import ParkFactorsTransformer, WobaConstantsTransformer
from ..transform.ejections import EjectionsTransformer
from ..transform.gamelog import GameLogTransformer
from ..transform.lookup import (
    CsvTeamLeagueLookup,
    DatabaseParkMapping,
    ParkMapping,
    StaticTeamLeagueLookup,
    TeamLeagueLookup,
)
from ..transform.negro_leagues import NegroLeaguesGameInfoTransformer
from ..transform.plays import NEGRO_LEAGUES_NULL_TOKENS, PlaysTransformer

logger = logging.getLogger(__name__)

GAME_LOG_SUFFIXES = (".txt",)
PLAYS_SUFFIXES = (".csv",)
EJECTIONS_SUFFIXES = (".csv",)

NEGRO_LEAGUES_GAMEINFO = "gameinfo.csv"
NEGRO_LEAGUES_PLAYS = "plays.csv"


class ConstantsKind(str, Enum):
    """External reference constant files."""

    WOBA = "woba"
    PARK_FACTORS = "park_factors"


@dataclass
class NegroLeaguesResult:
    """Rows merged by a Negro Leagues load (0 for an absent file)."""

    game_rows: int = 0
    play_rows: int = 0

    @property
    def total_rows(self) -> int:
        return self.game_rows + self.play_rows


def _value_columns(schema) -> list[str]:
    return [c for c in schema.column_names() if c not in schema.conflict_keys]


class ETLPipeline:
    """Entry point for every load the CLI (or a scheduler) can run.

    One stage-and-merge loader exists per destination, each with the
    conflict policy of its source:
    - games: update ``game_type`` only
    - Negro Leagues games: update ``game_type`` and both league columns
    - plays, ejections: ignore conflicts (immutable facts)
    - wOBA constants, park factors: update every value column

    Usage:
        >>> with PostgresStorageBackend(DatabaseConfig.from_env()) as backend:
        ...     pipeline = ETLPipeline(backend)
        ...     pipeline.migrate()
        ...     rows = pipeline.load_game_log(Path("data/retrosheet/gamelogs/GL2024.zip"))
        ...     pipeline.record_refresh("retrosheet_games_2024", rows)
    """

    def __init__(
        self,
        backend: PostgresStorageBackend,
        config: Optional[EtlConfig] = None,
        refresh_tracker: Optional[DatasetRefreshTracker] = None,
        team_lookup: Optional[TeamLeagueLookup] = None,
        park_mapping: Optional[ParkMapping] = None,
        load_timeout: Optional[float] = None,
    ):
        """Initialize the pipeline.

        Args:
            backend: Storage backend owning the connection pool
            config: ETL configuration (defaults if None)
            refresh_tracker: Ledger accessor (built from the backend config if None)
            team_lookup: Negro Leagues team -> league lookup (read from the
                configured mapping file on first use if None)
            park_mapping: FanGraphs team -> park mapping (read from the
                database on first use if None)
            load_timeout: Statement deadline in seconds for each load
        """
        self.backend = backend
        self.config = config or EtlConfig()
        self.refresh_tracker = refresh_tracker or DatasetRefreshTracker(backend.config)
        self._team_lookup = team_lookup
        self.park_mapping = park_mapping or DatabaseParkMapping(backend)
        self.load_timeout = load_timeout if load_timeout is not None else self.config.load_timeout

        self.games_loader = StageAndMergeLoader(
            backend, GAMES, policy=ConflictPolicy.UPDATE, update_columns=["game_type"]
        )
        self.negro_leagues_games_loader = StageAndMergeLoader(
            backend,
            NEGRO_LEAGUES_GAMES,
            policy=ConflictPolicy.UPDATE,
            update_columns=["game_type", "home_team_league", "visiting_team_league"],
        )
        self.plays_loader = StageAndMergeLoader(backend, PLAYS, policy=ConflictPolicy.IGNORE)
        self.ejections_loader = StageAndMergeLoader(
            backend, EJECTIONS, policy=ConflictPolicy.IGNORE
        )
        self.woba_loader = StageAndMergeLoader(
            backend,
            WOBA_CONSTANTS,
            policy=ConflictPolicy.UPDATE,
            update_columns=_value_columns(WOBA_CONSTANTS),
        )
        self.park_factors_loader = StageAndMergeLoader(
            backend,
            PARK_FACTORS,
            policy=ConflictPolicy.UPDATE,
            update_columns=_value_columns(PARK_FACTORS),
        )

    # =========================================================================
    # SCHEMA
    # =========================================================================

    def migrate(self, source: Optional[MigrationSource] = None) -> list[str]:
        """Apply pending schema migrations.

        Returns:
            Names of the migrations applied by this call
        """
        return MigrationRunner(self.backend, source).migrate()

    # =========================================================================
    # RETROSHEET
    # =========================================================================

    def load_game_log(
        self, archive_path: Union[str, Path], game_type: Optional[str] = None
    ) -> int:
        """Load a game-log archive, tagging every game with ``game_type``.

        Reloading an archive only updates ``game_type`` on existing games.

        Args:
            archive_path: ZIP containing one ``.txt`` game log
            game_type: Tag for every game (defaults to the configured type)

        Returns:
            Rows inserted or updated
        """
        transformer = GameLogTransformer(game_type or self.config.default_game_type)
        return self._load_archive(archive_path, GAME_LOG_SUFFIXES, transformer, self.games_loader)

    def load_plays(self, archive_path: Union[str, Path]) -> int:
        """Load a play-by-play archive; already loaded plays are kept as-is."""
        return self._load_archive(
            archive_path, PLAYS_SUFFIXES, PlaysTransformer(), self.plays_loader
        )

    def load_ejections(self, archive_path: Union[str, Path]) -> int:
        """Load the ejections archive; already loaded ejections are kept as-is."""
        return self._load_archive(
            archive_path, EJECTIONS_SUFFIXES, EjectionsTransformer(), self.ejections_loader
        )

    # =========================================================================
    # NEGRO LEAGUES
    # =========================================================================

    @property
    def team_lookup(self) -> TeamLeagueLookup:
        if self._team_lookup is None:
            mapping_path = self.config.negro_leagues_teams
            if mapping_path.exists():
                self._team_lookup = CsvTeamLeagueLookup.from_path(mapping_path)
            else:
                logger.warning(
                    f"Team mapping {mapping_path} not found; Negro Leagues leagues will be empty"
                )
                self._team_lookup = StaticTeamLeagueLookup({})
        return self._team_lookup

    def load_negro_leagues(self, data_dir: Union[str, Path, None] = None) -> NegroLeaguesResult:
        """Load ``gameinfo.csv`` and ``plays.csv`` from a directory.

        Either file may be absent; an absent file loads zero rows.

        Args:
            data_dir: Directory with the extracted Negro Leagues files
                (defaults to the configured directory)

        Returns:
            NegroLeaguesResult with per-file row counts
        """
        data_dir = Path(data_dir) if data_dir is not None else self.config.negro_leagues_dir
        result = NegroLeaguesResult()

        gameinfo = data_dir / NEGRO_LEAGUES_GAMEINFO
        if gameinfo.is_file():
            transformer = NegroLeaguesGameInfoTransformer(self.team_lookup)
            result.game_rows = self._load_file(
                gameinfo, transformer, self.negro_leagues_games_loader
            )
        else:
            logger.warning(f"Negro Leagues game info not found: {gameinfo}")

        plays = data_dir / NEGRO_LEAGUES_PLAYS
        if plays.is_file():
            transformer = PlaysTransformer(null_tokens=NEGRO_LEAGUES_NULL_TOKENS)
            result.play_rows = self._load_file(plays, transformer, self.plays_loader)
        else:
            logger.warning(f"Negro Leagues plays not found: {plays}")

        return result

    # =========================================================================
    # EXTERNAL CONSTANTS
    # =========================================================================

    def load_external_constants(self, csv_path: Union[str, Path], kind: ConstantsKind) -> int:
        """Load a FanGraphs export.

        Park factor rows are resolved to Retrosheet parks through the park
        mapping; a team without a mapping for the row's season fails the file.

        Args:
            csv_path: Path to the FanGraphs CSV export
            kind: Which constants the file holds

        Returns:
            Rows inserted or updated
        """
        kind = ConstantsKind(kind)
        if kind == ConstantsKind.WOBA:
            return self._load_file(csv_path, WobaConstantsTransformer(), self.woba_loader)
        return self._load_file(
            csv_path, ParkFactorsTransformer(self.park_mapping), self.park_factors_loader
        )

    # =========================================================================
    # ANALYTICS
    # =========================================================================

    def build_win_expectancy(
        self,
        min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE,
        eras: Optional[Sequence[tuple[int, int]]] = None,
        timeout: Optional[float] = None,
    ) -> int:
        """Rebuild the win expectancy table.

        Returns:
            Number of game states written
        """
        return WinExpectancyBuilder(self.backend).build(
            min_sample_size=min_sample_size, eras=eras, timeout=timeout
        )

    def win_expectancy(
        self,
        inning: int,
        is_bottom: bool,
        outs: int,
        runners_state: str,
        score_diff: int,
    ) -> Optional[WinExpectancyEntry]:
        """Look up the built probability for one game state."""
        return get_win_expectancy(
            inning, is_bottom, outs, runners_state, score_diff, config=self.backend.config
        )

    # =========================================================================
    # REFRESH LEDGER
    # =========================================================================

    def record_refresh(self, dataset: str, row_count: int, notes: Optional[str] = None) -> None:
        """Record a successful load of a dataset."""
        self.refresh_tracker.record_refresh(dataset, row_count, notes)

    def list_refreshes(self) -> dict[str, DatasetRefresh]:
        """Get the refresh ledger keyed by dataset name."""
        return self.refresh_tracker.list_refreshes()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _load_archive(
        self,
        archive_path: Union[str, Path],
        suffixes: tuple[str, ...],
        transformer: RecordTransformer,
        loader: StageAndMergeLoader,
    ) -> int:
        with staging_directory() as workdir:
            with extract_member(archive_path, suffixes, workdir=workdir) as member:
                return self._transform_and_load(member, transformer, loader, workdir)

    def _load_file(
        self,
        path: Union[str, Path],
        transformer: RecordTransformer,
        loader: StageAndMergeLoader,
    ) -> int:
        with staging_directory() as workdir:
            return self._transform_and_load(Path(path), transformer, loader, workdir)

    def _transform_and_load(
        self,
        source_path: Path,
        transformer: RecordTransformer,
        loader: StageAndMergeLoader,
        workdir: Path,
    ) -> int:
        """Transform one file into the working directory and merge it."""
        canonical = workdir / f"{source_path.stem}.canonical.csv"

        with open(source_path, newline="", encoding=self.config.source_encoding) as src, open(
            canonical, "w", newline="", encoding="utf-8"
        ) as sink:
            rows = transformer.transform(src, sink, source_name=source_path.name)

        logger.info(f"Transformed {rows} rows from {source_path.name}")
        return loader.load(canonical, timeout=self.load_timeout)
