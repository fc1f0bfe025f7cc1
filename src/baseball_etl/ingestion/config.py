"""ETL job configuration models using Pydantic."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from ..analytics.win_expectancy import parse_era

DEFAULT_DATA_DIR = Path("data")


class RetrosheetPaths(BaseModel):
    """Layout of downloaded Retrosheet archives, relative to the data directory."""

    gamelogs_dir: Path = Path("retrosheet/gamelogs")
    gamelog_pattern: str = Field(default="GL{year}.zip", description="Archive name per season")
    plays_dir: Path = Path("retrosheet/plays")
    plays_pattern: str = Field(default="{year}plays.zip", description="Archive name per season")
    ejections_archive: Path = Path("retrosheet/ejections/ejections.zip")
    negro_leagues_dir: Path = Path("retrosheet/negroleagues")
    negro_leagues_teams: Optional[Path] = Field(
        default=None, description="team,league mapping CSV (defaults to <negro_leagues_dir>/teams.csv)"
    )

    @field_validator("gamelog_pattern", "plays_pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Require a {year} placeholder in per-season archive names."""
        if "{year}" not in v:
            raise ValueError("archive pattern must contain {year}")
        return v


class FanGraphsPaths(BaseModel):
    """Layout of FanGraphs exports, relative to the data directory."""

    woba_file: Path = Path("fangraphs/woba.csv")
    park_factors_dir: Path = Path("fangraphs/pf")


class WinExpectancyConfig(BaseModel):
    """Win expectancy build settings."""

    min_sample_size: int = Field(default=50, ge=1)
    eras: list[tuple[int, int]] = Field(default_factory=list)
    timeout: Optional[float] = Field(default=None, gt=0, description="Statement deadline in seconds")

    @field_validator("eras", mode="before")
    @classmethod
    def parse_named_eras(cls, v):
        """Accept ``"1901-1960"`` strings and era names next to [start, end] pairs."""
        if not isinstance(v, list):
            return v
        return [parse_era(item) if isinstance(item, str) else item for item in v]


class EtlConfig(BaseModel):
    """Complete ETL configuration."""

    data_dir: Path = DEFAULT_DATA_DIR
    default_game_type: str = Field(default="regular", min_length=1, max_length=20)
    source_encoding: str = Field(default="utf-8", description="Text encoding of raw source files")
    load_timeout: Optional[float] = Field(default=None, gt=0, description="Per-load statement deadline in seconds")
    retrosheet: RetrosheetPaths = Field(default_factory=RetrosheetPaths)
    fangraphs: FanGraphsPaths = Field(default_factory=FanGraphsPaths)
    win_expectancy: WinExpectancyConfig = Field(default_factory=WinExpectancyConfig)

    def resolve(self, relative: Path) -> Path:
        """Resolve a configured path against the data directory."""
        return relative if relative.is_absolute() else self.data_dir / relative

    def gamelog_archive(self, year: int) -> Path:
        """Path of the game-log archive for a season."""
        name = self.retrosheet.gamelog_pattern.format(year=year)
        return self.resolve(self.retrosheet.gamelogs_dir) / name

    def plays_archive(self, year: int) -> Path:
        """Path of the play-by-play archive for a season."""
        name = self.retrosheet.plays_pattern.format(year=year)
        return self.resolve(self.retrosheet.plays_dir) / name

    @property
    def ejections_archive(self) -> Path:
        return self.resolve(self.retrosheet.ejections_archive)

    @property
    def negro_leagues_dir(self) -> Path:
        return self.resolve(self.retrosheet.negro_leagues_dir)

    @property
    def negro_leagues_teams(self) -> Path:
        if self.retrosheet.negro_leagues_teams is not None:
            return self.resolve(self.retrosheet.negro_leagues_teams)
        return self.negro_leagues_dir / "teams.csv"

    @property
    def woba_file(self) -> Path:
        return self.resolve(self.fangraphs.woba_file)

    @property
    def park_factors_dir(self) -> Path:
        return self.resolve(self.fangraphs.park_factors_dir)


def load_etl_config(path: Optional[str | Path] = None) -> EtlConfig:
    """Load ETL configuration from a YAML file.

    Args:
        path: Path to YAML configuration file (None returns the defaults)

    Returns:
        Validated EtlConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    if path is None:
        return EtlConfig()

    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"ETL config not found: {config_path}")

    with open(config_path) as f:
        config_data = yaml.safe_load(f) or {}

    return EtlConfig(**config_data)
