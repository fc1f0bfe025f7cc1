"""Unit tests for ETL configuration models."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from baseball_etl.ingestion.config import (
    EtlConfig,
    FanGraphsPaths,
    RetrosheetPaths,
    WinExpectancyConfig,
    load_etl_config,
)


class TestEtlConfigDefaults:
    """Test default source layout."""

    def test_default_paths(self):
        config = EtlConfig()

        assert config.gamelog_archive(2024) == Path("data/retrosheet/gamelogs/GL2024.zip")
        assert config.plays_archive(1955) == Path("data/retrosheet/plays/1955plays.zip")
        assert config.ejections_archive == Path("data/retrosheet/ejections/ejections.zip")
        assert config.negro_leagues_dir == Path("data/retrosheet/negroleagues")
        assert config.negro_leagues_teams == Path("data/retrosheet/negroleagues/teams.csv")
        assert config.woba_file == Path("data/fangraphs/woba.csv")
        assert config.park_factors_dir == Path("data/fangraphs/pf")

    def test_default_settings(self):
        config = EtlConfig()

        assert config.default_game_type == "regular"
        assert config.source_encoding == "utf-8"
        assert config.load_timeout is None
        assert config.win_expectancy.min_sample_size == 50
        assert config.win_expectancy.eras == []

    def test_absolute_paths_not_rebased(self, tmp_path):
        config = EtlConfig(
            data_dir=Path("/srv/data"),
            retrosheet=RetrosheetPaths(ejections_archive=tmp_path / "ej.zip"),
        )

        assert config.ejections_archive == tmp_path / "ej.zip"
        assert config.gamelog_archive(2000) == Path("/srv/data/retrosheet/gamelogs/GL2000.zip")

    def test_explicit_teams_file(self):
        config = EtlConfig(retrosheet=RetrosheetPaths(negro_leagues_teams=Path("ref/nl_teams.csv")))

        assert config.negro_leagues_teams == Path("data/ref/nl_teams.csv")


class TestValidation:
    """Test field validation."""

    def test_pattern_requires_year(self):
        with pytest.raises(ValidationError, match="must contain"):
            RetrosheetPaths(gamelog_pattern="GL.zip")

    def test_game_type_length(self):
        with pytest.raises(ValidationError):
            EtlConfig(default_game_type="x" * 21)

    def test_min_sample_size_positive(self):
        with pytest.raises(ValidationError):
            WinExpectancyConfig(min_sample_size=0)

    def test_eras_accept_names_and_ranges(self):
        config = WinExpectancyConfig(eras=["nlg", "1970-1989", [2011, 2024]])

        assert config.eras == [(1935, 1949), (1970, 1989), (2011, 2024)]

    def test_unknown_era_name(self):
        with pytest.raises(ValidationError, match="Invalid era"):
            WinExpectancyConfig(eras=["deadball"])

    def test_timeout_positive(self):
        with pytest.raises(ValidationError):
            EtlConfig(load_timeout=0)


class TestLoadEtlConfig:
    """Test YAML loading."""

    def test_none_returns_defaults(self):
        assert load_etl_config(None) == EtlConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_etl_config(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "etl.yaml"
        path.write_text("")

        assert load_etl_config(path) == EtlConfig()

    def test_loads_nested_sections(self, tmp_path):
        path = tmp_path / "etl.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "data_dir": "/mnt/retro",
                    "source_encoding": "latin-1",
                    "load_timeout": 600,
                    "retrosheet": {"plays_pattern": "plays{year}.zip"},
                    "fangraphs": {"woba_file": "fg/guts.csv"},
                    "win_expectancy": {"min_sample_size": 100, "eras": [[1901, 1960], [1961, 2024]]},
                }
            )
        )

        config = load_etl_config(path)

        assert config.source_encoding == "latin-1"
        assert config.load_timeout == 600
        assert config.plays_archive(2024) == Path("/mnt/retro/retrosheet/plays/plays2024.zip")
        assert config.woba_file == Path("/mnt/retro/fg/guts.csv")
        assert config.fangraphs == FanGraphsPaths(woba_file=Path("fg/guts.csv"))
        assert config.win_expectancy.eras == [(1901, 1960), (1961, 2024)]
