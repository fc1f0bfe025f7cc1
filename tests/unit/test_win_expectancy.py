"""Unit tests for the win expectancy builder."""

from unittest.mock import MagicMock, patch

import psycopg
import pytest
from sqlalchemy.dialects import postgresql

from baseball_etl.analytics.win_expectancy import (
    ALL_YEARS,
    BUILD_WIN_EXPECTANCY_SQL,
    DEFAULT_MIN_SAMPLE_SIZE,
    NAMED_ERAS,
    WinExpectancyBuilder,
    get_win_expectancy,
    normalize_min_sample_size,
    parse_era,
    validate_eras,
)
from baseball_etl.database.config import DatabaseConfig
from baseball_etl.errors import BuildError


class TestHelpers:
    """Test threshold and era handling."""

    @pytest.mark.parametrize("value, expected", [(None, 50), (0, 50), (-5, 50), (1, 1), (200, 200)])
    def test_normalize_min_sample_size(self, value, expected):
        assert normalize_min_sample_size(value) == expected

    def test_default_threshold(self):
        assert DEFAULT_MIN_SAMPLE_SIZE == 50

    def test_validate_eras_defaults_to_all_years(self):
        assert validate_eras(None) == [ALL_YEARS]
        assert validate_eras([]) == [ALL_YEARS]

    def test_validate_eras_sorts(self):
        assert validate_eras([(1961, 2024), (1901, 1960)]) == [(1901, 1960), (1961, 2024)]

    def test_validate_eras_inverted(self):
        with pytest.raises(ValueError, match="end before start"):
            validate_eras([(1960, 1901)])

    def test_validate_eras_overlap(self):
        with pytest.raises(ValueError, match="overlaps"):
            validate_eras([(1901, 1960), (1960, 2024)])

    def test_parse_era(self):
        assert parse_era("1901-1960") == (1901, 1960)
        assert parse_era(" 2024 ") == (2024, 2024)

    def test_parse_era_invalid(self):
        with pytest.raises(ValueError, match="expected START-END or one of fed, nlg"):
            parse_era("deadball")

    @pytest.mark.parametrize(
        "name, expected",
        [("nlg", (1935, 1949)), ("fed", (1914, 1915)), (" Steroid ", (1990, 2010)), ("1970s", (1970, 1979))],
    )
    def test_parse_named_era(self, name, expected):
        assert parse_era(name) == expected

    def test_named_eras_do_not_overlap(self):
        eras = [(era.start_year, era.end_year) for era in NAMED_ERAS.values()]

        assert validate_eras(eras) == sorted(eras)


class TestBuildSql:
    """Test the aggregation statement shape."""

    def test_excludes_ties_and_applies_threshold(self):
        assert "home_score <> visiting_score" in BUILD_WIN_EXPECTANCY_SQL
        assert "HAVING COUNT(*) >= %(min_sample_size)s" in BUILD_WIN_EXPECTANCY_SQL

    def test_caps_inning_and_score(self):
        assert "LEAST(p.inning, 9)" in BUILD_WIN_EXPECTANCY_SQL
        assert "LEAST(GREATEST(p.score_h - p.score_v, -11), 11)" in BUILD_WIN_EXPECTANCY_SQL
        assert "ROUND(win_probability, 4)" in BUILD_WIN_EXPECTANCY_SQL


class TestWinExpectancyBuilder:
    """Test build() against a mocked backend."""

    def test_replaces_table_in_one_transaction(self, mock_backend, mock_cursor):
        mock_cursor.rowcount = 412
        builder = WinExpectancyBuilder(mock_backend)

        written = builder.build(timeout=60)

        assert written == 412
        mock_backend.transaction.assert_called_once_with(timeout=60)
        delete_call, insert_call = mock_cursor.execute.call_args_list
        assert delete_call.args == ("DELETE FROM win_expectancy_historical",)
        assert insert_call.args[0] is BUILD_WIN_EXPECTANCY_SQL
        assert insert_call.args[1] == {
            "era_starts": [0],
            "era_ends": [9999],
            "min_sample_size": 50,
        }

    def test_eras_and_threshold_passed(self, mock_backend, mock_cursor):
        WinExpectancyBuilder(mock_backend).build(
            min_sample_size=0, eras=[(1961, 2024), (1901, 1960)]
        )

        params = mock_cursor.execute.call_args_list[1].args[1]
        assert params == {
            "era_starts": [1901, 1961],
            "era_ends": [1960, 2024],
            "min_sample_size": 50,
        }

    def test_invalid_eras_fail_before_touching_table(self, mock_backend):
        with pytest.raises(ValueError):
            WinExpectancyBuilder(mock_backend).build(eras=[(2000, 1990)])

        mock_backend.transaction.assert_not_called()

    def test_statement_timeout_raises_build_error(self, mock_backend, mock_cursor):
        mock_cursor.execute.side_effect = [
            None,
            psycopg.errors.QueryCanceled("canceling statement due to statement timeout"),
        ]

        with pytest.raises(BuildError, match="statement timeout") as exc_info:
            WinExpectancyBuilder(mock_backend).build(timeout=1)

        assert isinstance(exc_info.value.__cause__, psycopg.errors.QueryCanceled)


@pytest.fixture
def mock_session():
    with patch("baseball_etl.analytics.win_expectancy.get_session") as mock_get_session:
        session = MagicMock()
        mock_get_session.return_value.__enter__.return_value = session
        mock_get_session.return_value.__exit__.return_value = False
        yield session


def compiled(statement) -> str:
    return str(
        statement.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True})
    )


class TestGetWinExpectancy:
    """Test single-state lookups against a mocked session."""

    def test_returns_detached_entry(self, mock_session):
        entry = MagicMock()
        mock_session.exec.return_value.first.return_value = entry

        assert get_win_expectancy(1, False, 0, "___", 0, config=DatabaseConfig()) is entry
        mock_session.expunge.assert_called_once_with(entry)

    def test_clamps_like_the_builder(self, mock_session):
        mock_session.exec.return_value.first.return_value = None

        assert get_win_expectancy(12, True, 2, "1_3", -15, config=DatabaseConfig()) is None

        sql = compiled(mock_session.exec.call_args.args[0])
        assert "inning = 9" in sql
        assert "score_diff = -11" in sql
        assert "runners_state = '1_3'" in sql
        assert "end_year DESC NULLS LAST" in sql
        assert "LIMIT 1" in sql
        mock_session.expunge.assert_not_called()

    @pytest.mark.parametrize(
        "inning, outs, runners", [(0, 0, "___"), (1, 3, "___"), (1, 0, "2__"), (1, 0, "1234")]
    )
    def test_rejects_invalid_states(self, mock_session, inning, outs, runners):
        with pytest.raises(ValueError):
            get_win_expectancy(inning, False, outs, runners, 0, config=DatabaseConfig())

        mock_session.exec.assert_not_called()
