"""Historical win expectancy built from the play-by-play corpus.

For every game state (inning capped at 9, half, outs, base occupancy and a
home-minus-visitor score difference clamped to +/-11) the builder computes
the fraction of decided games the home team went on to win, and how many
plays were observed in that state. States seen fewer than
``min_sample_size`` times are left out.

The table is rebuilt from scratch on every run: probabilities for a state
move as more seasons are loaded, so incremental updates would be wrong.
"""

import logging
import re
from typing import NamedTuple, Optional, Sequence

import psycopg
from sqlmodel import select

from ..database.config import DatabaseConfig
from ..database.session import get_session
from ..errors import BuildError
from ..models.refresh import WinExpectancyEntry
from ..storage.postgres import PostgresStorageBackend

logger = logging.getLogger(__name__)

DEFAULT_MIN_SAMPLE_SIZE = 50
ALL_YEARS: tuple[int, int] = (0, 9999)
MAX_INNING = 9
MAX_SCORE_DIFF = 11

_RUNNERS_RE = re.compile(r"^[1_][2_][3_]$")


class Era(NamedTuple):
    """A named period of baseball history."""

    name: str
    short_name: str
    start_year: int
    end_year: int


NAMED_ERAS: dict[str, Era] = {
    era.short_name: era
    for era in (
        Era("Federal League Era", "fed", 1914, 1915),
        Era("Negro Leagues Era", "nlg", 1935, 1949),
        Era("1970s", "1970s", 1970, 1979),
        Era("1980s", "1980s", 1980, 1989),
        Era("Steroid Era", "steroid", 1990, 2010),
        Era("Modern Era", "modern", 2011, 2025),
    )
}

BUILD_WIN_EXPECTANCY_SQL = """
WITH eras AS (
    SELECT era_start, era_end, era_index
    FROM unnest(%(era_starts)s::int[], %(era_ends)s::int[])
        WITH ORDINALITY AS e(era_start, era_end, era_index)
),
game_outcomes AS (
    SELECT
        date,
        home_team,
        game_number,
        home_score > visiting_score AS home_won
    FROM games
    WHERE home_score IS NOT NULL
      AND visiting_score IS NOT NULL
      AND home_score <> visiting_score
),
game_states AS (
    SELECT
        LEAST(p.inning, 9) AS inning,
        (p.top_bot = 1) AS is_bottom,
        p.outs_pre AS outs,
        CONCAT(
            CASE WHEN COALESCE(p.br1_pre, '') <> '' THEN '1' ELSE '_' END,
            CASE WHEN COALESCE(p.br2_pre, '') <> '' THEN '2' ELSE '_' END,
            CASE WHEN COALESCE(p.br3_pre, '') <> '' THEN '3' ELSE '_' END
        ) AS runners_state,
        LEAST(GREATEST(p.score_h - p.score_v, -11), 11) AS score_diff,
        go.home_won,
        SUBSTRING(p.date, 1, 4)::int AS year
    FROM plays p
    JOIN game_outcomes go
      ON SUBSTRING(p.gid, 4, 8) = go.date
     AND LEFT(p.gid, 3) = go.home_team
     AND RIGHT(p.gid, 1)::int = go.game_number
    WHERE p.outs_pre IS NOT NULL
      AND p.inning IS NOT NULL
      AND p.date IS NOT NULL
),
win_rates AS (
    SELECT
        e.era_index,
        s.inning,
        s.is_bottom,
        s.outs,
        s.runners_state,
        s.score_diff,
        MIN(s.year) AS start_year,
        MAX(s.year) AS end_year,
        AVG(CASE WHEN s.home_won THEN 1.0 ELSE 0.0 END) AS win_probability,
        COUNT(*) AS sample_size
    FROM game_states s
    JOIN eras e ON s.year BETWEEN e.era_start AND e.era_end
    GROUP BY e.era_index, s.inning, s.is_bottom, s.outs, s.runners_state, s.score_diff
    HAVING COUNT(*) >= %(min_sample_size)s
)
INSERT INTO win_expectancy_historical (
    inning, is_bottom, outs, runners_state, score_diff,
    win_probability, sample_size, start_year, end_year,
    created_at, updated_at
)
SELECT
    inning, is_bottom, outs, runners_state, score_diff,
    ROUND(win_probability, 4), sample_size, start_year, end_year,
    NOW(), NOW()
FROM win_rates
"""


def normalize_min_sample_size(min_sample_size: Optional[int]) -> int:
    """Non-positive or missing thresholds fall back to the default of 50."""
    if min_sample_size is None or min_sample_size < 1:
        return DEFAULT_MIN_SAMPLE_SIZE
    return min_sample_size


def validate_eras(eras: Optional[Sequence[tuple[int, int]]]) -> list[tuple[int, int]]:
    """Check that era ranges are well formed and do not overlap.

    Args:
        eras: Inclusive (start_year, end_year) ranges, or None for all years

    Returns:
        Eras sorted by start year

    Raises:
        ValueError: If a range is inverted or two ranges overlap
    """
    if not eras:
        return [ALL_YEARS]

    ordered = sorted((int(start), int(end)) for start, end in eras)
    for start, end in ordered:
        if end < start:
            raise ValueError(f"Invalid era {start}-{end}: end before start")
    for (_, prev_end), (start, end) in zip(ordered, ordered[1:]):
        if start <= prev_end:
            raise ValueError(f"Era {start}-{end} overlaps an earlier era ending {prev_end}")
    return ordered


def parse_era(value: str) -> tuple[int, int]:
    """Parse ``"1901-1960"``, a single year ``"1960"`` or a named era (``"nlg"``)."""
    value = value.strip()
    named = NAMED_ERAS.get(value.lower())
    if named is not None:
        return named.start_year, named.end_year
    try:
        if "-" in value:
            start, end = value.split("-", 1)
            return int(start), int(end)
        year = int(value)
    except ValueError as e:
        raise ValueError(
            f"Invalid era {value!r}; expected START-END or one of {', '.join(NAMED_ERAS)}"
        ) from e
    return year, year


class WinExpectancyBuilder:
    """Rebuild ``win_expectancy_historical`` in one transaction.

    Readers keep seeing the previous table until the rebuild commits.
    Interrupting the process (Ctrl-C) cancels the running query.
    """

    def __init__(self, backend: PostgresStorageBackend):
        self.backend = backend

    def build(
        self,
        min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE,
        eras: Optional[Sequence[tuple[int, int]]] = None,
        timeout: Optional[float] = None,
    ) -> int:
        """Replace the table with freshly aggregated probabilities.

        Args:
            min_sample_size: Minimum plays per state (non-positive -> 50)
            eras: Optional non-overlapping year ranges aggregated separately
            timeout: Statement deadline in seconds for the rebuild

        Returns:
            Number of states written

        Raises:
            ValueError: If the eras are malformed (nothing is touched)
            BuildError: If the rebuild fails or hits the deadline (rolled back)
        """
        threshold = normalize_min_sample_size(min_sample_size)
        ranges = validate_eras(eras)
        params = {
            "era_starts": [start for start, _ in ranges],
            "era_ends": [end for _, end in ranges],
            "min_sample_size": threshold,
        }

        logger.info(
            f"Building win expectancy (min sample {threshold}, "
            f"eras {', '.join(f'{s}-{e}' for s, e in ranges)})"
        )

        try:
            with self.backend.transaction(timeout=timeout) as conn:
                with conn.cursor() as cur:
                    cur.execute("DELETE FROM win_expectancy_historical")
                    removed = cur.rowcount
                    cur.execute(BUILD_WIN_EXPECTANCY_SQL, params)
                    written = cur.rowcount
        except psycopg.Error as e:
            logger.error(f"Win expectancy rebuild failed: {e}")
            raise BuildError(f"Failed to build win expectancy: {e}") from e

        logger.info(f"Win expectancy rebuilt: {written} states (replaced {removed})")
        return written


def get_win_expectancy(
    inning: int,
    is_bottom: bool,
    outs: int,
    runners_state: str,
    score_diff: int,
    config: Optional[DatabaseConfig] = None,
) -> Optional[WinExpectancyEntry]:
    """Look up the stored probability for one game state.

    Extra innings read the 9th-inning row and the score difference is clamped
    the same way the builder clamps it. When several eras hold the state, the
    most recent one wins.

    Args:
        inning: Inning number (1-based)
        is_bottom: True for the home team's half
        outs: Outs before the play (0-2)
        runners_state: Base occupancy such as ``"___"`` or ``"1_3"``
        score_diff: Home minus visitor runs
        config: Database configuration (reads the environment if None)

    Returns:
        The matching entry, or None if the state was not built

    Raises:
        ValueError: If the state is not a valid game state
    """
    if inning < 1:
        raise ValueError(f"Invalid inning: {inning}")
    if outs not in (0, 1, 2):
        raise ValueError(f"Invalid outs: {outs}")
    if not _RUNNERS_RE.match(runners_state):
        raise ValueError(f"Invalid runners state {runners_state!r}; expected e.g. '1_3'")

    statement = (
        select(WinExpectancyEntry)
        .where(
            WinExpectancyEntry.inning == min(inning, MAX_INNING),
            WinExpectancyEntry.is_bottom == is_bottom,
            WinExpectancyEntry.outs == outs,
            WinExpectancyEntry.runners_state == runners_state,
            WinExpectancyEntry.score_diff
            == max(-MAX_SCORE_DIFF, min(score_diff, MAX_SCORE_DIFF)),
        )
        .order_by(WinExpectancyEntry.end_year.desc().nulls_last())
        .limit(1)
    )

    with get_session(config or DatabaseConfig.from_env()) as session:
        entry = session.exec(statement).first()
        if entry is not None:
            session.expunge(entry)
    return entry
