"""Pytest configuration and fixtures for all tests."""

import os
import zipfile
from pathlib import Path
from typing import Callable, Generator
from unittest.mock import MagicMock

import pytest

from baseball_etl.database.config import DatabaseConfig
from baseball_etl.database.session import dispose_engines
from baseball_etl.migrations.runner import MigrationRunner
from baseball_etl.schema.registry import GAME_LOG_COLUMNS
from baseball_etl.storage.postgres import PostgresStorageBackend

PIPELINE_TABLES = (
    "games",
    "plays",
    "ejections",
    "dataset_refreshes",
    "woba_constants",
    "park_factors",
    "win_expectancy_historical",
)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Database configuration for tests.

    Uses environment variables or defaults to local test database.
    """
    return DatabaseConfig(
        host=os.getenv("TEST_DB_HOST", "localhost"),
        port=int(os.getenv("TEST_DB_PORT", "5432")),
        database=os.getenv("TEST_DB_NAME", "baseball_test"),
        user=os.getenv("TEST_DB_USER", "postgres"),
        password=os.getenv("TEST_DB_PASSWORD", "postgres"),
        pool_timeout=5,
    )


@pytest.fixture(scope="session")
def storage_backend(db_config: DatabaseConfig) -> Generator[PostgresStorageBackend, None, None]:
    """PostgreSQL storage backend for integration tests.

    Skips the requesting test when the test database is unreachable.
    """
    try:
        backend = PostgresStorageBackend(db_config)
    except Exception as e:
        pytest.skip(f"PostgreSQL not available: {e}")
    yield backend
    backend.close()
    dispose_engines()


@pytest.fixture
def clean_tables(storage_backend: PostgresStorageBackend) -> Generator[None, None, None]:
    """Migrate, then truncate every pipeline table before and after the test."""
    MigrationRunner(storage_backend).migrate()

    def truncate():
        with storage_backend.transaction() as conn:
            conn.execute(f"TRUNCATE TABLE {', '.join(PIPELINE_TABLES)}")

    truncate()
    yield
    truncate()


@pytest.fixture
def mock_cursor() -> MagicMock:
    """Cursor double whose COPY context records written blocks."""
    cursor = MagicMock()
    cursor.rowcount = 0
    return cursor


@pytest.fixture
def mock_conn(mock_cursor: MagicMock) -> MagicMock:
    """Connection double handing out ``mock_cursor``."""
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = mock_cursor
    conn.cursor.return_value.__exit__.return_value = False
    conn.transaction.return_value.__exit__.return_value = False
    return conn


@pytest.fixture
def mock_backend(mock_conn: MagicMock) -> MagicMock:
    """Storage backend double whose pool and transactions yield ``mock_conn``."""
    backend = MagicMock()
    backend.config = DatabaseConfig()
    backend.pool.connection.return_value.__enter__.return_value = mock_conn
    backend.pool.connection.return_value.__exit__.return_value = False
    backend.transaction.return_value.__enter__.return_value = mock_conn
    backend.transaction.return_value.__exit__.return_value = False
    backend.session_lock.return_value.__enter__.return_value = mock_conn
    backend.session_lock.return_value.__exit__.return_value = False
    return backend


# ============================================================================
# Sample Data Fixtures
# ============================================================================

def game_log_row(
    date: str = "20240401",
    game_number: str = "0",
    home_team: str = "NYA",
    visiting_team: str = "BOS",
    home_score: str = "5",
    visiting_score: str = "3",
) -> list[str]:
    """Build a 161-field game log row with the identity and score filled in."""
    values = {name: "" for name in GAME_LOG_COLUMNS}
    values.update(
        date=date,
        game_number=game_number,
        home_team=home_team,
        visiting_team=visiting_team,
        home_score=home_score,
        visiting_score=visiting_score,
        day_of_week="Mon",
        visiting_team_league="AL",
        home_team_league="AL",
        park_id="NYC21",
        attendance="45000",
    )
    return [values[name] for name in GAME_LOG_COLUMNS]


def game_log_line(**kwargs) -> str:
    """Render ``game_log_row`` the way Retrosheet ships it (quoted, CRLF)."""
    return ",".join(f'"{v}"' if not v.isdigit() else v for v in game_log_row(**kwargs)) + "\r\n"


@pytest.fixture
def make_zip(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a ZIP archive with the given ``{name: text}`` members."""

    def _make_zip(name: str, members: dict[str, str]) -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as archive:
            for member, content in members.items():
                archive.writestr(member, content)
        return path

    return _make_zip


@pytest.fixture
def plays_csv() -> str:
    """Small play-by-play extract with placeholder tokens."""
    return (
        "gid,pn,inning,top_bot,outs_pre,br1_pre,br2_pre,br3_pre,score_v,score_h,date\n"
        "NYA202404010,1,1,0,0,,,,0,0,20240401\n"
        "NYA202404010,2,1,0,1,?,,,0,0,20240401\n"
    )


@pytest.fixture
def ejections_csv() -> str:
    """Ejections with one 11-field and one 12-field row."""
    return (
        "GAMEID,DATE,DH,EJECTEE,EJECTEENAME,TEAM,JOB,UMPIRE,UMPIRENAME,INNING,REASON\n"
        "NYA202404010,04/01/2024,0,smitj001,John Smith,NYA,P,umpa901,Al Ump,7,Arguing\n"
        "BOS202404020,04/02/2024,0,jonej001,Jim Jones,X,BOS,M,umpb901,Bo Ump,9,Balls and strikes\n"
    )


# ============================================================================
# Helper Functions
# ============================================================================

def write_text(path: Path, content: str) -> Path:
    """Write text with LF newlines preserved."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as fh:
        fh.write(content)
    return path


@pytest.fixture
def write_file(tmp_path: Path) -> Generator[Callable[[str, str], Path], None, None]:
    """Factory writing a text file under ``tmp_path``."""
    yield lambda name, content: write_text(tmp_path / name, content)


def count_rows(storage_backend: PostgresStorageBackend, table: str) -> int:
    """Count rows in a table."""
    return storage_backend.get_table_row_count(table)


# Make helper functions available to tests
pytest.count_rows = count_rows
pytest.game_log_row = game_log_row
pytest.game_log_line = game_log_line
