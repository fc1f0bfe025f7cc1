"""Unit tests for the schema migration runner."""

from unittest.mock import MagicMock

import pytest

from baseball_etl.errors import MigrationError
from baseball_etl.migrations.runner import (
    LEDGER_DDL,
    MIGRATION_LOCK_KEY,
    DirectoryMigrationSource,
    Migration,
    MigrationRunner,
    PackageMigrationSource,
)


class StaticSource:
    def __init__(self, *names: str):
        self.migrations = [Migration(name=n, content=f"-- {n}\nSELECT 1;") for n in names]

    def load(self) -> list[Migration]:
        return list(self.migrations)


def ledger(mock_conn: MagicMock, applied: list[str]) -> None:
    """Make the lock connection report ``applied`` as already recorded."""
    mock_conn.execute.return_value.fetchall.return_value = [{"name": n} for n in applied]


class TestMigrationSources:
    """Test migration discovery."""

    def test_package_source_lists_bundled_sql(self):
        names = sorted(m.name for m in PackageMigrationSource().load())

        assert names == [
            "0001_games.sql",
            "0002_plays.sql",
            "0003_ejections.sql",
            "0004_dataset_refreshes.sql",
            "0005_external_constants.sql",
            "0006_win_expectancy_historical.sql",
        ]

    def test_bundled_sql_is_idempotent(self):
        for migration in PackageMigrationSource().load():
            for line in migration.content.splitlines():
                if line.startswith("CREATE TABLE") or line.startswith("CREATE INDEX"):
                    assert "IF NOT EXISTS" in line, f"{migration.name}: {line}"

    def test_directory_source(self, tmp_path):
        (tmp_path / "0002_b.sql").write_text("SELECT 2;")
        (tmp_path / "0001_a.sql").write_text("SELECT 1;")
        (tmp_path / "notes.txt").write_text("ignored")

        migrations = DirectoryMigrationSource(tmp_path).load()

        assert sorted(m.name for m in migrations) == ["0001_a.sql", "0002_b.sql"]

    def test_directory_source_missing(self, tmp_path):
        with pytest.raises(MigrationError, match="not found"):
            DirectoryMigrationSource(tmp_path / "nope").load()


class TestLoadMigrations:
    """Test ordering and validation."""

    def test_sorted_by_name(self, mock_backend):
        runner = MigrationRunner(mock_backend, StaticSource("0010_c.sql", "0002_b.sql", "0001_a.sql"))

        assert [m.name for m in runner.load_migrations()] == [
            "0001_a.sql", "0002_b.sql", "0010_c.sql"
        ]

    def test_empty_source_is_an_error(self, mock_backend):
        with pytest.raises(MigrationError, match="No migrations found"):
            MigrationRunner(mock_backend, StaticSource()).load_migrations()

    def test_duplicate_names(self, mock_backend):
        with pytest.raises(MigrationError, match="Duplicate migration names: 0001_a.sql"):
            MigrationRunner(mock_backend, StaticSource("0001_a.sql", "0001_a.sql")).load_migrations()


class TestMigrate:
    """Test applying migrations against a mocked backend."""

    def test_applies_pending_in_order(self, mock_backend, mock_conn, mock_cursor):
        ledger(mock_conn, ["0001_a.sql"])
        runner = MigrationRunner(mock_backend, StaticSource("0003_c.sql", "0001_a.sql", "0002_b.sql"))

        applied = runner.migrate()

        assert applied == ["0002_b.sql", "0003_c.sql"]
        mock_backend.session_lock.assert_called_once_with(MIGRATION_LOCK_KEY)
        assert mock_conn.execute.call_args_list[0].args == (LEDGER_DDL,)
        assert mock_conn.transaction.call_count == 2

        statements = mock_cursor.execute.call_args_list
        assert statements[0].args == ("-- 0002_b.sql\nSELECT 1;",)
        assert statements[1].args[1] == ("0002_b.sql",)
        assert statements[2].args == ("-- 0003_c.sql\nSELECT 1;",)

    def test_up_to_date(self, mock_backend, mock_conn, caplog):
        ledger(mock_conn, ["0001_a.sql"])
        runner = MigrationRunner(mock_backend, StaticSource("0001_a.sql"))

        with caplog.at_level("INFO"):
            assert runner.migrate() == []

        mock_conn.transaction.assert_not_called()
        assert "Database schema is up to date" in caplog.messages

    def test_failure_names_migration(self, mock_backend, mock_conn, mock_cursor):
        ledger(mock_conn, [])
        mock_cursor.execute.side_effect = [None, None, Exception("relation exists")]
        runner = MigrationRunner(mock_backend, StaticSource("0001_a.sql", "0002_b.sql"))

        with pytest.raises(MigrationError) as exc_info:
            runner.migrate()

        assert exc_info.value.migration == "0002_b.sql"
        assert "0002_b.sql" in str(exc_info.value)
        assert "relation exists" in str(exc_info.value)
        assert mock_conn.transaction.call_count == 2

    def test_applied_migrations_without_ledger(self, mock_backend):
        mock_backend.table_exists.return_value = False

        assert MigrationRunner(mock_backend, StaticSource("0001_a.sql")).applied_migrations() == []

    def test_uses_only_the_lock_connection(self, mock_backend, mock_conn):
        ledger(mock_conn, [])
        runner = MigrationRunner(mock_backend, StaticSource("0001_a.sql", "0002_b.sql"))

        assert runner.migrate() == ["0001_a.sql", "0002_b.sql"]
        mock_backend.transaction.assert_not_called()
        mock_backend.pool.connection.assert_not_called()
