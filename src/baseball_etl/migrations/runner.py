"""Schema migration runner.

Migrations are plain SQL files applied once each, in ascending name order,
and recorded in the ``schema_migrations`` ledger. Sources are pluggable so
that tests and deployments can supply SQL from somewhere other than the
package.
"""

import logging
from importlib import resources
from pathlib import Path
from typing import Optional, Protocol, Union

import psycopg
from pydantic import BaseModel

from ..errors import MigrationError
from ..storage.postgres import PostgresStorageBackend

logger = logging.getLogger(__name__)

MIGRATIONS_PACKAGE = "baseball_etl.migrations.sql"
MIGRATION_LOCK_KEY = "baseball_etl:migrations"

LEDGER_DDL = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL UNIQUE,
        applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


class Migration(BaseModel):
    """A named SQL script."""

    name: str
    content: str


class MigrationSource(Protocol):
    """Anything that can list migrations."""

    def load(self) -> list[Migration]:
        """Return every available migration (order is not significant)."""
        ...


class PackageMigrationSource:
    """Migrations bundled as ``*.sql`` resources inside a Python package."""

    def __init__(self, package: str = MIGRATIONS_PACKAGE):
        self.package = package

    def load(self) -> list[Migration]:
        migrations = []
        for entry in resources.files(self.package).iterdir():
            if entry.is_file() and entry.name.endswith(".sql"):
                migrations.append(
                    Migration(name=entry.name, content=entry.read_text(encoding="utf-8"))
                )
        return migrations


class DirectoryMigrationSource:
    """Migrations read from ``*.sql`` files in a directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def load(self) -> list[Migration]:
        if not self.directory.is_dir():
            raise MigrationError(f"Migration directory not found: {self.directory}")
        return [
            Migration(name=path.name, content=path.read_text(encoding="utf-8"))
            for path in self.directory.glob("*.sql")
            if path.is_file()
        ]


class MigrationRunner:
    """Apply pending migrations under a session-level advisory lock.

    Each migration runs in its own transaction, together with its ledger row,
    on the connection that holds the lock. A failure leaves earlier migrations
    applied and the failing one absent.

    Example:
        >>> with PostgresStorageBackend(config) as backend:
        ...     applied = MigrationRunner(backend).migrate()
    """

    def __init__(
        self,
        backend: PostgresStorageBackend,
        source: Optional[MigrationSource] = None,
    ):
        self.backend = backend
        self.source = source or PackageMigrationSource()

    def load_migrations(self) -> list[Migration]:
        """Load migrations from the source, sorted by name.

        Raises:
            MigrationError: If the source has no migrations or duplicate names
        """
        migrations = sorted(self.source.load(), key=lambda m: m.name)
        if not migrations:
            raise MigrationError("No migrations found; the migration source is empty")

        names = [m.name for m in migrations]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise MigrationError(f"Duplicate migration names: {', '.join(duplicates)}")

        return migrations

    def migrate(self) -> list[str]:
        """Apply every migration not yet recorded in the ledger.

        Returns:
            Names of the migrations applied by this call (empty if up to date)

        Raises:
            MigrationError: If no migrations exist or one fails to apply
        """
        migrations = self.load_migrations()
        applied: list[str] = []

        with self.backend.session_lock(MIGRATION_LOCK_KEY) as lock_conn:
            lock_conn.execute(LEDGER_DDL)
            done = {
                row["name"]
                for row in lock_conn.execute("SELECT name FROM schema_migrations").fetchall()
            }

            pending = [m for m in migrations if m.name not in done]
            if not pending:
                logger.info("Database schema is up to date")
                return applied

            logger.info(f"Applying {len(pending)} pending migration(s)")
            for migration in pending:
                self._apply(lock_conn, migration)
                applied.append(migration.name)

        return applied

    def _apply(self, conn: psycopg.Connection, migration: Migration) -> None:
        """Run one migration and its ledger insert in a single transaction.

        Uses the connection holding the migration lock, so a pool of one
        connection is enough to migrate.
        """
        try:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute(migration.content)
                    cur.execute(
                        "INSERT INTO schema_migrations (name) VALUES (%s)",
                        (migration.name,),
                    )
        except Exception as e:
            logger.error(f"Migration {migration.name} failed: {e}")
            raise MigrationError(
                f"Migration {migration.name} failed: {e}", migration=migration.name
            ) from e

        logger.info(f"Applied migration {migration.name}")

    def applied_migrations(self) -> list[str]:
        """List ledger entries in application order."""
        if not self.backend.table_exists("schema_migrations"):
            return []
        rows = self.backend.query("SELECT name FROM schema_migrations ORDER BY id")
        return [row["name"] for row in rows]
