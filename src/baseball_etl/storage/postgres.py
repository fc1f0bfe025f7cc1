"""PostgreSQL storage backend for the baseball ETL pipeline.

This module provides:
- Connection pooling with psycopg
- Transaction management with optional statement deadlines
- Advisory locks for single-writer sections
- Plain COPY of trusted CSV files (no staging, no conflict handling)
"""

import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional, TextIO, Union

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from ..database.config import DatabaseConfig

logger = logging.getLogger(__name__)

COPY_BLOCK_SIZE = 64 * 1024

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def validate_identifier(name: str) -> str:
    """Validate a table or column name before it is interpolated into SQL.

    Args:
        name: Identifier, optionally schema-qualified (schema.table)

    Returns:
        The identifier unchanged

    Raises:
        ValueError: If the name contains anything but letters, digits and underscores
    """
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def copy_stream(copy: "psycopg.Copy", source: TextIO, block_size: int = COPY_BLOCK_SIZE) -> None:
    """Stream a text file into an open COPY operation block by block."""
    while True:
        block = source.read(block_size)
        if not block:
            break
        copy.write(block)


class PostgresStorageBackend:
    """PostgreSQL storage backend with connection pooling.

    Features:
    - Connection pooling for efficient resource usage
    - Transactions that commit on success and roll back on any error
    - Transaction-scoped and session-scoped advisory locks
    - Direct COPY for trusted append-only inputs
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        """Initialize PostgreSQL storage backend.

        Args:
            config: Database configuration (reads the environment if None)
        """
        self.config = config or DatabaseConfig.from_env()
        self.pool: Optional[ConnectionPool] = None
        self._initialize_pool()

    def _initialize_pool(self) -> None:
        """Initialize connection pool and verify the database is reachable."""
        try:
            self.pool = ConnectionPool(
                conninfo=self.config.get_conninfo(),
                min_size=1,
                max_size=self.config.pool_size,
                timeout=self.config.pool_timeout,
                kwargs={"row_factory": dict_row},
                open=True,
            )
            self.pool.wait(timeout=self.config.pool_timeout)
            logger.info(
                f"Initialized PostgreSQL connection pool: "
                f"{self.config.host}:{self.config.port}/{self.config.database}"
            )
        except Exception as e:
            logger.error(f"Failed to initialize connection pool: {e}")
            raise

    def close(self) -> None:
        """Close connection pool."""
        if self.pool:
            self.pool.close()
            logger.info("Closed PostgreSQL connection pool")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    @contextmanager
    def transaction(
        self, timeout: Optional[float] = None
    ) -> Generator[psycopg.Connection, None, None]:
        """Run a block inside one transaction on one pooled connection.

        The transaction commits when the block exits normally and rolls back
        on any exception, which is then re-raised.

        Args:
            timeout: Statement deadline in seconds for every statement in the block

        Yields:
            psycopg connection with an open transaction
        """
        with self.pool.connection() as conn:
            try:
                if timeout is not None:
                    set_statement_timeout(conn, timeout)
                yield conn
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Transaction rolled back: {e}")
                raise

    def query(
        self,
        sql: str,
        params: Optional[dict[str, Any]] = None,
        fetch_one: bool = False,
    ) -> list[dict] | dict | None:
        """Execute SELECT query.

        Args:
            sql: SQL SELECT statement
            params: Query parameters
            fetch_one: If True, return single row

        Returns:
            List of dicts (rows) or single dict if fetch_one=True
        """
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params or {})

                if fetch_one:
                    return cur.fetchone()
                else:
                    return cur.fetchall()

    def copy_csv(
        self,
        table_name: str,
        csv_path: Union[str, Path],
        columns: Optional[list[str]] = None,
    ) -> int:
        """COPY a headered CSV file straight into a table.

        This is the narrow fast path for trusted, append-only inputs. It does
        not stage, merge, lock or resolve conflicts: a duplicate key fails the
        COPY, and nothing coordinates it with other writers. Use
        ``StageAndMergeLoader`` for anything that may be reloaded.

        Args:
            table_name: Destination table
            csv_path: CSV file with a header row matching the columns
            columns: Explicit column list (defaults to table column order)

        Returns:
            Number of rows copied
        """
        validate_identifier(table_name)
        column_clause = ""
        if columns:
            column_clause = " (" + ", ".join(validate_identifier(c) for c in columns) + ")"

        copy_sql = (
            f"COPY {table_name}{column_clause} FROM STDIN "
            f"WITH (FORMAT CSV, HEADER true, NULL '')"
        )

        with self.pool.connection() as conn:
            try:
                with conn.cursor() as cur, open(csv_path, newline="", encoding="utf-8") as fh:
                    with cur.copy(copy_sql) as copy:
                        copy_stream(copy, fh)
                    rows = cur.rowcount
                conn.commit()
                logger.info(f"Copied {rows} rows from {csv_path} into {table_name}")
                return rows
            except Exception as e:
                conn.rollback()
                logger.error(f"Failed to copy {csv_path} into {table_name}: {e}")
                raise

    @contextmanager
    def session_lock(self, key: str) -> Generator[psycopg.Connection, None, None]:
        """Hold a session-level advisory lock on a dedicated connection.

        Args:
            key: Lock name, hashed server-side with hashtext()

        Yields:
            The connection holding the lock (autocommit)
        """
        with self.pool.connection() as conn:
            conn.autocommit = True
            try:
                conn.execute("SELECT pg_advisory_lock(hashtext(%s))", (key,))
                logger.debug(f"Acquired advisory lock {key}")
                try:
                    yield conn
                finally:
                    conn.execute("SELECT pg_advisory_unlock(hashtext(%s))", (key,))
                    logger.debug(f"Released advisory lock {key}")
            finally:
                conn.autocommit = False

    def table_exists(self, table_name: str) -> bool:
        """Check if table exists.

        Args:
            table_name: Table name, optionally schema-qualified

        Returns:
            True if table exists
        """
        result = self.query(
            "SELECT to_regclass(%(name)s) IS NOT NULL AS exists",
            {"name": validate_identifier(table_name)},
            fetch_one=True,
        )
        return result["exists"] if result else False

    def get_table_row_count(self, table_name: str) -> int:
        """Get total row count for table.

        Args:
            table_name: Table name

        Returns:
            Row count
        """
        sql = f"SELECT COUNT(*) AS count FROM {validate_identifier(table_name)}"
        result = self.query(sql, fetch_one=True)
        return result["count"] if result else 0


def set_statement_timeout(conn: psycopg.Connection, timeout: float) -> None:
    """Apply a transaction-local statement deadline.

    Args:
        conn: Connection with an open transaction
        timeout: Deadline in seconds
    """
    conn.execute(
        "SELECT set_config('statement_timeout', %s, true)",
        (f"{int(timeout * 1000)}ms",),
    )


def acquire_transaction_lock(conn: psycopg.Connection, key: str) -> None:
    """Take an advisory lock released automatically at commit or rollback."""
    conn.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (key,))

