"""Stage-and-merge bulk loading into PostgreSQL.

The core pattern:
    BEGIN
    SELECT pg_advisory_xact_lock(...)          -- one writer per table
    CREATE TEMP TABLE stage (LIKE dest INCLUDING DEFAULTS) ON COMMIT DROP
    COPY stage (cols) FROM STDIN
    INSERT INTO dest (cols) SELECT cols FROM stage
    ON CONFLICT (keys) DO NOTHING | DO UPDATE SET tag = EXCLUDED.tag
    COMMIT

This ensures:
- Atomicity: readers see either none or all of a load
- Idempotency: reloading the same file never duplicates an identity
- Narrow updates: only the named tag columns change on existing rows
"""

import csv
import logging
import uuid
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

from ..errors import LoadError
from ..schema.models import TableSchema
from .postgres import (
    PostgresStorageBackend,
    acquire_transaction_lock,
    copy_stream,
    set_statement_timeout,
    validate_identifier,
)

logger = logging.getLogger(__name__)


class ConflictPolicy(str, Enum):
    """What to do when a staged row collides with an existing identity."""

    IGNORE = "ignore"  # immutable facts: keep the stored row
    UPDATE = "update"  # overwrite the named tag columns only


def build_merge_sql(
    target_table: str,
    stage_table: str,
    columns: Sequence[str],
    conflict_keys: Sequence[str],
    policy: ConflictPolicy,
    update_columns: Sequence[str] = (),
) -> str:
    """Build the INSERT ... SELECT ... ON CONFLICT merge statement.

    With ``ConflictPolicy.UPDATE`` the staged rows are de-duplicated on the
    conflict keys first, because one statement may not update the same
    destination row twice.

    Args:
        target_table: Destination table name
        stage_table: Temporary staging table name
        columns: Columns to copy, in order
        conflict_keys: Identity columns of the destination
        policy: Conflict policy
        update_columns: Columns to overwrite on conflict (UPDATE only)

    Returns:
        SQL merge statement
    """
    column_list = ", ".join(columns)
    conflict_columns = ", ".join(conflict_keys)

    if policy == ConflictPolicy.UPDATE:
        if not update_columns:
            raise ValueError("ConflictPolicy.UPDATE requires at least one update column")
        update_set = ", ".join(f"{col} = EXCLUDED.{col}" for col in update_columns)
        return (
            f"INSERT INTO {target_table} ({column_list}) "
            f"SELECT DISTINCT ON ({conflict_columns}) {column_list} "
            f"FROM {stage_table} "
            f"ON CONFLICT ({conflict_columns}) DO UPDATE SET {update_set}"
        )

    return (
        f"INSERT INTO {target_table} ({column_list}) "
        f"SELECT {column_list} FROM {stage_table} "
        f"ON CONFLICT ({conflict_columns}) DO NOTHING"
    )


def read_csv_header(csv_path: Union[str, Path]) -> list[str]:
    """Read the header row of a canonical CSV file."""
    with open(csv_path, newline="", encoding="utf-8") as fh:
        header = next(csv.reader(fh), None)
    if not header:
        raise LoadError(f"{csv_path} is empty; expected a header row")
    return [name.strip() for name in header]


class StageAndMergeLoader:
    """Load one canonical CSV into one table through a staging table.

    One instance per source: the destination schema, identity and conflict
    policy are fixed at construction, the file varies per call.

    Example:
        >>> loader = StageAndMergeLoader(
        ...     backend,
        ...     GAMES,
        ...     policy=ConflictPolicy.UPDATE,
        ...     update_columns=["game_type"],
        ... )
        >>> rows = loader.load(Path("/tmp/gl2024.csv"))
    """

    def __init__(
        self,
        backend: PostgresStorageBackend,
        schema: TableSchema,
        conflict_keys: Optional[Sequence[str]] = None,
        policy: ConflictPolicy = ConflictPolicy.IGNORE,
        update_columns: Sequence[str] = (),
    ):
        self.backend = backend
        self.schema = schema
        self.table = validate_identifier(schema.name)
        self.conflict_keys = [
            validate_identifier(k) for k in (conflict_keys or schema.conflict_keys)
        ]
        self.policy = policy
        self.update_columns = [validate_identifier(c) for c in update_columns]

        if not self.conflict_keys:
            raise ValueError(f"No conflict keys declared for {self.table}")
        if policy == ConflictPolicy.UPDATE and not self.update_columns:
            raise ValueError(f"ConflictPolicy.UPDATE on {self.table} needs update columns")
        if schema.fields:
            unknown = [c for c in self.update_columns if not schema.has_field(c)]
            if unknown:
                raise ValueError(f"{self.table} has no columns {unknown}")

    @property
    def lock_key(self) -> str:
        return f"baseball_etl:load:{self.table}"

    def resolve_columns(self, header: list[str]) -> list[str]:
        """Validate a CSV header against the destination schema.

        Args:
            header: Column names from the CSV header row

        Returns:
            Columns to copy, in header order

        Raises:
            LoadError: If the header names unknown columns or omits an identity column
        """
        try:
            columns = [validate_identifier(name) for name in header]
        except ValueError as e:
            raise LoadError(f"Bad header for {self.table}: {e}") from e

        if self.schema.fields:
            unknown = [c for c in columns if not self.schema.has_field(c)]
            if unknown:
                raise LoadError(f"Header columns not in {self.table}: {', '.join(unknown)}")

        missing = [k for k in self.conflict_keys if k not in columns]
        if missing:
            raise LoadError(f"Header for {self.table} lacks identity columns: {', '.join(missing)}")

        missing_updates = [c for c in self.update_columns if c not in columns]
        if missing_updates:
            raise LoadError(
                f"Header for {self.table} lacks update columns: {', '.join(missing_updates)}"
            )

        return columns

    def load(self, csv_path: Union[str, Path], timeout: Optional[float] = None) -> int:
        """Stage a canonical CSV file and merge it into the destination.

        Args:
            csv_path: Headered CSV produced by a record transformer
            timeout: Statement deadline in seconds (None = server default)

        Returns:
            Rows inserted or updated by the merge

        Raises:
            LoadError: If any step fails; the destination is left unchanged
        """
        columns = self.resolve_columns(read_csv_header(csv_path))
        stage_table = f"stage_{self.table.replace('.', '_')}_{uuid.uuid4().hex[:12]}"
        column_list = ", ".join(columns)

        copy_sql = (
            f"COPY {stage_table} ({column_list}) FROM STDIN "
            f"WITH (FORMAT CSV, HEADER true, NULL '')"
        )
        merge_sql = build_merge_sql(
            target_table=self.table,
            stage_table=stage_table,
            columns=columns,
            conflict_keys=self.conflict_keys,
            policy=self.policy,
            update_columns=self.update_columns,
        )

        logger.info(f"Loading {csv_path} into {self.table} ({self.policy.value} on conflict)")

        with self.backend.pool.connection() as conn:
            try:
                with conn.cursor() as cur, open(csv_path, newline="", encoding="utf-8") as fh:
                    acquire_transaction_lock(conn, self.lock_key)
                    if timeout is not None:
                        set_statement_timeout(conn, timeout)

                    cur.execute(
                        f"CREATE TEMP TABLE {stage_table} "
                        f"(LIKE {self.table} INCLUDING DEFAULTS) ON COMMIT DROP"
                    )

                    with cur.copy(copy_sql) as copy:
                        copy_stream(copy, fh)
                    staged = cur.rowcount

                    cur.execute(merge_sql)
                    affected = cur.rowcount

                conn.commit()

            except Exception as e:
                conn.rollback()
                logger.error(f"Load into {self.table} failed, rolled back: {e}")
                raise LoadError(f"Failed to load {csv_path} into {self.table}: {e}") from e

        logger.info(f"Merged {affected} of {staged} staged rows into {self.table}")
        return affected
