"""Dataset refresh ledger.

The ledger only records what was loaded and when; duplicate avoidance comes
from the loaders' conflict policies and from callers that consult
``list_refreshes()`` before reloading.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.sql.dml import Insert
from sqlmodel import select

from ..database.config import DatabaseConfig
from ..database.session import get_session
from ..models.refresh import DatasetRefresh

logger = logging.getLogger(__name__)


def build_refresh_upsert(dataset: str, row_count: int, notes: Optional[str] = None) -> Insert:
    """Build the upsert for one ledger row.

    Notes are only overwritten when a new value is supplied.

    Args:
        dataset: Dataset name
        row_count: Rows affected by the load
        notes: Optional free-form note

    Returns:
        SQLAlchemy INSERT ... ON CONFLICT statement
    """
    table = DatasetRefresh.__table__
    stmt = insert(table).values(
        dataset=dataset,
        last_loaded_at=func.now(),
        row_count=row_count,
        notes=notes,
    )
    return stmt.on_conflict_do_update(
        index_elements=[table.c.dataset],
        set_={
            "last_loaded_at": stmt.excluded.last_loaded_at,
            "row_count": stmt.excluded.row_count,
            "notes": func.coalesce(stmt.excluded.notes, table.c.notes),
        },
    )


class DatasetRefreshTracker:
    """Read and write the ``dataset_refreshes`` ledger."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig.from_env()

    def record_refresh(self, dataset: str, row_count: int, notes: Optional[str] = None) -> None:
        """Upsert ``(dataset, now(), row_count)``.

        Args:
            dataset: Dataset name (e.g., 'retrosheet_games_2024')
            row_count: Rows affected by the load
            notes: Optional note kept alongside the entry
        """
        with get_session(self.config) as session:
            session.execute(build_refresh_upsert(dataset, row_count, notes))
        logger.info(f"Recorded refresh of {dataset} ({row_count} rows)")

    def list_refreshes(self) -> dict[str, DatasetRefresh]:
        """Get a snapshot of every ledger entry keyed by dataset name."""
        with get_session(self.config) as session:
            rows = session.exec(select(DatasetRefresh)).all()
            refreshes = {row.dataset: row for row in rows}
            # keep loaded attributes usable after the session closes
            session.expunge_all()
        return refreshes

    def get_refresh(self, dataset: str) -> Optional[DatasetRefresh]:
        """Get the ledger entry for one dataset, if any."""
        with get_session(self.config) as session:
            refresh = session.get(DatasetRefresh, dataset)
            if refresh is not None:
                session.expunge(refresh)
        return refresh
