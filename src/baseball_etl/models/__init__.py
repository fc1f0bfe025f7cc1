"""ORM models for bookkeeping and derived tables.

Usage:
    from baseball_etl.database import get_session
    from baseball_etl.models import DatasetRefresh
    from sqlmodel import select

    with get_session() as session:
        refreshes = session.exec(select(DatasetRefresh)).all()
"""

from .refresh import DatasetRefresh, WinExpectancyEntry

__all__ = ["DatasetRefresh", "WinExpectancyEntry"]
