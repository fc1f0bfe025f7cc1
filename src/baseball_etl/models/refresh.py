"""ORM models for pipeline bookkeeping and derived tables.

These tables are created by the bundled migrations; the models only map
them for reads and upserts through SQLModel sessions.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, Numeric, String, Text
from sqlmodel import Field, SQLModel


class DatasetRefresh(SQLModel, table=True):
    """Last successful load of a named dataset.

    One row per dataset (e.g. ``retrosheet_games_2024``), upserted after every
    load and never deleted. Orchestrators consult it to skip reloads.
    """

    __tablename__ = "dataset_refreshes"

    dataset: str = Field(sa_type=Text, primary_key=True, nullable=False)
    last_loaded_at: datetime = Field(sa_type=DateTime(timezone=True), nullable=False)
    row_count: int = Field(sa_type=BigInteger, nullable=False, default=0)
    notes: Optional[str] = Field(sa_type=Text, default=None)


class WinExpectancyEntry(SQLModel, table=True):
    """Empirical home win probability for one game state and era."""

    __tablename__ = "win_expectancy_historical"

    id: Optional[int] = Field(sa_type=Integer, primary_key=True, default=None)
    inning: int = Field(sa_type=Integer, nullable=False)
    is_bottom: bool = Field(sa_type=Boolean, nullable=False)
    outs: int = Field(sa_type=Integer, nullable=False)
    runners_state: str = Field(sa_type=String(8), nullable=False)
    score_diff: int = Field(sa_type=Integer, nullable=False)
    win_probability: Decimal = Field(sa_type=Numeric(5, 4), nullable=False)
    sample_size: int = Field(sa_type=Integer, nullable=False)
    start_year: Optional[int] = Field(sa_type=Integer, default=None)
    end_year: Optional[int] = Field(sa_type=Integer, default=None)
    created_at: Optional[datetime] = Field(sa_type=DateTime, default=None)
    updated_at: Optional[datetime] = Field(sa_type=DateTime, default=None)
