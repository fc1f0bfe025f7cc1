"""SQLModel sessions for the bookkeeping tables.

Bulk loads go through the psycopg pool in ``storage.postgres``; the refresh
ledger and win expectancy lookups use these ORM sessions instead. Engines
are cached per connection URL.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from baseball_etl.database.config import DatabaseConfig

_engines: dict[str, Engine] = {}


def get_engine(config: DatabaseConfig) -> Engine:
    """Get the cached engine for a configuration, creating it on first use."""
    url = config.get_connection_url()
    engine = _engines.get(url)
    if engine is None:
        engine = create_engine(
            url,
            echo=config.echo,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
        )
        _engines[url] = engine
    return engine


@contextmanager
def get_session(config: Optional[DatabaseConfig] = None) -> Generator[Session, None, None]:
    """Open a session that commits when the block succeeds.

    Args:
        config: Database configuration (reads the environment if None)

    Yields:
        SQLModel Session; rolled back and closed if the block raises
    """
    engine = get_engine(config or DatabaseConfig.from_env())
    with Session(engine) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


def dispose_engines() -> None:
    """Dispose every cached engine (shutdown and test teardown)."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
