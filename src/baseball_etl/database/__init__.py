"""Database configuration and session management.

This module provides:
- Database configuration from environment variables
- Context manager for SQLModel sessions
- Engine caching with connection pooling

Usage:
    from baseball_etl.database import get_session, DatabaseConfig

    config = DatabaseConfig.from_env()
    with get_session(config) as session:
        ...
"""

from baseball_etl.database.config import DatabaseConfig
from baseball_etl.database.session import dispose_engines, get_engine, get_session

__all__ = [
    "DatabaseConfig",
    "dispose_engines",
    "get_engine",
    "get_session",
]
