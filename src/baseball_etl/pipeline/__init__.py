"""Pipeline facade for historical baseball data loads.

Usage:
    from baseball_etl.pipeline import ETLPipeline
    from baseball_etl.storage import PostgresStorageBackend

    with PostgresStorageBackend() as backend:
        pipeline = ETLPipeline(backend)
        pipeline.migrate()
        pipeline.load_plays("data/retrosheet/plays/2024plays.zip")
"""

from .orchestrator import ConstantsKind, ETLPipeline, NegroLeaguesResult

__all__ = ["ConstantsKind", "ETLPipeline", "NegroLeaguesResult"]
