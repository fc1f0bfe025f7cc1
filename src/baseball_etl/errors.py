"""Exception hierarchy for the baseball ETL pipeline.

Every error raised by extraction, transformation and loading derives from
``ETLError`` so the CLI can report failures uniformly. Messages carry the
file, line, table or migration that failed; the underlying driver exception is
chained with ``raise ... from``.
"""

from pathlib import Path
from typing import Optional, Union


class ETLError(Exception):
    """Base class for all pipeline errors."""


class ArchiveError(ETLError):
    """Archive could not be opened or read."""


class NoMatchingMemberError(ArchiveError):
    """Archive contains no member with an expected suffix."""

    def __init__(self, archive_path: Union[str, Path], suffixes: tuple[str, ...]):
        self.archive_path = Path(archive_path)
        self.suffixes = suffixes
        super().__init__(
            f"No member matching {', '.join(suffixes)} found in archive {self.archive_path}"
        )


class TransformError(ETLError):
    """Raw input could not be converted into canonical CSV."""


class MalformedRowError(TransformError):
    """A source row has an unexpected shape."""

    def __init__(self, source: str, line: int, reason: str):
        self.source = source
        self.line = line
        self.reason = reason
        super().__init__(f"{source}:{line}: {reason}")


class MappingError(TransformError):
    """A reference lookup has no entry for a source value."""

    def __init__(self, source: str, line: int, key: str, season: Optional[str] = None):
        self.source = source
        self.line = line
        self.key = key
        self.season = season
        detail = f"team {key!r}" if season is None else f"team {key!r} in season {season}"
        super().__init__(f"{source}:{line}: no mapping entry for {detail}")


class LoadError(ETLError):
    """Staging or merging into a destination table failed."""


class MigrationError(ETLError):
    """A schema migration could not be discovered or applied."""

    def __init__(self, message: str, migration: Optional[str] = None):
        self.migration = migration
        super().__init__(message)


class BuildError(ETLError):
    """A derived table could not be rebuilt."""
