"""Schema migrations bundled with the package and the runner that applies them."""

from .runner import (
    DirectoryMigrationSource,
    Migration,
    MigrationRunner,
    MigrationSource,
    PackageMigrationSource,
)

__all__ = [
    "DirectoryMigrationSource",
    "Migration",
    "MigrationRunner",
    "MigrationSource",
    "PackageMigrationSource",
]
