"""Table descriptor models shared by transformers and loaders."""

from typing import Optional

from pydantic import BaseModel, Field


class FieldMetadata(BaseModel):
    """Metadata about a column in a destination table."""

    name: str
    type: Optional[str] = None  # SQL type hint
    nullable: bool = True
    is_primary_key: bool = False
    description: Optional[str] = None


class TableSchema(BaseModel):
    """Ordered column list and identity of a destination table.

    A schema with no fields declares only its identity; loaders then take the
    column list from the CSV header as-is (used for the wide plays table,
    whose header ships with the source data).
    """

    name: str = Field(..., description="Destination table name (e.g., 'games')")
    fields: list[FieldMetadata] = Field(default_factory=list)
    conflict_keys: list[str] = Field(default_factory=list)
    description: Optional[str] = None

    def column_names(self) -> list[str]:
        """Get column names in declaration order."""
        return [f.name for f in self.fields]

    def has_field(self, name: str) -> bool:
        """Check whether the schema declares a column."""
        return any(f.name == name for f in self.fields)

    def subset(self, names: list[str]) -> "TableSchema":
        """Project the schema onto a subset of its columns, keeping identity.

        Args:
            names: Column names in the order the subset should use

        Returns:
            New TableSchema with only the named fields

        Raises:
            KeyError: If a name is not declared by this schema
        """
        by_name = {f.name: f for f in self.fields}
        missing = [n for n in names if n not in by_name]
        if missing:
            raise KeyError(f"{self.name} has no columns {missing}")
        return TableSchema(
            name=self.name,
            fields=[by_name[n] for n in names],
            conflict_keys=list(self.conflict_keys),
            description=self.description,
        )
