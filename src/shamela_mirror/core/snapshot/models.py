"""
Dataset models for persisted snapshots.

A dataset is a set of named tables; each table maps record id to record.
On disk each table is written as a list of records, so a snapshot file
reads naturally and round-trips losslessly:

    {
      "kind": "master",
      "tables": {
        "category": [{"id": 1, "name": "..."}],
        "author": [],
        "book": []
      }
    }
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, Field, field_serializer, field_validator

from shamela_mirror.core.records import Record, Table, contains_unchanged, is_deleted


D = TypeVar("D", bound="Dataset")


class DatasetKind(str, Enum):
    """Kind of dataset stored in a snapshot."""

    MASTER = "master"
    BOOK = "book"


class Dataset(BaseModel):
    """
    A named collection of tables.

    Subclasses fix the set of table names that belong to the dataset;
    missing tables are filled in as empty.
    """

    TABLES: ClassVar[tuple[str, ...]] = ()

    kind: DatasetKind
    tables: dict[str, dict[int, dict[str, Any]]] = Field(default_factory=dict)

    @field_validator("tables", mode="before")
    @classmethod
    def _tables_from_lists(cls, value: Any) -> Any:
        """Accept tables persisted as record lists."""
        if not isinstance(value, dict):
            return value
        tables: dict[str, Any] = {}
        for name, table in value.items():
            if isinstance(table, list):
                for record in table:
                    if not isinstance(record, dict) or "id" not in record:
                        raise ValueError(f"table '{name}' holds a record without an id")
                tables[name] = {record["id"]: record for record in table}
            else:
                tables[name] = table
        for name in cls.TABLES:
            tables.setdefault(name, {})
        return tables

    @field_serializer("tables")
    def _tables_to_lists(
        self, tables: dict[str, dict[int, dict[str, Any]]]
    ) -> dict[str, list[dict[str, Any]]]:
        return {name: list(table.values()) for name, table in tables.items()}

    @classmethod
    def empty(cls: type[D]) -> D:
        """Create a dataset with every table present and empty."""
        return cls(tables={name: {} for name in cls.TABLES})

    def table(self, name: str) -> Table:
        """Get a table by name (empty if absent)."""
        return self.tables.get(name, {})

    def live(self, name: str) -> list[Record]:
        """Records of a table that are not flagged deleted, in stored order."""
        return [record for record in self.table(name).values() if not is_deleted(record)]

    def counts(self) -> dict[str, int]:
        """Number of records per table."""
        return {name: len(table) for name, table in self.tables.items()}

    def has_unchanged(self) -> bool:
        """True if any record still holds the UNCHANGED marker."""
        return any(
            contains_unchanged(record)
            for table in self.tables.values()
            for record in table.values()
        )


class MasterDataset(Dataset):
    """Catalog of categories, authors and books."""

    TABLES: ClassVar[tuple[str, ...]] = ("category", "author", "book")

    kind: DatasetKind = DatasetKind.MASTER


class BookDataset(Dataset):
    """Pages and outline titles of one book."""

    TABLES: ClassVar[tuple[str, ...]] = ("page", "title")

    kind: DatasetKind = DatasetKind.BOOK


__all__ = ["DatasetKind", "Dataset", "MasterDataset", "BookDataset"]
