"""Schema catalog: the set of tables a RefWriter instance knows about.

The catalog answers the relationship questions the writer needs:
which tables reference a table's key field, and which tables hold a table's
dependent child rows.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from refwriter.exceptions import TableNotFoundError
from refwriter.schema.models import TableSchema


class SchemaCatalog:
    """Ordered, read-only collection of ``TableSchema`` objects."""

    def __init__(self, tables: Iterable[TableSchema]) -> None:
        """Initialize the catalog.

        Args:
            tables: Table definitions, in dependency order

        Raises:
            ValueError: If table names repeat or a parent table is unknown
        """
        self._tables: dict[str, TableSchema] = {}
        for table in tables:
            if table.name in self._tables:
                raise ValueError(f"Duplicate table '{table.name}' in catalog")
            self._tables[table.name] = table

        for table in self._tables.values():
            if table.parent_table is None:
                continue
            if table.parent_table not in self._tables:
                raise ValueError(
                    f"Table '{table.name}' names unknown parent table '{table.parent_table}'"
                )
            link_field = self.parent_link_field(table)
            if not table.has_field(link_field):
                raise ValueError(
                    f"Child table '{table.name}' has no '{link_field}' field "
                    f"to link it to '{table.parent_table}'"
                )
            if not self._tables[table.parent_table].has_field(link_field):
                raise ValueError(
                    f"Parent table '{table.parent_table}' has no '{link_field}' field "
                    f"to link child table '{table.name}' to"
                )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaCatalog:
        """Build a catalog from ``{"tables": [...]}``."""
        return cls(TableSchema.model_validate(t) for t in data.get("tables", []))

    @classmethod
    def from_json_file(cls, path: str | Path) -> SchemaCatalog:
        """Load a catalog from a JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Catalog file not found: {path}")
        with file_path.open("r") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> dict[str, Any]:
        return {"tables": [t.model_dump(mode="json") for t in self._tables.values()]}

    def __iter__(self) -> Iterator[TableSchema]:
        return iter(self._tables.values())

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def tables(self) -> list[TableSchema]:
        return list(self._tables.values())

    def table_names(self) -> list[str]:
        return list(self._tables)

    def has_table(self, name: str) -> bool:
        return name in self._tables

    def table(self, name: str) -> TableSchema:
        """Get a table definition by name.

        Raises:
            TableNotFoundError: If the catalog has no such table
        """
        if name not in self._tables:
            raise TableNotFoundError(name, self.table_names())
        return self._tables[name]

    def parent_table(self, table: TableSchema) -> TableSchema | None:
        if table.parent_table is None:
            return None
        return self.table(table.parent_table)

    def parent_link_field(self, child: TableSchema) -> str:
        """Column on ``child`` that carries the parent's link value."""
        if child.parent_link_field is not None:
            return child.parent_link_field
        if child.parent_table is None:
            raise ValueError(f"Table '{child.name}' has no parent table")
        return self.table(child.parent_table).key_field

    def referencing_tables(self, table: TableSchema) -> list[TableSchema]:
        """Tables holding a foreign reference to ``table``'s key field.

        A table references another when it has a field named like the other
        table's key field and that field is flagged as a foreign reference.
        The table itself is never included. Child tables carry their parent's
        key rather than owning one, so nothing references them.
        """
        if not table.unique_key:
            return []
        key_field = table.key_field
        referencing = []
        for other in self._tables.values():
            if other.name == table.name or not other.has_field(key_field):
                continue
            if not other.field_for(key_field).is_foreign_reference():
                continue
            referencing.append(other)
        return referencing

    def child_tables(self, table: TableSchema) -> list[TableSchema]:
        """Tables whose rows are owned by ``table`` and replaced as a set."""
        return [t for t in self._tables.values() if t.parent_table == table.name]
