"""SQL statement construction for schema-driven writes.

The column set of a write depends on which fields the payload carries, so
statements are built per write. Placeholders and bindings are both derived
from the single sorted ``columns`` tuple held by ``BuiltStatement``; the SQL
text and the parameter dict cannot disagree about which value goes where.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import TextClause, text

from refwriter.core.types import SqlMethod

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """Double-quote a table or column name.

    Raises:
        ValueError: If the name is not a plain SQL identifier
    """
    if not _IDENTIFIER.match(name):
        raise ValueError(f"'{name}' is not a valid SQL identifier")
    return f'"{name}"'


def qualified_name(table_name: str, namespace: str | None = None) -> str:
    """Quoted table name, prefixed with its namespace when one is set."""
    if namespace:
        return f"{quote_identifier(namespace)}.{quote_identifier(table_name)}"
    return quote_identifier(table_name)


@dataclass(frozen=True)
class BuiltStatement:
    """A statement and the column order its placeholders are bound in."""

    method: SqlMethod
    sql: str
    columns: tuple[str, ...] = ()
    row_id: int | None = None

    @property
    def clause(self) -> TextClause:
        return text(self.sql)

    def bind(self, values: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Build the parameter dict for ``values``.

        Raises:
            ValueError: If ``values`` does not carry exactly this statement's columns
        """
        values = values or {}
        if set(values) != set(self.columns):
            raise ValueError(
                f"Values {sorted(values)} do not match statement columns {list(self.columns)}"
            )
        params = {f"p{i}": values[column] for i, column in enumerate(self.columns)}
        if self.row_id is not None:
            params["id"] = self.row_id
        return params


def build_statement(
    method: SqlMethod,
    table_name: str,
    values: Mapping[str, Any] | None = None,
    row_id: int | None = None,
    namespace: str | None = None,
    returning: bool = True,
) -> BuiltStatement:
    """Build the INSERT/UPDATE/DELETE for one row.

    Args:
        method: Statement kind
        table_name: Target table
        values: Column/value map (create and update)
        row_id: Surrogate id of the row (update and delete)
        namespace: Optional schema qualifying the table
        returning: Have create statements return the generated id (off for
            executemany batches)

    Returns:
        BuiltStatement whose columns are sorted by name

    Raises:
        ValueError: If the arguments don't fit the method
    """
    table = qualified_name(table_name, namespace)
    columns = tuple(sorted(values or {}))

    if method == SqlMethod.CREATE:
        if not columns:
            raise ValueError("Insert requires at least one column")
        column_list = ", ".join(quote_identifier(c) for c in columns)
        placeholders = ", ".join(f":p{i}" for i in range(len(columns)))
        sql = f"INSERT INTO {table} ({column_list}) VALUES ({placeholders})"
        if returning:
            sql += " RETURNING id"
        return BuiltStatement(method, sql, columns)

    if row_id is None:
        raise ValueError(f"{method} requires a row id")

    if method == SqlMethod.UPDATE:
        if not columns:
            raise ValueError("Update requires at least one column")
        assignments = ", ".join(f"{quote_identifier(c)} = :p{i}" for i, c in enumerate(columns))
        sql = f"UPDATE {table} SET {assignments} WHERE id = :id"
        return BuiltStatement(method, sql, columns, row_id)

    if method == SqlMethod.DELETE:
        return BuiltStatement(method, f"DELETE FROM {table} WHERE id = :id", (), row_id)

    raise ValueError(f"Unsupported statement method: {method}")


# === Key-field lookups used by the integrity engine ===


def select_ids_for_value(
    table_name: str, field_name: str, namespace: str | None = None
) -> TextClause:
    """Ids of rows whose ``field_name`` equals ``:value``."""
    table = qualified_name(table_name, namespace)
    return text(f"SELECT id FROM {table} WHERE {quote_identifier(field_name)} = :value")


def select_value_for_id(
    table_name: str, field_name: str, namespace: str | None = None
) -> TextClause:
    """``field_name`` of the row with id ``:id``."""
    table = qualified_name(table_name, namespace)
    return text(f"SELECT {quote_identifier(field_name)} FROM {table} WHERE id = :id")


def count_references(
    table_name: str, field_name: str, namespace: str | None = None
) -> TextClause:
    """Number of rows whose ``field_name`` equals ``:value``."""
    table = qualified_name(table_name, namespace)
    return text(f"SELECT COUNT(*) FROM {table} WHERE {quote_identifier(field_name)} = :value")


def update_references(
    table_name: str, field_name: str, namespace: str | None = None
) -> TextClause:
    """Rewrite ``field_name`` from ``:value`` to ``:new_value``."""
    table = qualified_name(table_name, namespace)
    column = quote_identifier(field_name)
    return text(f"UPDATE {table} SET {column} = :new_value WHERE {column} = :value")


def delete_references(
    table_name: str, field_name: str, namespace: str | None = None
) -> TextClause:
    """Delete rows whose ``field_name`` equals ``:value``."""
    table = qualified_name(table_name, namespace)
    return text(f"DELETE FROM {table} WHERE {quote_identifier(field_name)} = :value")
