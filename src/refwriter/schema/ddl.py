"""Physical table management for RefWriter.

Creates one table per catalog entry: an auto-incrementing integer ``id``
primary key plus one column per field. No foreign key constraints are
declared; references are maintained by the writer. The key field of each
parentless table can optionally be backed by a unique index so concurrent
creates cannot both commit the same key.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    inspect,
    text,
)

from refwriter.core.types import FieldType
from refwriter.data.statements import quote_identifier, qualified_name

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from refwriter.schema.catalog import SchemaCatalog
    from refwriter.schema.models import TableSchema

logger = logging.getLogger(__name__)


# Mapping from RefWriter field types to SQLAlchemy column types
FIELD_TYPE_MAP = {
    FieldType.STRING: lambda: Text(),
    FieldType.INT: lambda: Integer(),
    FieldType.FLOAT: lambda: Float(),
    FieldType.BOOL: lambda: Boolean(),
    FieldType.DATE: lambda: String(8),
    FieldType.TIME: lambda: Integer(),
    FieldType.COLOR: lambda: String(6),
    FieldType.URL: lambda: Text(),
}


class TableManager:
    """Creates and drops the tables described by a catalog."""

    def __init__(self, engine: Engine, namespace: str | None = None) -> None:
        """Initialize the manager.

        Args:
            engine: SQLAlchemy engine
            namespace: Optional schema qualifying every table (PostgreSQL)
        """
        self._engine = engine
        self._namespace = namespace
        self._is_postgresql = engine.dialect.name == "postgresql"

    def key_index_name(self, table: TableSchema) -> str:
        return f"ux_{table.name}_{table.key_field}"

    def build_table(
        self, table: TableSchema, metadata: MetaData, unique_keys: bool = True
    ) -> Table:
        """Build the SQLAlchemy ``Table`` for a schema description."""
        columns: list[Column[Any]] = [Column("id", Integer, primary_key=True, autoincrement=True)]
        for field in table.fields:
            col_type = FIELD_TYPE_MAP.get(field.type, lambda: Text())()
            columns.append(Column(field.name, col_type, nullable=True))

        indexes: list[Index] = []
        if unique_keys and table.unique_key:
            indexes.append(Index(self.key_index_name(table), table.key_field, unique=True))
        else:
            # Key lookups drive every cascade, index them even when not unique
            indexes.append(Index(f"ix_{table.name}_{table.key_field}", table.key_field))

        return Table(table.name, metadata, *columns, *indexes, schema=self._namespace)

    def create_tables(self, catalog: SchemaCatalog, unique_keys: bool = True) -> list[str]:
        """Create every catalog table that doesn't exist yet.

        Args:
            catalog: Tables to create
            unique_keys: Back parentless key fields with a unique index

        Returns:
            Names of the tables in the catalog
        """
        metadata = MetaData()
        for table in catalog:
            self.build_table(table, metadata, unique_keys=unique_keys)

        with self._engine.begin() as conn:
            if self._namespace and self._is_postgresql:
                conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {quote_identifier(self._namespace)}"))
            metadata.create_all(conn, checkfirst=True)

        logger.info(
            f"Ensured {len(catalog)} tables"
            + (f" in namespace {self._namespace}" if self._namespace else "")
        )
        return catalog.table_names()

    def drop_tables(self, catalog: SchemaCatalog) -> None:
        """Drop every catalog table."""
        with self._engine.begin() as conn:
            for table in reversed(catalog.tables()):
                conn.execute(text(f"DROP TABLE IF EXISTS {self._qualified(table.name)}"))

    def table_exists(self, table_name: str) -> bool:
        return inspect(self._engine).has_table(table_name, schema=self._namespace)

    def get_row_count(self, table_name: str) -> int:
        with self._engine.connect() as conn:
            result = conn.execute(text(f"SELECT COUNT(*) FROM {self._qualified(table_name)}"))
            return result.scalar() or 0

    def _qualified(self, table_name: str) -> str:
        return qualified_name(table_name, self._namespace)
