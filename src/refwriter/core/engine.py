"""Main RefWriter facade and TableWriter class."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from refwriter.core.connection import DatabaseConnection
from refwriter.core.types import SqlMethod, WriteState
from refwriter.data.children import INSERT_BATCH_SIZE, ChildCollectionSynchronizer
from refwriter.data.integrity import IntegrityEngine
from refwriter.data.mapper import map_row
from refwriter.data.statements import build_statement
from refwriter.data.transaction import WriteTransaction
from refwriter.exceptions import NotFoundError, StorageError, ValidationError
from refwriter.schema.ddl import TableManager
from refwriter.schema.gtfs import gtfs_catalog

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from refwriter.schema.catalog import SchemaCatalog
    from refwriter.schema.models import TableSchema

logger = logging.getLogger(__name__)


def parse_payload(data: str | bytes | Mapping[str, Any], table_name: str) -> dict[str, Any]:
    """Decode a request body into a fresh dict.

    Strings are parsed as JSON. Mappings are deep-copied so the caller's
    object is never modified.

    Raises:
        ValidationError: If the JSON is malformed or not an object
    """
    if isinstance(data, (str, bytes, bytearray)):
        try:
            decoded = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Bad JSON syntax for {table_name}: {e}")
            raise ValidationError(f"Bad JSON syntax: {e.msg}", table_name=table_name) from e
    elif isinstance(data, Mapping):
        decoded = copy.deepcopy(dict(data))
    else:
        raise ValidationError(
            f"Expected JSON text or a dict, got {type(data).__name__}", table_name=table_name
        )

    if not isinstance(decoded, dict):
        raise ValidationError(
            f"JSON payload must be an object, got {type(decoded).__name__}",
            table_name=table_name,
        )
    return decoded


class TableWriter:
    """Create, update and delete rows of one catalog table.

    Every call runs in its own transaction: either every effect of the call
    (row, cascaded references, child rows) is committed, or none is.
    """

    def __init__(self, table: TableSchema, writer: RefWriter) -> None:
        """Initialize the table writer.

        Args:
            table: Table definition from the catalog
            writer: Parent RefWriter instance
        """
        self._table = table
        self._writer = writer
        self.last_state: WriteState | None = None

    @property
    def name(self) -> str:
        """Get table name."""
        return self._table.name

    @property
    def schema(self) -> TableSchema:
        """Get the table definition."""
        return self._table

    def create(self, data: str | bytes | Mapping[str, Any]) -> str:
        """Insert a new row and its child rows.

        Args:
            data: JSON object text (or a dict) with the row's fields and one
                list per child table

        Returns:
            The payload with the generated ``id`` added, as JSON text
        """
        return self._write(data, None)

    def update(self, row_id: int, data: str | bytes | Mapping[str, Any]) -> str:
        """Update a row, propagate a key rename, and replace its child rows.

        Args:
            row_id: Surrogate id of the row
            data: JSON object text (or a dict); fields left out keep their value

        Returns:
            The payload with ``id`` added, as JSON text

        Raises:
            NotFoundError: If no row has ``row_id``
        """
        return self._write(data, row_id)

    def delete(self, row_id: int) -> int:
        """Delete a row together with its references and child rows.

        Args:
            row_id: Surrogate id of the row

        Returns:
            Number of rows deleted from this table (always 1)

        Raises:
            DeleteRestrictedError: If the table is delete-restricted and referenced
            NotFoundError: If no row has ``row_id``
        """
        w = self._writer
        txn = WriteTransaction(w.connection, self._table, SqlMethod.DELETE.value)
        try:
            with txn:
                txn.key_value = w._integrity.value_for_id(txn.conn, self._table, row_id)
                w._integrity.cascade(txn.conn, self._table, row_id, None)
                txn.advance(WriteState.INTEGRITY_CHECKED)

                # Owned rows go first, their link value lives on this row
                for child in w.catalog.child_tables(self._table):
                    w._children.replace_children(txn.conn, self._table, row_id, child, [], False)

                statement = build_statement(
                    SqlMethod.DELETE, self.name, row_id=row_id, namespace=w.namespace
                )
                logger.info(statement.sql)
                result = txn.conn.execute(statement.clause, statement.bind())
                deleted = result.rowcount
                if deleted == 0:
                    raise NotFoundError(row_id, self.name)
                if deleted != 1:
                    raise StorageError(
                        f"Delete of {self.name} row {row_id} affected {deleted} rows",
                        {"table_name": self.name, "row_id": row_id, "deleted": deleted},
                    )
                txn.advance(WriteState.ROW_WRITTEN)
                txn.advance(WriteState.CHILDREN_SYNCED)
        finally:
            self.last_state = txn.state
        return deleted

    def _write(self, data: str | bytes | Mapping[str, Any], row_id: int | None) -> str:
        is_creating = row_id is None
        method = SqlMethod.CREATE if is_creating else SqlMethod.UPDATE
        payload = parse_payload(data, self.name)
        w = self._writer

        txn = WriteTransaction(w.connection, self._table, method.value)
        try:
            with txn:
                txn.key_value = w._integrity.ensure_integrity(
                    txn.conn, self._table, payload, row_id
                )
                txn.advance(WriteState.INTEGRITY_CHECKED)

                children = w.catalog.child_tables(self._table)
                # Link values before the row is rewritten; children owned under them go
                previous_links: dict[str, Any] = {}
                if row_id is not None:
                    for child in children:
                        previous_links[child.name] = w._integrity.value_for_id(
                            txn.conn, self._table, row_id, w.catalog.parent_link_field(child)
                        )

                values = map_row(payload, self._table)
                new_id = self._write_row(txn.conn, method, values, row_id)
                txn.advance(WriteState.ROW_WRITTEN)

                for child in children:
                    entities = payload.get(child.name)
                    if not isinstance(entities, list):
                        raise ValidationError(
                            f"Child entities {child.name} must be a list, "
                            f"got {type(entities).__name__}",
                            table_name=self.name,
                            field_errors={child.name: "list required"},
                        )
                    w._children.replace_children(
                        txn.conn,
                        self._table,
                        new_id,
                        child,
                        entities,
                        is_creating,
                        previous_link_value=previous_links.get(child.name),
                    )
                txn.advance(WriteState.CHILDREN_SYNCED)
        finally:
            self.last_state = txn.state

        payload["id"] = new_id
        return json.dumps(payload)

    def _write_row(
        self,
        conn: Connection,
        method: SqlMethod,
        values: dict[str, Any],
        row_id: int | None,
    ) -> int:
        statement = build_statement(
            method, self.name, values, row_id=row_id, namespace=self._writer.namespace
        )
        logger.info(statement.sql)
        result = conn.execute(statement.clause, statement.bind(values))

        if row_id is None:
            new_id = result.scalar_one()
            logger.info(f"Created {self.name} row {new_id}")
            return int(new_id)

        if result.rowcount == 0:
            raise NotFoundError(row_id, self.name)
        return row_id


class RefWriter:
    """Schema-driven transactional writer for relational reference data.

    Example:
        from refwriter import RefWriter

        with RefWriter("sqlite:///./feed.db") as writer:
            writer.create_tables()
            routes = writer.table("routes")
            created = routes.create('{"route_id": "R1", "route_short_name": "1"}')
    """

    def __init__(
        self,
        url: str,
        catalog: SchemaCatalog | None = None,
        namespace: str | None = None,
        echo: bool = False,
        batch_size: int = INSERT_BATCH_SIZE,
    ) -> None:
        """Initialize RefWriter.

        Args:
            url: Database connection URL (PostgreSQL or SQLite)
            catalog: Tables to write to, defaults to the built-in GTFS catalog
            namespace: Optional schema qualifying every table (PostgreSQL)
            echo: Whether to echo SQL statements
            batch_size: Maximum child rows per insert batch
        """
        self._connection = DatabaseConnection(url, echo=echo)
        self._catalog = catalog if catalog is not None else gtfs_catalog()
        self._namespace = namespace
        self._integrity = IntegrityEngine(self._catalog, namespace)
        self._children = ChildCollectionSynchronizer(
            self._catalog, self._integrity, namespace, batch_size
        )
        self._table_manager: TableManager | None = None
        self._writers: dict[str, TableWriter] = {}

    @property
    def connection(self) -> DatabaseConnection:
        return self._connection

    @property
    def catalog(self) -> SchemaCatalog:
        return self._catalog

    @property
    def namespace(self) -> str | None:
        return self._namespace

    @property
    def table_manager(self) -> TableManager:
        if self._table_manager is None:
            self._table_manager = TableManager(self._connection.engine, self._namespace)
        return self._table_manager

    def close(self) -> None:
        """Close database connections."""
        self._connection.close()
        self._table_manager = None

    def __enter__(self) -> RefWriter:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def table(self, name: str) -> TableWriter:
        """Get the writer for a catalog table.

        Raises:
            TableNotFoundError: If the catalog has no such table
        """
        if name not in self._writers:
            self._writers[name] = TableWriter(self._catalog.table(name), self)
        return self._writers[name]

    def list_tables(self) -> list[str]:
        """List catalog table names in dependency order."""
        return self._catalog.table_names()

    def create_tables(self, unique_keys: bool = True) -> list[str]:
        """Create every catalog table that doesn't exist yet.

        Args:
            unique_keys: Back the key field of parentless tables with a
                unique index

        Returns:
            Names of the catalog tables
        """
        return self.table_manager.create_tables(self._catalog, unique_keys=unique_keys)

    def drop_tables(self) -> None:
        """Drop every catalog table."""
        self.table_manager.drop_tables(self._catalog)

    def describe_table(self, name: str) -> dict[str, Any]:
        """Describe a table: its definition, relationships and row count.

        Raises:
            TableNotFoundError: If the catalog has no such table
        """
        table = self._catalog.table(name)
        manager = self.table_manager
        exists = manager.table_exists(name)
        return {
            **table.model_dump(mode="json"),
            "referenced_by": [t.name for t in self._catalog.referencing_tables(table)],
            "child_tables": [t.name for t in self._catalog.child_tables(table)],
            "exists": exists,
            "row_count": manager.get_row_count(name) if exists else None,
        }
