"""Key uniqueness and reference propagation.

The database declares no foreign keys. Before a row's key value changes or
the row disappears, every table referencing that key is rewritten (rename)
or pruned (delete) inside the caller's transaction, or the write is refused.

The uniqueness check is a plain read followed by a later write. Two
concurrent creates of the same key can both pass it; the unique index created
by ``TableManager`` is what closes that gap.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from refwriter.core.types import SqlMethod
from refwriter.data.statements import (
    count_references,
    delete_references,
    select_ids_for_value,
    select_value_for_id,
    update_references,
)
from refwriter.exceptions import (
    DeleteRestrictedError,
    IntegrityCorruptionError,
    UniquenessError,
    ValidationError,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from refwriter.schema.catalog import SchemaCatalog
    from refwriter.schema.models import TableSchema

logger = logging.getLogger(__name__)


class IntegrityEngine:
    """Enforces key uniqueness and cascades key renames and deletes."""

    def __init__(self, catalog: SchemaCatalog, namespace: str | None = None) -> None:
        """Initialize the engine.

        Args:
            catalog: Catalog used to discover referencing tables
            namespace: Optional schema qualifying every table
        """
        self._catalog = catalog
        self._namespace = namespace

    def value_for_id(
        self, conn: Connection, table: TableSchema, row_id: int, field_name: str | None = None
    ) -> Any:
        """Read one column (the key field by default) of the row with ``row_id``.

        Returns:
            The stored value, or None if the row doesn't exist or holds NULL
        """
        field_name = field_name or table.key_field
        result = conn.execute(
            select_value_for_id(table.name, field_name, self._namespace), {"id": row_id}
        )
        row = result.first()
        return row[0] if row is not None else None

    def ids_for_value(self, conn: Connection, table: TableSchema, key_value: Any) -> set[int]:
        """Ids of every row whose key field equals ``key_value``."""
        result = conn.execute(
            select_ids_for_value(table.name, table.key_field, self._namespace),
            {"value": key_value},
        )
        return {row[0] for row in result}

    def ensure_integrity(
        self,
        conn: Connection,
        table: TableSchema,
        payload: dict[str, Any],
        existing_id: int | None = None,
    ) -> Any:
        """Validate the payload's key value and cascade a rename if there is one.

        A missing key is generated (and written back into ``payload``) when
        creating a row in a table that allows it. Keys are never generated on
        update: an update payload without its key field is rejected, even for
        tables such as ``trips`` that generate keys on create.

        Args:
            conn: Connection inside the write transaction
            table: Table being written
            payload: Decoded JSON object for the row
            existing_id: Row being updated, None when creating

        Returns:
            The key value the row will carry

        Raises:
            ValidationError: If the key is missing and cannot be generated
            UniquenessError: If another row already holds the key value
            IntegrityCorruptionError: If several rows already hold the key value
        """
        is_creating = existing_id is None
        key_field = table.key_field

        if payload.get(key_field) is None:
            if not (is_creating and table.generate_key):
                raise ValidationError(
                    f"Key field {key_field} must not be null",
                    table_name=table.name,
                    field_errors={key_field: "required"},
                )
            payload[key_field] = str(uuid4())
            logger.info(f"Generated {key_field}={payload[key_field]} for new {table.name} row")

        raw_value = payload[key_field]
        if isinstance(raw_value, (dict, list)):
            raise ValidationError(
                f"Key field {key_field} must be a scalar",
                table_name=table.name,
                field_errors={key_field: "nested values are not supported"},
            )
        key_value = table.field_for(key_field).coerce(raw_value, table.name)

        if not table.unique_key:
            # Child rows carry their parent's key; it repeats by design
            return key_value

        ids = self.ids_for_value(conn, table, key_value)
        size = len(ids)

        if size == 0:
            if not is_creating:
                # The row is taking a brand-new key value: follow it everywhere
                self.cascade(conn, table, existing_id, key_value)
            return key_value

        if size == 1:
            (match,) = ids
            if not is_creating and match == existing_id:
                return key_value
            raise UniquenessError(table.name, key_field, str(key_value), match)

        logger.warning(
            f"{size} {table.name} rows share the same key field ({key_field}={key_value})"
        )
        raise IntegrityCorruptionError(table.name, key_field, str(key_value), size)

    def cascade(
        self,
        conn: Connection,
        table: TableSchema,
        row_id: int,
        new_key_value: Any = None,
    ) -> dict[str, int]:
        """Propagate a key rename (``new_key_value`` set) or delete (None).

        Only tables directly referencing ``table`` are touched; rows removed
        from them do not cascade further.

        Returns:
            Rows updated or deleted per referencing table

        Raises:
            DeleteRestrictedError: If ``table`` is delete-restricted and referenced
        """
        method = SqlMethod.UPDATE if new_key_value is not None else SqlMethod.DELETE
        referencing = self._catalog.referencing_tables(table)
        if not referencing:
            return {}

        key_field = table.key_field
        key_value = self.value_for_id(conn, table, row_id)
        if key_value is None:
            logger.warning(
                f"{table.name} row {row_id} has no {key_field} value. "
                f"Skipping {method} of references."
            )
            return {}

        touched: dict[str, int] = {}
        for ref_table in referencing:
            if method == SqlMethod.DELETE:
                if table.is_delete_restricted():
                    count = (
                        conn.execute(
                            count_references(ref_table.name, key_field, self._namespace),
                            {"value": key_value},
                        ).scalar()
                        or 0
                    )
                    if count > 0:
                        error = DeleteRestrictedError(
                            table.name, key_field, str(key_value), ref_table.name, count
                        )
                        logger.warning(error.message)
                        raise error
                result = conn.execute(
                    delete_references(ref_table.name, key_field, self._namespace),
                    {"value": key_value},
                )
            else:
                result = conn.execute(
                    update_references(ref_table.name, key_field, self._namespace),
                    {"value": key_value, "new_value": new_key_value},
                )

            touched[ref_table.name] = result.rowcount
            if result.rowcount > 0:
                logger.info(f"{result.rowcount} reference(s) in {ref_table.name} {method}d")
            else:
                logger.info(f"No references in {ref_table.name} found")

        return touched
