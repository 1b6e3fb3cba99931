"""Wholesale replacement of a parent's dependent child rows.

Ordered sub-collections (stop times of a trip, stops of a pattern) are not
diffed. Every update deletes the parent's existing children and inserts the
supplied list, so the stored set is always exactly what the caller sent.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from refwriter.core.types import SqlMethod
from refwriter.data.mapper import map_row
from refwriter.data.statements import BuiltStatement, build_statement, delete_references
from refwriter.exceptions import ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from refwriter.data.integrity import IntegrityEngine
    from refwriter.schema.catalog import SchemaCatalog
    from refwriter.schema.models import TableSchema

logger = logging.getLogger(__name__)

# Maximum rows sent in one executemany round trip
INSERT_BATCH_SIZE = 500

# Default for a link value that did not change in this write
_UNCHANGED: Any = object()


class ChildCollectionSynchronizer:
    """Replaces child rows inside the caller's transaction."""

    def __init__(
        self,
        catalog: SchemaCatalog,
        integrity: IntegrityEngine,
        namespace: str | None = None,
        batch_size: int = INSERT_BATCH_SIZE,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            catalog: Catalog providing parent/child links
            integrity: Engine used to read the parent's link value
            namespace: Optional schema qualifying every table
            batch_size: Maximum rows per insert batch
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._catalog = catalog
        self._integrity = integrity
        self._namespace = namespace
        self._batch_size = batch_size

    def replace_children(
        self,
        conn: Connection,
        parent_table: TableSchema,
        parent_id: int,
        child_table: TableSchema,
        entities: list[Any],
        is_creating: bool,
        previous_link_value: Any = _UNCHANGED,
    ) -> int:
        """Make ``entities`` the complete set of ``child_table`` rows for the parent.

        An empty list is meaningful: it removes every child of the parent.

        When the parent's link value changed in this write, pass the value it
        held before as ``previous_link_value`` so the children it owned under
        that value are removed. Children linked through the parent's key are
        also removed under the current value, where a key rename has already
        moved them.

        Args:
            conn: Connection inside the write transaction
            parent_table: Table of the owning row
            parent_id: Surrogate id of the owning row
            child_table: Table holding the children
            entities: Decoded JSON objects, one per child row
            is_creating: Whether the parent was just inserted (nothing to delete)
            previous_link_value: Link value the parent held before this write

        Returns:
            Number of child rows inserted

        Raises:
            ValidationError: If an entity is not an object or links to another parent
        """
        link_field = self._catalog.parent_link_field(child_table)
        link_value = self._integrity.value_for_id(conn, parent_table, parent_id, link_field)
        child_name = child_table.name

        if not is_creating:
            stale = {link_value if previous_link_value is _UNCHANGED else previous_link_value}
            if link_field == parent_table.key_field:
                stale.add(link_value)
            stale.discard(None)
            for value in sorted(stale, key=str):
                result = conn.execute(
                    delete_references(child_name, link_field, self._namespace),
                    {"value": value},
                )
                logger.info(f"Deleted {result.rowcount} {child_name} for {link_field}={value}")

        if link_value is None:
            if entities:
                raise ValidationError(
                    f"Cannot store {child_name} for {parent_table.name} row {parent_id}: "
                    f"the parent has no {link_field} value",
                    table_name=child_name,
                    field_errors={link_field: "parent value missing"},
                )
            logger.info(f"{parent_table.name} row {parent_id} has no {link_field}; no {child_name}")
            return 0

        total = len(entities)
        inserted = 0
        statement: BuiltStatement | None = None
        batch: list[dict[str, Any]] = []

        for index, entity in enumerate(entities):
            if not isinstance(entity, dict):
                raise ValidationError(
                    f"{child_name}[{index}] must be an object, got {type(entity).__name__}",
                    table_name=child_name,
                )
            if entity.get(link_field) is None:
                entity[link_field] = link_value
            values = map_row(entity, child_table)
            if values[link_field] != link_value:
                raise ValidationError(
                    f"{child_name}[{index}] has {link_field}={values[link_field]!r} "
                    f"but belongs to {link_field}={link_value!r}",
                    table_name=child_name,
                    field_errors={link_field: "does not match parent"},
                )

            built = build_statement(
                SqlMethod.CREATE, child_name, values, namespace=self._namespace, returning=False
            )
            # A batch shares one statement, so a new column set starts a new batch
            if statement is not None and built.columns != statement.columns:
                inserted += self._execute_batch(conn, statement, batch, inserted, total)
                batch = []
            statement = built
            batch.append(built.bind(values))
            if len(batch) >= self._batch_size:
                inserted += self._execute_batch(conn, statement, batch, inserted, total)
                batch = []

        if statement is None:
            logger.info(f"No inserts to execute. Empty array found for child table {child_name}")
        elif batch:
            inserted += self._execute_batch(conn, statement, batch, inserted, total)

        return inserted

    def _execute_batch(
        self,
        conn: Connection,
        statement: BuiltStatement,
        batch: list[dict[str, Any]],
        done: int,
        total: int,
    ) -> int:
        conn.execute(statement.clause, batch)
        logger.info(f"Executed batch insert ({done + len(batch)}/{total}): {statement.sql}")
        return len(batch)
