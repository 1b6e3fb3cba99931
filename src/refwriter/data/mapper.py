"""Row mapping from JSON objects to column values."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from refwriter.exceptions import ValidationError

if TYPE_CHECKING:
    from refwriter.schema.models import TableSchema

logger = logging.getLogger(__name__)


def map_row(payload: dict[str, Any], table: TableSchema) -> dict[str, Any]:
    """Map a JSON object onto ``table``'s columns.

    Keys the table doesn't define (including ``id`` and child collections)
    are dropped. A JSON null yields an explicit ``None`` entry, which is
    different from the key being absent: the column is written as NULL rather
    than left alone.

    Args:
        payload: Decoded JSON object
        table: Target table

    Returns:
        Column name to bound value

    Raises:
        ValidationError: If no field matches or a value is a nested object/array
        StorageError: If a value cannot be coerced to its column type
    """
    values: dict[str, Any] = {}
    dropped: list[str] = []
    for name, value in payload.items():
        if not table.has_field(name):
            dropped.append(name)
            continue
        if isinstance(value, (dict, list)):
            raise ValidationError(
                f"Field '{name}' on '{table.name}' must be a scalar, "
                f"got {type(value).__name__}",
                table_name=table.name,
                field_errors={name: "nested values are not supported"},
            )
        field = table.field_for(name)
        values[name] = None if value is None else field.coerce(value, table.name)

    if dropped:
        logger.debug(f"Ignoring fields not in {table.name}: {', '.join(dropped)}")

    if not values:
        raise ValidationError(
            f"Zero valid fields found for '{table.name}'. "
            f"Known fields: {', '.join(table.field_names())}",
            table_name=table.name,
        )
    return values
