"""Custom exceptions for RefWriter.

Every error aborts the write transaction it was raised in. Each exception
carries a ``context`` dict (table, key field, key value, counts) so callers
can render a useful message without parsing strings.
"""

from __future__ import annotations

from typing import Any


class RefWriterError(Exception):
    """Base exception for all RefWriter errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConnectionError(RefWriterError):
    """Failed to connect to the database."""

    pass


class TableNotFoundError(RefWriterError):
    """Table is not described by the schema catalog."""

    def __init__(self, table_name: str, available_tables: list[str] | None = None) -> None:
        available = available_tables or []
        if available:
            message = f"Table '{table_name}' not found. Available tables: {', '.join(available)}"
        else:
            message = f"Table '{table_name}' not found. The catalog is empty."

        super().__init__(message, {"table_name": table_name, "available_tables": available})
        self.table_name = table_name
        self.available_tables = available


class FieldNotFoundError(RefWriterError):
    """Field does not exist on table."""

    def __init__(
        self, field_name: str, table_name: str, available_fields: list[str] | None = None
    ) -> None:
        available = available_fields or []
        if available:
            message = (
                f"Field '{field_name}' not found on '{table_name}'. "
                f"Available fields: {', '.join(available)}"
            )
        else:
            message = f"Field '{field_name}' not found on '{table_name}'. No fields defined."

        super().__init__(
            message,
            {
                "field_name": field_name,
                "table_name": table_name,
                "available_fields": available,
            },
        )
        self.field_name = field_name
        self.table_name = table_name
        self.available_fields = available


class ValidationError(RefWriterError):
    """Input could not be turned into a write (bad JSON, no fields, missing key)."""

    def __init__(
        self,
        message: str,
        table_name: str | None = None,
        field_errors: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message, {"table_name": table_name, "field_errors": field_errors or {}})
        self.table_name = table_name
        self.field_errors = field_errors or {}


class UniquenessError(RefWriterError):
    """Key value already belongs to a different row."""

    def __init__(
        self,
        table_name: str,
        key_field: str,
        key_value: str,
        conflicting_id: int | None = None,
    ) -> None:
        if conflicting_id is not None:
            message = (
                f"Key {key_field}={key_value!r} in '{table_name}' already belongs to row "
                f"{conflicting_id}. Key values must be unique."
            )
        else:
            message = (
                f"Key {key_field}={key_value!r} in '{table_name}' already exists. "
                f"Key values must be unique."
            )
        super().__init__(
            message,
            {
                "table_name": table_name,
                "key_field": key_field,
                "key_value": key_value,
                "conflicting_id": conflicting_id,
            },
        )
        self.table_name = table_name
        self.key_field = key_field
        self.key_value = key_value
        self.conflicting_id = conflicting_id


class IntegrityCorruptionError(RefWriterError):
    """More than one row already shares a key value."""

    def __init__(self, table_name: str, key_field: str, key_value: str, count: int) -> None:
        message = (
            f"{count} rows in '{table_name}' share {key_field}={key_value!r}. "
            f"Resolve the duplicate rows before writing to this key."
        )
        super().__init__(
            message,
            {
                "table_name": table_name,
                "key_field": key_field,
                "key_value": key_value,
                "count": count,
            },
        )
        self.table_name = table_name
        self.key_field = key_field
        self.key_value = key_value
        self.count = count


class DeleteRestrictedError(RefWriterError):
    """Delete blocked because rows in another table still reference the row."""

    def __init__(
        self,
        table_name: str,
        key_field: str,
        key_value: str,
        referencing_table: str,
        count: int,
    ) -> None:
        message = (
            f"Cannot delete {table_name} {key_field}={key_value}. "
            f"{count} {referencing_table} reference this {table_name}. "
            f"Delete or reassign the referencing rows first."
        )
        super().__init__(
            message,
            {
                "table_name": table_name,
                "key_field": key_field,
                "key_value": key_value,
                "referencing_table": referencing_table,
                "count": count,
            },
        )
        self.table_name = table_name
        self.key_field = key_field
        self.key_value = key_value
        self.referencing_table = referencing_table
        self.count = count


class NotFoundError(RefWriterError):
    """Row with given id does not exist."""

    def __init__(self, row_id: int, table_name: str) -> None:
        message = f"Row {row_id} not found in '{table_name}'."
        super().__init__(message, {"row_id": row_id, "table_name": table_name})
        self.row_id = row_id
        self.table_name = table_name


class StorageError(RefWriterError):
    """Database failure or a value the storage layer cannot accept."""

    pass
