"""Schema descriptions for the tables RefWriter writes to.

A ``TableSchema`` is loaded once (from code or JSON) and passed by reference to
every write. Nothing here touches the database.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from refwriter.core.types import FieldType, coerce_value
from refwriter.exceptions import FieldNotFoundError, StorageError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(value: str) -> str:
    """Ensure a table or field name can be safely quoted into SQL."""
    if not _IDENTIFIER.match(value):
        raise ValueError(
            f"'{value}' is not a valid SQL identifier "
            "(letters, digits and underscores, not starting with a digit)"
        )
    return value


class FieldSchema(BaseModel):
    """Description of one column."""

    name: str = Field(..., description="Column name")
    type: FieldType = Field(default=FieldType.STRING, description="Column value type")
    foreign_reference: bool = Field(
        default=False,
        description="Column holds another table's key value and follows its renames/deletes",
    )
    required: bool = Field(default=False, description="Whether a value is expected")
    description: str | None = Field(default=None, description="Human-readable description")

    model_config = {"frozen": True}

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_identifier(value)

    def is_foreign_reference(self) -> bool:
        return self.foreign_reference

    def coerce(self, value: Any, table_name: str) -> Any:
        """Convert a JSON value to the value bound to this column.

        Raises:
            StorageError: If the value cannot be stored in this column
        """
        try:
            return coerce_value(self.type, value)
        except (ValueError, TypeError) as e:
            raise StorageError(
                f"Bad value for {table_name}.{self.name} ({self.type}): {e}",
                {
                    "table_name": table_name,
                    "field_name": self.name,
                    "field_type": str(self.type),
                    "value": value,
                },
            ) from e


class TableSchema(BaseModel):
    """Description of one table.

    Every table has an integer surrogate ``id`` managed by the database and a
    domain key field (``key_field``) whose uniqueness the writer enforces.
    """

    name: str = Field(..., description="Table name")
    fields: list[FieldSchema] = Field(default_factory=list, description="Column definitions")
    key_field: str = Field(..., description="Domain key column (e.g. route_id)")
    parent_table: str | None = Field(
        default=None, description="Table owning this table's rows as an ordered sub-collection"
    )
    parent_link_field: str | None = Field(
        default=None,
        description="Column linking child rows to the parent (defaults to the parent's key field)",
    )
    delete_restricted: bool = Field(
        default=False, description="Rows may not be deleted while other tables reference them"
    )
    generate_key: bool = Field(
        default=False, description="Synthesize a UUID key when the payload has none"
    )
    description: str | None = Field(default=None, description="Human-readable description")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_identifier(value)

    @model_validator(mode="after")
    def _check_fields(self) -> TableSchema:
        by_name: dict[str, FieldSchema] = {}
        for field in self.fields:
            if field.name in by_name:
                raise ValueError(f"Duplicate field '{field.name}' on table '{self.name}'")
            if field.name == "id":
                raise ValueError(f"Table '{self.name}' must not declare the surrogate 'id' column")
            by_name[field.name] = field
        if self.key_field not in by_name:
            raise ValueError(f"Key field '{self.key_field}' is not a field of '{self.name}'")
        if self.parent_link_field is not None and self.parent_link_field not in by_name:
            raise ValueError(
                f"Parent link field '{self.parent_link_field}' is not a field of '{self.name}'"
            )
        return self

    def _fields_by_name(self) -> dict[str, FieldSchema]:
        return {f.name: f for f in self.fields}

    def has_field(self, name: str) -> bool:
        return any(f.name == name for f in self.fields)

    def field_for(self, name: str) -> FieldSchema:
        """Get field definition by name.

        Raises:
            FieldNotFoundError: If the table has no such field
        """
        by_name = self._fields_by_name()
        if name not in by_name:
            raise FieldNotFoundError(name, self.name, self.field_names())
        return by_name[name]

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def key_field_name(self) -> str:
        return self.key_field

    def is_delete_restricted(self) -> bool:
        return self.delete_restricted

    @property
    def unique_key(self) -> bool:
        """Whether the key field is unique per row.

        Child rows repeat their parent's key, so only parentless tables qualify.
        """
        return self.parent_table is None
