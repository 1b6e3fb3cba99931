"""Core components for RefWriter."""

from refwriter.core.connection import DatabaseConnection
from refwriter.core.types import FieldType, SqlMethod, WriteState, coerce_value

__all__ = [
    "DatabaseConnection",
    "FieldType",
    "SqlMethod",
    "WriteState",
    "coerce_value",
]
