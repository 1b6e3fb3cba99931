"""Core enums and value coercion for RefWriter.

Field values arrive as untyped JSON. Each ``FieldType`` knows how to turn a
JSON value into the value bound to its column.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import Any


class FieldType(StrEnum):
    """Supported column types."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    DATE = "date"  # YYYYMMDD
    TIME = "time"  # time of day, stored as seconds since midnight
    COLOR = "color"  # six hex digits
    URL = "url"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid field type values."""
        return [t.value for t in cls]


class SqlMethod(StrEnum):
    """Statement kinds emitted by the statement builder."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class WriteState(StrEnum):
    """States of a single write request."""

    START = "start"
    INTEGRITY_CHECKED = "integrity_checked"
    ROW_WRITTEN = "row_written"
    CHILDREN_SYNCED = "children_synced"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in (WriteState.COMMITTED, WriteState.ROLLED_BACK)


class TimeFormatError(ValueError):
    """Value is not in H:MM:SS form."""

    pass


_TIME_PATTERN = re.compile(r"^(\d{1,3}):([0-5]\d):([0-5]\d)$")
_COLOR_PATTERN = re.compile(r"^[0-9A-Fa-f]{6}$")
_TRUE_VALUES = {"true", "1", "t", "yes"}
_FALSE_VALUES = {"false", "0", "f", "no"}


def parse_time_of_day(value: str) -> int:
    """Convert ``H:MM:SS`` to seconds since midnight.

    Hours may exceed 23 for service running past midnight.

    Raises:
        TimeFormatError: If the text is not in ``H:MM:SS`` form
    """
    match = _TIME_PATTERN.match(value.strip())
    if match is None:
        raise TimeFormatError(f"'{value}' is not a time of day (expected H:MM:SS)")
    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def _reject_bool(value: Any) -> None:
    if isinstance(value, bool):
        raise ValueError(f"boolean {value} is not a number")


def _to_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_int(value: Any) -> int:
    _reject_bool(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value} is not an integer")
        return int(value)
    return int(str(value).strip())


def _to_float(value: Any) -> float:
    _reject_bool(value)
    return float(str(value).strip())


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"'{value}' is not a boolean")


def _to_date(value: Any) -> str:
    text = str(value).strip()
    if len(text) != 8 or not text.isdigit():
        raise ValueError(f"'{value}' is not a date (expected YYYYMMDD)")
    # strptime rejects impossible dates such as 20240231
    datetime.strptime(text, "%Y%m%d")
    return text


def _to_time(value: Any) -> int:
    _reject_bool(value)
    if isinstance(value, int):
        seconds = value
    else:
        try:
            seconds = parse_time_of_day(str(value))
        except TimeFormatError:
            # Clients may send raw seconds since midnight instead of H:MM:SS
            seconds = int(str(value).strip())
    if seconds < 0:
        raise ValueError(f"{value} is negative")
    return seconds


def _to_color(value: Any) -> str:
    text = str(value).strip().lstrip("#")
    if not _COLOR_PATTERN.match(text):
        raise ValueError(f"'{value}' is not a hex color")
    return text.upper()


COERCERS: dict[FieldType, Callable[[Any], Any]] = {
    FieldType.STRING: _to_string,
    FieldType.INT: _to_int,
    FieldType.FLOAT: _to_float,
    FieldType.BOOL: _to_bool,
    FieldType.DATE: _to_date,
    FieldType.TIME: _to_time,
    FieldType.COLOR: _to_color,
    FieldType.URL: _to_string,
}


def coerce_value(field_type: FieldType | str, value: Any) -> Any:
    """Convert a JSON value into the value bound for a column of ``field_type``.

    ``None`` passes through untouched so JSON null becomes SQL NULL.

    Raises:
        ValueError: If the value cannot be represented as ``field_type``
    """
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise ValueError(f"{type(value).__name__} values are not supported for scalar columns")
    return COERCERS[FieldType(field_type)](value)
