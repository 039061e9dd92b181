"""
Generic record representation shared by the extractor and the merger.

A record is a plain dict of field name to scalar value with a mandatory
integer ``id``. A table is an insertion-ordered dict of id to record.

The remote marks "field unchanged since base" with the sentinel ``"#"``.
Extraction rewrites it to the :data:`UNCHANGED` marker so that nothing
downstream ever compares against the raw sentinel, and a real ``None`` keeps
its meaning of "explicitly cleared".
"""

from __future__ import annotations

from enum import Enum
from typing import Any

SENTINEL = "#"

# Fields that identify records or link them together; always stored as int.
INT_FIELDS = ("id", "parent")

DELETE_FLAG = "is_deleted"

_TRUE_FLAGS = {"1", "true", "yes"}


class _Unchanged(Enum):
    UNCHANGED = "UNCHANGED"

    def __repr__(self) -> str:
        return "UNCHANGED"


UNCHANGED = _Unchanged.UNCHANGED

Record = dict[str, Any]
Table = dict[int, Record]


def parse_flag(value: Any) -> bool:
    """
    Interpret a remote boolean flag.

    The remote sends flags as ints or strings depending on the table
    (``1``, ``"1"``, ``0``, ``"0"``, ``None``).

    Args:
        value: Raw cell value

    Returns:
        True if the flag is set
    """
    if value is None or value is UNCHANGED:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_FLAGS


def normalize_value(value: Any) -> Any:
    """Map a raw cell value onto the record value space."""
    if value == SENTINEL:
        return UNCHANGED
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def _coerce_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"field '{field}' must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValueError(f"field '{field}' must be an integer, got {value!r}")


def normalize_record(row: dict[str, Any]) -> Record:
    """
    Normalize one extracted row into a record.

    - ``"#"`` becomes :data:`UNCHANGED`
    - ``id`` and ``parent`` become ints
    - ``is_deleted`` becomes a bool

    Args:
        row: Column name to raw value mapping

    Returns:
        Normalized record

    Raises:
        ValueError: If ``id`` is missing or not an integer
    """
    record: Record = {key: normalize_value(value) for key, value in row.items()}

    if record.get("id") is None or record["id"] is UNCHANGED:
        raise ValueError("record has no 'id'")

    for field in INT_FIELDS:
        value = record.get(field)
        if value is None or value is UNCHANGED:
            continue
        record[field] = _coerce_int(field, value)

    if DELETE_FLAG in record:
        record[DELETE_FLAG] = parse_flag(record[DELETE_FLAG])

    return record


def is_deleted(record: Record) -> bool:
    """Check whether a record carries a true deletion flag."""
    return parse_flag(record.get(DELETE_FLAG))


def contains_unchanged(record: Record) -> bool:
    """Check whether any field of a record still holds the UNCHANGED marker."""
    return any(value is UNCHANGED for value in record.values())


__all__ = [
    "SENTINEL",
    "UNCHANGED",
    "DELETE_FLAG",
    "Record",
    "Table",
    "parse_flag",
    "normalize_value",
    "normalize_record",
    "is_deleted",
    "contains_unchanged",
]
