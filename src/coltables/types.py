"""Element types for column storage."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any


class ColumnType(Enum):
    """Element type tag carried by every column store."""

    NULL = "null"
    LOGICAL = "logical"
    INTEGER = "integer"
    DOUBLE = "double"
    COMPLEX = "complex"
    CHARACTER = "character"
    BYTES = "bytes"
    OBJECT = "object"
    LIST = "list"

    @property
    def is_orderable(self) -> bool:
        """Return whether values of this type have a defined ordering."""
        return self not in (ColumnType.LIST, ColumnType.COMPLEX)

    @property
    def is_atomic(self) -> bool:
        """Return whether this is a flat scalar type (not a list column)."""
        return self is not ColumnType.LIST


# Checked in order: bool must precede int.
SCALAR_TYPES: tuple[tuple[type, ColumnType], ...] = (
    (bool, ColumnType.LOGICAL),
    (int, ColumnType.INTEGER),
    (float, ColumnType.DOUBLE),
    (complex, ColumnType.COMPLEX),
    (str, ColumnType.CHARACTER),
    (bytes, ColumnType.BYTES),
)

_NUMERIC = frozenset({ColumnType.INTEGER, ColumnType.DOUBLE})


def is_vector(value: Any) -> bool:
    """Return whether a value is usable as column storage.

    Strings and bytes are sequences in Python but are scalars here.
    """
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def is_nested(value: Any) -> bool:
    """Return whether a single element makes its column a list column."""
    return is_vector(value) or isinstance(value, Mapping)


def scalar_type(value: Any) -> ColumnType:
    """Return the column type a single non-missing scalar belongs to."""
    for py_type, column_type in SCALAR_TYPES:
        if isinstance(value, py_type):
            return column_type
    return ColumnType.OBJECT


def infer_column_type(values: Sequence[Any]) -> ColumnType:
    """Infer the element type of a column.

    Missing values (None) are ignored. Integers mixed with floats widen to
    DOUBLE; any nested element, or scalars of different kinds, make a LIST.
    """
    found: ColumnType | None = None
    object_class: type | None = None
    for value in values:
        if value is None:
            continue
        if is_nested(value):
            return ColumnType.LIST
        current = scalar_type(value)
        if current is ColumnType.OBJECT:
            if object_class is None:
                object_class = type(value)
            elif type(value) is not object_class:
                return ColumnType.LIST
        if found is None or found is current:
            found = current
        elif {found, current} <= _NUMERIC:
            found = ColumnType.DOUBLE
        else:
            return ColumnType.LIST
    return found if found is not None else ColumnType.NULL


def is_homogeneous(values: Sequence[Any]) -> bool:
    """Return whether a flat sequence holds scalars of a single kind.

    Sequences containing nested elements count as homogeneous list columns.
    """
    if infer_column_type(values) is not ColumnType.LIST:
        return True
    return any(is_nested(value) for value in values)
