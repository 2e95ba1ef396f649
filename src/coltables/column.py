"""Column storage handles."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from coltables.ownership import Owned
from coltables.types import ColumnType, infer_column_type, is_vector


class ColumnStore(Owned):
    """Reference-counted handle to one column's backing sequence.

    The backing sequence is wrapped as given, never copied. Length and
    element type are fixed once known; a store is never modified in place,
    so "changing" a column always means creating a new store.
    """

    def __init__(self, values: Sequence[Any], column_type: ColumnType | None = None) -> None:
        if not is_vector(values):
            raise TypeError(f"Column storage must be a sequence, got {type(values).__name__}")
        super().__init__()
        self._values: Sequence[Any] | None = values
        self._length = len(values)
        self._type = column_type
        self._token = id(values)

    @property
    def values(self) -> Sequence[Any]:
        """Return the backing sequence (shared, do not mutate)."""
        self._check_live()
        return self._values  # type: ignore[return-value]

    @property
    def declared_type(self) -> ColumnType | None:
        """Return the element type if already known, without inferring it."""
        return self._type

    @property
    def length(self) -> int:
        """Return the number of elements."""
        return self._length

    @property
    def type(self) -> ColumnType:
        """Return the element type, inferring it on first access."""
        if self._type is None:
            self._type = infer_column_type(self.values)
        return self._type

    @property
    def token(self) -> int:
        """Return the storage identity token of the backing sequence."""
        return self._token

    def wraps(self, values: Any) -> bool:
        """Return whether this store is backed by exactly this object."""
        return self._values is values

    def _release_storage(self) -> None:
        self._values = None

    def __len__(self) -> int:
        return self._length

    def __repr__(self) -> str:
        state = "released" if self.released else f"refs={self.ref_count}"
        return f"ColumnStore(length={self._length}, token={self._token:#x}, {state})"


def as_vector(value: Any) -> Sequence[Any]:
    """Return value itself if it is a sequence, else a one-element list."""
    return value if is_vector(value) else [value]


def broadcast(values: Sequence[Any], nrow: int) -> Sequence[Any]:
    """Recycle a length-1 sequence to nrow elements.

    Tuples stay tuples; every other container becomes a list.
    """
    if len(values) != 1:
        raise ValueError(f"Only length-1 values can be broadcast, got length {len(values)}")
    if isinstance(values, tuple):
        return values * nrow
    return [values[0]] * nrow


def take(values: Sequence[Any], indices: Sequence[int]) -> Sequence[Any]:
    """Return a new sequence holding values at the given positions."""
    if isinstance(values, tuple):
        return tuple(values[i] for i in indices)
    return [values[i] for i in indices]
