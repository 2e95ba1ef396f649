"""Row ordering and group discovery."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from coltables.errors import ComparisonError
from coltables.types import ColumnType


@dataclass(frozen=True)
class OrderKey:
    """One sort key: a column's values, its element type and direction."""

    name: str
    values: Sequence[Any]
    column_type: ColumnType
    descending: bool = False


def _check_orderable(key: OrderKey) -> None:
    if not key.column_type.is_orderable:
        raise ComparisonError(key.name, f"{key.column_type.value} values have no ordering")


def order_indices(keys: Sequence[OrderKey], indices: Sequence[int]) -> list[int]:
    """Return indices stably sorted by the keys.

    The first key takes precedence; ties fall through to later keys and
    finally to input order. Missing values sort last in either direction.
    """
    for key in keys:
        _check_orderable(key)
    order = list(indices)
    # One stable pass per key, least significant first
    for key in reversed(keys):
        values = key.values
        present = [i for i in order if values[i] is not None]
        missing = [i for i in order if values[i] is None]
        try:
            present.sort(key=values.__getitem__, reverse=key.descending)
        except TypeError as exc:
            raise ComparisonError(key.name, str(exc)) from exc
        order = present + missing
    return order


def _group_sort_key(key: tuple[Any, ...]) -> tuple[tuple[bool, Any], ...]:
    return tuple((value is None, value) for value in key)


def group_indices(keys: Sequence[OrderKey], nrow: int) -> list[tuple[tuple[Any, ...], list[int]]]:
    """Split rows into groups by key values.

    Returns (key values, row indices) pairs, groups ordered ascending by key
    with missing values last, rows within a group in input order.
    """
    for key in keys:
        if not key.column_type.is_atomic:
            raise ComparisonError(key.name, "cannot group by a list column")
    names = ", ".join(key.name for key in keys)
    groups: dict[tuple[Any, ...], list[int]] = {}
    columns = [key.values for key in keys]
    try:
        for i in range(nrow):
            groups.setdefault(tuple(values[i] for values in columns), []).append(i)
    except TypeError as exc:
        raise ComparisonError(names, f"unhashable key values ({exc})") from exc
    if not all(key.column_type.is_orderable for key in keys):
        return list(groups.items())
    try:
        return sorted(groups.items(), key=lambda item: _group_sort_key(item[0]))
    except TypeError as exc:
        raise ComparisonError(names, str(exc)) from exc
