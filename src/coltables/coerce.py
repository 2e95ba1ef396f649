"""Coercion of named column aggregates into tables without copying."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from coltables.column import ColumnStore
from coltables.errors import StructuralError
from coltables.table import Table
from coltables.types import is_homogeneous, is_vector

logger = logging.getLogger(__name__)


def _entries(data: Any) -> list[tuple[Any, Any]]:
    if isinstance(data, Mapping):
        return list(data.items())
    if isinstance(data, Iterable) and not isinstance(data, (str, bytes)):
        entries = []
        for item in data:
            if not (isinstance(item, tuple) and len(item) == 2):
                raise StructuralError(
                    "name", f"Expected (name, values) pairs, got {item!r}"
                )
            entries.append(item)
        return entries
    raise StructuralError("structure", f"Cannot coerce {type(data).__name__} to a table")


def as_table(data: Any, *, strict: bool = False, nrow: int | None = None) -> Table:
    """Wrap a named aggregate of columns as a table.

    The caller's sequences become the column stores directly: coercion costs
    one handle per column and never copies elements. The input itself is
    left untouched; callers must not mutate the sequences afterwards.

    Validation runs in order: every entry has a non-empty name, every value
    is a sequence (with strict=True, flat sequences must also hold a single
    scalar kind), and all values have equal length.

    Args:
        data: Mapping of name to sequence, (name, sequence) pairs, or a Table.
        strict: Also reject flat sequences of mixed scalar kinds.
        nrow: Row count for an aggregate with no columns.

    Raises:
        StructuralError: Naming the failed check and the offending entry.
    """
    if isinstance(data, Table):
        return Table(data.stores(), nrow=data.nrow)

    entries = _entries(data)

    for name, _ in entries:
        if not isinstance(name, str) or not name:
            raise StructuralError(
                "name", f"Every column needs a non-empty string name, got {name!r}", name
            )

    for name, values in entries:
        if not is_vector(values):
            raise StructuralError(
                "structure",
                f"Column '{name}' must be a sequence, got {type(values).__name__}",
                name,
            )
        if strict and not is_homogeneous(values):
            raise StructuralError(
                "structure", f"Column '{name}' mixes scalar element types", name
            )

    if entries:
        expected = len(entries[0][1])
        for name, values in entries:
            if len(values) != expected:
                raise StructuralError(
                    "length",
                    f"Column '{name}' has length {len(values)}, expected {expected}",
                    name,
                )

    logger.debug("Coerced %d column(s) without copying", len(entries))
    return Table(((name, ColumnStore(values)) for name, values in entries), nrow=nrow)
