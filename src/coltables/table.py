"""Tables: ordered column stores plus one attribute set."""

from __future__ import annotations

import weakref
from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Any

from coltables.attributes import AttributeSet
from coltables.column import ColumnStore
from coltables.errors import (
    DuplicateNameError,
    OwnershipError,
    ShapeError,
    StructuralError,
    UnknownColumnError,
)
from coltables.ownership import Owned

if TYPE_CHECKING:
    from coltables.transforms import SortKey


def _acquire_all(handles: Sequence[Owned]) -> None:
    """Acquire every handle or none of them."""
    acquired: list[Owned] = []
    try:
        for handle in handles:
            handle.acquire()
            acquired.append(handle)
    except OwnershipError:
        for handle in acquired:
            handle._unacquire()
        raise


def _release_all(handles: Sequence[Owned]) -> None:
    for handle in handles:
        handle.release()


class Table:
    """An immutable, ordered mapping of column names to column stores.

    Construction enforces the table invariants before anything is acquired:
    distinct names, equal column lengths, and an attribute set whose names
    match the column order. The table then holds one ownership count on each
    store and on its attribute set until it is closed or collected.
    """

    def __init__(
        self,
        columns: Iterable[tuple[str, ColumnStore]] = (),
        attributes: AttributeSet | None = None,
        nrow: int | None = None,
    ) -> None:
        """Initialize a table.

        Args:
            columns: (name, store) pairs in column order.
            attributes: Attribute set; a fresh one is built from the names if omitted.
            nrow: Row count. Required to be meaningful only for zero-column tables.
        """
        pairs = list(columns)
        nrow = self._validate_columns(pairs, nrow)
        names = tuple(name for name, _ in pairs)

        if attributes is None:
            attributes = AttributeSet(names)
        elif attributes.names != names:
            raise StructuralError(
                "attributes",
                f"Attribute names {list(attributes.names)} do not match "
                f"column order {list(names)}",
            )
        for key in attributes.groups:
            if key not in names:
                raise UnknownColumnError(key)

        handles: list[Owned] = [store for _, store in pairs]
        handles.append(attributes)
        _acquire_all(handles)

        self._columns: dict[str, ColumnStore] = dict(pairs)
        self._attributes = attributes
        self._nrow = nrow
        self._finalizer = weakref.finalize(self, _release_all, tuple(handles))

    @staticmethod
    def _validate_columns(pairs: list[tuple[str, ColumnStore]], nrow: int | None) -> int:
        seen: set[str] = set()
        for name, store in pairs:
            if not isinstance(name, str):
                raise StructuralError("name", f"Column name must be a string, got {name!r}", name)
            if name in seen:
                raise DuplicateNameError(name)
            seen.add(name)
            if not isinstance(store, ColumnStore):
                raise TypeError(f"Column '{name}' must be a ColumnStore, got {type(store).__name__}")

        if pairs:
            expected = pairs[0][1].length if nrow is None else nrow
            for name, store in pairs:
                if store.length != expected:
                    raise ShapeError(name, expected, store.length)
            return expected
        if nrow is not None and nrow < 0:
            raise ValueError(f"Row count must be non-negative, got {nrow}")
        return 0 if nrow is None else nrow

    def _check_open(self) -> None:
        if not self._finalizer.alive:
            raise OwnershipError("Table is closed")

    # Read-only accessors

    @property
    def nrow(self) -> int:
        """Return the number of rows."""
        return self._nrow

    @property
    def ncol(self) -> int:
        """Return the number of columns."""
        return len(self._columns)

    @property
    def names(self) -> tuple[str, ...]:
        """Return column names in order."""
        return self._attributes.names

    @property
    def groups(self) -> tuple[str, ...]:
        """Return the grouping keys, empty when ungrouped."""
        return self._attributes.groups

    @property
    def is_grouped(self) -> bool:
        return bool(self._attributes.groups)

    @property
    def attributes(self) -> AttributeSet:
        return self._attributes

    @property
    def token(self) -> int:
        """Return the identity token of this table."""
        return id(self)

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def store(self, name: str) -> ColumnStore:
        """Return the column store for a column.

        Raises:
            UnknownColumnError: If no such column exists.
        """
        self._check_open()
        try:
            return self._columns[name]
        except KeyError:
            raise UnknownColumnError(name) from None

    def stores(self) -> list[tuple[str, ColumnStore]]:
        """Return (name, store) pairs in column order."""
        self._check_open()
        return list(self._columns.items())

    def column(self, name: str) -> Sequence[Any]:
        """Return a column's backing values (shared, do not mutate)."""
        return self.store(name).values

    def attribute(self, key: str) -> Any:
        """Look up a table-level attribute ("names", "groups" or an extra key)."""
        self._check_open()
        return self._attributes.get(key)

    def row(self, index: int) -> dict[str, Any]:
        """Return one row as a dict of column name to value."""
        self._check_open()
        if index < 0 or index >= self._nrow:
            raise IndexError(f"Index {index} out of range [0, {self._nrow})")
        return {name: store.values[index] for name, store in self._columns.items()}

    def rows(self) -> Iterator[dict[str, Any]]:
        """Iterate over rows as dicts."""
        for index in range(self._nrow):
            yield self.row(index)

    def to_dict(self) -> dict[str, list[Any]]:
        """Return a copy of the data as a dict of column name to list."""
        self._check_open()
        return {name: list(store.values) for name, store in self._columns.items()}

    def equals(self, other: Table) -> bool:
        """Return whether two tables hold the same names, groups and values."""
        return (
            self.names == other.names
            and self.groups == other.groups
            and self.nrow == other.nrow
            and self.to_dict() == other.to_dict()
        )

    def close(self) -> None:
        """Release this table's ownership of its stores and attribute set."""
        self._finalizer()

    def __enter__(self) -> Table:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __getitem__(self, name: str) -> Sequence[Any]:
        return self.column(name)

    def __contains__(self, name: object) -> bool:
        return name in self._columns

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return self._nrow

    def __repr__(self) -> str:
        parts = [f"nrow={self._nrow}", f"columns={list(self.names)!r}"]
        if self.groups:
            parts.append(f"groups={list(self.groups)!r}")
        if self.closed:
            parts.append("closed")
        return f"Table({', '.join(parts)})"

    # Transformations; each returns a new table

    def select(self, *names: str, **relabel: str) -> Table:
        from coltables.transforms import select

        return select(self, *names, **relabel)

    def rename(self, mapping: dict[str, str] | None = None, **renames: str) -> Table:
        from coltables.transforms import rename

        return rename(self, mapping, **renames)

    def mutate(self, *pairs: Any, evaluator: Any = None, **named: Any) -> Table:
        from coltables.transforms import mutate

        return mutate(self, *pairs, evaluator=evaluator, **named)

    def arrange(self, *keys: str | SortKey, by_group: bool = False) -> Table:
        from coltables.transforms import arrange

        return arrange(self, *keys, by_group=by_group)

    def filter_rows(self, *conditions: Any, evaluator: Any = None) -> Table:
        from coltables.transforms import filter_rows

        return filter_rows(self, *conditions, evaluator=evaluator)

    def group_by(self, *keys: str, add: bool = False) -> Table:
        from coltables.transforms import group_by

        return group_by(self, *keys, add=add)

    def ungroup(self) -> Table:
        from coltables.transforms import ungroup

        return ungroup(self)

    def summarise(self, *pairs: Any, groups: str = "drop", evaluator: Any = None, **named: Any) -> Table:
        from coltables.transforms import summarise

        return summarise(self, *pairs, groups=groups, evaluator=evaluator, **named)

    summarize = summarise

    def set_attribute(self, key: str, value: Any) -> Table:
        from coltables.transforms import set_attribute

        return set_attribute(self, key, value)
