"""Observing which storage tables share.

Tokens are comparable integers, stable for as long as the handle lives and
distinct among live allocations. Inspection never copies, acquires or
releases anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from coltables.attributes import AttributeSet
from coltables.column import ColumnStore
from coltables.table import Table
from coltables.types import is_vector


class Sharing(Enum):
    """How one column name relates across two tables."""

    SHARED = "shared"
    DIFFERENT = "different"
    ONLY_LEFT = "only_left"
    ONLY_RIGHT = "only_right"


def identity(obj: Any) -> int:
    """Return the identity token of a table, store, attribute set or raw sequence."""
    if isinstance(obj, (Table, ColumnStore, AttributeSet)):
        return obj.token
    if is_vector(obj):
        return id(obj)
    raise TypeError(f"No storage identity for {type(obj).__name__}")


@dataclass(frozen=True)
class TableIdentity:
    """Identity tokens of a table, its attribute set and each column."""

    table: int
    attributes: int
    columns: dict[str, int] = field(default_factory=dict)

    @property
    def tokens(self) -> frozenset[int]:
        """Return the set of column storage tokens, ignoring names."""
        return frozenset(self.columns.values())


@dataclass(frozen=True)
class IdentityDiff:
    """Per-column sharing between two tables, plus attribute set sharing."""

    columns: dict[str, Sharing]
    attributes_shared: bool

    @property
    def shared(self) -> list[str]:
        """Names whose storage is shared by both tables."""
        return [name for name, state in self.columns.items() if state is Sharing.SHARED]

    @property
    def different(self) -> list[str]:
        """Names present in both tables with different storage."""
        return [name for name, state in self.columns.items() if state is Sharing.DIFFERENT]

    @property
    def all_shared(self) -> bool:
        return all(state is Sharing.SHARED for state in self.columns.values())

    @property
    def none_shared(self) -> bool:
        return not self.shared


def inspect_table(table: Table) -> TableIdentity:
    """Report the identity of a table, its attribute set and every column."""
    return TableIdentity(
        table=table.token,
        attributes=table.attributes.token,
        columns={name: store.token for name, store in table.stores()},
    )


def diff_tables(left: Table, right: Table) -> IdentityDiff:
    """Compare the storage identities of two tables column by column.

    Columns are matched by name; names present in only one table are
    reported as such.
    """
    before = inspect_table(left)
    after = inspect_table(right)
    columns: dict[str, Sharing] = {}
    for name, token in before.columns.items():
        if name not in after.columns:
            columns[name] = Sharing.ONLY_LEFT
        elif after.columns[name] == token:
            columns[name] = Sharing.SHARED
        else:
            columns[name] = Sharing.DIFFERENT
    for name in after.columns:
        if name not in before.columns:
            columns[name] = Sharing.ONLY_RIGHT
    return IdentityDiff(columns=columns, attributes_shared=before.attributes == after.attributes)
