"""Table transformations that share column storage with their input.

Every operation returns a new table. Column stores are reused verbatim
wherever the column's values are unchanged, and rebuilt only where they
must be:

    select, rename, group_by, ungroup, set_attribute, bind_cols
        reuse every retained store
    mutate
        reuses every store it does not assign to
    arrange, filter_rows
        rebuild every store (element order or count changes)
    summarise
        builds entirely new stores
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any

from coltables.attributes import AttributeSet
from coltables.builder import find_store
from coltables.column import ColumnStore, as_vector, broadcast, take
from coltables.errors import (
    DuplicateNameError,
    EvaluationError,
    ShapeError,
    StructuralError,
    UnknownColumnError,
)
from coltables.evaluator import (
    DEFAULT_EVALUATOR,
    Environment,
    ExpressionEvaluator,
    evaluate_column,
    iter_pairs,
)
from coltables.ordering import OrderKey, group_indices, order_indices
from coltables.table import Table
from coltables.types import is_vector

logger = logging.getLogger(__name__)

GROUPS_OPTIONS = ("drop", "drop_last", "keep")


class _Drop:
    def __repr__(self) -> str:
        return "DROP"


# Assign to a column in mutate() to remove it
DROP: Any = _Drop()


@dataclass(frozen=True)
class SortKey:
    """A column to sort by and its direction."""

    name: str
    descending: bool = False


def desc(name: str) -> SortKey:
    """Sort key for descending order."""
    return SortKey(name, descending=True)


def _log_sharing(operation: str, source: Table, columns: Sequence[tuple[str, ColumnStore]]) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    inputs = {id(store) for _, store in source.stores()}
    reused = sum(1 for _, store in columns if id(store) in inputs)
    logger.debug(
        "%s: reused %d column store(s), built %d", operation, reused, len(columns) - reused
    )


def _check_name(name: Any) -> None:
    if not isinstance(name, str) or not name:
        raise StructuralError("name", f"Column name must be a non-empty string, got {name!r}", name)


def _group_env(columns: Mapping[str, ColumnStore], rows: list[int]) -> Environment:
    """Environment exposing one group's rows, sliced on first use."""
    lazy = {name: partial(take, store.values, rows) for name, store in columns.items()}
    return Environment(nrow=len(rows), lazy=lazy)


def _partition(
    columns: Mapping[str, ColumnStore], keys: Sequence[str], nrow: int
) -> list[tuple[tuple[Any, ...], list[int]]]:
    if not keys:
        return [((), list(range(nrow)))]
    order_keys = [OrderKey(key, columns[key].values, columns[key].type) for key in keys]
    return group_indices(order_keys, nrow)


def _fit_length(value: Sequence[Any], name: str, nrow: int) -> Sequence[Any]:
    if len(value) == nrow:
        return value
    if len(value) == 1:
        return broadcast(value, nrow)
    raise ShapeError(name, nrow, len(value))


def _evaluate_by_group(
    evaluator: ExpressionEvaluator,
    expression: Any,
    columns: Mapping[str, ColumnStore],
    name: str,
    nrow: int,
    partitions: list[tuple[tuple[Any, ...], list[int]]],
) -> list[Any]:
    """Evaluate once per group and stitch the results back in row order."""
    if not partitions:
        # No groups: evaluate once against empty columns so bad references still fail
        env = _group_env(columns, [])
        _fit_length(as_vector(evaluate_column(evaluator, expression, env, name)), name, 0)
        return []
    result: list[Any] = [None] * nrow
    for _, rows in partitions:
        env = _group_env(columns, rows)
        value = _fit_length(
            as_vector(evaluate_column(evaluator, expression, env, name)), name, len(rows)
        )
        for position, row in enumerate(rows):
            result[row] = value[position]
    return result


def _reference(evaluator: ExpressionEvaluator, expression: Any, name: str) -> str | None:
    """Return the column an expression merely refers to, if the evaluator can tell."""
    reference = getattr(evaluator, "reference", None)
    if reference is None:
        return None
    try:
        return reference(expression)
    except EvaluationError as exc:
        raise EvaluationError(str(exc), column=name) from exc


def select(table: Table, *names: str, **relabel: str) -> Table:
    """Project a table onto some of its columns.

    Positional names are kept as is; keyword arguments relabel
    (new_name="old_name"). Stores are reused for every retained column.
    Grouping columns missing from the selection are added in front.
    """
    picks = [(name, name) for name in names] + list(relabel.items())
    for _, old in picks:
        table.store(old)

    if table.is_grouped:
        chosen = {old for _, old in picks}
        missing = [key for key in table.groups if key not in chosen]
        if missing:
            logger.info("Adding missing grouping variables: %s", ", ".join(missing))
            picks = [(key, key) for key in missing] + picks

    columns: list[tuple[str, ColumnStore]] = []
    sources: dict[str, str] = {}
    for new, old in picks:
        if new in sources:
            if sources[new] == old:
                continue
            raise DuplicateNameError(new)
        sources[new] = old
        columns.append((new, table.store(old)))

    groups = []
    for key in table.groups:
        groups.append(next(new for new, old in sources.items() if old == key))

    attributes = table.attributes.replace(names=[name for name, _ in columns], groups=groups)
    _log_sharing("select", table, columns)
    return Table(columns, attributes, nrow=table.nrow)


def rename(table: Table, mapping: Mapping[str, str] | None = None, **renames: str) -> Table:
    """Rename columns (new_name="old_name"); every store is reused."""
    wanted = dict(mapping or {})
    wanted.update(renames)
    new_names: dict[str, str] = {}
    for new, old in wanted.items():
        table.store(old)
        if old in new_names:
            raise ValueError(f"Column '{old}' renamed more than once")
        new_names[old] = new

    columns = [(new_names.get(name, name), store) for name, store in table.stores()]
    groups = [new_names.get(key, key) for key in table.groups]
    attributes = table.attributes.replace(names=[name for name, _ in columns], groups=groups)
    return Table(columns, attributes, nrow=table.nrow)


def mutate(
    table: Table, *pairs: Any, evaluator: ExpressionEvaluator | None = None, **named: Any
) -> Table:
    """Add or replace columns by evaluating expressions left to right.

    Each expression sees the table's columns plus everything assigned before
    it. Columns not assigned keep their stores. An assignment that is a bare
    reference to a bound column shares that column's store; every other
    assignment produces a new store, even when the values come out equal.
    New columns are appended; assigning DROP removes a column. On a grouped
    table each expression is evaluated per group; callables then see
    per-group slices, so only a bare string reference shares a store there.

    Raises:
        UnknownColumnError: If an expression or DROP names a missing column.
        ShapeError: If a result is neither length 1 nor the row (group) count.
    """
    evaluator = evaluator or DEFAULT_EVALUATOR
    nrow = table.nrow
    columns: dict[str, ColumnStore] = dict(table.stores())
    partitions = _partition(columns, table.groups, nrow) if table.is_grouped else None
    env = Environment({name: store.values for name, store in columns.items()}, nrow=nrow)

    for name, expression in iter_pairs(pairs, named):
        _check_name(name)
        if expression is DROP:
            if name not in columns:
                raise UnknownColumnError(name)
            del columns[name]
            env.unbind(name)
            continue

        reference = _reference(evaluator, expression, name)
        if reference is not None and reference in columns:
            store = columns[reference]
        elif partitions is None:
            value = as_vector(evaluate_column(evaluator, expression, env, name))
            store = find_store(value, columns.values())
            if store is None:
                store = ColumnStore(_fit_length(value, name, nrow))
        else:
            store = ColumnStore(_evaluate_by_group(evaluator, expression, columns, name, nrow, partitions))

        columns[name] = store
        env.bind(name, store.values)

    names = list(columns)
    if tuple(names) == table.names:
        attributes = table.attributes
    else:
        groups = [key for key in table.groups if key in columns]
        attributes = table.attributes.replace(names=names, groups=groups)

    result = list(columns.items())
    _log_sharing("mutate", table, result)
    return Table(result, attributes, nrow=nrow)


def arrange(table: Table, *keys: str | SortKey, by_group: bool = False) -> Table:
    """Reorder rows by key columns.

    The first key takes precedence, ties keep input order, and missing
    values sort last. Every column is rebuilt.

    Raises:
        UnknownColumnError: If a key is not a column.
        ComparisonError: If a key column cannot be ordered.
    """
    sort_keys = [key if isinstance(key, SortKey) else SortKey(key) for key in keys]
    if by_group:
        sort_keys = [SortKey(key) for key in table.groups] + sort_keys
    order_keys = []
    for key in sort_keys:
        store = table.store(key.name)
        order_keys.append(OrderKey(key.name, store.values, store.type, key.descending))

    order = order_indices(order_keys, range(table.nrow))
    columns = [
        (name, ColumnStore(take(store.values, order), store.declared_type))
        for name, store in table.stores()
    ]
    _log_sharing("arrange", table, columns)
    return Table(columns, table.attributes.replace(), nrow=table.nrow)


def filter_rows(table: Table, *conditions: Any, evaluator: ExpressionEvaluator | None = None) -> Table:
    """Keep the rows where every condition is true.

    Missing (None) results count as false. Every column is rebuilt.
    """
    evaluator = evaluator or DEFAULT_EVALUATOR
    nrow = table.nrow
    columns = dict(table.stores())
    keep = [True] * nrow

    if table.is_grouped:
        partitions = _partition(columns, table.groups, nrow)
        env = None
    else:
        partitions = None
        env = Environment({name: store.values for name, store in columns.items()}, nrow=nrow)

    for position, condition in enumerate(conditions, start=1):
        label = condition if isinstance(condition, str) else f"condition {position}"
        if partitions is None:
            mask = _fit_length(as_vector(evaluate_column(evaluator, condition, env, label)), label, nrow)
        else:
            mask = _evaluate_by_group(evaluator, condition, columns, label, nrow, partitions)
        keep = [kept and value is not None and bool(value) for kept, value in zip(keep, mask)]

    rows = [row for row in range(nrow) if keep[row]]
    result = [
        (name, ColumnStore(take(store.values, rows), store.declared_type))
        for name, store in columns.items()
    ]
    _log_sharing("filter_rows", table, result)
    return Table(result, table.attributes.replace(), nrow=len(rows))


def group_by(table: Table, *keys: str, add: bool = False) -> Table:
    """Record grouping keys; rows and column stores are untouched."""
    for key in keys:
        table.store(key)
    groups = list(table.groups) if add else []
    for key in keys:
        if key not in groups:
            groups.append(key)
    return Table(table.stores(), table.attributes.replace(groups=groups), nrow=table.nrow)


def ungroup(table: Table) -> Table:
    """Clear grouping keys; column stores are untouched."""
    return Table(table.stores(), table.attributes.replace(groups=()), nrow=table.nrow)


def summarise(
    table: Table,
    *pairs: Any,
    groups: str = "drop",
    evaluator: ExpressionEvaluator | None = None,
    **named: Any,
) -> Table:
    """Reduce each group to one row.

    The result has one row per distinct combination of grouping keys
    (ascending, missing last), or a single row for an ungrouped table. Key
    columns come first, then one column per summary. Later summaries see
    earlier ones. All stores are new.

    Args:
        groups: "drop" clears grouping, "drop_last" removes the last key,
            "keep" keeps every key.

    Raises:
        ShapeError: If a summary does not produce exactly one value per group.
        DuplicateNameError: If a summary name repeats or clashes with a key.
    """
    if groups not in GROUPS_OPTIONS:
        raise ValueError(f"groups must be one of {GROUPS_OPTIONS}, got {groups!r}")
    evaluator = evaluator or DEFAULT_EVALUATOR
    keys = table.groups
    stores = dict(table.stores())
    partitions = _partition(stores, keys, table.nrow)
    # With no groups, evaluate once against empty columns so bad references still fail
    envs = [_group_env(stores, rows) for _, rows in partitions] or [_group_env(stores, [])]

    summaries: dict[str, list[Any]] = {}
    for name, expression in iter_pairs(pairs, named):
        _check_name(name)
        if name in keys or name in summaries:
            raise DuplicateNameError(name)
        values = []
        for env in envs:
            value = evaluate_column(evaluator, expression, env, name)
            if is_vector(value):
                if len(value) != 1:
                    raise ShapeError(name, 1, len(value))
                value = value[0]
            values.append(value)
            env.bind(name, value)
        summaries[name] = values[: len(partitions)]

    columns = [
        (key, ColumnStore([group[position] for group, _ in partitions], stores[key].declared_type))
        for position, key in enumerate(keys)
    ]
    columns.extend((name, ColumnStore(values)) for name, values in summaries.items())

    if groups == "keep":
        kept = keys
    elif groups == "drop_last":
        kept = keys[:-1]
    else:
        kept = ()
    attributes = AttributeSet(
        [name for name, _ in columns], groups=kept, extras=table.attributes.extras
    )
    _log_sharing("summarise", table, columns)
    return Table(columns, attributes, nrow=len(partitions))


summarize = summarise


def bind_cols(*tables: Table) -> Table:
    """Place tables side by side; every store is reused.

    Raises:
        ShapeError: If row counts differ.
        DuplicateNameError: If a name appears in more than one table.
    """
    if not tables:
        return Table()
    nrow = tables[0].nrow
    columns: list[tuple[str, ColumnStore]] = []
    for table in tables:
        if table.nrow != nrow:
            label = table.names[0] if table.names else repr(table)
            raise ShapeError(label, nrow, table.nrow)
        columns.extend(table.stores())
    return Table(columns, nrow=nrow)


def set_attribute(table: Table, key: str, value: Any) -> Table:
    """Attach an extra table-level attribute; every store is reused."""
    extras = dict(table.attributes.extras)
    extras[key] = value
    return Table(table.stores(), table.attributes.replace(extras=extras), nrow=table.nrow)
