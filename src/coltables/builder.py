"""Building tables from ordered (name, expression) pairs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from coltables.column import ColumnStore, as_vector, broadcast
from coltables.errors import DuplicateNameError, ShapeError, StructuralError
from coltables.evaluator import (
    DEFAULT_EVALUATOR,
    Environment,
    ExpressionEvaluator,
    evaluate_column,
    iter_pairs,
)
from coltables.table import Table

logger = logging.getLogger(__name__)


def find_store(value: Any, stores: Iterable[ColumnStore]) -> ColumnStore | None:
    """Return the store already backed by this exact value object, if any."""
    for store in stores:
        if store.wraps(value):
            return store
    return None


def build_table(*pairs: Any, evaluator: ExpressionEvaluator | None = None, **named: Any) -> Table:
    """Build a table column by column.

    Expressions are evaluated left to right; each one sees the columns bound
    before it. A length-1 result is broadcast to the established row count,
    and while every column so far has length 1 a longer result broadcasts
    them instead. Names are used verbatim.

    Args:
        *pairs: (name, expression) tuples or mappings, in column order.
        evaluator: Expression evaluator; the default expression language if omitted.
        **named: More columns, appended after pairs.

    Raises:
        DuplicateNameError: If a name repeats.
        ShapeError: If two lengths greater than 1 differ.
        EvaluationError: If an expression fails.
    """
    evaluator = evaluator or DEFAULT_EVALUATOR
    env = Environment()
    columns: dict[str, ColumnStore] = {}
    nrow: int | None = None

    for name, expression in iter_pairs(pairs, named):
        if not isinstance(name, str) or not name:
            raise StructuralError("name", f"Column name must be a non-empty string, got {name!r}", name)
        if name in columns:
            raise DuplicateNameError(name)

        value = as_vector(evaluate_column(evaluator, expression, env, name))
        store = find_store(value, columns.values())
        if store is None:
            store = ColumnStore(value)

        if nrow is None or store.length == nrow:
            nrow = store.length
        elif store.length == 1:
            store = ColumnStore(broadcast(store.values, nrow))
        elif nrow == 1:
            # Everything bound so far has length 1; recycle it to the new length
            nrow = store.length
            for earlier, earlier_store in list(columns.items()):
                columns[earlier] = ColumnStore(broadcast(earlier_store.values, nrow))
                env.bind(earlier, columns[earlier].values)
        else:
            raise ShapeError(name, nrow, store.length)

        columns[name] = store
        env.bind(name, store.values)
        env.nrow = nrow

    logger.debug("Built table with %d column(s) and %d row(s)", len(columns), nrow or 0)
    return Table(columns.items(), nrow=nrow or 0)
