"""Evaluation of column expressions against a growing environment."""

from __future__ import annotations

import functools
import math
import operator
import statistics
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, Protocol

from coltables.errors import EvaluationError, TableError, UnknownColumnError
from coltables.parsing import BinaryOp, Call, ExpressionParser, Literal, Name, UnaryOp
from coltables.types import is_vector


class ExpressionEvaluator(Protocol):
    """Anything that can evaluate an expression against an environment."""

    def evaluate(self, expression: Any, env: Environment) -> Any: ...


class Environment(Mapping[str, Any]):
    """Column bindings visible to an expression.

    Bindings are either eager values or zero-argument loaders that are run
    on first lookup, so grouped evaluation only slices the columns an
    expression actually references.
    """

    def __init__(
        self,
        bindings: Mapping[str, Any] | None = None,
        nrow: int = 0,
        lazy: Mapping[str, Callable[[], Any]] | None = None,
    ) -> None:
        self._bindings: dict[str, Any] = dict(bindings or {})
        self._lazy: dict[str, Callable[[], Any]] = dict(lazy or {})
        self.nrow = nrow

    def bind(self, name: str, value: Any) -> None:
        self._lazy.pop(name, None)
        self._bindings[name] = value

    def unbind(self, name: str) -> None:
        self._lazy.pop(name, None)
        self._bindings.pop(name, None)

    def __getitem__(self, name: str) -> Any:
        if name in self._bindings:
            return self._bindings[name]
        loader = self._lazy.pop(name, None)
        if loader is None:
            raise UnknownColumnError(name)
        value = self._bindings[name] = loader()
        return value

    def __contains__(self, name: object) -> bool:
        return name in self._bindings or name in self._lazy

    def __iter__(self) -> Iterator[str]:
        yield from self._bindings
        yield from self._lazy

    def __len__(self) -> int:
        return len(self._bindings) + len(self._lazy)


# Helpers for vector semantics


def _as_list(value: Any) -> list[Any]:
    return list(value) if is_vector(value) else [value]


def _map1(fn: Callable[[Any], Any], x: Any) -> Any:
    if is_vector(x):
        return [None if v is None else fn(v) for v in x]
    return None if x is None else fn(x)


def _map2(fn: Callable[[Any, Any], Any], a: Any, b: Any) -> Any:
    """Apply fn elementwise, recycling length-1 operands."""
    if not is_vector(a) and not is_vector(b):
        return None if a is None or b is None else fn(a, b)
    left, right = _as_list(a), _as_list(b)
    if len(left) == len(right):
        n = len(left)
    elif len(left) == 1:
        n = len(right)
        left = left * n
    elif len(right) == 1:
        n = len(left)
        right = right * n
    else:
        raise EvaluationError(f"Operand lengths differ: {len(left)} and {len(right)}")
    return [None if x is None or y is None else fn(x, y) for x, y in zip(left, right)]


def _and(a: Any, b: Any) -> Any:
    if a is False or b is False:
        return False
    if a is None or b is None:
        return None
    return bool(a and b)


def _or(a: Any, b: Any) -> Any:
    if a is True or b is True:
        return True
    if a is None or b is None:
        return None
    return bool(a or b)


def _logical(fn: Callable[[Any, Any], Any], a: Any, b: Any) -> Any:
    if not is_vector(a) and not is_vector(b):
        return fn(a, b)
    left, right = _as_list(a), _as_list(b)
    n = max(len(left), len(right))
    if len(left) == 1:
        left = left * n
    if len(right) == 1:
        right = right * n
    if len(left) != len(right):
        raise EvaluationError(f"Operand lengths differ: {len(left)} and {len(right)}")
    return [fn(x, y) for x, y in zip(left, right)]


def _seq(start: Any, stop: Any) -> list[int]:
    if is_vector(start) or is_vector(stop):
        start, stop = _as_list(start), _as_list(stop)
        if len(start) != 1 or len(stop) != 1:
            raise EvaluationError("Range bounds must be single values")
        start, stop = start[0], stop[0]
    if start is None or stop is None:
        raise EvaluationError("Range bounds must not be null")
    if int(start) != start or int(stop) != stop:
        raise EvaluationError(f"Range bounds must be whole numbers, got {start} and {stop}")
    start, stop = int(start), int(stop)
    step = 1 if stop >= start else -1
    return list(range(start, stop + step, step))


BINARY_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": operator.mod,
    "^": operator.pow,
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


# Reductions and vector functions


def _reduction(fn: Callable[[list[Any]], Any]) -> Callable[[Any], Any]:
    """Wrap a reduction so that a missing value makes the result missing."""

    def reduce(x: Any) -> Any:
        values = _as_list(x)
        if any(v is None for v in values):
            return None
        return fn(values)

    reduce.__name__ = fn.__name__
    return reduce


def _mean(values: list[Any]) -> Any:
    return statistics.fmean(values) if values else None


def _median(values: list[Any]) -> Any:
    return statistics.median(values) if values else None


def _min(values: list[Any]) -> Any:
    return min(values) if values else None


def _max(values: list[Any]) -> Any:
    return max(values) if values else None


def _length(x: Any) -> int:
    return len(x) if is_vector(x) else 1


def _first(x: Any) -> Any:
    values = _as_list(x)
    return values[0] if values else None


def _last(x: Any) -> Any:
    values = _as_list(x)
    return values[-1] if values else None


def _n_distinct(x: Any) -> int:
    return len(set(_as_list(x)))


def _round(x: Any, digits: Any = 0) -> Any:
    return _map1(lambda v: round(v, int(digits)), x)


def _if_else(condition: Any, yes: Any, no: Any) -> Any:
    if not is_vector(condition) and not is_vector(yes) and not is_vector(no):
        return None if condition is None else (yes if condition else no)
    conditions, yeses, nos = _as_list(condition), _as_list(yes), _as_list(no)
    n = max(len(conditions), len(yeses), len(nos))
    columns = []
    for values in (conditions, yeses, nos):
        if len(values) == 1:
            values = values * n
        elif len(values) != n:
            raise EvaluationError(f"if_else() arguments have lengths {len(values)} and {n}")
        columns.append(values)
    return [None if c is None else (y if c else o) for c, y, o in zip(*columns)]


def _combine(*args: Any) -> list[Any]:
    combined: list[Any] = []
    for arg in args:
        if is_vector(arg):
            combined.extend(arg)
        else:
            combined.append(arg)
    return combined


def _cumsum(x: Any) -> list[Any]:
    total: Any = 0
    result = []
    for value in _as_list(x):
        total = None if value is None or total is None else total + value
        result.append(total)
    return result


class Evaluator:
    """Evaluates expressions in the column expression language.

    An expression is a string in the expression language, a callable taking
    the environment, or a literal value returned as is. Arithmetic is
    elementwise over sequences with length-1 recycling and missing values
    (None) propagate.
    """

    FUNCTIONS: dict[str, Callable[..., Any]] = {
        # Reductions
        "sum": _reduction(sum),
        "mean": _reduction(_mean),
        "median": _reduction(_median),
        "min": _reduction(_min),
        "max": _reduction(_max),
        "any": _reduction(any),
        "all": _reduction(all),
        "length": _length,
        "first": _first,
        "last": _last,
        "n_distinct": _n_distinct,
        # Elementwise
        "abs": lambda x: _map1(abs, x),
        "sqrt": lambda x: _map1(math.sqrt, x),
        "exp": lambda x: _map1(math.exp, x),
        "log": lambda x: _map1(math.log, x),
        "round": _round,
        "if_else": _if_else,
        # Vectors
        "c": _combine,
        "rev": lambda x: _as_list(x)[::-1],
        "cumsum": _cumsum,
    }

    # Functions that read the environment instead of their arguments
    CONTEXT_FUNCTIONS: dict[str, Callable[[Environment], Any]] = {
        "n": lambda env: env.nrow,
    }

    # Parsed trees kept per evaluator, least recently used dropped first
    PARSE_CACHE_SIZE = 1024

    def __init__(self, functions: Mapping[str, Callable[..., Any]] | None = None) -> None:
        """Initialize an evaluator.

        Args:
            functions: Extra or overriding functions callable from expressions.
        """
        self.functions = dict(self.FUNCTIONS)
        if functions:
            self.functions.update(functions)
        self._parser = ExpressionParser()
        self._parse_cached = functools.lru_cache(maxsize=self.PARSE_CACHE_SIZE)(self._parse_source)

    def parse(self, source: str) -> Any:
        """Parse an expression string, caching the tree."""
        return self._parse_cached(source)

    def _parse_source(self, source: str) -> Any:
        try:
            return self._parser.parse(source)
        except SyntaxError as exc:
            raise EvaluationError(f"{exc} in {source!r}") from exc

    def reference(self, expression: Any) -> str | None:
        """Return the column name if an expression is a bare column reference."""
        if not isinstance(expression, str):
            return None
        node = self.parse(expression)
        return node.name if isinstance(node, Name) else None

    def evaluate(self, expression: Any, env: Environment) -> Any:
        """Evaluate an expression.

        Raises:
            EvaluationError: If parsing or evaluation fails.
            UnknownColumnError: If the expression names an unbound column.
        """
        try:
            if isinstance(expression, str):
                return self._eval(self.parse(expression), env)
            if callable(expression):
                return expression(env)
        except TableError:
            raise
        except Exception as exc:
            raise EvaluationError(f"{type(exc).__name__}: {exc}") from exc
        return expression

    def _eval(self, node: Any, env: Environment) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Name):
            return env[node.name]
        if isinstance(node, UnaryOp):
            operand = self._eval(node.operand, env)
            if node.op == "-":
                return _map1(operator.neg, operand)
            return _map1(operator.not_, operand)
        if isinstance(node, BinaryOp):
            left = self._eval(node.left, env)
            right = self._eval(node.right, env)
            if node.op == ":":
                return _seq(left, right)
            if node.op == "&":
                return _logical(_and, left, right)
            if node.op == "|":
                return _logical(_or, left, right)
            return _map2(BINARY_OPERATORS[node.op], left, right)
        if isinstance(node, Call):
            return self._call(node, env)
        raise EvaluationError(f"Cannot evaluate node {node!r}")

    def _call(self, node: Call, env: Environment) -> Any:
        context_fn = self.CONTEXT_FUNCTIONS.get(node.func)
        if context_fn is not None:
            if node.args:
                raise EvaluationError(f"{node.func}() takes no arguments")
            return context_fn(env)
        fn = self.functions.get(node.func)
        if fn is None:
            raise EvaluationError(f"Unknown function '{node.func}'")
        return fn(*(self._eval(arg, env) for arg in node.args))


DEFAULT_EVALUATOR = Evaluator()


def evaluate_column(
    evaluator: ExpressionEvaluator, expression: Any, env: Environment, column: str
) -> Any:
    """Evaluate an expression for a column, naming the column on failure."""
    try:
        return evaluator.evaluate(expression, env)
    except EvaluationError as exc:
        if exc.column is not None:
            raise
        raise EvaluationError(str(exc), column=column) from exc


def iter_pairs(pairs: Iterable[Any], named: Mapping[str, Any]) -> Iterator[tuple[str, Any]]:
    """Yield (name, expression) from positional pairs or mappings, then keywords."""
    for item in pairs:
        if isinstance(item, Mapping):
            yield from item.items()
        elif isinstance(item, tuple) and len(item) == 2:
            yield item
        else:
            raise TypeError(f"Expected a (name, expression) pair or mapping, got {item!r}")
    yield from named.items()
