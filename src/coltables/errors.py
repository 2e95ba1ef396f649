"""Exceptions raised by coltables."""

from __future__ import annotations

from typing import Any


class TableError(Exception):
    """Base class for all coltables errors."""


class DuplicateNameError(TableError):
    """A column name appears more than once."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate column name '{name}'")
        self.column = name


class StructuralError(TableError):
    """Input to coercion or table construction failed structural validation.

    Attributes:
        check: Which check failed ("name", "structure", "length" or "attributes").
        column: The offending entry, if one can be named.
    """

    def __init__(self, check: str, message: str, column: Any = None) -> None:
        super().__init__(message)
        self.check = check
        self.column = column


class ShapeError(TableError):
    """A column length is incompatible with the established row count."""

    def __init__(self, column: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Column '{column}' has length {actual}, expected {expected}"
            + (" or 1" if expected != 1 else "")
        )
        self.column = column
        self.expected = expected
        self.actual = actual


class UnknownColumnError(TableError, KeyError):
    """Reference to a column that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.column = name

    def __str__(self) -> str:
        return f"Unknown column '{self.column}'"


class ComparisonError(TableError, TypeError):
    """Ordering was requested on values that cannot be compared."""

    def __init__(self, column: str, reason: str) -> None:
        super().__init__(f"Cannot order column '{column}': {reason}")
        self.column = column


class EvaluationError(TableError):
    """The expression evaluator failed; the original error is chained."""

    def __init__(self, message: str, column: str | None = None) -> None:
        if column is not None:
            message = f"Evaluating '{column}': {message}"
        super().__init__(message)
        self.column = column


class OwnershipError(TableError):
    """A handle was released too often or used after release."""
