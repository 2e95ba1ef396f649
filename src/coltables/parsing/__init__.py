"""Parsing module for the column expression language."""

from coltables.parsing.expr_lexer import ExpressionLexer
from coltables.parsing.expr_parser import (
    BinaryOp,
    Call,
    ExpressionParser,
    Literal,
    Name,
    UnaryOp,
)

__all__ = [
    "BinaryOp",
    "Call",
    "ExpressionLexer",
    "ExpressionParser",
    "Literal",
    "Name",
    "UnaryOp",
]
