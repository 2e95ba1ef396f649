"""Parser for the column expression language."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from coltables.parsing.expr_lexer import ExpressionLexer


@dataclass(frozen=True)
class Literal:
    """A constant: number, string, boolean or null."""

    value: Any


@dataclass(frozen=True)
class Name:
    """A reference to a bound column."""

    name: str


@dataclass(frozen=True)
class UnaryOp:
    """A prefix operator: "-" or "!"."""

    op: str
    operand: Any


@dataclass(frozen=True)
class BinaryOp:
    """An infix operator such as "+", "^", ":" or "=="."""

    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Call:
    """A function call like mean(x)."""

    func: str
    args: tuple[Any, ...] = field(default_factory=tuple)


Expression = Literal | Name | UnaryOp | BinaryOp | Call


class ExpressionParser:
    """Parser for column expressions such as ``x ^ 2 + mean(y)``."""

    tokens = ExpressionLexer.tokens

    # Operator precedence, lowest first
    precedence = (
        ("left", "OR"),
        ("left", "AND"),
        ("right", "NOT"),
        ("nonassoc", "EQ", "NEQ", "LT", "LTE", "GT", "GTE"),
        ("left", "PLUS", "MINUS"),
        ("left", "STAR", "SLASH", "PERCENT"),
        ("left", "COLON"),
        ("right", "UMINUS"),
        ("right", "CARET"),
    )

    def __init__(self) -> None:
        self.lexer = ExpressionLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_expression_binary(self, p: yacc.YaccProduction) -> None:
        """expression : expression OR expression
                      | expression AND expression
                      | expression EQ expression
                      | expression NEQ expression
                      | expression LT expression
                      | expression LTE expression
                      | expression GT expression
                      | expression GTE expression
                      | expression PLUS expression
                      | expression MINUS expression
                      | expression STAR expression
                      | expression SLASH expression
                      | expression PERCENT expression
                      | expression COLON expression
                      | expression CARET expression"""
        p[0] = BinaryOp(op=p[2], left=p[1], right=p[3])

    def p_expression_negate(self, p: yacc.YaccProduction) -> None:
        """expression : MINUS expression %prec UMINUS"""
        operand = p[2]
        # Fold negative numeric literals
        if isinstance(operand, Literal) and type(operand.value) in (int, float):
            p[0] = Literal(-operand.value)
        else:
            p[0] = UnaryOp(op="-", operand=operand)

    def p_expression_not(self, p: yacc.YaccProduction) -> None:
        """expression : NOT expression"""
        p[0] = UnaryOp(op="!", operand=p[2])

    def p_expression_group(self, p: yacc.YaccProduction) -> None:
        """expression : LPAREN expression RPAREN"""
        p[0] = p[2]

    def p_expression_call(self, p: yacc.YaccProduction) -> None:
        """expression : IDENTIFIER LPAREN RPAREN
                      | IDENTIFIER LPAREN arg_list RPAREN"""
        args = tuple(p[3]) if len(p) == 5 else ()
        p[0] = Call(func=p[1], args=args)

    def p_arg_list_single(self, p: yacc.YaccProduction) -> None:
        """arg_list : expression"""
        p[0] = [p[1]]

    def p_arg_list_multiple(self, p: yacc.YaccProduction) -> None:
        """arg_list : arg_list COMMA expression"""
        p[0] = p[1] + [p[3]]

    def p_expression_name(self, p: yacc.YaccProduction) -> None:
        """expression : IDENTIFIER"""
        p[0] = Name(name=p[1])

    def p_expression_literal(self, p: yacc.YaccProduction) -> None:
        """expression : INTEGER
                      | FLOAT
                      | STRING"""
        p[0] = Literal(value=p[1])

    def p_expression_true(self, p: yacc.YaccProduction) -> None:
        """expression : TRUE"""
        p[0] = Literal(value=True)

    def p_expression_false(self, p: yacc.YaccProduction) -> None:
        """expression : FALSE"""
        p[0] = Literal(value=False)

    def p_expression_null(self, p: yacc.YaccProduction) -> None:
        """expression : NULL"""
        p[0] = Literal(value=None)

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="expression", **kwargs)

    def parse(self, data: str) -> Expression:
        """Parse an expression string."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        return self.parser.parse(data, lexer=self.lexer.lexer)
