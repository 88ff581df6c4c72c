"""Quantity expression evaluator.

Field staff type quantities such as ``3x4``, ``2.5 + 1.2`` or ``(4+2)*3``.
The text is normalised, checked against a strict character whitelist and
then evaluated by a small recursive-descent parser. It is never handed to
``eval``; the grammar only knows decimal literals, ``+ - * /``, unary sign
and parentheses:

    expr   := term (('+' | '-') term)*
    term   := unary (('*' | '/') unary)*
    unary  := ('+' | '-') unary | atom
    atom   := NUMBER | '(' expr ')'
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from hcregister.exceptions import ExpressionError

_MULTIPLY_GLYPHS = re.compile(r"Ã—|×|[xX]")
_WHITESPACE = re.compile(r"\s+")
_ALLOWED = re.compile(r"^[0-9+\-*/().]+$")
_NUMBER = re.compile(r"\d+\.?\d*|\.\d+")

# Nesting limit for parentheses and unary signs
MAX_DEPTH = 100


@dataclass(frozen=True)
class Evaluation:
    """Outcome of evaluating a quantity expression.

    ``value`` is only meaningful when ``ok`` is true.
    """

    ok: bool
    value: float = 0.0


class _ParseError(ValueError):
    pass


def normalize_expression(expr: str) -> str:
    """Map multiplication glyphs to ``*`` and strip whitespace."""
    return _WHITESPACE.sub("", _MULTIPLY_GLYPHS.sub("*", expr or ""))


def evaluate_expression(expr: str) -> Evaluation:
    """Evaluate a free-text quantity expression.

    Returns:
        Evaluation(ok=True, value=...) for a finite result (empty input is 0),
        Evaluation(ok=False) for anything else.
    """
    text = normalize_expression(expr)
    if not text:
        return Evaluation(ok=True, value=0.0)
    if not _ALLOWED.match(text):
        return Evaluation(ok=False)
    # doubled signs read as increment/decrement in the legacy evaluator
    if "++" in text or "--" in text:
        return Evaluation(ok=False)

    try:
        value = _Parser(text).parse()
    except (_ParseError, ZeroDivisionError, OverflowError):
        return Evaluation(ok=False)

    if not math.isfinite(value):
        return Evaluation(ok=False)
    return Evaluation(ok=True, value=value)


def parse_quantity(expr: str) -> float:
    """Evaluate ``expr`` or raise ExpressionError."""
    evaluation = evaluate_expression(expr)
    if not evaluation.ok:
        raise ExpressionError(expr)
    return evaluation.value


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.depth = 0

    def parse(self) -> float:
        value = self._expr()
        if self.pos != len(self.text):
            raise _ParseError(f"unexpected {self.text[self.pos]!r} at {self.pos}")
        return value

    def _peek(self) -> str | None:
        return self.text[self.pos] if self.pos < len(self.text) else None

    def _expr(self) -> float:
        value = self._term()
        while self._peek() in ("+", "-"):
            op = self.text[self.pos]
            self.pos += 1
            rhs = self._term()
            value = value + rhs if op == "+" else value - rhs
        return value

    def _term(self) -> float:
        value = self._unary()
        while self._peek() in ("*", "/"):
            op = self.text[self.pos]
            self.pos += 1
            rhs = self._unary()
            value = value * rhs if op == "*" else value / rhs
        return value

    def _descend(self) -> None:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise _ParseError(f"nested deeper than {MAX_DEPTH}")

    def _unary(self) -> float:
        op = self._peek()
        if op in ("+", "-"):
            self.pos += 1
            self._descend()
            operand = self._unary()
            self.depth -= 1
            return -operand if op == "-" else operand
        return self._atom()

    def _atom(self) -> float:
        if self._peek() == "(":
            self.pos += 1
            self._descend()
            value = self._expr()
            self.depth -= 1
            if self._peek() != ")":
                raise _ParseError("unbalanced parenthesis")
            self.pos += 1
            return value

        match = _NUMBER.match(self.text, self.pos)
        if not match:
            raise _ParseError(f"expected number at {self.pos}")
        self.pos = match.end()
        return float(match.group())
