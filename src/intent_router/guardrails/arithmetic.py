"""Recursive-descent evaluator for four-operator decimal arithmetic.

Grammar::

    expression := term (("+" | "-") term)*
    term       := factor (("*" | "/") factor)*
    factor     := "(" expression ")" | number
    number     := [0-9.]+

Values are `decimal.Decimal` so `0.1 + 0.2` is exactly `0.3`. Operands are
limited to 28 significant digits. A result may drop fractional digits past
that precision (`1/3`), but an inexact result that loses integer digits is
an error, never a silently rounded answer. There is no unary minus; `-3`
is a missing operand.
"""

from __future__ import annotations

import operator
from collections.abc import Callable
from decimal import Decimal, DecimalException, Inexact, InvalidOperation, getcontext, localcontext

from intent_router.errors import DivideByZero, ExpressionError

_PRECISION = 28


def evaluate(expression: str) -> Decimal:
    """Evaluate `expression`, raising `ExpressionError` when malformed."""

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        parser = _ExpressionParser(expression)
        try:
            value = parser.parse_expression()
        except DecimalException as exc:
            raise ExpressionError(type(exc).__name__) from exc
        parser.skip_whitespace()
        if not parser.at_end():
            raise ExpressionError(f"Unexpected input at position {parser.pos}")
        return value


def format_decimal(value: Decimal) -> str:
    """Render without exponent notation (`Decimal('1E+1')` -> `'10'`)."""

    if value.is_zero():
        return "0"
    if value == value.to_integral_value():
        return format(value.to_integral_value(), "f")
    return format(value.normalize(), "f")


def _checked(
    op: Callable[[Decimal, Decimal], Decimal], left: Decimal, right: Decimal
) -> Decimal:
    ctx = getcontext()
    ctx.clear_flags()
    result = op(left, right)
    if ctx.flags[Inexact] and result.as_tuple().exponent > 0:
        raise ExpressionError(f"Result exceeds {_PRECISION} significant digits")
    return result


class _ExpressionParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse_expression(self) -> Decimal:
        value = self._parse_term()
        while True:
            self.skip_whitespace()
            if self._match("+"):
                value = _checked(operator.add, value, self._parse_term())
            elif self._match("-"):
                value = _checked(operator.sub, value, self._parse_term())
            else:
                return value

    def _parse_term(self) -> Decimal:
        value = self._parse_factor()
        while True:
            self.skip_whitespace()
            if self._match("*"):
                value = _checked(operator.mul, value, self._parse_factor())
            elif self._match("/"):
                denominator = self._parse_factor()
                if denominator == 0:
                    raise DivideByZero("Division by zero")
                value = _checked(operator.truediv, value, denominator)
            else:
                return value

    def _parse_factor(self) -> Decimal:
        self.skip_whitespace()
        if self._match("("):
            inner = self.parse_expression()
            self.skip_whitespace()
            if not self._match(")"):
                raise ExpressionError("Missing ')'")
            return inner
        return self._parse_number()

    def _parse_number(self) -> Decimal:
        self.skip_whitespace()
        start = self.pos
        while not self.at_end() and (self.text[self.pos].isdigit() or self.text[self.pos] == "."):
            self.pos += 1
        if start == self.pos:
            raise ExpressionError(f"Expected number at position {start}")
        token = self.text[start : self.pos]
        try:
            value = Decimal(token)
        except InvalidOperation as exc:
            raise ExpressionError(f"Bad number: {token}") from exc
        if len(value.as_tuple().digits) > _PRECISION:
            raise ExpressionError(f"Number too long: {token}")
        return value

    def skip_whitespace(self) -> None:
        while not self.at_end() and self.text[self.pos].isspace():
            self.pos += 1

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _match(self, char: str) -> bool:
        if not self.at_end() and self.text[self.pos] == char:
            self.pos += 1
            return True
        return False
