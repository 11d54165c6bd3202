"""Build conditions deciding whether a manifest entry is included.

A condition compares one variable against one literal::

    $build_kind == 'release'
    $target != 'edge'

Variables come from the caller-supplied bindings. An unset variable matches no
value, so ``==`` is false and ``!=`` is true whatever the literal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, NoReturn, Optional

from ..exceptions import ConditionSyntaxError

_IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_]+")
_LITERAL_RE = re.compile(r"[A-Za-z0-9_.\-]*")
_WHITESPACE = " "


class Operator(str, Enum):
    EQ = "=="
    NE = "!="


@dataclass(frozen=True)
class BuildCondition:
    variable: str
    operator: Operator
    literal: str
    expression: str = ""

    def evaluate(self, bindings: Mapping[str, str]) -> bool:
        value = bindings.get(self.variable)
        if value is None:
            return self.operator is Operator.NE
        if self.operator is Operator.EQ:
            return value == self.literal
        return value != self.literal

    def __str__(self) -> str:
        return f"${self.variable} {self.operator.value} '{self.literal}'"


def parse_condition(expression: str) -> BuildCondition:
    """Parse a condition expression, raising ``ConditionSyntaxError`` on malformed text."""

    return _ConditionScanner(expression).parse()


def should_build(condition: Optional[BuildCondition], bindings: Mapping[str, str]) -> bool:
    if condition is None:
        return True
    return condition.evaluate(bindings)


class _ConditionScanner:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> BuildCondition:
        self._skip_whitespace()
        if not self._peek("$"):
            self._fail('expected "$" followed by a variable name')
        self.pos += 1

        variable = self._match(_IDENTIFIER_RE)
        if not variable:
            self._fail("missing variable name after \"$\"")

        self._skip_whitespace()
        operator = self._operator()
        self._skip_whitespace()

        if not self._peek("'"):
            self._fail("expected a quoted literal")
        self.pos += 1
        literal = self._match(_LITERAL_RE)
        if not self._peek("'"):
            if self.pos >= len(self.text):
                self._fail("unterminated literal")
            self._fail("literal may only contain letters, digits, '_', '-' and '.'")
        self.pos += 1

        self._skip_whitespace()
        if self.pos != len(self.text):
            self._fail("trailing text after condition")

        return BuildCondition(
            variable=variable,
            operator=operator,
            literal=literal,
            expression=self.text,
        )

    def _operator(self) -> Operator:
        for operator in Operator:
            if self.text.startswith(operator.value, self.pos):
                self.pos += len(operator.value)
                return operator
        self._fail('expected "==" or "!="')

    def _match(self, pattern: re.Pattern[str]) -> str:
        match = pattern.match(self.text, self.pos)
        if match is None:
            return ""
        self.pos = match.end()
        return match.group(0)

    def _peek(self, char: str) -> bool:
        return self.text.startswith(char, self.pos)

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in _WHITESPACE:
            self.pos += 1

    def _fail(self, reason: str) -> NoReturn:
        remainder = self.text[self.pos :].split(" ")[0]
        found = f'unexpected text "{remainder}"' if remainder else "unexpected end of condition"
        raise ConditionSyntaxError(self.text, f"{reason}; {found}", offset=self.pos)


__all__ = ["BuildCondition", "Operator", "parse_condition", "should_build"]
