"""Boolean conditions for ``if`` / ``elif``.

Grammar, lowest precedence first::

    expr       := and_expr ('||' and_expr)*
    and_expr   := not_expr ('&&' not_expr)*
    not_expr   := '!' not_expr | '(' expr ')' | comparison
    comparison := operand (('==' | '!=') operand)?
    operand    := '"' text '"' | word

A word operand resolves to the variable's value (``name`` is its first
value, ``name[i]`` its i-th, empty when out of range) or to the word itself
when no such variable is bound.  A lone word is true iff it names a bound
variable; a lone quoted literal is true iff it is non-empty.
"""

from __future__ import annotations

import re

from ._state import PreprocessError
from ._variables import lookup_name

_TOKEN_RE = re.compile(
    r'\s*(?:(?P<string>"[^"]*")|(?P<op>&&|\|\||==|!=|!|\(|\))|(?P<word>[^\s()!=&|"]+))'
)


def _tokenize(expr: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    end = len(expr.rstrip())
    while pos < end:
        m = _TOKEN_RE.match(expr, pos)
        if m is None or m.end() == pos:
            raise PreprocessError(f"Invalid condition {expr!r} near {expr[pos:].strip()!r}")
        kind = m.lastgroup
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


class _ConditionParser:
    def __init__(self, expr: str, variables: dict[str, list[str]]) -> None:
        self.expr = expr
        self.variables = variables
        self.tokens = _tokenize(expr)
        self.pos = 0

    def _peek(self) -> tuple[str, str] | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _accept(self, op: str) -> bool:
        token = self._peek()
        if token is not None and token == ("op", op):
            self.pos += 1
            return True
        return False

    def _fail(self, reason: str) -> PreprocessError:
        return PreprocessError(f"Invalid condition {self.expr!r}: {reason}")

    def parse(self) -> bool:
        if not self.tokens:
            raise self._fail("empty expression")
        result = self._parse_or()
        if self._peek() is not None:
            raise self._fail(f"unexpected {self._peek()[1]!r}")
        return result

    def _parse_or(self) -> bool:
        result = self._parse_and()
        while self._accept("||"):
            right = self._parse_and()
            result = result or right
        return result

    def _parse_and(self) -> bool:
        result = self._parse_not()
        while self._accept("&&"):
            right = self._parse_not()
            result = result and right
        return result

    def _parse_not(self) -> bool:
        if self._accept("!"):
            return not self._parse_not()
        if self._accept("("):
            result = self._parse_or()
            if not self._accept(")"):
                raise self._fail("missing ')'")
            return result
        return self._parse_comparison()

    def _parse_comparison(self) -> bool:
        left = self._operand()
        if self._accept("=="):
            return self._resolve(left) == self._resolve(self._operand())
        if self._accept("!="):
            return self._resolve(left) != self._resolve(self._operand())
        kind, text = left
        if kind == "string":
            return bool(text[1:-1])
        return lookup_name(text, self.variables) is not None

    def _operand(self) -> tuple[str, str]:
        token = self._peek()
        if token is None:
            raise self._fail("missing operand")
        if token[0] == "op":
            raise self._fail(f"unexpected {token[1]!r}")
        self.pos += 1
        return token

    def _resolve(self, operand: tuple[str, str]) -> str:
        kind, text = operand
        if kind == "string":
            return text[1:-1]
        resolved = lookup_name(text, self.variables)
        if resolved is None:
            return text
        name, index = resolved
        values = self.variables[name]
        return values[index] if index < len(values) else ""


def evaluate_condition(expr: str, variables: dict[str, list[str]]) -> bool:
    """Evaluate an ``if``/``elif`` condition against the bound variables."""
    return _ConditionParser(expr, variables).parse()
