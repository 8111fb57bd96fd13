"""Token scanner: splits text into literal spans and action tokens.

Two token forms are recognised::

    %%action%%            inline action, needs the closing suffix
    %%#action<newline>    line directive, runs to the end of the line
                          (the newline is consumed)

The delimiters are read from the rules before every token, so a
``set rule variable_prefix=...`` takes effect for the rest of the text.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from prebyte.model.rules import Rules

from ._state import PreprocessError


@dataclass(frozen=True)
class Token:
    """One scanner step: literal text, then an optional action.

    ``raw`` is the action exactly as written (delimiters included) so a
    capture can store it verbatim.  ``line`` is the 1-based line the
    action starts on.
    """

    text: str
    action: str | None = None
    raw: str = ""
    line: int = 1
    line_directive: bool = False


def scan(text: str, rules: Rules, source_file: str | Path | None = None) -> Iterator[Token]:
    pos = 0
    line = 1
    length = len(text)
    while pos < length:
        prefix = rules.variable_prefix
        start = text.find(prefix, pos)
        if start == -1:
            yield Token(text=text[pos:], line=line)
            return

        literal = text[pos:start]
        line += literal.count("\n")
        body = start + len(prefix)

        if text.startswith("#", body):
            end = text.find("\n", body)
            if end == -1:
                end = length
            action = text[body + 1:end].rstrip("\r")
            raw = text[start:end + 1]
            pos = end + 1
            yield Token(literal, action, raw, line, line_directive=True)
        else:
            suffix = rules.variable_suffix
            end = text.find(suffix, body)
            if end == -1:
                raise PreprocessError("Unmatched variable prefix in input", source_file, line)
            action = text[body:end]
            raw = text[start:end + len(suffix)]
            pos = end + len(suffix)
            yield Token(literal, action, raw, line)

        line += raw.count("\n")
