"""Variable and macro-argument resolution.

Two index policies coexist on purpose:

- ``get_variable`` (``%%name[i]%%``) yields an empty string for an
  out-of-range index.
- ``get_variable_values`` (``exec`` argument lists) treats an
  out-of-range index as a fatal error.
"""

from __future__ import annotations

import re
from pathlib import Path

from prebyte.model.rules import Rules

from ._state import ExecutionState, PreprocessError

_VARIABLE_RE = re.compile(r"^([A-Za-z_][\w.-]*)(?:\[(\d+)\])?$")


def split_variable_name(token: str) -> tuple[str, int | None] | None:
    """Split ``name`` / ``name[i]`` into (name, index).

    Returns None when *token* is not a variable reference.
    """
    m = _VARIABLE_RE.match(token)
    if m is None:
        return None
    index = int(m.group(2)) if m.group(2) is not None else None
    return m.group(1), index


def lookup_name(token: str, variables: dict[str, list[str]]) -> tuple[str, int] | None:
    """Resolve *token* to a bound (name, index) pair, or None if unbound."""
    if token in variables:
        return token, 0
    parsed = split_variable_name(token)
    if parsed is None or parsed[0] not in variables:
        return None
    name, index = parsed
    return name, index or 0


def apply_value_rules(value: str, rules: Rules) -> str:
    """Trim and truncate a resolved value according to the rules."""
    if rules.trim_start:
        value = value.lstrip(" ")
    if rules.trim_end:
        value = value.rstrip(" ")
    limit = rules.max_variable_length
    if limit >= 0 and len(value) > limit:
        value = value[:limit]
    return value


def inject_file(value: str, name: str) -> str:
    """Expand an ``@path`` value to the file's contents (``@@`` escapes ``@``)."""
    if not value.startswith("@"):
        return value
    if value.startswith("@@"):
        return value[1:]
    path = Path(value[1:]).expanduser()
    if not path.is_file():
        raise PreprocessError(f"File ({path}) does not exist for variable: {name}")
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PreprocessError(
            f"Error opening file {path} for variable {name}: {exc.strerror or exc}"
        ) from exc


def get_variable(state: ExecutionState, token: str) -> str:
    """Resolve ``name`` or ``name[i]`` against the bound variables."""
    resolved = lookup_name(token, state.variables)
    if resolved is None:
        return ""
    name, index = resolved
    values = state.variables[name]
    value = values[index] if index < len(values) else ""
    value = inject_file(value, token)
    return apply_value_rules(value, state.rules)


def get_variable_values(state: ExecutionState, text: str) -> list[str]:
    """Tokenize a macro argument list.

    Each argument is one of:

    - ``"quoted text"``: copied without the quotes
    - ``NAME#``: the number of values bound to NAME
    - ``NAME`` / ``NAME[i]``: the bound value, or the word itself if unbound
    """
    variables = state.variables
    result: list[str] = []
    pos = 0
    length = len(text)
    while pos < length:
        if text[pos].isspace():
            pos += 1
            continue

        if text[pos] == '"':
            end = text.find('"', pos + 1)
            if end == -1:
                raise PreprocessError(f"Unmatched quote in arguments: {text[pos:]}")
            result.append(text[pos + 1:end])
            pos = end + 1
            continue

        end = pos
        while end < length and not text[end].isspace():
            end += 1
        word = text[pos:end]
        pos = end

        if word.endswith("#") and len(word) > 1:
            name = word[:-1]
            if name not in variables:
                raise PreprocessError(f"Cannot count unknown variable: {name}")
            result.append(str(len(variables[name])))
            continue

        resolved = lookup_name(word, variables)
        if resolved is None:
            result.append(word)
            continue
        name, index = resolved
        values = variables[name]
        if index >= len(values):
            raise PreprocessError(f"Index out of bounds for variable: {word}")
        result.append(values[index])
    return result
