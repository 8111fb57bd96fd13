"""Settings ingestion: turn structured documents and CLI-style entries into
execution state.

A settings document is any format ``prebyte.parsers`` understands, holding
up to four top-level keys::

    variables:   {name: value | [values]}
    profiles:    {profile: {variables: ..., ignore: [...], rules: {...}}}
    ignore:      [token, ...]
    rules:       {rule: value}

Without an explicit file, ``find_settings_file`` looks for
``~/.prebyte/settings.{json,yaml,yml,toml}``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from prebyte.engine import ExecutionState, PreprocessError
from prebyte.model.directives import parse_assignment
from prebyte.model.profile import (
    ignore_from_value,
    profiles_from_value,
    rules_from_value,
    variables_from_value,
)
from prebyte.model.value import Value
from prebyte.parsers import ParseError, parse_file

logger = logging.getLogger(__name__)

SETTINGS_DIR = Path("~/.prebyte")
SETTINGS_EXTENSIONS = (".json", ".yaml", ".yml", ".toml")

_SETTINGS_KEYS = ("variables", "profiles", "ignore", "rules")


def find_settings_file(directory: str | Path | None = None) -> Path | None:
    """Return the first ``settings.<ext>`` file in *directory*, if any."""
    directory = Path(directory if directory is not None else SETTINGS_DIR).expanduser()
    if not directory.is_dir():
        return None
    for ext in SETTINGS_EXTENSIONS:
        candidate = directory / f"settings{ext}"
        if candidate.is_file():
            return candidate
    return None


def load_settings(state: ExecutionState, value: Value) -> None:
    """Merge a parsed settings document into *state*."""
    if value.is_null():
        return
    if not value.is_map():
        raise PreprocessError("Settings document must be a map")

    entries = value.as_map()
    for key in entries:
        if key not in _SETTINGS_KEYS:
            logger.warning("Unknown settings key %r ignored", key)

    try:
        if "variables" in entries:
            state.variables.update(variables_from_value(entries["variables"]))
        if "profiles" in entries:
            for profile in profiles_from_value(entries["profiles"]).values():
                state.add_profile(profile)
        if "ignore" in entries:
            state.ignore |= ignore_from_value(entries["ignore"])
        rules = rules_from_value(entries["rules"]) if "rules" in entries else {}
    except (TypeError, ValueError) as exc:
        raise PreprocessError(f"Invalid settings: {exc}") from exc

    for name, rule_value in rules.items():
        state.set_rule(name, rule_value)


def load_settings_file(state: ExecutionState, path: str | Path) -> None:
    path = Path(path).expanduser()
    logger.info("Loading settings from %s", path)
    if not path.is_file():
        raise PreprocessError(f"Settings file does not exist: {path}")
    try:
        value = parse_file(path)
    except ParseError as exc:
        raise PreprocessError(f"Invalid settings file {path}: {exc}") from exc
    load_settings(state, value)


def inject_variables(state: ExecutionState, path: str | Path) -> None:
    """Bind every top-level key of a structured file as a variable."""
    path = Path(path).expanduser()
    if not path.is_file():
        raise PreprocessError(f"File does not exist: {path}")
    try:
        value = parse_file(path)
    except ParseError as exc:
        raise PreprocessError(f"Invalid variable file {path}: {exc}") from exc
    if not value.is_map():
        raise PreprocessError(f"File content must be a map: {path}")
    try:
        state.variables.update(variables_from_value(value))
    except (TypeError, ValueError) as exc:
        raise PreprocessError(f"Invalid variable file {path}: {exc}") from exc


def apply_definition(state: ExecutionState, entry: str) -> None:
    """Apply a ``-D`` style entry: ``NAME=VALUE``, ``NAME=[a,b]`` or a file path."""
    if "=" not in entry:
        inject_variables(state, entry)
        return
    try:
        name, values = parse_assignment(entry)
    except ValueError as exc:
        raise PreprocessError(str(exc)) from exc
    if not entry.partition("=")[2]:
        raise PreprocessError(f"Variable value cannot be empty: {entry!r}")
    state.set_variable(name, values)


def apply_rule(state: ExecutionState, entry: str) -> None:
    """Apply a ``-r`` style ``NAME=VALUE`` rule entry."""
    name, sep, value = entry.partition("=")
    if not sep:
        raise PreprocessError(f"Rule must be in the format 'name=value': {entry!r}")
    if not name or not value:
        raise PreprocessError(f"Rule name or value cannot be empty: {entry!r}")
    state.set_rule(name, value)


def apply_ignore(state: ExecutionState, token: str) -> None:
    if not token:
        raise PreprocessError("Ignore item cannot be empty")
    state.ignore.add(token)
