"""Shared test helpers for the prebyte test suite."""

import logging
import textwrap

import pytest

from prebyte.engine import Engine, ExecutionState
from prebyte.model.rules import Rules


@pytest.fixture(autouse=True)
def _reset_prebyte_logger():
    """``set rule debug_level`` changes the package logger; undo it per test."""
    yield
    logging.getLogger("prebyte").setLevel(logging.NOTSET)


def make_state(rules: dict | None = None, **variables) -> ExecutionState:
    """Build an ExecutionState with rule overrides and variable bindings.

    A string value binds a single value, a list binds every element.
    """
    state = ExecutionState(Rules(**(rules or {})))
    for name, value in variables.items():
        state.set_variable(name, [value] if isinstance(value, str) else list(value))
    return state


def expand(text: str, rules: dict | None = None, **variables) -> str:
    """Expand *text* against a fresh state (text is dedented first)."""
    return Engine(make_state(rules, **variables)).run(textwrap.dedent(text))


def run(text: str, state: ExecutionState) -> str:
    """Expand *text* against an existing state (for inspecting it afterwards)."""
    return Engine(state).run(textwrap.dedent(text))
