"""Engine rules: the fixed schema of behaviour settings.

Rules start from their defaults and may be overridden by settings files,
profiles, the command line, or ``set rule`` directives while a document is
being expanded.  An override only affects tokens scanned after it.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, model_validator

from .value import StringValue, Value, to_value


class DebugLevel(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"

    @property
    def logging_level(self) -> int:
        return logging.getLevelName(self.value)


class Benchmark(str, Enum):
    NONE = "NONE"
    TIME = "TIME"
    MEMORY = "MEMORY"
    ALL = "ALL"


_BOOL_RULES = frozenset({
    "strict_variables",
    "set_default_variables",
    "trim_start",
    "trim_end",
    "allow_env",
    "allow_env_fallback",
})

_STRING_RULES = frozenset({
    "default_variable_value",
    "variable_prefix",
    "variable_suffix",
    "include_path",
})


class Rules(BaseModel):
    """Behaviour settings consulted by the engine for every token."""

    strict_variables: bool = False
    set_default_variables: bool = False
    trim_start: bool = False
    trim_end: bool = False
    allow_env: bool = True
    allow_env_fallback: bool = False
    debug_level: DebugLevel = DebugLevel.ERROR
    max_variable_length: int = -1
    default_variable_value: str = "???"
    variable_prefix: str = "%%"
    variable_suffix: str = "%%"
    include_path: str = "~/.prebyte/includes"
    benchmark: Benchmark = Benchmark.NONE

    @model_validator(mode="after")
    def _validate_rules(self):
        _check_delimiter("variable_prefix", self.variable_prefix)
        _check_delimiter("variable_suffix", self.variable_suffix)
        _check_length(self.max_variable_length)
        return self

    @classmethod
    def names(cls) -> list[str]:
        return list(cls.model_fields)

    def add_rule(self, name: str, value: Value | str | bool | int) -> None:
        """Apply a single rule override.

        *value* is coerced to the rule's type.  Raises ``ValueError`` for
        unknown rule names or values outside the rule's domain and
        ``TypeError`` when the value cannot be coerced.
        """
        if not name:
            raise ValueError("Rule name cannot be empty")
        if isinstance(value, str):
            value = StringValue(value=value)
        else:
            value = to_value(value)

        if name in _BOOL_RULES:
            setattr(self, name, value.as_bool())
        elif name in _STRING_RULES:
            text = value.as_string()
            if name in ("variable_prefix", "variable_suffix"):
                _check_delimiter(name, text)
            setattr(self, name, text)
        elif name == "max_variable_length":
            length = value.as_int()
            _check_length(length)
            self.max_variable_length = length
        elif name == "debug_level":
            self.debug_level = _enum_member(DebugLevel, value.as_string(), "debug level")
        elif name == "benchmark":
            self.benchmark = _enum_member(Benchmark, value.as_string(), "benchmark type")
        else:
            raise ValueError(f"Unknown rule: {name!r}")

    @property
    def include_dir(self) -> Path:
        return Path(self.include_path).expanduser()

    def describe(self) -> str:
        """Human-readable listing of the current rule values."""
        lines = []
        for name in self.names():
            value = getattr(self, name)
            if isinstance(value, bool):
                text = "true" if value else "false"
            elif isinstance(value, Enum):
                text = value.value
            elif name == "max_variable_length" and value < 0:
                text = "No Limit"
            else:
                text = str(value)
            lines.append(f"{name}: {text}")
        return "\n".join(lines)


def _check_delimiter(name: str, text: str) -> None:
    if not text:
        raise ValueError(f"Rule {name!r} cannot be empty")


def _check_length(length: int) -> None:
    if length < -1:
        raise ValueError(
            f"max_variable_length must be -1 (unlimited) or >= 0, got {length}"
        )


def _enum_member(enum_cls, text: str, what: str):
    try:
        return enum_cls(text.strip().upper())
    except ValueError:
        raise ValueError(f"Unknown {what}: {text!r}") from None
