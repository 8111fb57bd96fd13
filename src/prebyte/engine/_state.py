"""Execution state: the mutable record of one expansion run.

Holds variable bindings, the ignore set, profiles, macros, the active
rules, the macro-argument frames and the include stack.  Everything the
engine knows between tokens lives here; the engine itself only adds the
per-pass flow control.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from prebyte.model.profile import Profile
from prebyte.model.rules import Rules
from prebyte.model.value import Value

logger = logging.getLogger(__name__)


class PreprocessError(Exception):
    """Fatal error while expanding a document, with optional source location."""

    def __init__(
        self,
        message: str,
        source_file: str | Path | None = None,
        line: int | None = None,
    ):
        self.message = message
        self.source_file = str(source_file) if source_file is not None else None
        self.line = line
        loc = ""
        if line is not None:
            loc = f" ({self.source_file or '<input>'}:{line})"
        super().__init__(f"{message}{loc}")


class ExecutionState:
    """Bindings and tables for a single engine run.

    Parameters
    ----------
    rules : Rules
        Active rules; a fresh default ``Rules()`` when omitted.
    input_file : Path
        The document being expanded, if it came from a file.  Used by the
        ``__FILE*__`` built-ins.
    """

    def __init__(
        self,
        rules: Rules | None = None,
        input_file: str | Path | None = None,
    ) -> None:
        self.rules = rules if rules is not None else Rules()
        self.variables: dict[str, list[str]] = {}
        self.ignore: set[str] = set()
        self.profiles: dict[str, Profile] = {}
        self.macros: dict[str, str] = {}
        self.arg_frames: list[list[str]] = []
        self.include_stack: list[Path] = []
        self.include_count = 0
        self.input_file = Path(input_file) if input_file is not None else None
        self.start_time = datetime.now()

    def copy(self) -> ExecutionState:
        """Independent copy for a new run (fresh clock, empty stacks)."""
        clone = ExecutionState(self.rules.model_copy(deep=True), self.input_file)
        clone.variables = {k: list(v) for k, v in self.variables.items()}
        clone.ignore = set(self.ignore)
        clone.profiles = {k: p.model_copy(deep=True) for k, p in self.profiles.items()}
        clone.macros = dict(self.macros)
        return clone

    @property
    def current_file(self) -> Path | None:
        """The innermost file being expanded."""
        if self.include_stack:
            return self.include_stack[-1]
        return self.input_file

    # -----------------------------------------------------------------------
    # Mutators
    # -----------------------------------------------------------------------

    def set_variable(self, name: str, values: list[str]) -> None:
        if not name:
            raise PreprocessError("Variable name cannot be empty")
        self.variables[name] = list(values)

    def unset_variable(self, name: str) -> None:
        self.variables.pop(name, None)

    def set_rule(self, name: str, value: Value | str | bool | int) -> None:
        try:
            self.rules.add_rule(name, value)
        except (TypeError, ValueError) as exc:
            raise PreprocessError(f"Invalid rule {name!r}: {exc}") from exc
        if name == "debug_level":
            logging.getLogger("prebyte").setLevel(self.rules.debug_level.logging_level)
        logger.debug("Rule %s set to %r", name, getattr(self.rules, name))

    def add_profile(self, profile: Profile) -> None:
        existing = self.profiles.get(profile.name)
        if existing is None:
            self.profiles[profile.name] = profile
        else:
            existing.merge(profile)

    def apply_profile(self, name: str) -> None:
        """Merge a profile's variables, ignore set and rules into the live state."""
        if not name:
            raise PreprocessError("Profile name cannot be empty")
        profile = self.profiles.get(name)
        if profile is None:
            raise PreprocessError(f"Profile {name!r} not found")
        logger.debug(
            "Applying profile %r: %d variables, %d ignore items, %d rules",
            name, len(profile.variables), len(profile.ignore), len(profile.rules),
        )
        for var_name, values in profile.variables.items():
            self.variables[var_name] = list(values)
        self.ignore |= profile.ignore
        for rule_name, rule_value in profile.rules.items():
            self.set_rule(rule_name, rule_value)
