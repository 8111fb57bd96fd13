"""Profiles and conversion of structured Values into engine bindings.

A profile is a named bundle of variables, ignored tokens and rule
overrides.  Profiles come from the ``profiles`` section of a settings
document or from an in-document ``define profile`` block; both are turned
into a ``Profile`` by ``profile_from_value``.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from .value import Value

logger = logging.getLogger(__name__)


class Profile(BaseModel):
    name: str
    variables: dict[str, list[str]] = {}
    ignore: set[str] = set()
    rules: dict[str, str] = {}

    def merge(self, other: Profile) -> None:
        """Fold *other*'s bindings into this profile (other wins on conflicts)."""
        self.variables.update({k: list(v) for k, v in other.variables.items()})
        self.ignore |= other.ignore
        self.rules.update(other.rules)


# ---------------------------------------------------------------------------
# Value -> bindings
# ---------------------------------------------------------------------------

def variables_from_value(value: Value) -> dict[str, list[str]]:
    """Convert a map Value into variable bindings.

    Scalars bind a single-element list; arrays of scalars bind one entry
    per element.  Null values, nested containers and empty names are
    rejected with ``ValueError``.
    """
    if not value.is_map():
        raise ValueError("Variables must be a map")

    bindings: dict[str, list[str]] = {}
    for name, item in value.as_map().items():
        if not name:
            raise ValueError("Variable name cannot be empty")
        if item.is_null():
            raise ValueError(f"Variable value cannot be null for variable: {name}")
        if item.is_array():
            values = []
            for element in item.as_array():
                if not element.is_scalar():
                    raise ValueError(
                        f"Variable value cannot be null or an array/map for variable: {name}"
                    )
                values.append(element.as_string())
            bindings[name] = values
        elif item.is_scalar():
            bindings[name] = [item.as_string()]
        else:
            raise ValueError(f"Unsupported variable type for variable: {name}")
    return bindings


def ignore_from_value(value: Value) -> set[str]:
    if not value.is_array():
        raise ValueError("Ignore must be an array")
    items = set()
    for item in value.as_array():
        if item.kind != "string":
            raise ValueError("Ignore items must be strings")
        items.add(item.as_string())
    return items


def rules_from_value(value: Value) -> dict[str, str]:
    if not value.is_map():
        raise ValueError("Rules must be a map")
    rules: dict[str, str] = {}
    for name, item in value.as_map().items():
        if not name:
            raise ValueError("Rule name cannot be empty")
        if not item.is_scalar():
            raise ValueError(
                f"Rule value must be a string, boolean, integer, or float for rule: {name}"
            )
        rules[name] = item.as_string()
    return rules


def profile_from_value(name: str, value: Value) -> Profile:
    """Build a profile from a map with ``variables``/``ignore``/``rules`` keys.

    Unknown keys are skipped with a warning.
    """
    if not name:
        raise ValueError("Profile name cannot be empty")
    if not value.is_map():
        raise ValueError(f"Profile value must be a map for profile: {name}")

    profile = Profile(name=name)
    for key, item in value.as_map().items():
        if key == "variables":
            profile.variables.update(variables_from_value(item))
        elif key == "ignore":
            profile.ignore |= ignore_from_value(item)
        elif key == "rules":
            profile.rules.update(rules_from_value(item))
        else:
            logger.warning("Unknown key %r in profile %r", key, name)
    return profile


def profiles_from_value(value: Value) -> dict[str, Profile]:
    if not value.is_map():
        raise ValueError("Profiles must be a map")
    return {
        name: profile_from_value(name, item)
        for name, item in value.as_map().items()
    }
