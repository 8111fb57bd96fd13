"""Flow-control directives recognised inside action tokens.

``parse_directive`` turns the text of an action token into one of the
tagged directive models below, or returns None when the token does not
start with a directive keyword (it is then resolved as a variable or
passed through).  A token that starts with a keyword but does not fit
the keyword's syntax raises ``ValueError``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class SetVariable(BaseModel):
    kind: Literal["set_var"] = "set_var"
    name: str
    values: list[str]


class UnsetVariable(BaseModel):
    kind: Literal["unset_var"] = "unset_var"
    name: str


class SetRule(BaseModel):
    kind: Literal["set_rule"] = "set_rule"
    name: str
    value: str


class SetProfile(BaseModel):
    kind: Literal["set_profile"] = "set_profile"
    name: str


class SetIgnore(BaseModel):
    kind: Literal["set_ignore"] = "set_ignore"
    token: str


class UnsetIgnore(BaseModel):
    kind: Literal["unset_ignore"] = "unset_ignore"
    token: str


class DefineMacro(BaseModel):
    kind: Literal["define_macro"] = "define_macro"
    name: str


class DefineProfile(BaseModel):
    """Start of a profile block; *format* names the parser for its body."""

    kind: Literal["define_profile"] = "define_profile"
    name: str
    format: str = "yaml"


class EndDefine(BaseModel):
    kind: Literal["end_define"] = "end_define"


class ExecuteMacro(BaseModel):
    kind: Literal["exec"] = "exec"
    name: str
    arguments: str = ""


class If(BaseModel):
    kind: Literal["if"] = "if"
    condition: str


class ElseIf(BaseModel):
    kind: Literal["elif"] = "elif"
    condition: str


class Else(BaseModel):
    kind: Literal["else"] = "else"


class EndIf(BaseModel):
    kind: Literal["endif"] = "endif"


class For(BaseModel):
    """Loop header, kept as written (``item in LIST``) until the loop closes."""

    kind: Literal["for"] = "for"
    header: str


class EndFor(BaseModel):
    kind: Literal["endfor"] = "endfor"


class Include(BaseModel):
    kind: Literal["include"] = "include"
    path: str


Directive = Annotated[
    Union[
        SetVariable,
        UnsetVariable,
        SetRule,
        SetProfile,
        SetIgnore,
        UnsetIgnore,
        DefineMacro,
        DefineProfile,
        EndDefine,
        ExecuteMacro,
        If,
        ElseIf,
        Else,
        EndIf,
        For,
        EndFor,
        Include,
    ],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------

CONDITIONAL_KEYWORDS = frozenset({"if", "elif", "else", "endif"})
DEFINE_KEYWORDS = frozenset({"define", "def"})
END_DEFINE_KEYWORDS = frozenset({"enddef", "endmacro", "endprofile"})

KEYWORDS = (
    CONDITIONAL_KEYWORDS
    | DEFINE_KEYWORDS
    | END_DEFINE_KEYWORDS
    | {"set", "unset", "exec", "for", "endfor", "include"}
)

_BARE_KEYWORDS = {
    "else": Else,
    "endif": EndIf,
    "endfor": EndFor,
    "enddef": EndDefine,
    "endmacro": EndDefine,
    "endprofile": EndDefine,
}


def directive_keyword(action: str) -> str | None:
    """Return the directive keyword *action* starts with, if any."""
    parts = action.split(None, 1)
    if parts and parts[0] in KEYWORDS:
        return parts[0]
    return None


def parse_assignment(text: str) -> tuple[str, list[str]]:
    """Split ``NAME=VALUE`` / ``NAME=[a,b]`` into a name and value list.

    Text without ``=`` binds the empty string.
    """
    name, sep, raw = text.partition("=")
    name = name.strip()
    if not name:
        raise ValueError(f"Variable name cannot be empty in {text!r}")
    if not sep:
        return name, [""]
    if raw.startswith("[") and raw.endswith("]"):
        return name, [item.strip() for item in raw[1:-1].split(",") if item.strip()]
    return name, [raw]


def parse_directive(action: str) -> Directive | None:
    keyword = directive_keyword(action)
    if keyword is None:
        return None

    rest = action.strip()[len(keyword):].strip()

    if keyword in _BARE_KEYWORDS:
        if rest:
            raise ValueError(f"'{keyword}' takes no argument, got {rest!r}")
        return _BARE_KEYWORDS[keyword]()

    if not rest:
        raise ValueError(f"'{keyword}' requires an argument")

    if keyword == "set":
        return _parse_set(rest)
    if keyword == "unset":
        return _parse_unset(rest)
    if keyword in DEFINE_KEYWORDS:
        return _parse_define(rest)
    if keyword == "exec":
        name, _, arguments = rest.partition(" ")
        return ExecuteMacro(name=name, arguments=arguments.strip())
    if keyword == "if":
        return If(condition=rest)
    if keyword == "elif":
        return ElseIf(condition=rest)
    if keyword == "for":
        return For(header=rest)
    return Include(path=rest)


def _parse_set(rest: str) -> Directive:
    target, _, arg = rest.partition(" ")
    arg = arg.strip()
    if not arg:
        raise ValueError(f"'set {target}' requires an argument")
    if target == "var":
        name, values = parse_assignment(arg)
        return SetVariable(name=name, values=values)
    if target == "rule":
        name, sep, value = arg.partition("=")
        if not sep:
            raise ValueError(f"Rule {arg!r} must be in the format 'name=value'")
        name = name.strip()
        if not name:
            raise ValueError("Rule name cannot be empty")
        return SetRule(name=name, value=value)
    if target == "profile":
        return SetProfile(name=arg)
    if target in ("ignore", "igno"):
        return SetIgnore(token=arg)
    raise ValueError(f"Unknown 'set' target: {target!r}")


def _parse_unset(rest: str) -> Directive:
    target, _, arg = rest.partition(" ")
    arg = arg.strip()
    if not arg:
        raise ValueError(f"'unset {target}' requires an argument")
    if target == "var":
        return UnsetVariable(name=arg)
    if target == "ignore":
        return UnsetIgnore(token=arg)
    raise ValueError(f"Unknown 'unset' target: {target!r}")


def _parse_define(rest: str) -> Directive:
    target, _, arg = rest.partition(" ")
    words = arg.split()
    if not words:
        raise ValueError(f"'define {target}' requires a name")
    if target == "macro":
        if len(words) > 1:
            raise ValueError(f"Macro name cannot contain spaces: {arg.strip()!r}")
        return DefineMacro(name=words[0])
    if target == "profile":
        if len(words) > 2:
            raise ValueError(f"Unexpected text after profile format: {arg.strip()!r}")
        if len(words) == 2:
            return DefineProfile(name=words[0], format=words[1])
        return DefineProfile(name=words[0])
    raise ValueError(f"Unknown 'define' target: {target!r}")
