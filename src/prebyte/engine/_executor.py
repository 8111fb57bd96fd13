"""Expansion engine: the driver and the action dispatcher.

``Engine.run`` scans a document and resolves each action token in a fixed
order:

1. exact match in the ignore set -> nothing
2. built-in ``__NAME__`` variables (unknown ones expand to nothing)
3. ``ARGS[i]`` -> argument of the innermost macro invocation
4. bound variable (``name`` / ``name[i]``)
5. flow-control directive
6. environment lookup (``$NAME``, or any name with ``allow_env_fallback``)
7. ``default_variable_value`` when ``set_default_variables`` is on
8. pass the token through unchanged, or fail in strict mode

While a ``for``/``define`` block is being captured every token is stored
verbatim, and while an ``if`` branch is suppressed only the conditional
directives are interpreted.  Loop bodies, macro bodies and included files
are expanded by recursive passes of the same engine.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path

from prebyte.model.directives import (
    CONDITIONAL_KEYWORDS,
    DEFINE_KEYWORDS,
    END_DEFINE_KEYWORDS,
    DefineMacro,
    DefineProfile,
    Directive,
    ElseIf,
    ExecuteMacro,
    For,
    If,
    Include,
    SetIgnore,
    SetProfile,
    SetRule,
    SetVariable,
    UnsetIgnore,
    UnsetVariable,
    directive_keyword,
    parse_directive,
)
from prebyte.model.profile import profile_from_value
from prebyte.parsers import ParseError, parse_string

from ._builtins import BUILTIN_VARIABLES, is_builtin_name
from ._conditions import evaluate_condition
from ._flow import Capture, CaptureKind, FlowControl
from ._scanner import Token, scan
from ._state import ExecutionState, PreprocessError
from ._variables import apply_value_rules, get_variable, get_variable_values, split_variable_name

logger = logging.getLogger(__name__)

MAX_EXPANSION_DEPTH = 64


class Engine:
    """Expands documents against an ``ExecutionState``.

    Parameters
    ----------
    state : ExecutionState
        Bindings and tables; mutated in place by directives.
    max_depth : int
        Maximum number of nested expansion passes (macro calls, includes,
        loop bodies).  Guards against unbounded macro recursion.
    """

    def __init__(self, state: ExecutionState, max_depth: int = MAX_EXPANSION_DEPTH) -> None:
        self.state = state
        self.max_depth = max_depth
        self._depth = 0

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def run(self, text: str) -> str:
        """Expand a whole document and return the result."""
        self._depth = 0
        return self._expand(text)

    # -----------------------------------------------------------------------
    # Driver
    # -----------------------------------------------------------------------

    def _expand(self, text: str) -> str:
        if self._depth >= self.max_depth:
            raise PreprocessError(f"Maximum expansion depth ({self.max_depth}) exceeded")
        self._depth += 1
        try:
            flow = FlowControl()
            out: list[str] = []
            for token in scan(text, self.state.rules, self.state.current_file):
                flow.emit(token.text, out)
                if token.action is None:
                    continue
                try:
                    piece = self._dispatch(token, flow)
                except PreprocessError as exc:
                    if exc.line is not None:
                        raise
                    raise PreprocessError(
                        exc.message, self.state.current_file, token.line,
                    ) from exc
                if piece:
                    out.append(piece)
            flow.finish()
            return "".join(out)
        finally:
            self._depth -= 1

    # -----------------------------------------------------------------------
    # Dispatcher
    # -----------------------------------------------------------------------

    def _dispatch(self, token: Token, flow: FlowControl) -> str:
        if flow.capturing:
            return self._capture_token(token, flow)

        action = token.action
        if flow.suppressed:
            if directive_keyword(action) in CONDITIONAL_KEYWORDS:
                self._execute(self._parse(action), flow)
            return ""

        state = self.state
        logger.debug("Processing action %r", action)

        if action in state.ignore:
            return ""

        if is_builtin_name(action):
            builtin = BUILTIN_VARIABLES.get(action)
            return builtin(state, token.line) if builtin is not None else ""

        parsed = split_variable_name(action)
        if parsed is not None and parsed[0] == "ARGS":
            return self._macro_argument(action, parsed[1])

        if action in state.variables or (parsed is not None and parsed[0] in state.variables):
            return get_variable(state, action)

        directive = self._parse(action)
        if directive is not None:
            return self._execute(directive, flow)

        return self._fallback(action)

    def _parse(self, action: str) -> Directive | None:
        try:
            return parse_directive(action)
        except ValueError as exc:
            raise PreprocessError(f"Invalid directive {action.strip()!r}: {exc}") from exc

    def _capture_token(self, token: Token, flow: FlowControl) -> str:
        """Store a token in the open capture, closing it on the matching end."""
        capture = flow.capture
        keyword = directive_keyword(token.action)
        if capture.kind is CaptureKind.FOR:
            opens, closes = keyword == "for", keyword == "endfor"
        else:
            opens, closes = keyword in DEFINE_KEYWORDS, keyword in END_DEFINE_KEYWORDS

        if opens:
            capture.depth += 1
        elif closes:
            capture.depth -= 1
            if capture.depth == 0:
                self._parse(token.action)
                flow.end_capture()
                return self._close_capture(capture)
        capture.parts.append(token.raw)
        return ""

    def _macro_argument(self, action: str, index: int | None) -> str:
        frames = self.state.arg_frames
        if not frames:
            raise PreprocessError(f"{action} used outside of a macro invocation")
        if index is None:
            raise PreprocessError("ARGS must be indexed, e.g. ARGS[0]")
        args = frames[-1]
        if index >= len(args):
            raise PreprocessError(
                f"Index out of bounds for ARGS variable: {action} ({len(args)} arguments)"
            )
        return args[index]

    def _fallback(self, action: str) -> str:
        rules = self.state.rules
        if rules.allow_env and action.startswith("$"):
            value = os.environ.get(action[1:])
            if value is not None:
                return value
        if rules.allow_env_fallback:
            value = os.environ.get(action)
            if value is not None:
                return value
        if rules.set_default_variables:
            return apply_value_rules(rules.default_variable_value, rules)
        if rules.strict_variables:
            raise PreprocessError(f"Variable {action!r} not found")
        return rules.variable_prefix + action + rules.variable_suffix

    # -----------------------------------------------------------------------
    # Directives
    # -----------------------------------------------------------------------

    def _execute(self, directive: Directive, flow: FlowControl) -> str:
        handler = self._DIRECTIVE_DISPATCH[directive.kind]
        return handler(self, directive, flow) or ""

    def _exec_set_var(self, directive: SetVariable, flow: FlowControl) -> None:
        self.state.set_variable(directive.name, directive.values)

    def _exec_unset_var(self, directive: UnsetVariable, flow: FlowControl) -> None:
        self.state.unset_variable(directive.name)

    def _exec_set_rule(self, directive: SetRule, flow: FlowControl) -> None:
        self.state.set_rule(directive.name, directive.value)

    def _exec_set_profile(self, directive: SetProfile, flow: FlowControl) -> None:
        self.state.apply_profile(directive.name)

    def _exec_set_ignore(self, directive: SetIgnore, flow: FlowControl) -> None:
        self.state.ignore.add(directive.token)

    def _exec_unset_ignore(self, directive: UnsetIgnore, flow: FlowControl) -> None:
        self.state.ignore.discard(directive.token)

    def _exec_define_macro(self, directive: DefineMacro, flow: FlowControl) -> None:
        flow.begin_capture(CaptureKind.MACRO, directive.name)

    def _exec_define_profile(self, directive: DefineProfile, flow: FlowControl) -> None:
        flow.begin_capture(CaptureKind.PROFILE, directive.name, directive.format)

    def _exec_end_define(self, directive: Directive, flow: FlowControl) -> None:
        raise PreprocessError("No macro or profile definition to end")

    def _exec_macro(self, directive: ExecuteMacro, flow: FlowControl) -> str:
        state = self.state
        body = state.macros.get(directive.name)
        if body is None:
            raise PreprocessError(f"Macro {directive.name!r} is not defined")
        args = get_variable_values(state, directive.arguments)
        logger.debug("Executing macro %r with arguments %r", directive.name, args)
        state.arg_frames.append(args)
        try:
            return self._expand(body)
        finally:
            state.arg_frames.pop()

    def _exec_if(self, directive: If, flow: FlowControl) -> None:
        flow.enter_if(self._condition(directive.condition))

    def _exec_elif(self, directive: ElseIf, flow: FlowControl) -> None:
        flow.enter_elif(self._condition(directive.condition))

    def _exec_else(self, directive: Directive, flow: FlowControl) -> None:
        flow.enter_else()

    def _exec_endif(self, directive: Directive, flow: FlowControl) -> None:
        flow.exit_if()

    def _exec_for(self, directive: For, flow: FlowControl) -> None:
        flow.begin_capture(CaptureKind.FOR, directive.header)

    def _exec_endfor(self, directive: Directive, flow: FlowControl) -> None:
        raise PreprocessError("Unmatched 'endfor' in code flow")

    def _exec_include(self, directive: Include, flow: FlowControl) -> str:
        state = self.state
        path = self._resolve_include(directive.path)
        if path in state.include_stack:
            chain = " -> ".join(str(p) for p in [*state.include_stack, path])
            raise PreprocessError(f"Circular include detected: {chain}")
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PreprocessError(
                f"Error opening include file {path}: {exc.strerror or exc}"
            ) from exc

        logger.info("Including %s", path)
        state.include_stack.append(path)
        try:
            result = self._expand(content)
        finally:
            state.include_stack.pop()
        state.include_count += 1
        return result

    _DIRECTIVE_DISPATCH: dict[str, Callable[[Engine, Directive, FlowControl], str | None]] = {
        "set_var": _exec_set_var,
        "unset_var": _exec_unset_var,
        "set_rule": _exec_set_rule,
        "set_profile": _exec_set_profile,
        "set_ignore": _exec_set_ignore,
        "unset_ignore": _exec_unset_ignore,
        "define_macro": _exec_define_macro,
        "define_profile": _exec_define_profile,
        "end_define": _exec_end_define,
        "exec": _exec_macro,
        "if": _exec_if,
        "elif": _exec_elif,
        "else": _exec_else,
        "endif": _exec_endif,
        "for": _exec_for,
        "endfor": _exec_endfor,
        "include": _exec_include,
    }

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _condition(self, expr: str) -> Callable[[], bool]:
        return lambda: evaluate_condition(expr, self.state.variables)

    def _resolve_include(self, name: str) -> Path:
        candidate = Path(name).expanduser()
        if candidate.is_file():
            return candidate.resolve()
        candidate = self.state.rules.include_dir / name
        if candidate.is_file():
            return candidate.resolve()
        raise PreprocessError(f"Include file {name!r} not found")

    def _close_capture(self, capture: Capture) -> str:
        if capture.kind is CaptureKind.FOR:
            return self._run_loop(capture)
        if capture.kind is CaptureKind.MACRO:
            self._store_macro(capture)
        else:
            self._store_profile(capture)
        return ""

    def _run_loop(self, capture: Capture) -> str:
        state = self.state
        loop_var, array = _parse_loop_header(capture.target)
        if array not in state.variables:
            raise PreprocessError(f"For loop array {array!r} not found")

        body = capture.body
        values = list(state.variables[array])
        logger.debug("Looping %r over %r (%d values)", loop_var, array, len(values))
        result = []
        for value in values:
            state.variables[loop_var] = [value]
            result.append(self._expand(body))
        return "".join(result)

    def _store_macro(self, capture: Capture) -> None:
        macros = self.state.macros
        if capture.target in macros:
            logger.warning(
                "Macro %r already defined; ignoring the new definition", capture.target,
            )
            return
        macros[capture.target] = capture.body

    def _store_profile(self, capture: Capture) -> None:
        try:
            data = parse_string(capture.body, capture.format)
        except ParseError as exc:
            raise PreprocessError(f"Invalid profile {capture.target!r}: {exc}") from exc
        if not data.is_map():
            raise PreprocessError(f"Invalid profile data format for profile {capture.target!r}")
        try:
            profile = profile_from_value(capture.target, data)
        except (TypeError, ValueError) as exc:
            raise PreprocessError(f"Invalid profile {capture.target!r}: {exc}") from exc
        self.state.add_profile(profile)


def _parse_loop_header(header: str) -> tuple[str, str]:
    """Split ``VAR in ARRAY`` (or ``VAR ARRAY``) into its two names."""
    words = header.split()
    if len(words) == 3 and words[1] == "in":
        return words[0], words[2]
    if len(words) == 2:
        return words[0], words[1]
    raise PreprocessError(
        f"For loop variable or array cannot be empty: 'for {header}' "
        "(expected 'for VAR in ARRAY')"
    )
