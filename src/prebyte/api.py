"""Embedded interface.

Usage::

    from prebyte import Prebyte

    pb = Prebyte()
    pb.set_variable("name", "World")
    pb.set_rule("strict_variables", True)
    pb.process("Hello %%name%%!")          # 'Hello World!'
    pb.process_file("page.tpl", "page.html")

Every fatal condition is raised as ``PreprocessError``; nothing in this
module exits the process.
"""

from __future__ import annotations

import logging
from pathlib import Path

from prebyte.engine import MAX_EXPANSION_DEPTH, Engine, ExecutionState, PreprocessError
from prebyte.settings import apply_definition, apply_ignore, load_settings_file

logger = logging.getLogger(__name__)


class Prebyte:
    """Configured expansion engine.

    Variables, profiles, ignores and rules set on the instance form the
    starting state of every run.  Each ``process``/``process_file`` call
    works on a copy of that state, so directives in one document never
    leak into the next.

    Parameters
    ----------
    settings_file : str or Path, optional
        Settings document loaded at construction.
    max_depth : int
        Maximum nesting of macro calls, includes and loop bodies.
    """

    def __init__(
        self,
        settings_file: str | Path | None = None,
        *,
        max_depth: int = MAX_EXPANSION_DEPTH,
    ) -> None:
        self.state = ExecutionState()
        self.max_depth = max_depth
        self.last_state: ExecutionState | None = None
        if settings_file is not None:
            self.load_settings(settings_file)

    # -----------------------------------------------------------------------
    # Configuration
    # -----------------------------------------------------------------------

    def load_settings(self, path: str | Path) -> None:
        load_settings_file(self.state, path)

    def set_variable(self, name: str, value: str | list[str]) -> None:
        values = [value] if isinstance(value, str) else [str(v) for v in value]
        self.state.set_variable(name, values)

    def define(self, entry: str) -> None:
        """Apply a ``NAME=VALUE``, ``NAME=[a,b]`` or variable-file entry."""
        apply_definition(self.state, entry)

    def set_profile(self, name: str) -> None:
        self.state.apply_profile(name)

    def set_ignore(self, token: str) -> None:
        apply_ignore(self.state, token)

    def set_rule(self, name: str, value: str | bool | int) -> None:
        self.state.set_rule(name, value)

    # -----------------------------------------------------------------------
    # Processing
    # -----------------------------------------------------------------------

    def process(self, text: str, output_path: str | Path | None = None) -> str:
        """Expand *text*; also write it to *output_path* when given."""
        run = self.state.copy()
        result = self._run(run, text)
        if output_path is not None:
            _write_output(output_path, result)
        return result

    def process_file(self, path: str | Path, output_path: str | Path | None = None) -> str:
        """Expand the file at *path*; also write it to *output_path* when given."""
        path = Path(path).expanduser()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PreprocessError(
                f"Error opening input file {path}: {exc.strerror or exc}"
            ) from exc

        run = self.state.copy()
        run.input_file = path
        run.include_stack.append(path.resolve())
        result = self._run(run, text)
        if output_path is not None:
            _write_output(output_path, result)
        return result

    def _run(self, run: ExecutionState, text: str) -> str:
        self.last_state = run
        return Engine(run, self.max_depth).run(text)

    @property
    def include_count(self) -> int:
        """Includes processed by the last run."""
        return self.last_state.include_count if self.last_state is not None else 0

    # -----------------------------------------------------------------------
    # Listings
    # -----------------------------------------------------------------------

    def list_rules(self) -> str:
        return "Used Rules:\n\n" + self.state.rules.describe()

    def list_variables(self) -> str:
        variables = self.state.variables
        if not variables:
            return "No variables defined."
        lines = ["Defined variables:", ""]
        for name, values in variables.items():
            if len(values) == 1:
                lines.append(f"{name} = {values[0]}")
            else:
                lines.append(f"{name} = [{', '.join(values)}]")
        return "\n".join(lines)


def _write_output(path: str | Path, text: str) -> None:
    path = Path(path).expanduser()
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise PreprocessError(
            f"Error writing output file {path}: {exc.strerror or exc}"
        ) from exc
    logger.info("Wrote %d characters to %s", len(text), path)
