"""prebyte engine: token scanning and directive expansion.

Entry point::

    from prebyte.engine import Engine, ExecutionState

    state = ExecutionState()
    state.set_variable("name", ["World"])
    Engine(state).run("Hello %%name%%!")   # 'Hello World!'
"""

from __future__ import annotations

from ._executor import MAX_EXPANSION_DEPTH, Engine
from ._state import ExecutionState, PreprocessError

__all__ = ["Engine", "ExecutionState", "MAX_EXPANSION_DEPTH", "PreprocessError"]
