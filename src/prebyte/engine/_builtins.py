"""Built-in ``__NAME__`` variables.

Each builtin is a function ``(state, line) -> str``.  Clock values come
from ``state.start_time`` so every token in a run sees the same instant;
file values describe the innermost file being expanded and are empty when
the input did not come from a file.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from pathlib import Path

from prebyte._version import __version__

from ._state import ExecutionState


def _env(*names: str) -> str:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return ""


def _file_stat(state: ExecutionState) -> os.stat_result | None:
    path = state.current_file
    if path is None:
        return None
    try:
        return path.stat()
    except OSError:
        return None


def _file_created(state: ExecutionState, line: int) -> str:
    stat = _file_stat(state)
    if stat is None:
        return ""
    return time.ctime(stat.st_mtime)


def _file_path(state: ExecutionState, line: int) -> str:
    path = state.current_file
    if path is None:
        return ""
    return str(Path(os.path.abspath(path)).parent)


def _file_size(state: ExecutionState, line: int) -> str:
    stat = _file_stat(state)
    return str(stat.st_size) if stat is not None else ""


def _file(state: ExecutionState, line: int) -> str:
    # At the top level report the input path as given, not the resolved one.
    if state.input_file is not None and len(state.include_stack) <= 1:
        return str(state.input_file)
    path = state.current_file
    return str(path) if path is not None else ""


def _file_attr(attr: str) -> Callable[[ExecutionState, int], str]:
    def resolve(state: ExecutionState, line: int) -> str:
        path = state.current_file
        if path is None:
            return ""
        return getattr(path, attr)
    return resolve


def _clock(fmt: str) -> Callable[[ExecutionState, int], str]:
    def resolve(state: ExecutionState, line: int) -> str:
        return state.start_time.strftime(fmt)
    return resolve


BUILTIN_VARIABLES: dict[str, Callable[[ExecutionState, int], str]] = {
    "__DATE__": _clock("%Y-%m-%d"),
    "__TIME__": _clock("%H:%M:%S"),
    "__DATETIME__": _clock("%Y-%m-%d %H:%M:%S"),
    "__YEAR__": _clock("%Y"),
    "__MONTH__": _clock("%m"),
    "__DAY__": _clock("%d"),
    "__HOUR__": _clock("%H"),
    "__MINUTE__": _clock("%M"),
    "__SECOND__": _clock("%S"),
    "__UNIXTIMESTAMP__": lambda state, line: str(int(state.start_time.timestamp())),
    "__USER__": lambda state, line: _env("USER", "USERNAME"),
    "__HOST__": lambda state, line: _env("HOST", "COMPUTERNAME"),
    "__PWD__": lambda state, line: os.getcwd(),
    "__VERSION__": lambda state, line: __version__,
    "__FILE__": _file,
    "__FILE_NAME__": _file_attr("name"),
    "__FILE_PATH__": _file_path,
    "__FILE_EXT__": _file_attr("suffix"),
    "__FILE_SIZE__": _file_size,
    "__FILE_CREATED__": _file_created,
    "__LINE__": lambda state, line: str(line),
}


def is_builtin_name(name: str) -> bool:
    """``__NAME__`` tokens are reserved; unknown ones expand to nothing."""
    return len(name) > 4 and name.startswith("__") and name.endswith("__")
