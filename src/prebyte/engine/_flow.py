"""Per-pass flow control: conditional frames and block capture.

Every expansion pass (the document, an include, a macro body, one loop
iteration) owns a ``FlowControl``.  It tracks

- a stack of ``IfFrame`` entries, one per open ``if``; the top frame
  decides whether output is currently suppressed
- at most one ``Capture``: while a ``for`` or ``define`` block is open,
  text and tokens go into the capture buffer verbatim instead of the
  output, to be expanded later
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from ._state import PreprocessError


class CaptureKind(str, Enum):
    FOR = "for"
    MACRO = "macro"
    PROFILE = "profile"


@dataclass
class IfFrame:
    """State of one open ``if`` chain.

    ``active``: the enclosing context was producing output when the chain
    started.  ``taken``: some branch of the chain already ran.
    ``suppressed``: the current branch is not producing output.
    """

    active: bool
    taken: bool
    suppressed: bool


@dataclass
class Capture:
    """An open ``for``/``define`` block collecting its body."""

    kind: CaptureKind
    target: str
    format: str | None = None
    depth: int = 1
    parts: list[str] = field(default_factory=list)

    @property
    def body(self) -> str:
        return "".join(self.parts)


class FlowControl:
    def __init__(self) -> None:
        self.frames: list[IfFrame] = []
        self.capture: Capture | None = None

    @property
    def suppressed(self) -> bool:
        return bool(self.frames) and self.frames[-1].suppressed

    @property
    def capturing(self) -> bool:
        return self.capture is not None

    def emit(self, text: str, out: list[str]) -> None:
        """Route literal text to the capture, the output, or nowhere."""
        if not text:
            return
        if self.capture is not None:
            self.capture.parts.append(text)
        elif not self.suppressed:
            out.append(text)

    # -----------------------------------------------------------------------
    # Conditionals
    # -----------------------------------------------------------------------

    def enter_if(self, condition: Callable[[], bool]) -> None:
        if self.suppressed:
            self.frames.append(IfFrame(active=False, taken=False, suppressed=True))
            return
        result = condition()
        self.frames.append(IfFrame(active=True, taken=result, suppressed=not result))

    def enter_elif(self, condition: Callable[[], bool]) -> None:
        frame = self._top("elif")
        if not frame.active or frame.taken:
            frame.suppressed = True
            return
        result = condition()
        frame.taken = result
        frame.suppressed = not result

    def enter_else(self) -> None:
        frame = self._top("else")
        if not frame.active or frame.taken:
            frame.suppressed = True
            return
        frame.taken = True
        frame.suppressed = False

    def exit_if(self) -> None:
        self._top("endif")
        self.frames.pop()

    def _top(self, keyword: str) -> IfFrame:
        if not self.frames:
            raise PreprocessError(f"Unmatched '{keyword}' in code flow")
        return self.frames[-1]

    # -----------------------------------------------------------------------
    # Capture
    # -----------------------------------------------------------------------

    def begin_capture(self, kind: CaptureKind, target: str, format: str | None = None) -> None:
        self.capture = Capture(kind=kind, target=target, format=format)

    def end_capture(self) -> Capture:
        capture = self.capture
        self.capture = None
        return capture

    def finish(self) -> None:
        """Check that every block opened in this pass was closed."""
        if self.capture is not None:
            if self.capture.kind is CaptureKind.FOR:
                raise PreprocessError(f"Unterminated 'for {self.capture.target}' loop")
            raise PreprocessError(
                f"Unterminated definition of {self.capture.kind.value} {self.capture.target!r}"
            )
        if self.frames:
            raise PreprocessError(f"Unterminated 'if' block ({len(self.frames)} missing 'endif')")
