"""
JSON Boundary Tracker

Incremental scanner that finds balanced ``{...}`` spans inside a character
stream that arrives in arbitrary chunks.

The scanner is a pure function over an explicit CaptureState value:

    segments, state = feed(chunk, state)

so any number of independent streams can be scanned side by side, each
holding its own state. Segments come back in arrival order as either
PlainText (characters outside any object) or CompleteJson (the full span
from the opening ``{`` to the matching ``}`` inclusive).

Rules:
- Outside a capture every character is plain text; a stray ``}`` stays plain.
- ``{`` at depth 0 opens a capture. Inside a capture, quotes toggle string
  context (honouring backslash escapes) and braces inside strings are ignored.
- The capture ends when depth returns to 0.
"""

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True)
class CaptureState:
    """Scanner state carried between feed() calls."""

    buffer: str = ""  # text of the open capture so far
    depth: int = 0
    in_string: bool = False
    escape_pending: bool = False
    start_offset: int | None = None  # stream offset of the open capture's '{'
    consumed: int = 0  # total characters fed

    @property
    def active(self) -> bool:
        return self.depth > 0


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class CompleteJson:
    text: str
    start_offset: int


Segment: TypeAlias = PlainText | CompleteJson


def feed(chunk: str, state: CaptureState) -> tuple[list[Segment], CaptureState]:  # noqa: C901, PLR0912
    """
    Scan one chunk.

    Args:
        chunk: Next piece of the stream
        state: State returned by the previous call (CaptureState() to start)

    Returns:
        (segments, new_state). Plain text adjacent within the chunk is
        coalesced into a single PlainText segment.
    """
    segments: list[Segment] = []
    depth = state.depth
    in_string = state.in_string
    escape_pending = state.escape_pending
    start_offset = state.start_offset

    # Text of the open capture from earlier chunks, and where it resumes in this one
    carried = state.buffer if depth > 0 else ""
    capture_from: int | None = 0 if depth > 0 else None
    plain_from = 0

    for i, char in enumerate(chunk):
        if depth == 0:
            if char == "{":
                if i > plain_from:
                    segments.append(PlainText(chunk[plain_from:i]))
                depth = 1
                in_string = False
                escape_pending = False
                capture_from = i
                start_offset = state.consumed + i
            continue

        if in_string:
            if escape_pending:
                escape_pending = False
            elif char == "\\":
                escape_pending = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                assert capture_from is not None
                assert start_offset is not None
                segments.append(CompleteJson(carried + chunk[capture_from : i + 1], start_offset))
                carried = ""
                capture_from = None
                start_offset = None
                plain_from = i + 1

    if depth == 0:
        if plain_from < len(chunk):
            segments.append(PlainText(chunk[plain_from:]))
        buffer = ""
    else:
        assert capture_from is not None
        buffer = carried + chunk[capture_from:]

    new_state = CaptureState(
        buffer=buffer,
        depth=depth,
        in_string=in_string,
        escape_pending=escape_pending,
        start_offset=start_offset,
        consumed=state.consumed + len(chunk),
    )
    return segments, new_state


def flush(state: CaptureState) -> tuple[str, CaptureState]:
    """Return the text of an unfinished capture and a state with no capture open."""
    return state.buffer, CaptureState(consumed=state.consumed)


class JsonBoundaryTracker:
    """
    Convenience holder for one stream's CaptureState.

    Used where only the completed objects matter (native tool channels);
    text outside objects is discarded.
    """

    def __init__(self) -> None:
        self.state = CaptureState()

    def feed(self, chunk: str) -> list[str]:
        segments, self.state = feed(chunk, self.state)
        return [segment.text for segment in segments if isinstance(segment, CompleteJson)]

    @property
    def active(self) -> bool:
        return self.state.active

    def reset(self) -> None:
        self.state = CaptureState()
