"""
Streaming Tool-Call Detector

Separates tool-call JSON from prose in live assistant text. The model may
answer a tool-enabled request by writing a raw JSON object such as
``{"name": "get_weather", "arguments": {"city": "Paris"}}`` in the middle of
its message; this detector recognises those objects as they stream in.

States:
    PROSE      -> CAPTURING  when a '{' opens a capture
    CAPTURING  -> PROSE      when the capture closes (tool call or not)

Code fences: a capture opened right after a fence opener (three backticks,
optionally tagged ``json``) is held together with its fence. When the capture
is a tool call and a closing fence follows, both fences belong to the call's
source and never reach the prose. Otherwise the fence text is re-emitted
verbatim.

Outputs per token:
    ContentDelta       prose to forward immediately
    ToolCallDetected   a completed capture that has the tool-call shape
    Buffering          a capture or a fence is open and nothing could be emitted yet

No character is lost or duplicated: concatenating every ContentDelta with
the source text of every ToolCallDetected, in order, reproduces the input.
"""

import enum
import json
import re
from dataclasses import dataclass
from typing import TypeAlias

from loguru import logger

from . import json_boundary
from .json_boundary import CaptureState, CompleteJson, PlainText
from .types import ToolCall, tool_call_from_value


# Characters of captured text shown in log lines
LOG_PREVIEW_LENGTH = 100

FENCE = "```"

# A fence opener, or a prefix of one, at the end of prose
_FENCE_TAIL = re.compile(r"(?:```(?:j(?:s(?:on?)?)?)?\s*|`{1,2})$")
_FENCE_OPENER = re.compile(r"```(?:json)?\s*")


class DetectorState(str, enum.Enum):
    PROSE = "prose"
    CAPTURING = "capturing"


@dataclass(frozen=True)
class ContentDelta:
    text: str


@dataclass(frozen=True)
class ToolCallDetected:
    tool_call: ToolCall
    index: int  # slot index, in arrival order within the response
    source: str  # exact captured text, fences included


@dataclass(frozen=True)
class Buffering:
    pass


DetectorOutput: TypeAlias = ContentDelta | ToolCallDetected | Buffering


def _preview(text: str) -> str:
    return text.replace("\n", " ")[:LOG_PREVIEW_LENGTH]


class StreamingToolCallDetector:
    """
    Stateful detector for one content stream.

    One instance per response; the capture state survives across process()
    calls and is only cleared by a completed capture, finalize() or cancel().
    """

    def __init__(self, tool_prefix: str = ""):
        self._tool_prefix = tool_prefix
        self._capture = CaptureState()
        self._next_slot = 0
        # Prose held back because it may open a code fence
        self._held = ""
        # (tool call, fence opener, captured text) waiting for its closing fence
        self._fenced: tuple[ToolCall, str, str] | None = None
        self._trail = ""
        self.tool_calls: list[ToolCall] = []

    @property
    def state(self) -> DetectorState:
        return DetectorState.CAPTURING if self._capture.active else DetectorState.PROSE

    def process(self, token: str) -> list[DetectorOutput]:
        """
        Process one incoming content token.

        Returns:
            Outputs in arrival order. ``[Buffering()]`` when the token was
            fully absorbed into an open capture or a pending fence.
        """
        segments, self._capture = json_boundary.feed(token, self._capture)

        outputs: list[DetectorOutput] = []
        for segment in segments:
            match segment:
                case PlainText(text):
                    outputs.extend(self._plain(text))
                case CompleteJson(text, _):
                    outputs.extend(self._complete(text))

        if not outputs and (self._capture.active or self._held or self._fenced):
            return [Buffering()]
        return outputs

    def finalize(self) -> list[DetectorOutput]:
        """
        End of stream: flush held fence text and any unresolved capture as prose.

        An unbalanced capture is a recoverable anomaly, never an error.
        """
        outputs = self._release_fenced()
        text = self._trail + self._held
        self._trail = ""
        self._held = ""

        if self._capture.active:
            partial, self._capture = json_boundary.flush(self._capture)
            logger.warning(
                f"[DETECTOR] Unbalanced JSON at end of stream, flushing {len(partial)} chars as text: "
                f"'{_preview(partial)}'"
            )
            text += partial
        if text:
            outputs.append(ContentDelta(text))
        return outputs

    def cancel(self) -> None:
        """Discard any open capture without reporting it."""
        if self._capture.active or self._fenced:
            logger.debug(f"[DETECTOR] Discarding open capture ({len(self._capture.buffer)} chars)")
        self._capture = CaptureState(consumed=self._capture.consumed)
        self._held = ""
        self._fenced = None
        self._trail = ""

    def _plain(self, text: str) -> list[DetectorOutput]:
        outputs: list[DetectorOutput] = []
        if self._fenced:
            self._trail += text
            rest = self._trail.lstrip()
            if rest.startswith(FENCE):
                tool_call, opener, source = self._fenced
                closer_end = len(self._trail) - len(rest) + len(FENCE)
                self._fenced = None
                logger.debug("[DETECTOR] Closing fence found, dropping fences around tool call")
                outputs.append(self._detected(tool_call, opener + source + self._trail[:closer_end]))
                text = self._trail[closer_end:]
                self._trail = ""
            elif FENCE.startswith(rest):
                return outputs
            else:
                outputs.extend(self._release_fenced())
                text = self._trail
                self._trail = ""

        text = self._held + text
        match = _FENCE_TAIL.search(text)
        cut = match.start() if match else len(text)
        self._held = text[cut:]
        if cut:
            outputs.append(ContentDelta(text[:cut]))
        return outputs

    def _complete(self, text: str) -> list[DetectorOutput]:
        outputs = self._release_fenced()
        if self._trail:
            outputs.append(ContentDelta(self._trail))
            self._trail = ""

        opener = self._held if _FENCE_OPENER.fullmatch(self._held) else ""
        if self._held and not opener:
            outputs.append(ContentDelta(self._held))
        self._held = ""

        tool_call = self._match_tool_call(text)
        if tool_call is None:
            outputs.append(ContentDelta(opener + text))
        elif opener:
            self._fenced = (tool_call, opener, text)
        else:
            outputs.append(self._detected(tool_call, text))
        return outputs

    def _release_fenced(self) -> list[DetectorOutput]:
        """A fenced tool call without a closing fence gives its opener back to the prose."""
        if not self._fenced:
            return []
        tool_call, opener, source = self._fenced
        self._fenced = None
        return [ContentDelta(opener), self._detected(tool_call, source)]

    def _match_tool_call(self, text: str) -> ToolCall | None:
        try:  # nosemgrep: forbid-try-except
            value = json.loads(text)
        except json.JSONDecodeError:
            logger.info(f"[DETECTOR] Capture is not valid JSON, emitting as text: '{_preview(text)}'")
            return None

        tool_call = tool_call_from_value(value, prefix=self._tool_prefix, strict=True)
        if tool_call is None:
            logger.info(f"[DETECTOR] Capture lacks tool-call shape, emitting as text: '{_preview(text)}'")
        return tool_call

    def _detected(self, tool_call: ToolCall, source: str) -> ToolCallDetected:
        slot = self._next_slot
        self._next_slot += 1
        self.tool_calls.append(tool_call)
        logger.info(f"[DETECTOR] Tool call detected: slot={slot}, name={tool_call.name}")
        return ToolCallDetected(tool_call=tool_call, index=slot, source=source)
