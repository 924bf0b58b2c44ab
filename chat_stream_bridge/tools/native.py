"""
Native Tool-Channel Parser

The backend reports some tool activity on dedicated channels instead of in
the message text:

- ``target: "tool_call"`` carries JSON like
  ``{"name": "web_search", "parameters": {"search_term": "..."}}``
- ``target: "tool_result"`` carries the tool's output, or ``{"error": true}``
  when the call failed.

Malformed payloads on these channels are treated as absent: they are logged
and ignored, never surfaced to the client.
"""

from dataclasses import dataclass

from loguru import logger

from ..result import Error, Ok
from ..utils import _parse_json_safely
from .json_boundary import JsonBoundaryTracker
from .types import ToolCall, tool_call_from_value


def parse_tool_call(json_str: str, prefix: str = "") -> ToolCall | None:
    """
    Parse a complete native tool_call payload.

    ``parameters`` is accepted as an alias for ``arguments``; anything other
    than an object for the arguments becomes {}.

    Returns:
        ToolCall, or None for a parse failure, a non-object, or a missing name
    """
    match _parse_json_safely(json_str):
        case Ok(value):
            return tool_call_from_value(value, prefix=prefix, strict=False)
        case Error(_):
            return None


def is_error_result(json_str: str) -> bool:
    """True iff the payload is an object whose ``error`` field is exactly ``true``."""
    match _parse_json_safely(json_str):
        case Ok(value):
            return isinstance(value, dict) and value.get("error") is True
        case Error(_):
            return False


@dataclass(frozen=True)
class NativeToolCallParsed:
    tool_call: ToolCall
    raw: str


class NativeToolChannel:
    """
    Tracks the tool_call / tool_result channels of one response.

    Content on either channel may be split across several token events, so
    each channel gets its own boundary tracker and only completed objects
    are parsed.
    """

    def __init__(self, tool_prefix: str = ""):
        self._tool_prefix = tool_prefix
        self._call_tracker = JsonBoundaryTracker()
        self._result_tracker = JsonBoundaryTracker()
        self.tool_calls: list[ToolCall] = []

    def feed_tool_call(self, content: str) -> list[NativeToolCallParsed]:
        """Feed tool_call channel content; returns the calls completed by it."""
        parsed: list[NativeToolCallParsed] = []
        for raw in self._call_tracker.feed(content):
            tool_call = parse_tool_call(raw, prefix=self._tool_prefix)
            if tool_call is None:
                logger.warning(f"[NATIVE] Ignoring malformed tool_call payload: {raw[:100]}")
                continue
            logger.debug(f"[NATIVE] tool_call: {tool_call.name}")
            self.tool_calls.append(tool_call)
            parsed.append(NativeToolCallParsed(tool_call=tool_call, raw=raw))
        return parsed

    def feed_tool_result(self, content: str) -> list[bool]:
        """
        Feed tool_result channel content.

        Returns:
            One flag per completed result object, True if it reports an error
        """
        flags: list[bool] = []
        for raw in self._result_tracker.feed(content):
            failed = is_error_result(raw)
            flags.append(failed)
            if failed and self.tool_calls:
                logger.warning(f"[NATIVE] Tool {self.tool_calls[-1].name} reported an error result")
            else:
                logger.debug(f"[NATIVE] tool_result ({len(raw)} chars)")
        return flags
