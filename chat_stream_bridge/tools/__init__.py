"""
Tool-call detection.

- json_boundary: chunk-safe balanced-brace scanner
- detector: tool calls embedded as raw JSON in prose
- native: tool calls on the backend's dedicated tool channels
"""

from .call_id import (
    extract_tool_name_from_call_id,
    generate_call_id,
    strip_tool_prefix,
)
from .detector import (
    Buffering,
    ContentDelta,
    DetectorOutput,
    DetectorState,
    StreamingToolCallDetector,
    ToolCallDetected,
)
from .json_boundary import CaptureState, CompleteJson, JsonBoundaryTracker, PlainText, feed, flush
from .native import NativeToolCallParsed, NativeToolChannel, is_error_result, parse_tool_call
from .types import ToolCall, tool_call_from_value


__all__ = [
    "Buffering",
    "CaptureState",
    "CompleteJson",
    "ContentDelta",
    "DetectorOutput",
    "DetectorState",
    "JsonBoundaryTracker",
    "NativeToolCallParsed",
    "NativeToolChannel",
    "PlainText",
    "StreamingToolCallDetector",
    "ToolCall",
    "ToolCallDetected",
    "extract_tool_name_from_call_id",
    "feed",
    "flush",
    "generate_call_id",
    "is_error_result",
    "parse_tool_call",
    "strip_tool_prefix",
    "tool_call_from_value",
]
