"""Tool call value type and shape checks shared by the detector and native channel."""

from dataclasses import dataclass, field
from typing import Any

from .call_id import strip_tool_prefix


@dataclass(frozen=True)
class ToolCall:
    """A function invocation requested by the assistant."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


def tool_call_from_value(
    value: Any,
    *,
    prefix: str = "",
    strict: bool = True,
) -> ToolCall | None:
    """
    Interpret a parsed JSON value as a tool call.

    Accepted shape: {"name": str, "arguments"?: object} with ``parameters``
    as an alias for ``arguments``.

    Args:
        value: Parsed JSON value
        prefix: Tool-name prefix to strip
        strict: When True (prose detection) non-object arguments and a
            ``type`` other than "function_call" reject the value. When False
            (native channel) non-object arguments fall back to {}.

    Returns:
        ToolCall, or None if the value does not have the shape
    """
    if not isinstance(value, dict) or not isinstance(value.get("name"), str):
        return None

    if strict and "type" in value and value["type"] != "function_call":
        return None

    args = value.get("arguments")
    if args is None:
        args = value.get("parameters")
    if args is None:
        args = {}

    if not isinstance(args, dict):
        if strict:
            return None
        args = {}

    return ToolCall(name=strip_tool_prefix(value["name"], prefix), arguments=args)
