"""SSE (Server-Sent Events) test utilities.

Parse the output of both outward protocols back into dicts:

- chat completions: 'data: {json}\\n\\n' and the 'data: [DONE]\\n\\n' sentinel
- responses: 'event: <type>\\ndata: {json}\\n\\n'
"""

import json
from typing import Any


def parse_sse_event(sse_string: str) -> dict[str, Any]:
    """Parse SSE format 'data: {json}\\n\\n' to dict.

    Args:
        sse_string: SSE formatted string (e.g., "data: {...}\\n\\n")

    Returns:
        Parsed JSON dict from the SSE data field

    Raises:
        ValueError: If the string is not in valid SSE format

    Examples:
        >>> parse_sse_event('data: {"object": "chat.completion.chunk"}\\n\\n')
        {'object': 'chat.completion.chunk'}
        >>> parse_sse_event('data: [DONE]\\n\\n')
        {'type': 'DONE'}
    """
    if sse_string.startswith("data: "):
        data_part = sse_string[6:].strip()
        if data_part == "[DONE]":
            return {"type": "DONE"}
        return json.loads(data_part)
    msg = f"Invalid SSE format: {sse_string}"
    raise ValueError(msg)


def parse_named_sse_event(sse_string: str) -> dict[str, Any]:
    """Parse 'event: <type>\\ndata: {json}\\n\\n' and check the name matches the payload type.

    Raises:
        ValueError: If the string is not a named SSE event
    """
    lines = sse_string.strip().split("\n")
    if len(lines) != 2 or not lines[0].startswith("event: ") or not lines[1].startswith("data: "):  # noqa: PLR2004
        msg = f"Invalid named SSE format: {sse_string!r}"
        raise ValueError(msg)
    event = json.loads(lines[1][6:])
    if event.get("type") != lines[0][7:]:
        msg = f"Event name {lines[0][7:]!r} does not match payload type {event.get('type')!r}"
        raise ValueError(msg)
    return event


def split_sse_stream(body: str) -> list[str]:
    """Split a full SSE response body into individual events (with trailing blank line)."""
    return [f"{block}\n\n" for block in body.split("\n\n") if block.strip()]
