"""SSE line formatting for both outward protocols."""

import json
from typing import Any, TypeAlias


# Type alias for SSE-formatted event strings
# Example: 'data: {"object":"chat.completion.chunk",...}\n\n'
SseFormattedEvent: TypeAlias = str

# Terminal sentinel of the chat completions stream
DONE_MARKER: SseFormattedEvent = "data: [DONE]\n\n"


def format_sse_event(event_data: dict[str, Any]) -> SseFormattedEvent:
    """
    Format event data as an unnamed SSE event: 'data: {...}\\n\\n'.

    Raises:
        TypeError, ValueError: If event_data is not JSON serializable
    """
    return f"data: {json.dumps(event_data)}\n\n"


def format_named_sse_event(event_data: dict[str, Any]) -> SseFormattedEvent:
    """
    Format event data as a named SSE event using its ``type`` as the name:
    'event: <type>\\ndata: {...}\\n\\n'.

    Raises:
        TypeError, ValueError: If event_data is not JSON serializable
    """
    return f"event: {event_data['type']}\ndata: {json.dumps(event_data)}\n\n"
