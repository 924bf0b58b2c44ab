"""
Outward protocols.

- messages: request models and the message -> backend turn converter
- context: per-request counters shared by the emitters
- chat_completions: protocol A (delta chunks)
- responses: protocol B (typed item/part events)
"""

from .chat_completions import ChatCompletionEventEmitter, StreamClosedError
from .context import ConversionContext
from .messages import (
    ChatCompletionMessage,
    ChatCompletionRequest,
    GenericMessage,
    ResponsesRequest,
    Turn,
    input_to_turns,
    resolve_instructions,
    to_turns,
)
from .responses import (
    ProtocolOrderError,
    ResponseEventEmitter,
    build_function_call_item,
    build_message_item,
    create_completed_response,
)
from .sse import DONE_MARKER, SseFormattedEvent, format_named_sse_event, format_sse_event


__all__ = [
    "DONE_MARKER",
    "ChatCompletionEventEmitter",
    "ChatCompletionMessage",
    "ChatCompletionRequest",
    "ConversionContext",
    "GenericMessage",
    "ProtocolOrderError",
    "ResponseEventEmitter",
    "ResponsesRequest",
    "SseFormattedEvent",
    "StreamClosedError",
    "Turn",
    "build_function_call_item",
    "build_message_item",
    "create_completed_response",
    "format_named_sse_event",
    "format_sse_event",
    "input_to_turns",
    "resolve_instructions",
    "to_turns",
]
