"""
Chat completions emitter (protocol A).

Delta-chunk protocol: every event is a ``chat.completion.chunk`` object with
``choices[0].delta`` carrying either ``content`` or ``tool_calls``;
``finish_reason`` stays null until the terminal chunk, which is followed by
the literal ``data: [DONE]`` line.
"""

import json
from typing import Any

from loguru import logger

from .context import ConversionContext
from .sse import DONE_MARKER, SseFormattedEvent, format_sse_event


class StreamClosedError(RuntimeError):
    """An event was emitted after the stream's terminal event."""


class ChatCompletionEventEmitter:
    """
    Builds protocol A events for one request.

    Each method returns the SSE strings to write, in order. Every chunk
    consumes one sequence number of the shared context even though
    protocol A does not put it on the wire.
    """

    def __init__(self, context: ConversionContext):
        self._context = context
        self.closed = False

    def _chunk(self, delta: dict[str, Any], finish_reason: str | None = None) -> dict[str, Any]:
        return {
            "id": self._context.response_id,
            "object": "chat.completion.chunk",
            "created": self._context.created_at,
            "model": self._context.model,
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }

    def _emit(self, event_data: dict[str, Any]) -> SseFormattedEvent:
        if self.closed:
            msg = "chat completion stream already closed"
            raise StreamClosedError(msg)
        sse_event = format_sse_event(event_data)
        self._context.advance_sequence_number()
        return sse_event

    def emit_content_delta(self, text: str) -> list[SseFormattedEvent]:
        if not text:
            return []
        return [self._emit(self._chunk({"content": text}))]

    def emit_tool_call_delta(
        self, call_id: str, name: str, args: dict[str, Any]
    ) -> list[SseFormattedEvent]:
        arguments = json.dumps(args)
        slot = self._context.next_tool_call_slot()
        tool_call = {
            "index": slot,
            "id": call_id,
            "type": "function",
            "function": {"name": name, "arguments": arguments},
        }
        logger.debug(f"[CHAT] tool call delta: slot={slot}, name={name}")
        return [self._emit(self._chunk({"tool_calls": [tool_call]}))]

    def emit_done(self, tool_calls_present: bool) -> list[SseFormattedEvent]:
        finish_reason = "tool_calls" if tool_calls_present else "stop"
        final_chunk = self._emit(self._chunk({}, finish_reason=finish_reason))
        self.closed = True
        return [final_chunk, DONE_MARKER]

    def emit_error(self, message: str, code: str | None = None) -> list[SseFormattedEvent]:
        error_event = self._emit(
            {"error": {"message": message, "type": "server_error", "code": code}}
        )
        self.closed = True
        return [error_event]
