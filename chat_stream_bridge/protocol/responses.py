"""
Responses emitter (protocol B).

Item/part protocol with a fixed event order per response:

    response.created
    response.in_progress
    for each output item:
        text item:
            response.output_item.added      (output_index 0, 1, ...)
            response.content_part.added     (content_index 0, ...)
            response.output_text.delta      (zero or more, non-empty)
            response.output_text.done       (full accumulated text)
            response.content_part.done
            response.output_item.done
        function call item:
            response.output_item.added      (function_call, in_progress)
            response.function_call_arguments.delta   (full arguments at once)
            response.function_call_arguments.done
            response.output_item.done       (completed)
    response.completed                      (full response object)

The error path is a single terminal ``error`` event.
Every event carries a ``sequence_number`` that increases by one from 0.
"""

import json
import time
from typing import Any

from loguru import logger

from .chat_completions import StreamClosedError
from .context import ConversionContext
from .messages import ResponsesRequest
from .sse import SseFormattedEvent, format_named_sse_event


class ProtocolOrderError(RuntimeError):
    """An event was requested out of the protocol's required order."""


# ============================================================
# Output builders
# ============================================================


def build_message_item(item_id: str, text: str, status: str = "completed") -> dict[str, Any]:
    return {
        "type": "message",
        "id": item_id,
        "status": status,
        "role": "assistant",
        "content": [{"type": "output_text", "text": text, "annotations": []}],
    }


def build_function_call_item(
    item_id: str,
    call_id: str,
    name: str,
    arguments: str,
    status: str = "completed",
) -> dict[str, Any]:
    return {
        "type": "function_call",
        "id": item_id,
        "call_id": call_id,
        "status": status,
        "name": name,
        "arguments": arguments,
    }


def create_completed_response(
    context: ConversionContext,
    request: ResponsesRequest | None,
    output: list[dict[str, Any]],
) -> dict[str, Any]:
    """Complete ``response`` object, mirroring the request's settings."""
    request = request or ResponsesRequest()
    return {
        "id": context.response_id,
        "object": "response",
        "created_at": context.created_at,
        "status": "completed",
        "completed_at": int(time.time()),
        "error": None,
        "incomplete_details": None,
        "instructions": request.instructions,
        "max_output_tokens": request.max_output_tokens,
        "model": context.model,
        "output": output,
        "parallel_tool_calls": False,
        "previous_response_id": None,
        "reasoning": {"effort": None, "summary": None},
        "store": request.store,
        "temperature": request.temperature if request.temperature is not None else 1.0,
        "text": {"format": {"type": "text"}},
        "tool_choice": request.tool_choice or ("auto" if request.tools else "none"),
        "tools": request.tools or [],
        "top_p": 1.0,
        "truncation": "auto",
        "usage": None,
        "user": None,
        "metadata": request.metadata,
    }


# ============================================================
# Emitter
# ============================================================


class ResponseEventEmitter:
    """
    Builds protocol B events for one response.

    Tracks the open text item so deltas, done events and the final output
    array stay consistent. Methods return SSE strings in order.
    """

    def __init__(self, context: ConversionContext):
        self._context = context
        self._created = False
        self._in_progress = False
        self.closed = False
        # Open text item: (item_id, output_index, content_index)
        self._open_item: tuple[str, int, int] | None = None
        self._open_text_parts: list[str] = []
        self.output: list[dict[str, Any]] = []

    @property
    def has_open_message_item(self) -> bool:
        return self._open_item is not None

    def _emit(self, event_data: dict[str, Any]) -> SseFormattedEvent:
        if self.closed:
            msg = f"response stream already closed, cannot emit {event_data['type']}"
            raise StreamClosedError(msg)
        event_data["sequence_number"] = self._context.sequence_number
        sse_event = format_named_sse_event(event_data)
        self._context.advance_sequence_number()
        return sse_event

    def _require_in_progress(self, event_type: str) -> None:
        if not self._in_progress:
            msg = f"{event_type} emitted before response.in_progress"
            raise ProtocolOrderError(msg)

    def _response_stub(self) -> dict[str, Any]:
        return {
            "id": self._context.response_id,
            "object": "response",
            "status": "in_progress",
            "created_at": self._context.created_at,
            "model": self._context.model,
        }

    # ---------- lifecycle ----------

    def response_created(self) -> SseFormattedEvent:
        if self._created:
            msg = "response.created emitted twice"
            raise ProtocolOrderError(msg)
        event = self._emit({"type": "response.created", "response": self._response_stub()})
        self._created = True
        return event

    def response_in_progress(self) -> SseFormattedEvent:
        if not self._created or self._in_progress:
            msg = "response.in_progress must follow response.created exactly once"
            raise ProtocolOrderError(msg)
        event = self._emit({"type": "response.in_progress", "response": self._response_stub()})
        self._in_progress = True
        return event

    def response_completed(self, request: ResponsesRequest | None = None) -> SseFormattedEvent:
        self._require_in_progress("response.completed")
        if self._open_item is not None:
            msg = "response.completed emitted while a message item is open"
            raise ProtocolOrderError(msg)
        response = create_completed_response(self._context, request, self.output)
        event = self._emit({"type": "response.completed", "response": response})
        self.closed = True
        return event

    def error(self, message: str, code: str = "server_error") -> SseFormattedEvent:
        event = self._emit({"type": "error", "code": code, "message": message, "param": None})
        self.closed = True
        self._open_item = None
        return event

    # ---------- text items ----------

    def open_message_item(self, item_id: str) -> list[SseFormattedEvent]:
        self._require_in_progress("response.output_item.added")
        if self._open_item is not None:
            msg = "a message item is already open"
            raise ProtocolOrderError(msg)

        output_index = self._context.next_output_index()
        content_index = self._context.next_content_index()
        events = [
            self._emit(
                {
                    "type": "response.output_item.added",
                    "item": {
                        "id": item_id,
                        "type": "message",
                        "role": "assistant",
                        "status": "in_progress",
                        "content": [],
                    },
                    "output_index": output_index,
                }
            ),
            self._emit(
                {
                    "type": "response.content_part.added",
                    "item_id": item_id,
                    "output_index": output_index,
                    "content_index": content_index,
                    "part": {"type": "output_text", "text": "", "annotations": []},
                }
            ),
        ]
        self._open_item = (item_id, output_index, content_index)
        self._open_text_parts = []
        return events

    def output_text_delta(self, delta: str) -> list[SseFormattedEvent]:
        if not delta:
            return []
        if self._open_item is None:
            msg = "response.output_text.delta emitted without an open message item"
            raise ProtocolOrderError(msg)
        item_id, output_index, content_index = self._open_item
        event = self._emit(
            {
                "type": "response.output_text.delta",
                "item_id": item_id,
                "output_index": output_index,
                "content_index": content_index,
                "delta": delta,
            }
        )
        self._open_text_parts.append(delta)
        return [event]

    def close_message_item(self) -> list[SseFormattedEvent]:
        if self._open_item is None:
            msg = "no message item is open"
            raise ProtocolOrderError(msg)
        item_id, output_index, content_index = self._open_item
        text = "".join(self._open_text_parts)
        completed_item = build_message_item(item_id, text)

        events = [
            self._emit(
                {
                    "type": "response.output_text.done",
                    "item_id": item_id,
                    "output_index": output_index,
                    "content_index": content_index,
                    "text": text,
                }
            ),
            self._emit(
                {
                    "type": "response.content_part.done",
                    "item_id": item_id,
                    "output_index": output_index,
                    "content_index": content_index,
                    "part": {"type": "output_text", "text": text, "annotations": []},
                }
            ),
            self._emit(
                {
                    "type": "response.output_item.done",
                    "item": completed_item,
                    "output_index": output_index,
                }
            ),
        ]
        self._open_item = None
        self._open_text_parts = []
        self.output.append(completed_item)
        return events

    # ---------- function call items ----------

    def function_call(
        self, item_id: str, call_id: str, name: str, args: dict[str, Any]
    ) -> list[SseFormattedEvent]:
        self._require_in_progress("response.output_item.added")
        if self._open_item is not None:
            msg = "function call item requested while a message item is open"
            raise ProtocolOrderError(msg)

        arguments = json.dumps(args)
        output_index = self._context.next_output_index()
        self._context.next_tool_call_slot()
        events = [
            self._emit(
                {
                    "type": "response.output_item.added",
                    "item": build_function_call_item(item_id, call_id, name, "", "in_progress"),
                    "output_index": output_index,
                }
            ),
            self._emit(
                {
                    "type": "response.function_call_arguments.delta",
                    "item_id": item_id,
                    "output_index": output_index,
                    "delta": arguments,
                }
            ),
            self._emit(
                {
                    "type": "response.function_call_arguments.done",
                    "item_id": item_id,
                    "output_index": output_index,
                    "arguments": arguments,
                }
            ),
        ]
        completed_item = build_function_call_item(item_id, call_id, name, arguments)
        events.append(
            self._emit(
                {
                    "type": "response.output_item.done",
                    "item": completed_item,
                    "output_index": output_index,
                }
            )
        )
        self.output.append(completed_item)
        logger.debug(f"[RESPONSES] function call item: output_index={output_index}, name={name}")
        return events
