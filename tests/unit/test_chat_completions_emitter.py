"""
Chat Completions Emitter Tests

Delta-chunk protocol: content / tool_calls deltas, a terminal chunk with
finish_reason, the [DONE] sentinel, and the single-payload error path.
"""

import json

import pytest

from chat_stream_bridge.protocol import (
    DONE_MARKER,
    ChatCompletionEventEmitter,
    ConversionContext,
    StreamClosedError,
)
from tests.utils import parse_sse_event


@pytest.fixture
def context() -> ConversionContext:
    return ConversionContext.start("chatcmpl-test", "lumo", created_at=1700000000)


@pytest.fixture
def emitter(context: ConversionContext) -> ChatCompletionEventEmitter:
    return ChatCompletionEventEmitter(context)


class TestContentDelta:
    def test_content_chunk_shape(self, emitter: ChatCompletionEventEmitter) -> None:
        # given / when
        events = emitter.emit_content_delta("Hello")

        # then
        assert len(events) == 1
        assert parse_sse_event(events[0]) == {
            "id": "chatcmpl-test",
            "object": "chat.completion.chunk",
            "created": 1700000000,
            "model": "lumo",
            "choices": [{"index": 0, "delta": {"content": "Hello"}, "finish_reason": None}],
        }

    def test_empty_text_is_noop(
        self, emitter: ChatCompletionEventEmitter, context: ConversionContext
    ) -> None:
        # given / when
        events = emitter.emit_content_delta("")

        # then
        assert events == []
        assert context.sequence_number == 0


class TestToolCallDelta:
    def test_slots_increase_and_arguments_are_serialized_once(
        self, emitter: ChatCompletionEventEmitter
    ) -> None:
        # given / when
        first = parse_sse_event(emitter.emit_tool_call_delta("a__1", "a", {"x": 1})[0])
        second = parse_sse_event(emitter.emit_tool_call_delta("b__2", "b", {})[0])

        # then
        first_call = first["choices"][0]["delta"]["tool_calls"][0]
        assert first_call == {
            "index": 0,
            "id": "a__1",
            "type": "function",
            "function": {"name": "a", "arguments": '{"x": 1}'},
        }
        assert json.loads(first_call["function"]["arguments"]) == {"x": 1}
        assert second["choices"][0]["delta"]["tool_calls"][0]["index"] == 1

    def test_unserializable_arguments_raise_without_consuming_sequence(
        self, emitter: ChatCompletionEventEmitter, context: ConversionContext
    ) -> None:
        # given
        emitter.emit_content_delta("a")

        # when / then
        with pytest.raises(TypeError):
            emitter.emit_tool_call_delta("c__1", "c", {"bad": object()})
        assert context.sequence_number == 1


class TestTermination:
    @pytest.mark.parametrize(("tool_calls_present", "reason"), [(False, "stop"), (True, "tool_calls")])
    def test_done_chunk_then_sentinel(
        self, emitter: ChatCompletionEventEmitter, tool_calls_present: bool, reason: str
    ) -> None:
        # given / when
        events = emitter.emit_done(tool_calls_present)

        # then
        assert len(events) == 2
        final = parse_sse_event(events[0])
        assert final["choices"][0] == {"index": 0, "delta": {}, "finish_reason": reason}
        assert events[1] == DONE_MARKER
        assert emitter.closed

    def test_error_payload_closes_stream(self, emitter: ChatCompletionEventEmitter) -> None:
        # given / when
        events = emitter.emit_error("High demand error", "upstream_timeout")

        # then
        assert [parse_sse_event(e) for e in events] == [
            {"error": {"message": "High demand error", "type": "server_error", "code": "upstream_timeout"}}
        ]
        with pytest.raises(StreamClosedError):
            emitter.emit_content_delta("late")

    def test_every_chunk_consumes_one_sequence_number(
        self, emitter: ChatCompletionEventEmitter, context: ConversionContext
    ) -> None:
        # given / when
        emitter.emit_content_delta("a")
        emitter.emit_tool_call_delta("x__1", "x", {})
        emitter.emit_content_delta("b")
        emitter.emit_done(True)

        # then
        assert context.sequence_number == 4
