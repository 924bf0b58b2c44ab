"""
Translation Pipeline

One pipeline per request, single pass, strictly ordered:

    upstream lines
        -> decode_upstream_line          (malformed lines dropped)
        -> message tokens  -> StreamingToolCallDetector
           tool_call       -> NativeToolChannel
           tool_result     -> NativeToolChannel (error results logged)
        -> PipelineOutput  (TextDelta | ToolCallOutput | UpstreamFailure | Finished)
        -> protocol A / protocol B emitter
        -> SSE strings

The stream drivers own the request's ConversionContext and emitter; nothing
else touches them. The only suspension point is waiting for the next
upstream line.
"""

import asyncio
import json
from collections.abc import AsyncGenerator, AsyncIterable
from contextlib import aclosing, nullcontext
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from loguru import logger

from .chunk_logger import Mode, chunk_logger
from .config import BridgeSettings
from .protocol.chat_completions import ChatCompletionEventEmitter
from .protocol.context import ConversionContext
from .protocol.messages import ResponsesRequest
from .protocol.responses import (
    ResponseEventEmitter,
    build_function_call_item,
    build_message_item,
    create_completed_response,
)
from .protocol.sse import SseFormattedEvent
from .result import Error, Ok, Result
from .tools.call_id import (
    generate_call_id,
    generate_chat_completion_id,
    generate_function_call_item_id,
    generate_item_id,
    generate_response_id,
)
from .tools.detector import ContentDelta, StreamingToolCallDetector, ToolCallDetected
from .tools.native import NativeToolChannel
from .tools.types import ToolCall
from .upstream.events import (
    Done,
    Ingesting,
    Rejected,
    TokenData,
    TokenTarget,
    UpstreamError,
    UpstreamTimeout,
    decode_upstream_line,
)


FailureCode = Literal[
    "upstream_error",
    "upstream_timeout",
    "upstream_rejected",
    "server_error",
    "serialization_error",
]

REJECTED_MESSAGE = "The request was rejected by the upstream service"


# ============================================================
# Pipeline outputs
# ============================================================


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ToolCallOutput:
    call_id: str
    tool_call: ToolCall
    source: Literal["native", "prose"]


@dataclass(frozen=True)
class UpstreamFailure:
    code: FailureCode
    message: str


@dataclass(frozen=True)
class Finished:
    pass


PipelineOutput: TypeAlias = TextDelta | ToolCallOutput | UpstreamFailure | Finished


def _from_detector(outputs: list[Any]) -> list[PipelineOutput]:
    converted: list[PipelineOutput] = []
    for output in outputs:
        match output:
            case ContentDelta(text) if text:
                converted.append(TextDelta(text))
            case ToolCallDetected(tool_call=tool_call):
                converted.append(
                    ToolCallOutput(generate_call_id(tool_call.name), tool_call, "prose")
                )
    return converted


async def stream_upstream_outputs(  # noqa: C901, PLR0912
    lines: AsyncIterable[str],
    settings: BridgeSettings,
    mode: Mode = "chat-completions",
    request_id: str | None = None,
) -> AsyncGenerator[PipelineOutput]:
    """
    Decode upstream lines and separate prose from tool calls.

    Always ends with exactly one Finished or UpstreamFailure, unless the
    line source raises or the consumer cancels. On cancellation the
    detector's open capture is discarded and nothing more is yielded.
    """
    detector = StreamingToolCallDetector(settings.tool_prefix) if settings.detect_tool_calls else None
    native = NativeToolChannel(settings.tool_prefix)

    def finalize() -> list[PipelineOutput]:
        return _from_detector(detector.finalize()) if detector else []

    # The line source is closed on every exit path
    source = aclosing(lines) if hasattr(lines, "aclose") else nullcontext(lines)
    try:
        async with source as upstream_lines:
            async for line in upstream_lines:
                chunk_logger.log_chunk("upstream-line", line, mode=mode, request_id=request_id)

                match decode_upstream_line(line):
                    case Error(reason):
                        logger.warning(f"[DECODER] Dropping malformed upstream line: {reason} ({line[:100]!r})")
                        continue
                    case Ok(event):
                        pass

                match event:
                    case Ingesting(target):
                        logger.debug(f"[PIPELINE] Upstream ingesting (target={target})")
                    case TokenData(target=TokenTarget.MESSAGE, content=content):
                        if detector is None:
                            if content:
                                yield TextDelta(content)
                            continue
                        for output in _from_detector(detector.process(content)):
                            yield output
                    case TokenData(target=TokenTarget.TOOL_CALL, content=content):
                        for parsed in native.feed_tool_call(content):
                            call_id = generate_call_id(parsed.tool_call.name)
                            yield ToolCallOutput(call_id, parsed.tool_call, "native")
                    case TokenData(target=TokenTarget.TOOL_RESULT, content=content):
                        native.feed_tool_result(content)
                    case Done():
                        for output in finalize():
                            yield output
                        yield Finished()
                        return
                    case UpstreamError(message):
                        for output in finalize():
                            yield output
                        yield UpstreamFailure("upstream_error", message)
                        return
                    case UpstreamTimeout(message):
                        for output in finalize():
                            yield output
                        yield UpstreamFailure("upstream_timeout", message)
                        return
                    case Rejected():
                        for output in finalize():
                            yield output
                        yield UpstreamFailure("upstream_rejected", REJECTED_MESSAGE)
                        return

            logger.warning("[PIPELINE] Upstream stream ended without 'done', treating it as done")
            for output in finalize():
                yield output
            yield Finished()

    except (asyncio.CancelledError, GeneratorExit):
        if detector is not None:
            detector.cancel()
        logger.debug("[PIPELINE] Upstream processing stopped, open capture discarded")
        raise


# ============================================================
# Protocol A driver
# ============================================================


def _chat_events(
    emitter: ChatCompletionEventEmitter,
    output: PipelineOutput,
    tool_calls_present: bool,
) -> list[SseFormattedEvent]:
    match output:
        case TextDelta(text):
            return emitter.emit_content_delta(text)
        case ToolCallOutput(call_id, tool_call, _):
            return emitter.emit_tool_call_delta(call_id, tool_call.name, tool_call.arguments)
        case UpstreamFailure(code, message):
            logger.warning(f"[PIPELINE] Upstream failure ({code}): {message}")
            return emitter.emit_error(message, code)
        case Finished():
            return emitter.emit_done(tool_calls_present)


async def stream_chat_completions(
    lines: AsyncIterable[str],
    settings: BridgeSettings,
    model: str,
) -> AsyncGenerator[SseFormattedEvent]:
    """
    Translate one upstream stream to protocol A SSE lines.

    Transport and serialization failures become the protocol's error
    payload; they never escape to the caller.
    """
    context = ConversionContext.start(generate_chat_completion_id(), model)
    emitter = ChatCompletionEventEmitter(context)
    tool_calls_present = False
    logger.info(f"[PIPELINE] chat completion stream {context.response_id} started")

    def log_out(event: SseFormattedEvent) -> None:
        chunk_logger.log_chunk(
            "chat-completions-event", event, mode="chat-completions", request_id=context.response_id
        )

    upstream = stream_upstream_outputs(lines, settings, "chat-completions", context.response_id)
    try:
        async with aclosing(upstream) as outputs:
            async for output in outputs:
                if isinstance(output, ToolCallOutput):
                    tool_calls_present = True
                try:  # nosemgrep: forbid-try-except
                    events = _chat_events(emitter, output, tool_calls_present)
                except (TypeError, ValueError) as e:
                    logger.error(f"[PIPELINE] Failed to serialize chat completion event: {e!s}")
                    events = emitter.emit_error(f"Failed to serialize event: {e!s}", "serialization_error")

                for event in events:
                    log_out(event)
                    yield event
                if emitter.closed:
                    break
    except asyncio.CancelledError:
        logger.info(f"[PIPELINE] chat completion stream {context.response_id} cancelled")
        raise
    except Exception as e:
        logger.error(f"[PIPELINE] Upstream transport failed: {e!s}")
        if not emitter.closed:
            for event in emitter.emit_error(f"Upstream transport failed: {e!s}", "server_error"):
                log_out(event)
                yield event
    finally:
        logger.info(
            f"[PIPELINE] chat completion stream {context.response_id} finished "
            f"({context.sequence_number} events)"
        )


# ============================================================
# Protocol B driver
# ============================================================


def _response_events(
    emitter: ResponseEventEmitter,
    output: PipelineOutput,
    request: ResponsesRequest,
    events: list[SseFormattedEvent],
) -> None:
    """Append the events for one output. Events numbered before a failure stay in ``events``."""
    match output:
        case TextDelta(text):
            if not emitter.has_open_message_item:
                events.extend(emitter.open_message_item(generate_item_id()))
            events.extend(emitter.output_text_delta(text))
        case ToolCallOutput(call_id, tool_call, _):
            if emitter.has_open_message_item:
                events.extend(emitter.close_message_item())
            events.extend(
                emitter.function_call(
                    generate_function_call_item_id(), call_id, tool_call.name, tool_call.arguments
                )
            )
        case UpstreamFailure(code, message):
            logger.warning(f"[PIPELINE] Upstream failure ({code}): {message}")
            events.append(emitter.error(message, code))
        case Finished():
            if emitter.has_open_message_item:
                events.extend(emitter.close_message_item())
            if not emitter.output:
                # Every completed response carries at least one item
                events.extend(emitter.open_message_item(generate_item_id()))
                events.extend(emitter.close_message_item())
            events.append(emitter.response_completed(request))


async def stream_responses(
    lines: AsyncIterable[str],
    settings: BridgeSettings,
    request: ResponsesRequest,
    model: str,
) -> AsyncGenerator[SseFormattedEvent]:
    """
    Translate one upstream stream to protocol B SSE events.

    Transport and serialization failures become a terminal ``error`` event;
    they never escape to the caller.
    """
    context = ConversionContext.start(generate_response_id(), model)
    emitter = ResponseEventEmitter(context)
    logger.info(f"[PIPELINE] response stream {context.response_id} started")

    def log_out(event: SseFormattedEvent) -> None:
        chunk_logger.log_chunk("responses-event", event, mode="responses", request_id=context.response_id)

    upstream = stream_upstream_outputs(lines, settings, "responses", context.response_id)
    try:
        for event in (emitter.response_created(), emitter.response_in_progress()):
            log_out(event)
            yield event

        async with aclosing(upstream) as outputs:
            async for output in outputs:
                events: list[SseFormattedEvent] = []
                try:  # nosemgrep: forbid-try-except
                    _response_events(emitter, output, request, events)
                except (TypeError, ValueError) as e:
                    logger.error(f"[PIPELINE] Failed to serialize response event: {e!s}")
                    events.append(emitter.error(f"Failed to serialize event: {e!s}", "serialization_error"))

                for event in events:
                    log_out(event)
                    yield event
                if emitter.closed:
                    break
    except asyncio.CancelledError:
        logger.info(f"[PIPELINE] response stream {context.response_id} cancelled")
        raise
    except Exception as e:
        logger.error(f"[PIPELINE] Upstream transport failed: {e!s}")
        if not emitter.closed:
            event = emitter.error(f"Upstream transport failed: {e!s}", "server_error")
            log_out(event)
            yield event
    finally:
        logger.info(
            f"[PIPELINE] response stream {context.response_id} finished "
            f"({context.sequence_number} events)"
        )


# ============================================================
# Non-streaming collectors
# ============================================================


@dataclass
class _Collected:
    text: str
    tool_calls: list[ToolCallOutput]


async def _collect(
    lines: AsyncIterable[str], settings: BridgeSettings, mode: Mode, request_id: str
) -> Result[_Collected, UpstreamFailure]:
    parts: list[str] = []
    tool_calls: list[ToolCallOutput] = []
    async with aclosing(stream_upstream_outputs(lines, settings, mode, request_id)) as outputs:
        async for output in outputs:
            match output:
                case TextDelta(text):
                    parts.append(text)
                case ToolCallOutput():
                    tool_calls.append(output)
                case UpstreamFailure():
                    return Error(output)
                case Finished():
                    break
    return Ok(_Collected(text="".join(parts), tool_calls=tool_calls))


async def collect_chat_completion(
    lines: AsyncIterable[str],
    settings: BridgeSettings,
    model: str,
) -> Result[dict[str, Any], UpstreamFailure]:
    """
    Consume one upstream stream into a complete ``chat.completion`` object.

    Tool calls found in prose are not part of the message content.

    Raises:
        Exception: Whatever the line source raises (transport failures)
    """
    context = ConversionContext.start(generate_chat_completion_id(), model)
    match await _collect(lines, settings, "chat-completions", context.response_id):
        case Error(failure):
            return Error(failure)
        case Ok(collected):
            pass

    message: dict[str, Any] = {"role": "assistant", "content": collected.text}
    if collected.tool_calls:
        message["tool_calls"] = [
            {
                "id": call.call_id,
                "type": "function",
                "function": {"name": call.tool_call.name, "arguments": json.dumps(call.tool_call.arguments)},
            }
            for call in collected.tool_calls
        ]

    return Ok(
        {
            "id": context.response_id,
            "object": "chat.completion",
            "created": context.created_at,
            "model": context.model,
            "choices": [
                {
                    "index": 0,
                    "message": message,
                    "finish_reason": "tool_calls" if collected.tool_calls else "stop",
                }
            ],
        }
    )


async def collect_response(
    lines: AsyncIterable[str],
    settings: BridgeSettings,
    request: ResponsesRequest,
    model: str,
) -> Result[dict[str, Any], UpstreamFailure]:
    """
    Consume one upstream stream into a complete ``response`` object.

    Output layout: one message item, then one function_call item per tool call.

    Raises:
        Exception: Whatever the line source raises (transport failures)
    """
    context = ConversionContext.start(generate_response_id(), model)
    match await _collect(lines, settings, "responses", context.response_id):
        case Error(failure):
            return Error(failure)
        case Ok(collected):
            pass

    output = [build_message_item(generate_item_id(), collected.text)]
    output.extend(
        build_function_call_item(
            generate_function_call_item_id(),
            call.call_id,
            call.tool_call.name,
            json.dumps(call.tool_call.arguments),
        )
        for call in collected.tool_calls
    )
    return Ok(create_completed_response(context, request, output))