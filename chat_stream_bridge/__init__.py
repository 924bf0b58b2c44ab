"""
Chat Stream Bridge

Translates a backend chat service's proprietary token stream into the two
OpenAI streaming protocols (chat completions and responses), detecting tool
calls on the backend's native tool channel and in raw JSON inside prose.

Components:
    - upstream: event decoding and transports (HTTP, replay, mock)
    - tools: JSON boundary tracking, tool-call detection, native tool channel
    - protocol: request models, turn conversion, outward event emitters
    - pipeline: per-request stream drivers and non-streaming collectors
"""

from .chunk_logger import ChunkLogger, chunk_logger
from .chunk_player import ChunkPlayer
from .config import BridgeSettings, InstructionsConfig, load_settings
from .pipeline import (
    Finished,
    PipelineOutput,
    TextDelta,
    ToolCallOutput,
    UpstreamFailure,
    collect_chat_completion,
    collect_response,
    stream_chat_completions,
    stream_responses,
    stream_upstream_outputs,
)
from .protocol import (
    ChatCompletionEventEmitter,
    ChatCompletionRequest,
    ConversionContext,
    GenericMessage,
    ResponseEventEmitter,
    ResponsesRequest,
    Turn,
    input_to_turns,
    resolve_instructions,
    to_turns,
)
from .result import Error, Ok, Result
from .tools import (
    JsonBoundaryTracker,
    NativeToolChannel,
    StreamingToolCallDetector,
    ToolCall,
    is_error_result,
    parse_tool_call,
)
from .upstream import UpstreamTransport, create_transport, decode_upstream_line


__all__ = [
    "BridgeSettings",
    "ChatCompletionEventEmitter",
    "ChatCompletionRequest",
    "ChunkLogger",
    "ChunkPlayer",
    "ConversionContext",
    "Error",
    "Finished",
    "GenericMessage",
    "InstructionsConfig",
    "JsonBoundaryTracker",
    "NativeToolChannel",
    "Ok",
    "PipelineOutput",
    "ResponseEventEmitter",
    "ResponsesRequest",
    "Result",
    "StreamingToolCallDetector",
    "TextDelta",
    "ToolCall",
    "ToolCallOutput",
    "Turn",
    "UpstreamFailure",
    "UpstreamTransport",
    "chunk_logger",
    "collect_chat_completion",
    "collect_response",
    "create_transport",
    "decode_upstream_line",
    "input_to_turns",
    "is_error_result",
    "load_settings",
    "parse_tool_call",
    "resolve_instructions",
    "stream_chat_completions",
    "stream_responses",
    "stream_upstream_outputs",
    "to_turns",
]
