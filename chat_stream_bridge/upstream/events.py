"""
Upstream Event Decoder

Parses raw backend stream lines into a closed set of typed events.

Wire format (one event per line, SSE style):
    data: {"type":"ingesting","target":"message"}
    data: {"type":"token_data","target":"message","count":3,"content":"Hel"}
    data: {"type":"done"}
    data: {"type":"error","message":"..."}
    data: {"type":"timeout","message":"..."}
    data: {"type":"rejected"}

Every consumer dispatches with an exhaustive ``match`` over UpstreamEvent;
adding a new kind means adding a dataclass here and a case at each match.
"""

import enum
from dataclasses import dataclass
from typing import Any, TypeAlias

from ..result import Error, Ok, Result
from ..utils import _parse_json_safely, _parse_sse_data_line


class TokenTarget(str, enum.Enum):
    """Channels a token_data event can be addressed to."""

    MESSAGE = "message"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


@dataclass(frozen=True)
class Ingesting:
    target: str | None = None


@dataclass(frozen=True)
class TokenData:
    target: TokenTarget
    count: int
    content: str


@dataclass(frozen=True)
class Done:
    pass


@dataclass(frozen=True)
class UpstreamError:
    message: str


@dataclass(frozen=True)
class UpstreamTimeout:
    message: str


@dataclass(frozen=True)
class Rejected:
    pass


UpstreamEvent: TypeAlias = Ingesting | TokenData | Done | UpstreamError | UpstreamTimeout | Rejected


def _decode_token_data(payload: dict[str, Any]) -> Result[UpstreamEvent, str]:
    target_raw = payload.get("target")
    try:  # nosemgrep: forbid-try-except
        target = TokenTarget(target_raw)
    except ValueError:
        return Error(f"Unknown token_data target: {target_raw!r}")

    content = payload.get("content", "")
    if not isinstance(content, str):
        return Error(f"token_data content is not a string: {type(content).__name__}")

    count = payload.get("count", 0)
    if isinstance(count, bool) or not isinstance(count, int):
        return Error(f"token_data count is not an integer: {count!r}")

    return Ok(TokenData(target=target, count=count, content=content))


def decode_upstream_payload(payload: Any) -> Result[UpstreamEvent, str]:
    """
    Decode an already-parsed JSON payload into an UpstreamEvent.

    Args:
        payload: Parsed JSON value from one stream line

    Returns:
        Ok(event) for a recognised event, Error(reason) otherwise
    """
    if not isinstance(payload, dict):
        return Error(f"Upstream payload is not an object: {type(payload).__name__}")

    match payload.get("type"):
        case "ingesting":
            target = payload.get("target")
            return Ok(Ingesting(target=target if isinstance(target, str) else None))
        case "token_data":
            return _decode_token_data(payload)
        case "done":
            return Ok(Done())
        case "error":
            return Ok(UpstreamError(message=str(payload.get("message") or "Unknown upstream error")))
        case "timeout":
            return Ok(UpstreamTimeout(message=str(payload.get("message") or "Upstream timed out")))
        case "rejected":
            return Ok(Rejected())
        case other:
            return Error(f"Unknown upstream event type: {other!r}")


def decode_upstream_line(line: str) -> Result[UpstreamEvent, str]:
    """
    Decode one raw upstream line ('data: <json>').

    Malformed lines yield Error so the caller can drop them and continue.
    """
    match _parse_sse_data_line(line):
        case Error(reason):
            return Error(reason)
        case Ok(data):
            pass

    match _parse_json_safely(data):
        case Error(reason):
            return Error(reason)
        case Ok(payload):
            return decode_upstream_payload(payload)
