"""Backend stream: event decoding and the transports that supply raw lines."""

from .events import (
    Done,
    Ingesting,
    Rejected,
    TokenData,
    TokenTarget,
    UpstreamError,
    UpstreamEvent,
    UpstreamTimeout,
    decode_upstream_line,
    decode_upstream_payload,
)
from .mock import SCENARIOS, format_upstream_line, mock_upstream_lines
from .transport import (
    HttpUpstreamTransport,
    MockUpstreamTransport,
    ReplayUpstreamTransport,
    UpstreamTransport,
    UpstreamTransportError,
    create_transport,
    iter_upstream_lines,
)


__all__ = [
    "SCENARIOS",
    "Done",
    "HttpUpstreamTransport",
    "Ingesting",
    "MockUpstreamTransport",
    "Rejected",
    "ReplayUpstreamTransport",
    "TokenData",
    "TokenTarget",
    "UpstreamError",
    "UpstreamEvent",
    "UpstreamTimeout",
    "UpstreamTransport",
    "UpstreamTransportError",
    "create_transport",
    "decode_upstream_line",
    "decode_upstream_payload",
    "format_upstream_line",
    "iter_upstream_lines",
    "mock_upstream_lines",
]
