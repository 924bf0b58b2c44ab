"""
OpenAI-compatible error bodies.

    {"error": {"message": ..., "type": ..., "param": ..., "code": ...}}

HTTP-level failures (before a stream starts) are returned as JSONResponse;
failures after the stream has started are written as the protocol's own
terminal error event by the stream drivers.
"""

from typing import Any, Literal

from fastapi.responses import JSONResponse


ErrorType = Literal["invalid_request_error", "server_error"]

DEFAULT_SERVER_ERROR_MESSAGE = "The server encountered an error while processing your request."


def error_body(
    message: str,
    error_type: ErrorType,
    param: str | None = None,
    code: str | None = None,
) -> dict[str, Any]:
    return {"error": {"message": message, "type": error_type, "param": param, "code": code}}


def invalid_request(
    message: str,
    param: str | None = None,
    code: str | None = "invalid_request",
) -> JSONResponse:
    """400 with an ``invalid_request_error`` body."""
    return JSONResponse(status_code=400, content=error_body(message, "invalid_request_error", param, code))


def server_error(message: str = DEFAULT_SERVER_ERROR_MESSAGE, code: str | None = None) -> JSONResponse:
    """500 with a ``server_error`` body."""
    return JSONResponse(status_code=500, content=error_body(message, "server_error", None, code))


def upstream_failure(message: str, code: str) -> JSONResponse:
    """502 for a backend failure reported to a non-streaming request."""
    return JSONResponse(status_code=502, content=error_body(message, "server_error", None, code))
