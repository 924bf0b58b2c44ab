"""
Chat Stream Bridge Server with FastAPI

Exposes the backend chat service through two OpenAI-compatible endpoints:

- POST /v1/chat/completions  (chat completions; SSE delta chunks when stream=true)
- POST /v1/responses         (responses; typed SSE events when stream=true)

plus GET /, /health and /v1/models.
"""

from datetime import datetime, timezone

from dotenv import load_dotenv


# Load environment variables from .env.local BEFORE any local imports
# so BridgeSettings and ChunkLogger see them
load_dotenv(".env.local")

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse, StreamingResponse  # noqa: E402
from loguru import logger  # noqa: E402

from chat_stream_bridge import (  # noqa: E402
    ChatCompletionRequest,
    Error,
    Ok,
    ResponsesRequest,
    UpstreamTransport,
    chunk_logger,
    collect_chat_completion,
    collect_response,
    create_transport,
    input_to_turns,
    load_settings,
    stream_chat_completions,
    stream_responses,
    to_turns,
)
from chat_stream_bridge.errors import invalid_request, server_error, upstream_failure  # noqa: E402
from chat_stream_bridge.logging_config import configure_file_logging, configure_logging  # noqa: E402


configure_logging()
log_file = configure_file_logging("logs")

logger.info("Chat Stream Bridge Server starting up...")
logger.info(f"Logging to: {log_file}")

chunk_info = chunk_logger.get_info()
logger.info(f"Chunk Logger: enabled={chunk_info['enabled']}")
if chunk_info["enabled"]:
    logger.info(f"Chunk Logger: session_id={chunk_info['session_id']}")
    logger.info(f"Chunk Logger: output_path={chunk_info['output_path']}")

settings = load_settings()
logger.info(
    f"Upstream: mode={settings.upstream_mode}, model={settings.model_name}, "
    f"detect_tool_calls={settings.detect_tool_calls}"
)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


app = FastAPI(
    title="Chat Stream Bridge",
    description="OpenAI-compatible streaming bridge for a backend chat service",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures with an OpenAI error body."""
    first = exc.errors()[0] if exc.errors() else {}
    if first.get("type") == "json_invalid":
        logger.warning(f"[{request.url.path}] Malformed JSON request body")
        return invalid_request("Malformed JSON in request body.", code="invalid_json")

    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    param = ".".join(loc) or None
    message = first.get("msg", "Invalid request")
    logger.warning(f"[{request.url.path}] Invalid request: {param}: {message}")
    return invalid_request(f"{param}: {message}" if param else message, param=param)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"[{request.url.path}] Unhandled exception: {exc!s}")
    return server_error()


def _get_transport() -> UpstreamTransport:
    return create_transport(settings)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Chat Stream Bridge",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok", "upstream_mode": settings.upstream_mode}


@app.get("/v1/models")
async def list_models():
    return {
        "object": "list",
        "data": [
            {
                "id": settings.model_name,
                "object": "model",
                "created": int(datetime.now(timezone.utc).timestamp()),
                "owned_by": "chat-stream-bridge",
            }
        ],
    }


@app.post("/v1/chat/completions")
async def chat_completions(request: ChatCompletionRequest):
    """
    Chat completions endpoint

    1. Normalize tool traffic in the message history to plain messages
    2. Convert messages to backend turns (instructions injected)
    3. Stream the backend response as delta chunks, or collect it
    """
    logger.info(
        f"[/v1/chat/completions] messages={len(request.messages)}, stream={request.stream}, "
        f"tools={len(request.tools or [])}"
    )

    if not request.messages:
        return invalid_request("messages must be a non-empty array", param="messages")

    turns = to_turns(request.generic_messages(settings.tool_prefix), settings.instructions)
    if not turns:
        return invalid_request("messages must contain a user or assistant message", param="messages")

    model = request.model or settings.model_name
    lines = _get_transport().stream_lines(turns)

    if request.stream:
        return StreamingResponse(
            stream_chat_completions(lines, settings, model),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    match await collect_chat_completion(lines, settings, model):
        case Ok(completion):
            return completion
        case Error(failure):
            logger.warning(f"[/v1/chat/completions] Upstream failure ({failure.code}): {failure.message}")
            return upstream_failure(failure.message, failure.code)


@app.post("/v1/responses")
async def responses(request: ResponsesRequest):
    """
    Responses endpoint

    ``input`` may be a bare string or a list of items; ``instructions``
    overrides the configured default for this request.
    """
    logger.info(f"[/v1/responses] stream={request.stream}, tools={len(request.tools or [])}")

    turns = input_to_turns(request.input, request.instructions, settings.instructions)
    if not turns:
        return invalid_request("input must contain a user or assistant message", param="input")

    model = request.model or settings.model_name
    lines = _get_transport().stream_lines(turns)

    if request.stream:
        return StreamingResponse(
            stream_responses(lines, settings, request, model),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    match await collect_response(lines, settings, request, model):
        case Ok(response):
            return response
        case Error(failure):
            logger.warning(f"[/v1/responses] Upstream failure ({failure.code}): {failure.message}")
            return upstream_failure(failure.message, failure.code)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")  # noqa: S104
