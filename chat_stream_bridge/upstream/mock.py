"""
Mock Upstream Scenarios

Scripted backend streams for development and tests. Each scenario is an
async generator of raw stream lines in the backend's wire format, with an
artificial delay between lines.

Scenarios:
    success      ingesting, 5 empty tokens, a short joke, done
    error        a single error event
    timeout      a single timeout event
    rejected     a single rejected event
    toolCall     native tool_call + tool_result, 12 message tokens, done
    rawToolCall  prose with a tool call written as raw JSON across tokens, done
"""

import asyncio
import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

from loguru import logger

from ..config import MockScenario


SUCCESS_TOKENS = [
    "(Mocked) ",
    "Why ",
    "don't ",
    "prog",
    "rammers ",
    "like ",
    "nat",
    "ure",
    "? ",
    "They ",
    "have ",
    "too ",
    "many ",
    "bu",
    "gs!",
]

TOOL_CALL_TOKENS = [
    "Based ",
    "on ",
    "the ",
    "search ",
    "results",
    ", ",
    "here ",
    "is ",
    "what ",
    "I ",
    "found",
    ".",
]

RAW_TOOL_CALL_TOKENS = [
    "Let me check ",
    "the weather. ",
    '{"name": "get_',
    'weather", "arguments": {"city": "Pa',
    'ris"}}',
    " One moment.",
]


def format_upstream_line(data: dict[str, Any]) -> str:
    return f"data: {json.dumps(data)}\n\n"


def _token(target: str, count: int, content: str) -> str:
    return format_upstream_line(
        {"type": "token_data", "target": target, "count": count, "content": content}
    )


async def _success(delay: float) -> AsyncGenerator[str]:
    yield format_upstream_line({"type": "ingesting", "target": "message"})
    await asyncio.sleep(delay)

    for i in range(5):
        yield _token("message", i, "")
        await asyncio.sleep(delay)

    for i, content in enumerate(SUCCESS_TOKENS):
        yield _token("message", i + 5, content)
        await asyncio.sleep(delay)

    yield format_upstream_line({"type": "done"})


async def _error(delay: float) -> AsyncGenerator[str]:
    await asyncio.sleep(delay)
    yield format_upstream_line({"type": "error", "message": "Test error message"})


async def _timeout(delay: float) -> AsyncGenerator[str]:
    await asyncio.sleep(delay)
    yield format_upstream_line({"type": "timeout", "message": "High demand error"})


async def _rejected(delay: float) -> AsyncGenerator[str]:
    await asyncio.sleep(delay)
    yield format_upstream_line({"type": "rejected"})


async def _tool_call(delay: float) -> AsyncGenerator[str]:
    yield format_upstream_line({"type": "ingesting", "target": "message"})
    await asyncio.sleep(delay)

    yield _token(
        "tool_call",
        0,
        json.dumps({"name": "web_search", "parameters": {"search_term": "test search"}}),
    )
    await asyncio.sleep(delay)

    yield _token("tool_result", 0, "Mock search result data")
    await asyncio.sleep(delay)

    for i, content in enumerate(TOOL_CALL_TOKENS):
        yield _token("message", i, content)
        await asyncio.sleep(delay)

    yield format_upstream_line({"type": "done"})


async def _raw_tool_call(delay: float) -> AsyncGenerator[str]:
    yield format_upstream_line({"type": "ingesting", "target": "message"})
    await asyncio.sleep(delay)

    for i, content in enumerate(RAW_TOOL_CALL_TOKENS):
        yield _token("message", i, content)
        await asyncio.sleep(delay)

    yield format_upstream_line({"type": "done"})


SCENARIOS: dict[str, Callable[[float], AsyncGenerator[str]]] = {
    "success": _success,
    "error": _error,
    "timeout": _timeout,
    "rejected": _rejected,
    "toolCall": _tool_call,
    "rawToolCall": _raw_tool_call,
}


def mock_upstream_lines(scenario: MockScenario, delay_ms: int = 40) -> AsyncGenerator[str]:
    """
    Stream the lines of a mock scenario.

    Raises:
        ValueError: If the scenario is unknown
    """
    if scenario not in SCENARIOS:
        msg = f"Unknown mock scenario: {scenario}"
        raise ValueError(msg)
    logger.debug(f"[MOCK] Streaming scenario '{scenario}' (delay={delay_ms}ms)")
    return SCENARIOS[scenario](delay_ms / 1000)
