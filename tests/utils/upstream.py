"""Builders for backend stream lines used as pipeline input in tests."""

import json
from collections.abc import AsyncGenerator, Iterable
from typing import Any


def upstream_line(data: dict[str, Any]) -> str:
    """One backend stream line as the transports deliver it."""
    return f"data: {json.dumps(data)}"


def message_token(content: str, count: int = 0) -> str:
    return upstream_line({"type": "token_data", "target": "message", "count": count, "content": content})


def tool_call_token(content: str) -> str:
    return upstream_line({"type": "token_data", "target": "tool_call", "count": 0, "content": content})


def tool_result_token(content: str) -> str:
    return upstream_line({"type": "token_data", "target": "tool_result", "count": 0, "content": content})


DONE_LINE = upstream_line({"type": "done"})
INGESTING_LINE = upstream_line({"type": "ingesting", "target": "message"})


async def lines_from(lines: Iterable[str]) -> AsyncGenerator[str]:
    """Async line source over a fixed list."""
    for line in lines:
        yield line
