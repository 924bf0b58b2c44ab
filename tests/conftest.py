"""Pytest configuration and shared fixtures for tests.

This module provides common pytest fixtures that are shared across
unit and integration tests.
"""

import pytest

from chat_stream_bridge import BridgeSettings
from tests.utils.upstream import (
    DONE_LINE,
    INGESTING_LINE,
    message_token,
    tool_call_token,
    tool_result_token,
)


TOOL_CALL_SCENARIO_TOKENS = [
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


@pytest.fixture
def settings() -> BridgeSettings:
    """Settings with tool detection on, no instructions, no mock delay."""
    return BridgeSettings(mock_delay_ms=0)


@pytest.fixture
def tool_call_scenario_lines() -> list[str]:
    """ingesting, native tool_call, tool_result, 12 message tokens, done."""
    return [
        INGESTING_LINE,
        tool_call_token('{"name": "web_search", "parameters": {"search_term": "test search"}}'),
        tool_result_token("Mock search result data"),
        *[message_token(token, i) for i, token in enumerate(TOOL_CALL_SCENARIO_TOKENS)],
        DONE_LINE,
    ]
