"""Shared test utilities for unit and integration tests."""

from tests.utils.result_assertions import assert_error, assert_ok
from tests.utils.sse import parse_named_sse_event, parse_sse_event, split_sse_stream
from tests.utils.upstream import (
    DONE_LINE,
    INGESTING_LINE,
    lines_from,
    message_token,
    tool_call_token,
    tool_result_token,
    upstream_line,
)


__all__ = [
    "DONE_LINE",
    "INGESTING_LINE",
    "assert_error",
    "assert_ok",
    "lines_from",
    "message_token",
    "parse_named_sse_event",
    "parse_sse_event",
    "split_sse_stream",
    "tool_call_token",
    "tool_result_token",
    "upstream_line",
]
