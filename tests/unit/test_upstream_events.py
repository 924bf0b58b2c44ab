"""
Upstream Event Decoder Tests

Backend stream lines decode to a closed set of events; malformed lines
come back as Error so the pipeline can drop them.
"""

import pytest

from chat_stream_bridge.upstream import (
    Done,
    Ingesting,
    Rejected,
    TokenData,
    TokenTarget,
    UpstreamError,
    UpstreamTimeout,
    decode_upstream_line,
    decode_upstream_payload,
)
from tests.utils import assert_error, assert_ok


class TestDecodeUpstreamLine:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ('data: {"type":"ingesting","target":"message"}', Ingesting(target="message")),
            (
                'data: {"type":"token_data","target":"message","count":3,"content":"Hel"}',
                TokenData(target=TokenTarget.MESSAGE, count=3, content="Hel"),
            ),
            (
                'data: {"type":"token_data","target":"tool_call","content":"{}"}',
                TokenData(target=TokenTarget.TOOL_CALL, count=0, content="{}"),
            ),
            (
                'data: {"type":"token_data","target":"tool_result","count":1}',
                TokenData(target=TokenTarget.TOOL_RESULT, count=1, content=""),
            ),
            ('data: {"type":"done"}', Done()),
            ('data: {"type":"error","message":"boom"}', UpstreamError(message="boom")),
            ('data: {"type":"timeout","message":"slow"}', UpstreamTimeout(message="slow")),
            ('data: {"type":"rejected"}', Rejected()),
        ],
    )
    def test_known_events(self, line: str, expected: object) -> None:
        assert assert_ok(decode_upstream_line(line)) == expected

    def test_trailing_blank_lines_are_tolerated(self) -> None:
        assert assert_ok(decode_upstream_line('data: {"type":"done"}\n\n')) == Done()

    def test_error_without_message_gets_default(self) -> None:
        # given / when
        event = assert_ok(decode_upstream_line('data: {"type":"error"}'))

        # then
        assert isinstance(event, UpstreamError)
        assert event.message

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "event: ping",
            "data: not json",
            "data: [1, 2]",
            'data: {"type":"unknown"}',
            'data: {"type":"token_data","target":"title","content":"x"}',
            'data: {"type":"token_data","target":"message","content":5}',
            'data: {"type":"token_data","target":"message","count":true,"content":"x"}',
        ],
    )
    def test_malformed_lines_are_errors(self, line: str) -> None:
        assert isinstance(assert_error(decode_upstream_line(line)), str)


class TestDecodeUpstreamPayload:
    def test_non_string_ingesting_target_is_none(self) -> None:
        assert assert_ok(decode_upstream_payload({"type": "ingesting", "target": 1})) == Ingesting()
