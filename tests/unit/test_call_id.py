"""Tool call id and prefix helper tests."""

import re

from chat_stream_bridge.tools import extract_tool_name_from_call_id, generate_call_id, strip_tool_prefix
from chat_stream_bridge.tools.call_id import (
    generate_chat_completion_id,
    generate_function_call_item_id,
    generate_item_id,
    generate_response_id,
)


class TestCallId:
    def test_format_embeds_tool_name(self) -> None:
        # given / when
        call_id = generate_call_id("get_weather")

        # then
        assert re.fullmatch(r"get_weather__[a-f0-9]{24}", call_id)

    def test_round_trip_for_names_with_underscores(self) -> None:
        assert extract_tool_name_from_call_id(generate_call_id("web__search")) == "web__search"

    def test_foreign_call_id_has_no_tool_name(self) -> None:
        assert extract_tool_name_from_call_id("call_abc123") is None

    def test_ids_are_unique(self) -> None:
        assert generate_call_id("a") != generate_call_id("a")


class TestToolPrefix:
    def test_prefix_is_stripped(self) -> None:
        assert strip_tool_prefix("ext_lookup", "ext_") == "lookup"

    def test_unprefixed_name_is_unchanged(self) -> None:
        assert strip_tool_prefix("lookup", "ext_") == "lookup"

    def test_empty_prefix_is_noop(self) -> None:
        assert strip_tool_prefix("ext_lookup", "") == "ext_lookup"


class TestResponseIds:
    def test_prefixes(self) -> None:
        assert generate_response_id().startswith("resp-")
        assert generate_item_id().startswith("item-")
        assert generate_function_call_item_id().startswith("fc-")
        assert generate_chat_completion_id().startswith("chatcmpl-")
