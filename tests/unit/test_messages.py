"""
Message/Turn Converter Tests

Instruction resolution, system-message removal, personal-context
injection and the heterogeneous ``input`` entry point.
"""

import json

import pytest

from chat_stream_bridge import InstructionsConfig
from chat_stream_bridge.protocol import (
    ChatCompletionMessage,
    ChatCompletionRequest,
    GenericMessage,
    Turn,
    input_to_turns,
    resolve_instructions,
    to_turns,
)


class TestResolveInstructions:
    @pytest.mark.parametrize(
        ("request_content", "default", "append", "expected"),
        [
            ("Req", "Def", True, "Def\n\nReq"),
            ("Req", "Def", False, "Req"),
            ("Req", None, True, "Req"),
            (None, "Def", True, "Def"),
            (None, None, False, None),
        ],
    )
    def test_rules(self, request_content, default, append, expected) -> None:
        assert resolve_instructions(request_content, default, append) == expected


class TestToTurns:
    def test_system_message_becomes_personal_context(self) -> None:
        # given
        messages = [
            GenericMessage(role="system", content="Be terse"),
            GenericMessage(role="user", content="Hi"),
        ]

        # when
        turns = to_turns(messages)

        # then
        assert turns == [Turn(role="user", content="Hi\n\n[Personal context: Be terse]")]

    def test_reapplying_to_own_output_is_noop(self) -> None:
        # given
        turns = to_turns(
            [
                GenericMessage(role="system", content="Be terse"),
                GenericMessage(role="user", content="Hi"),
                GenericMessage(role="assistant", content="Hello"),
            ]
        )

        # when
        again = to_turns(turns)

        # then
        assert again == turns

    def test_only_first_user_message_gets_suffix(self) -> None:
        # given
        messages = [
            GenericMessage(role="assistant", content="Welcome"),
            GenericMessage(role="user", content="one"),
            GenericMessage(role="user", content="two"),
        ]

        # when
        turns = to_turns(messages, InstructionsConfig(default="Def"))

        # then
        assert turns == [
            Turn(role="assistant", content="Welcome"),
            Turn(role="user", content="one\n\n[Personal context: Def]"),
            Turn(role="user", content="two"),
        ]

    def test_first_system_message_wins_and_all_are_dropped(self) -> None:
        # given
        messages = [
            GenericMessage(role="system", content="First"),
            GenericMessage(role="user", content="one"),
            GenericMessage(role="developer", content="Second"),
            GenericMessage(role="assistant", content="ok"),
        ]

        # when
        turns = to_turns(messages, InstructionsConfig(default="Def"))

        # then
        assert turns == [
            Turn(role="user", content="one\n\n[Personal context: First]"),
            Turn(role="assistant", content="ok"),
        ]

    def test_developer_message_counts_as_system(self) -> None:
        # given
        messages = [
            GenericMessage(role="developer", content="Dev rules"),
            GenericMessage(role="user", content="Hi"),
        ]

        # when
        turns = to_turns(messages, InstructionsConfig(default="Def", append=True))

        # then
        assert turns == [Turn(role="user", content="Hi\n\n[Personal context: Def\n\nDev rules]")]

    def test_no_instructions_means_no_suffix(self) -> None:
        assert to_turns([GenericMessage(role="user", content="Hi")]) == [Turn(role="user", content="Hi")]

    def test_empty_instructions_mean_no_suffix(self) -> None:
        # given
        messages = [GenericMessage(role="system", content=""), GenericMessage(role="user", content="Hi")]

        # when / then
        assert to_turns(messages) == [Turn(role="user", content="Hi")]


class TestInputToTurns:
    def test_bare_string_uses_override(self) -> None:
        # given / when
        turns = input_to_turns("Hello", instructions_override="Be brief")

        # then
        assert turns == [Turn(role="user", content="Hello\n\n[Personal context: Be brief]")]

    def test_bare_string_falls_back_to_default(self) -> None:
        # given / when
        turns = input_to_turns("Hello", config=InstructionsConfig(default="Def"))

        # then
        assert turns == [Turn(role="user", content="Hello\n\n[Personal context: Def]")]

    def test_list_drops_items_without_role_or_content(self) -> None:
        # given
        items = [
            {"role": "user", "content": "What is the weather?"},
            {"type": "function_call_output", "call_id": "c1", "output": "sunny"},
            {"type": "reasoning", "summary": []},
            {"role": "assistant", "content": [{"type": "output_text", "text": "It is sunny."}]},
        ]

        # when
        turns = input_to_turns(items)

        # then
        assert turns == [
            Turn(role="user", content="What is the weather?"),
            Turn(role="assistant", content="It is sunny."),
        ]

    def test_function_call_item_becomes_assistant_turn(self) -> None:
        # given
        items = [
            {"role": "user", "content": "weather?"},
            {
                "type": "function_call",
                "call_id": "get_weather__abc",
                "name": "get_weather",
                "arguments": '{"city": "Paris"}',
            },
            {"type": "function_call_output", "call_id": "get_weather__abc", "output": "sunny"},
        ]

        # when
        turns = input_to_turns(items)

        # then
        assert turns[0] == Turn(role="user", content="weather?")
        assert turns[1].role == "assistant"
        assert json.loads(turns[1].content) == {"name": "get_weather", "arguments": {"city": "Paris"}}
        assert len(turns) == 2

    def test_function_call_without_arguments(self) -> None:
        # given / when
        turns = input_to_turns([{"type": "function_call", "name": "ping", "arguments": ""}])

        # then
        assert json.loads(turns[0].content) == {"name": "ping", "arguments": {}}

    def test_override_is_prepended_when_list_has_no_system_item(self) -> None:
        # given
        items = [{"role": "user", "content": [{"type": "input_text", "text": "Hi"}]}]

        # when
        turns = input_to_turns(items, instructions_override="Override")

        # then
        assert turns == [Turn(role="user", content="Hi\n\n[Personal context: Override]")]

    def test_existing_system_item_wins_over_override(self) -> None:
        # given
        items = [
            {"role": "system", "content": "From list"},
            {"role": "user", "content": "Hi"},
        ]

        # when
        turns = input_to_turns(items, instructions_override="Override")

        # then
        assert turns == [Turn(role="user", content="Hi\n\n[Personal context: From list]")]

    def test_empty_input_gives_no_turns(self) -> None:
        assert input_to_turns(None) == []
        assert input_to_turns([]) == []


class TestChatMessageNormalization:
    def test_tool_messages_become_json_text(self) -> None:
        # given
        request = ChatCompletionRequest.model_validate(
            {
                "messages": [
                    {"role": "user", "content": "Weather in Paris?"},
                    {
                        "role": "assistant",
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "get_weather__abc",
                                "type": "function",
                                "function": {"name": "get_weather", "arguments": '{"city": "Paris"}'},
                            }
                        ],
                    },
                    {"role": "tool", "tool_call_id": "get_weather__abc", "content": "sunny"},
                ]
            }
        )

        # when
        messages = request.generic_messages()

        # then
        assert [m.role for m in messages] == ["user", "assistant", "user"]
        assert json.loads(messages[1].content) == {
            "type": "function_call",
            "call_id": "get_weather__abc",
            "name": "get_weather",
            "arguments": '{"city": "Paris"}',
        }
        assert json.loads(messages[2].content) == {
            "type": "function_call_output",
            "call_id": "get_weather__abc",
            "output": "sunny",
            "tool_name": "get_weather",
        }

    def test_list_content_is_flattened(self) -> None:
        # given
        request = ChatCompletionRequest.model_validate(
            {"messages": [{"role": "user", "content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]}]}
        )

        # when / then
        assert request.generic_messages() == [GenericMessage(role="user", content="ab")]

    def test_tool_output_restores_tool_prefix(self) -> None:
        # given
        message = ChatCompletionMessage(role="tool", tool_call_id="lookup__0123456789abcdef01234567", content="ok")

        # when
        (generic,) = message.to_generic(tool_prefix="ext_")

        # then
        assert json.loads(generic.content)["tool_name"] == "ext_lookup"

    def test_foreign_call_id_has_no_tool_name(self) -> None:
        # given
        message = ChatCompletionMessage(role="tool", tool_call_id="call_xyz", content="ok")

        # when
        (generic,) = message.to_generic()

        # then
        assert "tool_name" not in json.loads(generic.content)
