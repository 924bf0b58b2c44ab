"""
Message/Turn Converter and request models.

Maps the generic multi-role message list of the outward protocols onto the
backend's own turn list. The backend has no system role: instructions
travel as a suffix on the first user turn,

    "<user text>\n\n[Personal context: <instructions>]"

Instruction resolution:
    - request instructions + append flag + configured default
        -> "<default>\n\n<request>"
    - request instructions otherwise -> request instructions
    - no request instructions -> configured default (may be None)

Request models:
    - ChatCompletionRequest / ChatCompletionMessage (protocol A)
    - ResponsesRequest (protocol B; ``input`` is a bare string or a list of items)
"""

import json
from collections.abc import Sequence
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, Field

from ..config import InstructionsConfig
from ..result import Error, Ok
from ..tools.call_id import extract_tool_name_from_call_id
from ..utils import _parse_json_safely


SYSTEM_ROLES = frozenset({"system", "developer"})

# Text-bearing part types in list-form content
_TEXT_PART_TYPES = frozenset({"text", "input_text", "output_text"})


# ============================================================
# Core types
# ============================================================


class GenericMessage(BaseModel):
    """One message of the outward protocols, reduced to role and text."""

    role: Literal["user", "assistant", "system", "developer"]
    content: str


class Turn(BaseModel):
    """One unit of the backend's conversation format. Never system/developer."""

    role: Literal["user", "assistant"]
    content: str


# ============================================================
# Instructions
# ============================================================


def resolve_instructions(
    request_content: str | None,
    configured_default: str | None,
    append: bool,
) -> str | None:
    """Resolve the instructions for one request."""
    if request_content is not None:
        if append and configured_default:
            return f"{configured_default}\n\n{request_content}"
        return request_content
    return configured_default


def _with_personal_context(content: str, instructions: str) -> str:
    return f"{content}\n\n[Personal context: {instructions}]"


# ============================================================
# Conversion
# ============================================================


def to_turns(
    messages: Sequence[GenericMessage | Turn],
    config: InstructionsConfig | None = None,
) -> list[Turn]:
    """
    Convert generic messages to backend turns.

    1. The first system/developer message supplies the request instructions.
    2. Instructions are resolved against the configured default.
    3. System/developer messages are dropped.
    4. The first user message gets the personal-context suffix when the
       instructions are non-empty.
    5. Relative order is preserved.
    """
    config = config or InstructionsConfig()

    system_content = next((m.content for m in messages if m.role in SYSTEM_ROLES), None)
    instructions = resolve_instructions(system_content, config.default, config.append)

    turns: list[Turn] = []
    injected = False
    for message in messages:
        if message.role in SYSTEM_ROLES:
            continue
        content = message.content
        if message.role == "user" and not injected:
            injected = True
            if instructions:
                content = _with_personal_context(content, instructions)
        turns.append(Turn(role=message.role, content=content))  # type: ignore[arg-type]

    return turns


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _flatten_content(content: Any) -> str | None:
    """Reduce string or list-of-parts content to text; None if it has no usable form."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for part in content:
            if isinstance(part, str):
                texts.append(part)
            elif _field(part, "type") in _TEXT_PART_TYPES and isinstance(_field(part, "text"), str):
                texts.append(_field(part, "text"))
        return "".join(texts)
    return None


def _prior_tool_call(item: Any) -> GenericMessage:
    """An earlier function_call item, replayed as the assistant's own tool-call JSON."""
    arguments = _field(item, "arguments")
    if isinstance(arguments, str):
        match _parse_json_safely(arguments or "{}"):
            case Ok(value):
                arguments = value
            case Error(reason):
                logger.debug(f"[CONVERTER] Keeping unparsable function_call arguments as text: {reason}")
    elif arguments is None:
        arguments = {}
    return GenericMessage(
        role="assistant",
        content=json.dumps({"name": _field(item, "name"), "arguments": arguments}),
    )


def input_to_turns(
    input_value: str | Sequence[Any] | None,
    instructions_override: str | None = None,
    config: InstructionsConfig | None = None,
) -> list[Turn]:
    """
    Convert heterogeneous request input to backend turns.

    - A bare string becomes one user turn; instructions come from the
      request override only (plus the configured default).
    - A list is filtered to items exposing both ``role`` and ``content``
      (function_call_output records and the like are dropped). A
      function_call item becomes an assistant turn carrying the call as
      ``{"name", "arguments"}`` JSON. A supplied override is prepended as a
      system message when the list has none, then the list goes through
      to_turns().
    """
    config = config or InstructionsConfig()

    if not input_value:
        return []

    if isinstance(input_value, str):
        instructions = resolve_instructions(instructions_override, config.default, config.append)
        content = _with_personal_context(input_value, instructions) if instructions else input_value
        return [Turn(role="user", content=content)]

    messages: list[GenericMessage] = []
    for item in input_value:
        if _field(item, "type") == "function_call":
            messages.append(_prior_tool_call(item))
            continue
        role = _field(item, "role")
        content = _flatten_content(_field(item, "content"))
        if role is None or content is None:
            logger.debug(f"[CONVERTER] Dropping input item without role/content: type={_field(item, 'type')}")
            continue
        if role not in {"user", "assistant", "system", "developer"}:
            logger.debug(f"[CONVERTER] Dropping input item with unsupported role: {role}")
            continue
        messages.append(GenericMessage(role=role, content=content))

    if instructions_override is not None and not any(m.role in SYSTEM_ROLES for m in messages):
        messages.insert(0, GenericMessage(role="system", content=instructions_override))

    return to_turns(messages, config)


# ============================================================
# Protocol A request (chat completions)
# ============================================================


class FunctionCallSpec(BaseModel):
    name: str
    arguments: str | dict[str, Any] = "{}"


class ChatToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCallSpec


class ChatCompletionMessage(BaseModel):
    """
    Chat message as sent by clients.

    Supports role "tool" (tool outputs) and assistant ``tool_calls`` in
    addition to the generic roles.
    """

    model_config = {"extra": "allow"}

    role: Literal["user", "assistant", "system", "developer", "tool"]
    content: str | list[Any] | None = None
    tool_calls: list[ChatToolCall] | None = None
    tool_call_id: str | None = None

    def text(self) -> str:
        return _flatten_content(self.content) or ""

    def to_generic(self, tool_prefix: str = "") -> list[GenericMessage]:
        """
        Normalize to generic messages.

        Tool traffic is carried as JSON text, since the backend's own
        tool roles are reserved for its native tools. A tool output whose
        call id was generated by this bridge also names its tool, with the
        configured prefix restored.
        """
        if self.role == "tool":
            output: dict[str, Any] = {
                "type": "function_call_output",
                "call_id": self.tool_call_id,
                "output": self.text(),
            }
            tool_name = extract_tool_name_from_call_id(self.tool_call_id or "")
            if tool_name:
                logger.info(f"[CONVERTER] Tool output for {tool_name} (call_id={self.tool_call_id})")
                output["tool_name"] = f"{tool_prefix}{tool_name}"
            return [GenericMessage(role="user", content=json.dumps(output))]

        if self.role == "assistant" and self.tool_calls:
            return [
                GenericMessage(
                    role="assistant",
                    content=json.dumps(
                        {
                            "type": "function_call",
                            "call_id": call.id,
                            "name": call.function.name,
                            "arguments": _normalize_arguments(call.function.arguments),
                        }
                    ),
                )
                for call in self.tool_calls
            ]

        return [GenericMessage(role=self.role, content=self.text())]


def _normalize_arguments(arguments: str | dict[str, Any]) -> str:
    """Re-serialize arguments so equivalent JSON renders identically."""
    if isinstance(arguments, str):
        try:  # nosemgrep: forbid-try-except
            return json.dumps(json.loads(arguments))
        except json.JSONDecodeError:
            return arguments
    return json.dumps(arguments)


class ChatCompletionRequest(BaseModel):
    model_config = {"extra": "allow"}

    model: str | None = None
    messages: list[ChatCompletionMessage]
    stream: bool = False
    tools: list[dict[str, Any]] | None = None
    temperature: float | None = None
    user: str | None = None

    def generic_messages(self, tool_prefix: str = "") -> list[GenericMessage]:
        return [generic for message in self.messages for generic in message.to_generic(tool_prefix)]


# ============================================================
# Protocol B request (responses)
# ============================================================


class ResponsesRequest(BaseModel):
    model_config = {"extra": "allow"}

    model: str | None = None
    input: str | list[dict[str, Any]] | None = None
    instructions: str | None = None
    stream: bool = False
    tools: list[dict[str, Any]] | None = None
    tool_choice: str | dict[str, Any] | None = None
    temperature: float | None = None
    max_output_tokens: int | None = None
    store: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
