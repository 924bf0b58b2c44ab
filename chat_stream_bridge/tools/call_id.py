"""
Tool call identifiers and tool-name prefixes.

call_id format: ``<tool_name>__<24 hex chars>`` so the tool name can be
recovered from a call id the client echoes back.
"""

import re
import uuid


_CALL_ID_PATTERN = re.compile(r"^(.+)__[a-f0-9]+$")


def generate_call_id(tool_name: str) -> str:
    """Generate a call_id embedding the tool name."""
    return f"{tool_name}__{uuid.uuid4().hex[:24]}"


def extract_tool_name_from_call_id(call_id: str) -> str | None:
    """Recover the tool name from a generated call_id, or None if it has another format."""
    match = _CALL_ID_PATTERN.match(call_id)
    return match.group(1) if match else None


def strip_tool_prefix(name: str, prefix: str) -> str:
    """Strip a configured prefix from a tool name; unprefixed names are returned unchanged."""
    if not prefix:
        return name
    return name.removeprefix(prefix)


def generate_response_id() -> str:
    return f"resp-{uuid.uuid4()}"


def generate_item_id() -> str:
    return f"item-{uuid.uuid4()}"


def generate_function_call_item_id() -> str:
    return f"fc-{uuid.uuid4()}"


def generate_chat_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4()}"
