"""
Bridge Configuration

Settings are read once from environment variables. The server loads
``.env.local`` with python-dotenv before importing this package so the
values below see it.

Environment Variables:
    BRIDGE_DEFAULT_INSTRUCTIONS: Instructions used when a request has none
    BRIDGE_APPEND_INSTRUCTIONS: Prepend the default to request instructions (default: false)
    BRIDGE_MODEL_NAME: Model name reported when a request names none (default: lumo)
    BRIDGE_TOOL_PREFIX: Prefix stripped from detected tool names (default: "")
    BRIDGE_DETECT_TOOL_CALLS: Look for raw JSON tool calls in prose (default: true)
    BRIDGE_UPSTREAM_MODE: mock | http | replay (default: mock)
    BRIDGE_UPSTREAM_URL: Backend chat endpoint (http mode)
    BRIDGE_UPSTREAM_TOKEN: Bearer token for the backend (http mode)
    BRIDGE_MOCK_SCENARIO: Mock scenario name (default: success)
    BRIDGE_MOCK_DELAY_MS: Artificial delay between mock lines (default: 40)
    BRIDGE_REPLAY_FIXTURE: upstream-line.jsonl recording (replay mode)
"""

import os
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field, field_validator


UpstreamMode = Literal["mock", "http", "replay"]
MockScenario = Literal["success", "error", "timeout", "rejected", "toolCall", "rawToolCall"]

_TRUE_VALUES = {"true", "1", "yes"}


@dataclass(frozen=True)
class InstructionsConfig:
    """Read-only instruction settings consumed by the turn converter."""

    default: str | None = None
    append: bool = False


class BridgeSettings(BaseModel):
    """Process-wide settings. Never mutated per request."""

    model_config = {"frozen": True}

    default_instructions: str | None = None
    append_instructions: bool = False
    model_name: str = "lumo"
    tool_prefix: str = ""
    detect_tool_calls: bool = True
    upstream_mode: UpstreamMode = "mock"
    upstream_url: str | None = None
    upstream_token: str | None = None
    mock_scenario: MockScenario = "success"
    mock_delay_ms: int = Field(default=40, ge=0)
    replay_fixture: str | None = None

    @field_validator("default_instructions", "upstream_url", "upstream_token", "replay_fixture")
    @classmethod
    def empty_as_none(cls, v: str | None) -> str | None:
        """Treat blank environment values as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def instructions(self) -> InstructionsConfig:
        return InstructionsConfig(
            default=self.default_instructions,
            append=self.append_instructions,
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def load_settings() -> BridgeSettings:
    """
    Build BridgeSettings from the environment.

    Raises:
        pydantic.ValidationError: If a value has the wrong type or is not allowed
    """
    return BridgeSettings(
        default_instructions=os.getenv("BRIDGE_DEFAULT_INSTRUCTIONS"),
        append_instructions=_env_bool("BRIDGE_APPEND_INSTRUCTIONS", False),
        model_name=os.getenv("BRIDGE_MODEL_NAME", "lumo"),
        tool_prefix=os.getenv("BRIDGE_TOOL_PREFIX", ""),
        detect_tool_calls=_env_bool("BRIDGE_DETECT_TOOL_CALLS", True),
        upstream_mode=os.getenv("BRIDGE_UPSTREAM_MODE", "mock"),  # type: ignore[arg-type]
        upstream_url=os.getenv("BRIDGE_UPSTREAM_URL"),
        upstream_token=os.getenv("BRIDGE_UPSTREAM_TOKEN"),
        mock_scenario=os.getenv("BRIDGE_MOCK_SCENARIO", "success"),  # type: ignore[arg-type]
        mock_delay_ms=os.getenv("BRIDGE_MOCK_DELAY_MS", "40"),  # type: ignore[arg-type]
        replay_fixture=os.getenv("BRIDGE_REPLAY_FIXTURE"),
    )
