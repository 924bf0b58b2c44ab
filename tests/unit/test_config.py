"""
Bridge Configuration Tests

BridgeSettings is read once from BRIDGE_* environment variables.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from chat_stream_bridge.config import BridgeSettings, InstructionsConfig, load_settings


def _clean_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if not k.startswith("BRIDGE_")}


class TestLoadSettings:
    def test_defaults(self) -> None:
        # given / when
        with patch.dict(os.environ, _clean_env(), clear=True):
            settings = load_settings()

        # then
        assert settings.model_name == "lumo"
        assert settings.upstream_mode == "mock"
        assert settings.mock_scenario == "success"
        assert settings.mock_delay_ms == 40
        assert settings.detect_tool_calls is True
        assert settings.instructions == InstructionsConfig(default=None, append=False)

    def test_values_from_environment(self) -> None:
        # given
        env = _clean_env() | {
            "BRIDGE_DEFAULT_INSTRUCTIONS": "Be kind",
            "BRIDGE_APPEND_INSTRUCTIONS": "YES",
            "BRIDGE_TOOL_PREFIX": "ext_",
            "BRIDGE_DETECT_TOOL_CALLS": "0",
            "BRIDGE_UPSTREAM_MODE": "http",
            "BRIDGE_UPSTREAM_URL": "http://backend/chat",
            "BRIDGE_MOCK_SCENARIO": "toolCall",
            "BRIDGE_MOCK_DELAY_MS": "5",
        }

        # when
        with patch.dict(os.environ, env, clear=True):
            settings = load_settings()

        # then
        assert settings.instructions == InstructionsConfig(default="Be kind", append=True)
        assert settings.tool_prefix == "ext_"
        assert settings.detect_tool_calls is False
        assert settings.upstream_mode == "http"
        assert settings.upstream_url == "http://backend/chat"
        assert settings.mock_scenario == "toolCall"
        assert settings.mock_delay_ms == 5

    def test_blank_values_are_unset(self) -> None:
        # given / when
        with patch.dict(os.environ, _clean_env() | {"BRIDGE_DEFAULT_INSTRUCTIONS": "  "}, clear=True):
            settings = load_settings()

        # then
        assert settings.default_instructions is None

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("BRIDGE_UPSTREAM_MODE", "carrier-pigeon"),
            ("BRIDGE_MOCK_SCENARIO", "nope"),
            ("BRIDGE_MOCK_DELAY_MS", "soon"),
            ("BRIDGE_MOCK_DELAY_MS", "-1"),
        ],
    )
    def test_invalid_values_raise(self, name: str, value: str) -> None:
        with patch.dict(os.environ, _clean_env() | {name: value}, clear=True), pytest.raises(ValidationError):
            load_settings()

    def test_settings_are_frozen(self) -> None:
        # given
        settings = BridgeSettings()

        # when / then
        with pytest.raises(ValidationError):
            settings.model_name = "other"  # type: ignore[misc]
