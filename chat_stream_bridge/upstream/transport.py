"""
Upstream Transports

Supply the raw backend stream for one request as an async iterator of
lines. The pipeline only depends on the UpstreamTransport protocol, so the
HTTP backend, a recorded session and the mock scenarios are interchangeable.

- HttpUpstreamTransport: POST turns to the backend with aiohttp and split
  the streamed body into lines
- ReplayUpstreamTransport: replay an upstream-line.jsonl recording
- MockUpstreamTransport: scripted scenarios with artificial delay
"""

import codecs
from collections.abc import AsyncGenerator, AsyncIterable
from pathlib import Path
from typing import Protocol

import aiohttp
from loguru import logger

from ..chunk_player import ChunkPlayer, PlaybackMode
from ..config import BridgeSettings, MockScenario
from ..protocol.messages import Turn
from .mock import mock_upstream_lines


class UpstreamTransportError(RuntimeError):
    """The backend could not be reached or answered with a non-200 status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class UpstreamTransport(Protocol):
    def stream_lines(self, turns: list[Turn]) -> AsyncIterable[str]: ...


async def iter_upstream_lines(chunks: AsyncIterable[bytes]) -> AsyncGenerator[str]:
    """
    Split a byte stream into non-empty text lines.

    Chunk boundaries may fall anywhere, including inside a multi-byte UTF-8
    sequence or between '\\r' and '\\n'.
    """
    decoder = codecs.getincrementaldecoder("utf-8")()
    pending = ""
    async for chunk in chunks:
        pending += decoder.decode(chunk)
        *lines, pending = pending.split("\n")
        for line in lines:
            line = line.rstrip("\r")
            if line:
                yield line

    pending += decoder.decode(b"", final=True)
    pending = pending.rstrip("\r")
    if pending:
        yield pending


class HttpUpstreamTransport:
    """Streams a chat request to the backend over HTTP."""

    def __init__(self, url: str, token: str | None = None, timeout_seconds: float = 300.0):
        self._url = url
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "text/event-stream", "Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def stream_lines(self, turns: list[Turn]) -> AsyncGenerator[str]:
        payload = {"turns": [turn.model_dump() for turn in turns]}
        logger.info(f"[UPSTREAM] POST {self._url} ({len(turns)} turns)")

        async with aiohttp.ClientSession(timeout=self._timeout) as session:
            async with session.post(self._url, json=payload, headers=self._headers()) as response:
                if response.status != 200:  # noqa: PLR2004 - HTTP OK status code
                    body = await response.text()
                    msg = f"Upstream returned status {response.status}: {body[:200]}"
                    logger.error(f"[UPSTREAM] {msg}")
                    raise UpstreamTransportError(msg, status=response.status)

                async for line in iter_upstream_lines(response.content.iter_any()):
                    yield line


class ReplayUpstreamTransport:
    """Replays recorded upstream lines, ignoring the request turns."""

    def __init__(self, fixture_path: str | Path, mode: PlaybackMode = "fast-forward"):
        self._player = ChunkPlayer.from_file(fixture_path)
        self._mode = mode

    async def stream_lines(self, turns: list[Turn]) -> AsyncGenerator[str]:
        logger.info(f"[UPSTREAM] Replaying recording ({self._mode}), {len(turns)} turns ignored")
        async for entry in self._player.play(mode=self._mode):
            if isinstance(entry.chunk, str):
                yield entry.chunk
            else:
                logger.warning(f"[UPSTREAM] Skipping non-text replay entry #{entry.sequence_number}")


class MockUpstreamTransport:
    """Streams a scripted scenario, ignoring the request turns."""

    def __init__(self, scenario: MockScenario = "success", delay_ms: int = 40):
        self._scenario = scenario
        self._delay_ms = delay_ms

    async def stream_lines(self, turns: list[Turn]) -> AsyncGenerator[str]:
        logger.info(f"[UPSTREAM] Mock scenario '{self._scenario}', {len(turns)} turns")
        async for raw in mock_upstream_lines(self._scenario, self._delay_ms):
            for line in raw.split("\n"):
                if line:
                    yield line


def create_transport(settings: BridgeSettings) -> UpstreamTransport:
    """
    Build the transport selected by ``upstream_mode``.

    Raises:
        ValueError: If http/replay mode is missing its URL/fixture
        FileNotFoundError: If the replay fixture does not exist
    """
    match settings.upstream_mode:
        case "http":
            if not settings.upstream_url:
                msg = "BRIDGE_UPSTREAM_URL is required when BRIDGE_UPSTREAM_MODE=http"
                raise ValueError(msg)
            return HttpUpstreamTransport(settings.upstream_url, settings.upstream_token)
        case "replay":
            if not settings.replay_fixture:
                msg = "BRIDGE_REPLAY_FIXTURE is required when BRIDGE_UPSTREAM_MODE=replay"
                raise ValueError(msg)
            return ReplayUpstreamTransport(settings.replay_fixture)
        case "mock":
            return MockUpstreamTransport(settings.mock_scenario, settings.mock_delay_ms)
