"""
Chunk Logger for the chat stream bridge

Records every backend line a request consumes and every SSE event it
produces, one JSONL file per recording point. Recordings are used to debug
protocol issues and, for ``upstream-line``, as replay fixtures
(BRIDGE_UPSTREAM_MODE=replay).

Usage:
    from chat_stream_bridge.chunk_logger import chunk_logger

    chunk_logger.log_chunk("upstream-line", line, mode="responses", request_id=response_id)

Environment Variables:
    CHUNK_LOGGER_ENABLED: Enable/disable recording (default: false)
    CHUNK_LOGGER_OUTPUT_DIR: Output directory (default: ./chunk_logs)
    CHUNK_LOGGER_SESSION_ID: Session identifier (default: auto-generated)

Output Structure:
    chunk_logs/
      └─ {session_id}/
          ├─ upstream-line.jsonl
          ├─ chat-completions-event.jsonl
          └─ responses-event.jsonl
"""

import json
import os
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import IO, Any, Literal

from loguru import logger


LogLocation = Literal["upstream-line", "chat-completions-event", "responses-event"]

Direction = Literal["in", "out"]

Mode = Literal["chat-completions", "responses"]

# Backend lines flow into the bridge; SSE events flow out to the client
LOCATION_DIRECTIONS: dict[LogLocation, Direction] = {
    "upstream-line": "in",
    "chat-completions-event": "out",
    "responses-event": "out",
}

_TRUE_VALUES = {"true", "1", "yes"}


@dataclass
class ChunkLogEntry:
    timestamp: int  # Unix ms
    session_id: str
    mode: Mode
    location: LogLocation
    direction: Direction
    sequence_number: int  # 1-based, per location
    chunk: Any
    request_id: str | None = None
    metadata: dict[str, Any] | None = None


def _default_session_id() -> str:
    return f"session-{datetime.now(UTC).strftime('%Y-%m-%d-%H%M%S')}"


class ChunkLogger:
    """
    Writes chunks to ``<output_dir>/<session_id>/<location>.jsonl``.

    Files are opened lazily and line-buffered, so a recording is readable
    while the server is still running.
    """

    def __init__(
        self,
        enabled: bool | None = None,
        output_dir: str | None = None,
        session_id: str | None = None,
    ):
        """
        Args:
            enabled: Default from CHUNK_LOGGER_ENABLED
            output_dir: Default from CHUNK_LOGGER_OUTPUT_DIR, else ./chunk_logs
            session_id: Default from CHUNK_LOGGER_SESSION_ID, else timestamped
        """
        if enabled is None:
            enabled = os.getenv("CHUNK_LOGGER_ENABLED", "false").strip().lower() in _TRUE_VALUES
        self._enabled = enabled
        self._output_dir = Path(output_dir or os.getenv("CHUNK_LOGGER_OUTPUT_DIR", "./chunk_logs"))
        self._session_id = session_id or os.getenv("CHUNK_LOGGER_SESSION_ID") or _default_session_id()

        self._counters: dict[LogLocation, int] = dict.fromkeys(LOCATION_DIRECTIONS, 0)
        self._files: dict[LogLocation, IO[str]] = {}

        if self._enabled:
            self.get_output_path().mkdir(parents=True, exist_ok=True)

    def is_enabled(self) -> bool:
        return self._enabled

    def _file_for(self, location: LogLocation) -> IO[str]:
        if location not in self._files:
            path = self.get_output_path() / f"{location}.jsonl"
            logger.debug(f"[CHUNK_LOGGER] Recording {location} to {path}")
            self._files[location] = path.open("a", encoding="utf-8", buffering=1)
        return self._files[location]

    def log_chunk(
        self,
        location: LogLocation,
        chunk: Any,
        mode: Mode = "chat-completions",
        request_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Append one chunk; a no-op while recording is disabled."""
        if not self._enabled:
            return

        self._counters[location] += 1
        entry = ChunkLogEntry(
            timestamp=int(time.time() * 1000),
            session_id=self._session_id,
            mode=mode,
            location=location,
            direction=LOCATION_DIRECTIONS[location],
            sequence_number=self._counters[location],
            chunk=chunk,
            request_id=request_id,
            metadata=metadata,
        )
        self._file_for(location).write(json.dumps(asdict(entry), ensure_ascii=False) + "\n")

    def get_output_path(self) -> Path:
        return self._output_dir / self._session_id

    def get_info(self) -> dict[str, Any]:
        return {
            "enabled": self._enabled,
            "output_dir": str(self._output_dir),
            "session_id": self._session_id,
            "output_path": str(self.get_output_path()),
        }

    def close(self) -> None:
        for handle in self._files.values():
            handle.close()
        self._files.clear()

    def __enter__(self) -> "ChunkLogger":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


chunk_logger = ChunkLogger()
