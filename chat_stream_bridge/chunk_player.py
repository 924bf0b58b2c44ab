"""
Chunk Player for the chat stream bridge

Reads a chunk logger recording back. Replaying ``upstream-line.jsonl``
through ReplayUpstreamTransport runs the whole translation pipeline
against a captured backend session.

Usage:
    player = ChunkPlayer.from_file("./chunk_logs/session-.../upstream-line.jsonl")
    async for entry in player.play(mode="fast-forward"):
        print(entry.chunk)

Playback Modes:
    real-time: keep the recorded spacing between chunks
    fast-forward: no delays
"""

import asyncio
import json
import time
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any, Literal

from .chunk_logger import ChunkLogEntry, LogLocation


PlaybackMode = Literal["real-time", "fast-forward"]

_REQUIRED_FIELDS = ("timestamp", "session_id", "mode", "location", "direction", "sequence_number", "chunk")


def _entry_from_json(line: str, line_no: int) -> ChunkLogEntry:
    # Reason: JSONL parsing, JSON and key errors become ValueError with the line number
    try:  # nosemgrep: forbid-try-except
        data = json.loads(line)
        fields = {name: data[name] for name in _REQUIRED_FIELDS}
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        msg = f"Invalid JSONL at line {line_no}: {e}"
        raise ValueError(msg) from e
    return ChunkLogEntry(**fields, request_id=data.get("request_id"), metadata=data.get("metadata"))


class ChunkPlayer:
    """Replays one location of a recorded session, in sequence_number order."""

    def __init__(
        self,
        session_dir: str | Path,
        location: LogLocation,
        request_id: str | None = None,
    ):
        """
        Args:
            session_dir: Directory holding the session's JSONL files
            location: Recording point to replay
            request_id: Only replay the chunks of this request

        Raises:
            FileNotFoundError: If the location has no JSONL file
        """
        self._session_dir = Path(session_dir)
        self._location = location
        self._request_id = request_id
        self._jsonl_file = self._session_dir / f"{location}.jsonl"

        if not self._jsonl_file.exists():
            msg = f"JSONL file not found: {self._jsonl_file}"
            raise FileNotFoundError(msg)

    @classmethod
    def from_file(cls, file_path: str | Path, request_id: str | None = None) -> "ChunkPlayer":
        """Player for a single JSONL file; its stem names the location."""
        path = Path(file_path)
        if not path.exists():
            msg = f"Fixture file not found: {file_path}"
            raise FileNotFoundError(msg)
        return cls(session_dir=path.parent, location=path.stem, request_id=request_id)  # type: ignore[arg-type]

    def load_entries(self) -> list[ChunkLogEntry]:
        """
        Raises:
            ValueError: On a malformed JSONL line
        """
        with self._jsonl_file.open(encoding="utf-8") as f:
            entries = [
                _entry_from_json(line, line_no)
                for line_no, line in enumerate(f, start=1)
                if line.strip()
            ]
        if self._request_id is not None:
            entries = [e for e in entries if e.request_id == self._request_id]
        return sorted(entries, key=lambda e: e.sequence_number)

    async def play(self, mode: PlaybackMode = "fast-forward") -> AsyncGenerator[ChunkLogEntry]:
        """
        Raises:
            ValueError: On an unknown mode or a malformed JSONL line
        """
        if mode not in ("real-time", "fast-forward"):
            msg = f"Invalid playback mode: {mode}"
            raise ValueError(msg)

        entries = self.load_entries()
        if not entries:
            return

        started = time.monotonic()
        first_timestamp = entries[0].timestamp
        for entry in entries:
            if mode == "real-time":
                due = (entry.timestamp - first_timestamp) / 1000
                delay = due - (time.monotonic() - started)
                if delay > 0:
                    await asyncio.sleep(delay)
            yield entry

    def get_stats(self) -> dict[str, Any]:
        entries = self.load_entries()
        return {
            "count": len(entries),
            "duration_ms": entries[-1].timestamp - entries[0].timestamp if entries else 0,
            "first_timestamp": entries[0].timestamp if entries else None,
            "last_timestamp": entries[-1].timestamp if entries else None,
            "location": self._location,
            "session_dir": str(self._session_dir),
        }
