"""Per-request conversion context shared by the outward emitters."""

import time
from dataclasses import dataclass


@dataclass
class ConversionContext:
    """
    Counters for one response.

    Created at request start and owned by that request's emitter; only the
    emitters read or advance it, which keeps sequence numbers gap-free.
    """

    response_id: str
    created_at: int
    model: str
    sequence_number: int = 0
    output_index: int = 0
    content_index: int = 0
    tool_call_slot_index: int = 0

    @classmethod
    def start(cls, response_id: str, model: str, created_at: int | None = None) -> "ConversionContext":
        return cls(
            response_id=response_id,
            created_at=created_at if created_at is not None else int(time.time()),
            model=model,
        )

    def advance_sequence_number(self) -> None:
        """Commit the current sequence number once its event has been serialized."""
        self.sequence_number += 1

    def next_output_index(self) -> int:
        index = self.output_index
        self.output_index += 1
        # Content parts are numbered per output item
        self.content_index = 0
        return index

    def next_content_index(self) -> int:
        index = self.content_index
        self.content_index += 1
        return index

    def next_tool_call_slot(self) -> int:
        slot = self.tool_call_slot_index
        self.tool_call_slot_index += 1
        return slot
