from __future__ import annotations

import asyncio
from typing import AsyncIterator

from qmaster.queue.service import QueueService

from .schemas import DisplayBoardResponse


class DisplayStreamer:
    """Polls the queue service and yields SSE payloads whenever the board changes."""

    def __init__(self, service: QueueService, *, interval: float = 1.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be greater than zero")

        self.service = service
        self.interval = interval

    def render(self) -> str:
        board = DisplayBoardResponse.model_validate(self.service.display_board())
        return f"event: board\ndata: {board.model_dump_json()}\n\n"

    async def iter_sse(self, *, limit: int | None = None) -> AsyncIterator[str]:
        """Yield the current board, then one event per state change.

        ``limit`` caps the number of events, mostly useful for tests and
        one-shot clients.
        """

        sent = 0
        last_version: int | None = None
        while limit is None or sent < limit:
            version = self.service.version
            if version != last_version:
                last_version = version
                sent += 1
                yield self.render()
                if limit is not None and sent >= limit:
                    break
            await asyncio.sleep(self.interval)
