"""Application-wide async broadcast of monitor state changes."""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import AsyncIterator

from pydantic import BaseModel


class StateFrame(BaseModel):
    """Top-level state frame emitted to UI consumers after every transition."""

    ts: datetime
    status: str
    error: bool
    last_error: str | None = None
    sequence: int
    generated_at: datetime | None = None
    records: int = 0


class _Broadcast:
    """Simple asyncio fan-out broadcast for structured payloads."""

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue[StateFrame]] = set()
        self._last_frame: StateFrame | None = None

    @property
    def last_frame(self) -> StateFrame | None:
        return self._last_frame

    def publish(self, payload: StateFrame) -> None:
        self._last_frame = payload
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(payload)
            except asyncio.QueueFull:
                # Slow consumer; only the freshest frame matters
                _drain_queue(queue)
                queue.put_nowait(payload)

    async def subscribe(self) -> AsyncIterator[StateFrame]:
        queue: asyncio.Queue[StateFrame] = asyncio.Queue(maxsize=2)
        self._subscribers.add(queue)
        try:
            # New clients get current state immediately
            if self._last_frame is not None:
                queue.put_nowait(self._last_frame)
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)


def _drain_queue(queue: asyncio.Queue[StateFrame]) -> None:
    try:
        while True:
            queue.get_nowait()
    except asyncio.QueueEmpty:
        return


_state_broadcast: _Broadcast | None = None


def get_state_broadcast() -> _Broadcast:
    global _state_broadcast
    if _state_broadcast is None:
        _state_broadcast = _Broadcast()
    return _state_broadcast
