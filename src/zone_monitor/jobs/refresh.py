"""Periodic fetch-and-replace loop that owns the monitor's only mutable state."""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ..adapters.monitor_client import MonitorClient, MonitorFetchError
from ..config import get_settings
from ..core.aggregator import sort_records
from ..engine.streaming import StateFrame, get_state_broadcast
from ..models import Snapshot
from ..observability import record_discarded, record_refresh, record_refresh_failure

LOGGER = logging.getLogger(__name__)


class RefreshStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class MonitorState:
    """Point-in-time copy of the controller state handed to consumers."""

    snapshot: Snapshot | None = None
    loading: bool = True
    error: bool = False
    last_error: str | None = None
    last_success: datetime | None = None
    last_failure: datetime | None = None
    applied_sequence: int = 0

    @property
    def status(self) -> RefreshStatus:
        if self.error:
            return RefreshStatus.ERROR
        if self.snapshot is None:
            return RefreshStatus.LOADING
        return RefreshStatus.READY


class RefreshController:
    """Single owner of the current snapshot, refreshed on a fixed interval.

    Every fetch is tagged with a sequence number when it is issued. Results
    older than the last applied sequence are dropped, so a slow response can
    never overwrite fresher state. After :meth:`stop` no result is applied.
    """

    def __init__(
        self,
        client: MonitorClient | None = None,
        interval_sec: float | None = None,
        shutdown_grace_sec: float = 5.0,
    ) -> None:
        settings = get_settings()
        self.interval_sec = interval_sec if interval_sec is not None else settings.refresh_interval_sec
        self.shutdown_grace_sec = shutdown_grace_sec
        self._client = client
        self._owns_client = client is None
        self._state = MonitorState()
        self._sequence = 0
        self._timer: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[MonitorState]] = set()
        self._force = asyncio.Event()
        self._closer: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._stopped

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _get_client(self) -> MonitorClient:
        if self._client is None:
            self._client = MonitorClient()
        return self._client

    def next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def _is_stale(self, sequence: int) -> bool:
        if sequence <= self._state.applied_sequence:
            LOGGER.debug(
                "Dropping refresh #%d; #%d already applied", sequence, self._state.applied_sequence
            )
            record_discarded()
            return True
        return False

    def apply_snapshot(self, snapshot: Snapshot) -> bool:
        if self._stopped or self._is_stale(snapshot.sequence):
            return False
        self._state = replace(
            self._state,
            snapshot=snapshot,
            loading=False,
            error=False,
            last_error=None,
            last_success=snapshot.received_at,
            applied_sequence=snapshot.sequence,
        )
        self._publish()
        return True

    def apply_error(self, sequence: int, exc: BaseException) -> bool:
        if self._stopped or self._is_stale(sequence):
            return False
        LOGGER.warning("Refresh #%d failed: %s", sequence, exc)
        self._state = replace(
            self._state,
            loading=False,
            error=True,
            last_error=str(exc),
            last_failure=datetime.now(timezone.utc),
            applied_sequence=sequence,
        )
        self._publish()
        return True

    def _publish(self) -> None:
        state = self._state
        snapshot = state.snapshot
        get_state_broadcast().publish(
            StateFrame(
                ts=datetime.now(timezone.utc),
                status=state.status.value,
                error=state.error,
                last_error=state.last_error,
                sequence=state.applied_sequence,
                generated_at=snapshot.generated_at if snapshot else None,
                records=len(snapshot.records) if snapshot else 0,
            )
        )

    async def refresh_once(self) -> MonitorState:
        """Fetch, sort and apply one payload; failures only raise the error flag."""

        sequence = self.next_sequence()
        started = time.perf_counter()
        try:
            payload = await self._get_client().fetch_payload()
            received_at = datetime.now(timezone.utc)
            snapshot = Snapshot(
                records=tuple(sort_records(payload.trades)),
                generated_at=payload.generated_at or received_at,
                received_at=received_at,
                zone_counts=tuple(payload.zone_distribution),
                sequence=sequence,
            )
        except MonitorFetchError as exc:
            record_refresh_failure(exc.kind)
            self.apply_error(sequence, exc)
            return self._state
        except Exception as exc:
            LOGGER.exception("Unexpected refresh error: %s", exc)
            record_refresh_failure("unexpected")
            self.apply_error(sequence, exc)
            return self._state

        if self.apply_snapshot(snapshot):
            duration = time.perf_counter() - started
            record_refresh(duration, len(snapshot.records), time.time())
            log_payload = {
                "sequence": sequence,
                "cycle_ms": round(duration * 1000, 2),
                "records": len(snapshot.records),
                "zones": len(snapshot.zone_counts),
                "generated_at": snapshot.generated_at.isoformat(),
            }
            LOGGER.info("refresh_cycle %s", json.dumps(log_payload))
        return self._state

    def _spawn_refresh(self) -> None:
        task = asyncio.create_task(self.refresh_once())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run(self) -> None:
        while not self._stopped:
            # Fired unconditionally; overlapping fetches are settled by sequence
            self._spawn_refresh()
            try:
                await asyncio.wait_for(self._force.wait(), timeout=self.interval_sec)
            except asyncio.TimeoutError:
                pass
            self._force.clear()

    def start(self) -> None:
        """Enter loading, fetch immediately and keep refreshing every interval."""

        if self._stopped:
            raise RuntimeError("RefreshController cannot be restarted after stop()")
        if self._timer is not None:
            return
        self._state = replace(self._state, loading=True)
        LOGGER.info("Refreshing %s every %.1fs", self._get_client().url, self.interval_sec)
        self._timer = asyncio.create_task(self._run())

    def request_refresh(self, actor: str = "system", reason: str | None = None) -> dict[str, Any]:
        if not self.running:
            return {"queued": False, "reason": "stopped" if self._stopped else "not_started"}
        self._force.set()
        LOGGER.info("Manual refresh requested by %s (%s)", actor, reason or "no reason")
        return {"queued": True}

    async def _close_after(self, pending: set[asyncio.Task[MonitorState]]) -> None:
        await asyncio.wait(pending)
        await self._client.aclose()

    async def stop(self) -> None:
        """Cancel the timer. In-flight fetches may finish but no longer change state.

        Fetches still running after the grace period are left alone; an owned
        client is closed once the last of them returns.
        """

        if self._stopped:
            return
        self._stopped = True
        if self._timer is not None:
            self._timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer
        pending: set[asyncio.Task[MonitorState]] = set()
        if self._inflight:
            _done, pending = await asyncio.wait(set(self._inflight), timeout=self.shutdown_grace_sec)
        if self._owns_client and self._client is not None:
            if pending:
                LOGGER.warning(
                    "%d fetch(es) still running after %.1fs; client closes when they finish",
                    len(pending),
                    self.shutdown_grace_sec,
                )
                self._closer = asyncio.create_task(self._close_after(pending))
            else:
                await self._client.aclose()
        LOGGER.info("Refresh controller stopped at sequence %d", self._sequence)


_controller: RefreshController | None = None


def get_refresh_controller() -> RefreshController:
    global _controller
    if _controller is None:
        _controller = RefreshController()
    return _controller


def reset_refresh_controller() -> None:
    global _controller
    _controller = None
