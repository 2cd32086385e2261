"""Async HTTP client for the trade-monitor aggregate endpoint."""
from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import get_settings
from ..models import MonitorPayload

LOGGER = logging.getLogger(__name__)

TRANSPORT = "transport"
PARSE = "parse"


class MonitorFetchError(RuntimeError):
    """Raised when a monitor payload cannot be fetched or parsed.

    ``kind`` is ``"transport"`` for network errors and non-2xx responses,
    ``"parse"`` for invalid JSON or a body missing expected fields.
    """

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class MonitorClient:
    """Thin wrapper over ``httpx.AsyncClient`` that returns validated payloads."""

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        settings = get_settings()
        self.url = url or settings.monitor_url
        if timeout is None:
            timeout = settings.request_timeout_sec
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport, **kwargs)

    async def __aenter__(self) -> "MonitorClient":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_payload(self) -> MonitorPayload:
        try:
            response = await self._client.get(self.url)
        except httpx.HTTPError as exc:
            raise MonitorFetchError(TRANSPORT, f"GET {self.url} failed: {exc!r}") from exc

        if not response.is_success:
            raise MonitorFetchError(TRANSPORT, f"GET {self.url} returned HTTP {response.status_code}")

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MonitorFetchError(PARSE, f"Invalid JSON from {self.url}: {exc}") from exc

        try:
            payload = MonitorPayload.model_validate(body)
        except ValidationError as exc:
            raise MonitorFetchError(PARSE, f"Malformed payload from {self.url}: {exc.error_count()} error(s)") from exc

        LOGGER.debug("Fetched %d trades from %s", len(payload.trades), self.url)
        return payload
