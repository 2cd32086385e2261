"""Data models for trade-monitor snapshots."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError


class TradeRecord(BaseModel):
    """One symbol's current snapshot as published by the trade-monitor service."""

    symbol: str = Field(..., description="Symbol identifier, unique within a snapshot.")
    zone: str = Field(..., description="Zone label of the form Z<n>; higher n is a hotter zone.")
    performance_24: float = Field(..., description="24h performance in percent.")
    performance_btc_24: float = Field(..., description="24h performance against BTC in percent.")
    amplitude_ma_200: float = Field(..., description="Signed percent distance from the 200-period moving average.")
    log_amplitude: float = Field(..., description="Normalized amplitude as a 0-1 fraction.")
    log_position: float = Field(..., description="Normalized position within range as a 0-1 fraction.")
    volume: float = Field(..., description="Base asset volume.")
    quote_volume: float = Field(..., description="Quote asset volume.")
    trades_count: float = Field(..., description="Number of completed trades.")
    taker_buy_base_volume: float = Field(..., description="Base volume bought by takers.")
    taker_buy_quote_volume: float = Field(..., description="Quote volume bought by takers.")

    logo: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    date_added: Optional[str] = None
    website: Optional[str] = None
    technical_doc: Optional[str] = None

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }


class ZoneCount(BaseModel):
    zone: str
    count: int = Field(..., ge=0)

    model_config = {"frozen": True}


_DATETIME = TypeAdapter(datetime)


def parse_timestamp(raw: str) -> datetime | None:
    """Best-effort ISO 8601 parse; naive values are taken as UTC, anything else is None."""

    try:
        value = _DATETIME.validate_python(raw)
    except ValidationError:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MonitorPayload(BaseModel):
    """Wire body of ``GET /trades/monitor``.

    ``timestamp`` is kept as the raw upstream string; only :attr:`generated_at`
    interprets it, so an unfamiliar format never rejects the payload.
    """

    trades: list[TradeRecord]
    timestamp: str
    zone_distribution: list[ZoneCount]

    @property
    def generated_at(self) -> datetime | None:
        return parse_timestamp(self.timestamp)


class Snapshot(BaseModel):
    """Immutable unit of monitor state; replaced wholesale on every successful poll."""

    records: tuple[TradeRecord, ...] = Field(..., description="Records in table order.")
    generated_at: datetime = Field(..., description="Upstream timestamp of the payload.")
    zone_counts: tuple[ZoneCount, ...] = Field(default=(), description="Symbols per zone as reported upstream.")
    sequence: int = Field(..., ge=0, description="Request generation that produced this snapshot.")
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}

    def find(self, symbol: str) -> TradeRecord | None:
        for record in self.records:
            if record.symbol == symbol:
                return record
        return None
