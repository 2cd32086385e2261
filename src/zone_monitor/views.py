"""JSON-ready views built from the controller state for presentation consumers."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .config import get_settings
from .core.aggregator import (
    HIGHLIGHT_FIELDS,
    TABLE_FIELDS,
    CountAxis,
    Highlight,
    PositionBucket,
    Pressure,
    ZoneSeries,
    bucket_positions,
    buy_pressure,
    count_axis,
    highlight_records,
    record_pressure,
    sell_pressure,
    zone_series,
)
from .core.weather import WeatherOutlook, weather_outlook
from .jobs.refresh import MonitorState
from .models import Snapshot, TradeRecord, ZoneCount


class SnapshotUnavailable(LookupError):
    """Raised when a view is requested before any snapshot was applied."""


class TableRow(BaseModel):
    record: TradeRecord
    highlights: dict[str, Highlight]
    buy_pressure: float
    sell_pressure: float
    pressure: Pressure


class TableView(BaseModel):
    generated_at: datetime
    sequence: int
    stale: bool = Field(..., description="True when the last refresh failed and this is retained data.")
    rows: list[TableRow]


class ZoneChartsView(BaseModel):
    generated_at: datetime
    zone_counts: list[ZoneCount]
    count_axis: CountAxis
    series: ZoneSeries


class PositionView(BaseModel):
    generated_at: datetime
    buckets: list[PositionBucket]


class StatusView(BaseModel):
    status: str
    loading: bool
    error: bool
    last_error: Optional[str] = None
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None
    generated_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    records: int = 0
    sequence: int = 0


def _rows(records: tuple[TradeRecord, ...], fields: tuple[str, ...]) -> list[TableRow]:
    highlights = highlight_records(records, fields)
    return [
        TableRow(
            record=record,
            highlights=marks,
            buy_pressure=buy_pressure(record),
            sell_pressure=sell_pressure(record),
            pressure=record_pressure(record),
        )
        for record, marks in zip(records, highlights)
    ]


def build_table(state: MonitorState, include_amplitude: bool = False) -> TableView:
    snapshot = _require(state)
    fields = HIGHLIGHT_FIELDS if include_amplitude else TABLE_FIELDS
    return TableView(
        generated_at=snapshot.generated_at,
        sequence=snapshot.sequence,
        stale=state.error,
        rows=_rows(snapshot.records, fields),
    )


def build_detail(state: MonitorState, symbol: str) -> TableRow | None:
    """Detail row for one symbol; highlights are relative to the whole snapshot."""

    snapshot = _require(state)
    for row in _rows(snapshot.records, HIGHLIGHT_FIELDS):
        if row.record.symbol == symbol:
            return row
    return None


def build_zone_charts(state: MonitorState) -> ZoneChartsView:
    snapshot = _require(state)
    return ZoneChartsView(
        generated_at=snapshot.generated_at,
        zone_counts=list(snapshot.zone_counts),
        count_axis=count_axis(snapshot.zone_counts, step=get_settings().count_axis_step),
        series=zone_series(snapshot.records),
    )


def build_positions(state: MonitorState) -> PositionView:
    snapshot = _require(state)
    return PositionView(
        generated_at=snapshot.generated_at,
        buckets=bucket_positions(snapshot.records, scale=get_settings().position_scale),
    )


def build_weather(state: MonitorState) -> WeatherOutlook:
    return weather_outlook(_require(state).zone_counts)


def build_status(state: MonitorState) -> StatusView:
    snapshot = state.snapshot
    return StatusView(
        status=state.status.value,
        loading=state.loading,
        error=state.error,
        last_error=state.last_error,
        last_success=state.last_success,
        last_failure=state.last_failure,
        generated_at=snapshot.generated_at if snapshot else None,
        received_at=snapshot.received_at if snapshot else None,
        records=len(snapshot.records) if snapshot else 0,
        sequence=state.applied_sequence,
    )


def _require(state: MonitorState) -> Snapshot:
    if state.snapshot is None:
        raise SnapshotUnavailable("loading" if state.loading else "unavailable")
    return state.snapshot
