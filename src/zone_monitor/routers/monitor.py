"""Read-only views over the latest monitor snapshot."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.weather import WeatherOutlook
from ..jobs.refresh import RefreshController, get_refresh_controller
from ..views import (
    PositionView,
    SnapshotUnavailable,
    StatusView,
    TableRow,
    TableView,
    ZoneChartsView,
    build_detail,
    build_positions,
    build_status,
    build_table,
    build_weather,
    build_zone_charts,
)

router = APIRouter()


def _unavailable(exc: SnapshotUnavailable) -> HTTPException:
    return HTTPException(status_code=503, detail=str(exc))


@router.get("/status", response_model=StatusView)
async def status(controller: RefreshController = Depends(get_refresh_controller)) -> StatusView:
    return build_status(controller.state)


@router.get("/table", response_model=TableView)
async def table(
    include_amplitude: bool = Query(default=False, description="Also highlight amplitude_ma_200."),
    controller: RefreshController = Depends(get_refresh_controller),
) -> TableView:
    try:
        return build_table(controller.state, include_amplitude=include_amplitude)
    except SnapshotUnavailable as exc:
        raise _unavailable(exc) from exc


@router.get("/symbols/{symbol}", response_model=TableRow)
async def symbol_detail(symbol: str, controller: RefreshController = Depends(get_refresh_controller)) -> TableRow:
    try:
        row = build_detail(controller.state, symbol)
    except SnapshotUnavailable as exc:
        raise _unavailable(exc) from exc
    if row is None:
        raise HTTPException(status_code=404, detail=f"Unknown symbol '{symbol}'")
    return row


@router.get("/zones", response_model=ZoneChartsView)
async def zones(controller: RefreshController = Depends(get_refresh_controller)) -> ZoneChartsView:
    try:
        return build_zone_charts(controller.state)
    except SnapshotUnavailable as exc:
        raise _unavailable(exc) from exc


@router.get("/positions", response_model=PositionView)
async def positions(controller: RefreshController = Depends(get_refresh_controller)) -> PositionView:
    try:
        return build_positions(controller.state)
    except SnapshotUnavailable as exc:
        raise _unavailable(exc) from exc


@router.get("/weather", response_model=WeatherOutlook)
async def weather(controller: RefreshController = Depends(get_refresh_controller)) -> WeatherOutlook:
    try:
        return build_weather(controller.state)
    except SnapshotUnavailable as exc:
        raise _unavailable(exc) from exc
