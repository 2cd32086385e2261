from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from zone_monitor.jobs.refresh import RefreshController, get_refresh_controller
from zone_monitor.models import Snapshot, TradeRecord, ZoneCount
from zone_monitor.routers import control as control_router
from zone_monitor.routers import health as health_router
from zone_monitor.routers import monitor as monitor_router
from zone_monitor.routers import stream as stream_router


def make_record(symbol: str, zone: str, perf: float, perf_btc: float, volume: float = 100.0) -> TradeRecord:
    return TradeRecord(
        symbol=symbol,
        zone=zone,
        performance_24=perf,
        performance_btc_24=perf_btc,
        amplitude_ma_200=perf * 2,
        log_amplitude=0.25,
        log_position=0.35,
        volume=volume,
        quote_volume=1_000.0,
        trades_count=10,
        taker_buy_base_volume=80.0,
        taker_buy_quote_volume=800.0,
        website="https://example.org",
    )


def make_app(controller: RefreshController) -> FastAPI:
    app = FastAPI()
    app.include_router(health_router.router)
    app.include_router(monitor_router.router, prefix="/monitor")
    app.include_router(control_router.router)
    app.include_router(stream_router.router, prefix="/stream")
    app.dependency_overrides[get_refresh_controller] = lambda: controller
    return app


def loaded_controller() -> RefreshController:
    controller = RefreshController(interval_sec=60.0)
    records = (
        make_record("SOLUSDT", "Z6", 4.0, 1.0),
        make_record("XRPUSDT", "Z2", 0.0, 0.5),
        make_record("ADAUSDT", "Z2", -1.0, -2.0, volume=0.0),
    )
    controller.apply_snapshot(
        Snapshot(
            records=records,
            generated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            zone_counts=(ZoneCount(zone="Z2", count=2), ZoneCount(zone="Z6", count=1)),
            sequence=controller.next_sequence(),
        )
    )
    return controller


async def get(app: FastAPI, path: str):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(path)


@pytest.mark.asyncio
async def test_views_unavailable_while_loading():
    app = make_app(RefreshController(interval_sec=60.0))
    for path in ("/monitor/table", "/monitor/zones", "/monitor/positions", "/monitor/weather"):
        response = await get(app, path)
        assert response.status_code == 503
        assert response.json()["detail"] == "loading"

    status = await get(app, "/monitor/status")
    assert status.status_code == 200
    assert status.json()["status"] == "loading"


@pytest.mark.asyncio
async def test_table_rows_carry_highlights_and_pressure():
    app = make_app(loaded_controller())
    response = await get(app, "/monitor/table")
    assert response.status_code == 200
    data = response.json()
    assert data["stale"] is False
    rows = data["rows"]
    assert [row["record"]["symbol"] for row in rows] == ["SOLUSDT", "XRPUSDT", "ADAUSDT"]
    assert rows[0]["highlights"] == {"performance_24": "max", "performance_btc_24": "max"}
    assert rows[1]["highlights"]["performance_24"] == "neutral"
    assert rows[2]["highlights"]["performance_24"] == "min"
    assert rows[0]["pressure"] == "strong_buy"
    assert rows[2]["pressure"] == "neutral"
    assert rows[2]["buy_pressure"] == 0.0

    with_amplitude = await get(app, "/monitor/table?include_amplitude=true")
    assert "amplitude_ma_200" in with_amplitude.json()["rows"][0]["highlights"]


@pytest.mark.asyncio
async def test_symbol_detail_and_unknown_symbol():
    app = make_app(loaded_controller())
    detail = await get(app, "/monitor/symbols/XRPUSDT")
    assert detail.status_code == 200
    assert detail.json()["record"]["website"] == "https://example.org"
    assert detail.json()["sell_pressure"] == pytest.approx(0.2)

    missing = await get(app, "/monitor/symbols/NOPE")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_zone_position_and_weather_views():
    app = make_app(loaded_controller())

    zones = (await get(app, "/monitor/zones")).json()
    assert zones["count_axis"] == {"max_y": 20, "ticks": [0, 20]}
    assert len(zones["series"]["trade_share"]) == 8
    assert zones["series"]["trade_share"][1]["value"] == pytest.approx(2 / 3)

    positions = (await get(app, "/monitor/positions")).json()
    assert positions["buckets"][3]["count"] == 3

    weather = (await get(app, "/monitor/weather")).json()
    assert weather["group"] == "group1"
    assert weather["icon"] == "rain"


@pytest.mark.asyncio
async def test_retained_snapshot_served_with_error_flag():
    controller = loaded_controller()
    controller.apply_error(controller.next_sequence(), RuntimeError("upstream down"))
    app = make_app(controller)

    table = await get(app, "/monitor/table")
    assert table.status_code == 200
    assert table.json()["stale"] is True
    assert len(table.json()["rows"]) == 3

    status = (await get(app, "/monitor/status")).json()
    assert status["status"] == "error"
    assert status["error"] is True
    assert status["last_error"] == "upstream down"

    health = (await get(app, "/health")).json()
    assert health["status"] == "error"
    assert health["sequence"] == 2


@pytest.mark.asyncio
async def test_control_refresh_conflict_when_not_running():
    app = make_app(RefreshController(interval_sec=60.0))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/control/refresh", json={"reason": "manual"})
    assert response.status_code == 409
    assert response.json()["detail"] == "not_started"


@pytest.mark.asyncio
async def test_control_refresh_queued(monkeypatch):
    controller = RefreshController(interval_sec=60.0)
    monkeypatch.setattr(controller, "request_refresh", lambda actor="api", reason=None: {"queued": True})
    app = make_app(controller)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/control/refresh", json={})
    assert response.status_code == 200
    assert response.json()["queued"] is True


def test_websocket_stream_delivers_latest_state():
    controller = loaded_controller()
    client = TestClient(make_app(controller))
    with client.websocket_connect("/stream/state") as websocket:
        message = websocket.receive_json()
    assert message["status"] == "ready"
    assert message["records"] == 3
    assert message["sequence"] == 1
