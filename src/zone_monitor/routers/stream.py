from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..engine.streaming import get_state_broadcast

router = APIRouter()


@router.websocket("/state")
async def stream_state(ws: WebSocket) -> None:
    await ws.accept()
    broadcaster = get_state_broadcast()
    try:
        async for frame in broadcaster.subscribe():
            await ws.send_text(frame.model_dump_json())
    except WebSocketDisconnect:
        return
