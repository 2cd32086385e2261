from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..jobs.refresh import RefreshController, get_refresh_controller

router = APIRouter(prefix="/control", tags=["control"])


class ControlPayload(BaseModel):
    reason: str | None = Field(default=None, max_length=200)
    actor: str | None = Field(default="api", max_length=64)


@router.post("/refresh")
async def refresh(
    payload: ControlPayload,
    controller: RefreshController = Depends(get_refresh_controller),
) -> dict[str, object]:
    result = controller.request_refresh(actor=payload.actor or "api", reason=payload.reason)
    if not result.get("queued"):
        raise HTTPException(status_code=409, detail=result.get("reason", "Unable to queue refresh"))
    return result
