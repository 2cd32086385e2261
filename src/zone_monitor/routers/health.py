from __future__ import annotations

from fastapi import APIRouter, Depends

from ..jobs.refresh import RefreshController, get_refresh_controller

router = APIRouter()


@router.get("/health")
async def health(controller: RefreshController = Depends(get_refresh_controller)):
    """
    Liveness plus refresh health.

    Returns:
        - status: loading, ready or error
        - loading / error: raw flags
        - last_success / last_failure: ISO8601 timestamps or null
        - sequence: last applied request generation
    """
    state = controller.state
    return {
        "status": state.status.value,
        "loading": state.loading,
        "error": state.error,
        "running": controller.running,
        "last_success": state.last_success.isoformat() if state.last_success else None,
        "last_failure": state.last_failure.isoformat() if state.last_failure else None,
        "sequence": state.applied_sequence,
    }
