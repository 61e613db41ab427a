"""Admin routes for the background poll, refresh and retention loops."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from localbus_api.logging import get_logger
from localbus_api.services.provider.client import ProviderFetchError
from localbus_api.services.scheduler import LoopBusyError, get_scheduler

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class LoopStatus(BaseModel):
    """Status of a single background loop."""

    name: str
    running: bool
    busy: bool
    cycle_count: int
    failure_count: int
    last_started_at: Optional[str] = None
    last_finished_at: Optional[str] = None
    next_run_at: Optional[str] = None
    last_error: Optional[str] = None


class LoopsResponse(BaseModel):
    """Response for loop listing and start/stop."""

    running: bool
    loops: Dict[str, LoopStatus]


class RunOnceResponse(BaseModel):
    """Response for a manually triggered cycle."""

    loop: str
    report: Dict[str, Any]


def _loops_payload() -> dict[str, Any]:
    scheduler = get_scheduler()
    return {"running": scheduler.is_running, "loops": scheduler.status()}


# No auth: these endpoints are meant to stay on the internal network.
@router.get(
    "/loops",
    response_model=LoopsResponse,
    summary="Background loop status",
)
async def list_loops() -> dict[str, Any]:
    return _loops_payload()


@router.post(
    "/loops/start",
    response_model=LoopsResponse,
    summary="Start every background loop",
)
async def start_loops() -> dict[str, Any]:
    await get_scheduler().start()
    return _loops_payload()


@router.post(
    "/loops/stop",
    response_model=LoopsResponse,
    summary="Stop every background loop",
)
async def stop_loops() -> dict[str, Any]:
    await get_scheduler().stop()
    return _loops_payload()


@router.post(
    "/loops/{name}/run-once",
    response_model=RunOnceResponse,
    summary="Run one cycle of a loop now",
    description=(
        "Execute a single cycle of the named loop and return its report. "
        "Rejected with 409 while that loop already has a cycle in flight."
    ),
)
async def run_loop_once(name: str) -> dict[str, Any]:
    loop = get_scheduler().get(name)
    if loop is None:
        raise HTTPException(status_code=404, detail=f"Unknown loop: {name}")

    try:
        report = await loop.run_now()
    except LoopBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ProviderFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    logger.info("Manual loop cycle complete", loop=name)
    return {"loop": name, "report": report}
