"""
Health Router

Pure reads of the link state:
- /health - liveness plus PLC connection summary
- /status - detailed link, sampler and subscription statistics
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..dependencies import Runtime, get_runtime

router = APIRouter()


# ============================================
# SCHEMAS
# ============================================

class HealthResponse(BaseModel):
    """Health probe response."""
    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    plc_connected: bool = Field(..., alias="plcConnected")
    server_time: datetime = Field(..., alias="serverTime")
    connection_attempts: int = Field(..., alias="connectionAttempts")


class StatusResponse(BaseModel):
    """Detailed runtime statistics."""
    link: dict
    sampler: dict
    subscribers: int
    subscriptions: dict


# ============================================
# ENDPOINTS
# ============================================

@router.get("/health", response_model=HealthResponse)
async def health_check(runtime: Runtime = Depends(get_runtime)):
    """
    Health check endpoint.

    No side effects: never triggers a connect or a read.
    """
    return HealthResponse(
        plc_connected=runtime.link.connected,
        server_time=datetime.now(timezone.utc),
        connection_attempts=runtime.link.attempt_count,
    )


@router.get("/status", response_model=StatusResponse)
async def runtime_status(runtime: Runtime = Depends(get_runtime)):
    """Link snapshot, sampler counters and per-subscriber scheduler stats."""
    return StatusResponse(
        link=runtime.link.snapshot(),
        sampler=runtime.sampler.get_stats(),
        subscribers=len(runtime.registry),
        subscriptions=runtime.registry.get_stats(),
    )
