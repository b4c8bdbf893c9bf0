"""
Readings Router

On-demand access to the PLC:
- GET /read-data - one read-and-decode, failures reported in the body
- POST /reconnect - explicit connect, resets the attempt counter on success

Neither endpoint touches subscriber timers.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ...common.exceptions import DeviceError
from ...common.logging_setup import get_service_logger
from ...sampler.layout import JointMeasurement, format_timestamp
from ..dependencies import Runtime, get_runtime

router = APIRouter()
logger = get_service_logger("api.readings")


# ============================================
# SCHEMAS
# ============================================

class JointMeasurementSchema(BaseModel):
    """Decoded joint angles."""
    model_config = ConfigDict(populate_by_name=True)

    joint1: float
    joint2: float
    joint3: float
    joint4: float
    joint5: float
    joint6: float
    timestamp: str
    is_mock_data: bool = Field(False, alias="isMockData")

    @classmethod
    def from_measurement(cls, measurement: JointMeasurement) -> "JointMeasurementSchema":
        return cls(
            joint1=measurement.joint1,
            joint2=measurement.joint2,
            joint3=measurement.joint3,
            joint4=measurement.joint4,
            joint5=measurement.joint5,
            joint6=measurement.joint6,
            timestamp=format_timestamp(measurement.timestamp),
            is_mock_data=measurement.is_mock_data,
        )


class ReadDataResponse(BaseModel):
    """On-demand read result."""
    success: bool
    data: Optional[JointMeasurementSchema] = None
    message: Optional[str] = None


class ReconnectResponse(BaseModel):
    """Explicit reconnect result."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    plc_connected: bool = Field(..., alias="plcConnected")
    connection_attempts: int = Field(..., alias="connectionAttempts")


# ============================================
# ENDPOINTS
# ============================================

@router.get("/read-data", response_model=ReadDataResponse, response_model_exclude_none=True)
async def read_data(runtime: Runtime = Depends(get_runtime)):
    """
    Read the joint block once.

    Device and decode failures come back as success=false with a message.
    """
    try:
        measurement = await runtime.sampler.read_now()
    except DeviceError as e:
        logger.warning(f"On-demand read failed: {e.message}")
        return ReadDataResponse(success=False, message=e.message)

    return ReadDataResponse(
        success=True,
        data=JointMeasurementSchema.from_measurement(measurement),
    )


@router.post("/reconnect", response_model=ReconnectResponse)
async def reconnect(runtime: Runtime = Depends(get_runtime)):
    """Force a connect attempt regardless of the attempt counter."""
    try:
        await runtime.link.connect()
        message = "PLC connected"
        success = True
    except DeviceError as e:
        message = e.message
        success = False

    return ReconnectResponse(
        success=success,
        message=message,
        plc_connected=runtime.link.connected,
        connection_attempts=runtime.link.attempt_count,
    )
