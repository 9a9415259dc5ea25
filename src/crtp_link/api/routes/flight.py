"""API routes for the flight command loop."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.crtp_link.core.dependencies import get_link_service, get_open_link_service
from src.crtp_link.services.drone_link_service import DroneLinkService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/flight", tags=["flight"])


class StickRequest(BaseModel):
    """Request model for normalized stick input."""

    roll: float = Field(0.0, ge=-1.0, le=1.0)
    pitch: float = Field(0.0, ge=-1.0, le=1.0)
    yaw: float = Field(0.0, ge=-1.0, le=1.0)
    thrust: float = Field(0.0, ge=0.0, le=1.0)
    yaw_enabled: bool | None = None


class TrimRequest(BaseModel):
    """Request model for roll/pitch trim."""

    roll: float = Field(0.0, ge=-0.5, le=0.5)
    pitch: float = Field(0.0, ge=-0.5, le=0.5)


class HeightHoldRequest(BaseModel):
    """Request model for entering height hold."""

    height_m: float = Field(..., gt=0.0, le=5.0, description="Target height in meters")


@router.get("")
async def get_flight(service: DroneLinkService = Depends(get_link_service)) -> dict[str, Any]:
    """Get the flight loop status."""
    return service.flight.get_status()


@router.post("/start")
async def start_flight(
    service: DroneLinkService = Depends(get_open_link_service),
) -> dict[str, Any]:
    """Start the command loop; it arms before accepting thrust."""
    await service.start_flight()
    return service.flight.get_status()


@router.post("/stop")
async def stop_flight(service: DroneLinkService = Depends(get_link_service)) -> dict[str, Any]:
    """Stop the command loop and cut thrust."""
    await service.stop_flight()
    return service.flight.get_status()


@router.put("/sticks")
async def set_sticks(
    request: StickRequest,
    service: DroneLinkService = Depends(get_link_service),
) -> dict[str, Any]:
    service.flight.set_sticks(
        request.roll, request.pitch, request.yaw, request.thrust, request.yaw_enabled
    )
    return service.flight.get_status()


@router.put("/trim")
async def set_trim(
    request: TrimRequest,
    service: DroneLinkService = Depends(get_link_service),
) -> dict[str, Any]:
    service.flight.set_trim(request.roll, request.pitch)
    return service.flight.get_status()


@router.post("/height-hold")
async def enable_height_hold(
    request: HeightHoldRequest,
    service: DroneLinkService = Depends(get_open_link_service),
) -> dict[str, Any]:
    """Switch to hover setpoints at the requested height."""
    if not await service.flight.enable_height_hold(request.height_m):
        raise HTTPException(
            status_code=409, detail=f"Cannot enable height hold in mode {service.flight.mode.value}"
        )
    return service.flight.get_status()


@router.post("/land")
async def land(service: DroneLinkService = Depends(get_open_link_service)) -> dict[str, Any]:
    """Ramp the hover height down and return to manual flight."""
    if not service.flight.start_landing():
        raise HTTPException(status_code=409, detail="Landing requires height hold")
    return service.flight.get_status()


@router.post("/emergency-stop")
async def emergency_stop(service: DroneLinkService = Depends(get_link_service)) -> dict[str, Any]:
    """Cut all motors immediately."""
    sent = service.flight.emergency_stop()
    logger.warning(f"Emergency stop requested via API ({sent} stop frames sent)")
    return {"stop_frames_sent": sent, **service.flight.get_status()}
