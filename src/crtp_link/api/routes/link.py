"""API routes for the drone link session and its telemetry."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.crtp_link.core.dependencies import get_link_service, get_open_link_service
from src.crtp_link.core.exceptions import SendFailureError
from src.crtp_link.services.drone_link_service import DroneLinkService

router = APIRouter(prefix="/api/link", tags=["link"])


class LinkStatusResponse(BaseModel):
    """Response model for the link summary."""

    open: bool
    connected: bool
    connection_state: str
    last_voltage: float | None
    height_sensor_detected: bool | None
    peer: str


class CommanderRequest(BaseModel):
    """Request model for a one-shot commander setpoint."""

    roll: float = Field(0.0, ge=-180.0, le=180.0, description="Roll angle in degrees")
    pitch: float = Field(0.0, ge=-180.0, le=180.0, description="Pitch angle in degrees")
    yaw: float = Field(0.0, ge=-360.0, le=360.0, description="Yaw rate in degrees/s")
    thrust: int = Field(0, ge=0, le=65535, description="Raw thrust")


class VoltageMonitoringRequest(BaseModel):
    """Request model for toggling periodic voltage sampling."""

    enabled: bool
    period_s: float | None = Field(None, ge=0.1, le=600.0, description="Sampling period")


class HeightSensorResponse(BaseModel):
    """Response model for height-sensor detection."""

    has_height_sensor: bool


def _summary(service: DroneLinkService) -> LinkStatusResponse:
    return LinkStatusResponse(
        open=service.is_open,
        connected=service.is_connected,
        connection_state=service.connection_state.value,
        last_voltage=service.last_voltage,
        height_sensor_detected=service.height_sensor_detected,
        peer=f"{service.endpoint.peer_address}:{service.endpoint.peer_port}",
    )


@router.get("", response_model=LinkStatusResponse)
async def get_link(service: DroneLinkService = Depends(get_link_service)) -> LinkStatusResponse:
    """Get the link summary."""
    return _summary(service)


@router.get("/status")
async def get_link_status(service: DroneLinkService = Depends(get_link_service)) -> dict[str, Any]:
    """Get the detailed status of every link component."""
    return service.get_status()


@router.post("/open", response_model=LinkStatusResponse)
async def open_link(service: DroneLinkService = Depends(get_link_service)) -> LinkStatusResponse:
    """Bind the UDP session and start the heartbeat. A bind failure maps to 503."""
    await service.open()
    return _summary(service)


@router.post("/close", response_model=LinkStatusResponse)
async def close_link(service: DroneLinkService = Depends(get_link_service)) -> LinkStatusResponse:
    """Close the UDP session."""
    await service.close()
    return _summary(service)


@router.post("/commander")
async def send_commander(
    request: CommanderRequest,
    service: DroneLinkService = Depends(get_open_link_service),
) -> dict[str, Any]:
    """Send a single commander setpoint."""
    if not service.send_commander(request.roll, request.pitch, request.yaw, request.thrust):
        raise SendFailureError("Commander setpoint was not sent")
    return {"sent": True}


@router.post("/voltage/sample", status_code=202)
async def sample_voltage(
    service: DroneLinkService = Depends(get_open_link_service),
) -> dict[str, Any]:
    """Fire one voltage sampling sequence; the reading arrives asynchronously."""
    service.sample_voltage_once()
    return {"status": "sampling", "last_voltage": service.last_voltage}


@router.put("/voltage/monitoring")
async def set_voltage_monitoring(
    request: VoltageMonitoringRequest,
    service: DroneLinkService = Depends(get_open_link_service),
) -> dict[str, Any]:
    """Start or stop periodic voltage sampling."""
    if request.enabled:
        service.start_voltage_monitoring(request.period_s)
    else:
        service.stop_voltage_monitoring()
    return service.telemetry.get_status()


@router.post("/height-sensor/detect", response_model=HeightSensorResponse)
async def detect_height_sensor(
    service: DroneLinkService = Depends(get_open_link_service),
) -> HeightSensorResponse:
    """Probe the drone for a height sensor."""
    return HeightSensorResponse(has_height_sensor=await service.detect_height_sensor())
