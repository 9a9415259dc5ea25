"""
Health check endpoint.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from src.crtp_link.core.config import get_config
from src.crtp_link.core.dependencies import get_link_service
from src.crtp_link.services.drone_link_service import DroneLinkService

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(
    service: DroneLinkService = Depends(get_link_service),
) -> dict[str, Any]:
    """
    Overall health check.

    The API is healthy whenever it answers; a closed or silent link is
    reported as degraded rather than as an error.
    """
    config = get_config()
    status = "healthy" if service.is_connected else "degraded"

    return {
        "status": status,
        "timestamp": datetime.now(UTC).isoformat(),
        "app": config.app.APP_NAME,
        "version": config.app.APP_VERSION,
        "link": {
            "open": service.is_open,
            "connected": service.is_connected,
            "last_voltage": service.last_voltage,
        },
    }
