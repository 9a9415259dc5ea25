"""
Service dependency injection for the HTTP layer.
"""

import logging

from src.crtp_link.core.config import get_config
from src.crtp_link.core.exceptions import LinkNotOpenError
from src.crtp_link.services.drone_link_service import DroneLinkService

logger = logging.getLogger(__name__)

# Global link service instance
_link_service: DroneLinkService | None = None


def get_link_service() -> DroneLinkService:
    """Get or create the global drone link service."""
    global _link_service
    if _link_service is None:
        _link_service = DroneLinkService(get_config())
    return _link_service


def get_open_link_service() -> DroneLinkService:
    """Dependency for operations that need a bound UDP session."""
    service = get_link_service()
    if not service.is_open:
        raise LinkNotOpenError("Drone link is not open")
    return service


async def shutdown_link_service() -> None:
    """Close and forget the global link service."""
    global _link_service
    if _link_service is not None:
        await _link_service.close()
        _link_service = None
        logger.info("Drone link service shut down")
