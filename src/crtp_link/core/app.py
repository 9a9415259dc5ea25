"""
FastAPI application setup with CORS middleware.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.crtp_link.core.config import get_config
from src.crtp_link.core.dependencies import shutdown_link_service
from src.crtp_link.core.exceptions import (
    BindFailureError,
    CRTPLinkException,
    LinkNotOpenError,
    SendFailureError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[CRTPLinkException], int] = {
    BindFailureError: 503,
    LinkNotOpenError: 409,
    SendFailureError: 502,
}


async def link_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map link exceptions to HTTP status codes."""
    status_code = next(
        (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)), 500
    )
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    config = get_config()

    app = FastAPI(
        title=config.app.APP_NAME,
        version=config.app.APP_VERSION,
        description="CRTP-over-UDP drone link control API",
    )

    # Configure CORS middleware
    if config.api.API_CORS_ENABLED:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.api.API_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info(f"CORS enabled with origins: {config.api.API_CORS_ORIGINS}")

    app.add_exception_handler(CRTPLinkException, link_exception_handler)

    from src.crtp_link.api.routes import flight, health, link

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(link.router, tags=["link"])  # Already has /api/link prefix
    app.include_router(flight.router, tags=["flight"])  # Already has /api/flight prefix

    @app.on_event("startup")
    async def startup_event() -> None:
        logger.info(f"Starting {config.app.APP_NAME} v{config.app.APP_VERSION}")
        logger.info(f"Environment: {config.app.APP_ENV}")
        logger.info(f"Listening on {config.app.APP_HOST}:{config.app.APP_PORT}")

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """Close the drone link on shutdown."""
        logger.info("Shutting down application")
        try:
            await shutdown_link_service()
        except Exception as e:
            logger.error(f"Error during link shutdown: {e}")

    return app


# Create application instance
app = create_app()
