"""
Base class for the periodic link activities.

The heartbeat and the flight command stream are both "call tick() every
period_s while running" services. BaseService owns that loop and its
start/stop lifecycle; subclasses supply the tick and the period.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from src.crtp_link.utils.logging import get_logger

logger = get_logger(__name__)


class BaseService(ABC):
    """Periodic service with start/stop lifecycle management."""

    def __init__(self, service_name: str = "base_service"):
        self.service_name = service_name
        self._is_running = False
        self._started_at: float | None = None
        self._task: asyncio.Task[None] | None = None
        self.tick_errors = 0

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    @abstractmethod
    def period_s(self) -> float:
        """Seconds between ticks."""

    @abstractmethod
    def tick(self) -> None:
        """One period of work. Runs on the event loop, must not block."""

    async def start_service(self) -> None:
        """Launch the tick loop. Subclasses extend this to prepare state first."""
        self._task = asyncio.create_task(self._run(), name=f"{self.service_name}-loop")

    async def stop_service(self) -> None:
        """Cancel the tick loop. Subclasses extend this to clean up after it."""
        await cancel_task(self._task)
        self._task = None

    async def _run(self) -> None:
        # first tick is immediate
        while True:
            try:
                self.tick()
            except Exception as e:
                self.tick_errors += 1
                logger.error(f"{self.service_name} tick failed: {e}", exc_info=True)
            await asyncio.sleep(self.period_s)

    async def start(self) -> None:
        """Start the service; a second call while running is ignored."""
        if self._is_running:
            logger.warning(f"Service {self.service_name} is already running")
            return

        logger.info(f"Starting {self.service_name} ({self.period_s * 1000:.0f} ms period)")
        try:
            await self.start_service()
        except Exception as e:
            logger.error(f"Failed to start service {self.service_name}: {e}")
            raise

        self._is_running = True
        self._started_at = asyncio.get_running_loop().time()

    async def stop(self) -> None:
        """Stop the service; safe to call when it is not running."""
        if not self._is_running:
            logger.debug(f"Service {self.service_name} is not running")
            return

        logger.info(f"Stopping service: {self.service_name}")
        try:
            await self.stop_service()
        except Exception as e:
            logger.error(f"Error stopping service {self.service_name}: {e}")
            raise
        finally:
            self._is_running = False
            self._started_at = None

    def get_status(self) -> dict[str, Any]:
        uptime = 0.0
        if self._started_at is not None:
            uptime = asyncio.get_running_loop().time() - self._started_at
        return {
            "service_name": self.service_name,
            "is_running": self._is_running,
            "period_s": self.period_s,
            "uptime_seconds": uptime,
            "tick_errors": self.tick_errors,
        }


async def cancel_task(task: "asyncio.Task[Any] | None") -> None:
    """Cancel a background task and wait for it to finish."""
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
