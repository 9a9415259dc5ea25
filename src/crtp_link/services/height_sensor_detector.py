"""Height-sensor presence detection via a parameter request/response."""

import asyncio
import logging
from typing import Any

from src.crtp_link.constants.crtp_frames import HEIGHT_SENSOR_REQUEST
from src.crtp_link.hal.udp_transport import UDPTransportSession
from src.crtp_link.utils.signals import Signal

logger = logging.getLogger(__name__)


class HeightSensorDetector:
    """Answers "does this vehicle have a height sensor" within a bounded time.

    A single pending future represents the attempt in flight. Starting a new
    attempt resolves the old one with False first. The generation number
    stops a superseded attempt from clearing the slot of its successor.
    """

    def __init__(
        self,
        transport: UDPTransportSession,
        attempts: int = 3,
        attempt_gap_s: float = 0.5,
        timeout_s: float = 5.0,
    ):
        self.transport = transport
        self.attempts = attempts
        self.attempt_gap_s = attempt_gap_s
        self.timeout_s = timeout_s

        self.last_result: bool | None = None
        self.detected: Signal[bool] = Signal("height_sensor_detected")

        self._pending: asyncio.Future[bool] | None = None
        self._generation = 0

    @property
    def is_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def detect(self) -> bool:
        """
        Probe for a height sensor.

        Returns:
            True if the drone reported a sensor, False on a negative reply,
            timeout, supersession or session close
        """
        if not self.transport.is_active:
            logger.warning("Cannot detect height sensor - UDP session not open")
            return False

        self.last_result = None
        if self._pending is not None:
            self._complete(self._pending, False)
            self._pending = None

        self._generation += 1
        generation = self._generation
        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._pending = future

        try:
            logger.info("Starting height sensor detection")
            for attempt in range(1, self.attempts + 1):
                if future.done():
                    break
                logger.debug(f"Height sensor detection attempt {attempt}/{self.attempts}")
                self.transport.send(HEIGHT_SENSOR_REQUEST)
                if attempt < self.attempts:
                    await asyncio.sleep(self.attempt_gap_s)

            try:
                result = await asyncio.wait_for(asyncio.shield(future), timeout=self.timeout_s)
            except TimeoutError:
                logger.warning(
                    f"Height sensor detection timeout after {self.timeout_s:.1f} seconds"
                )
                self._complete(future, False)
                result = False

            logger.info(f"Height sensor detection result: {result}")
            return result
        finally:
            if self._generation == generation:
                self._pending = None

    def resolve(self, has_sensor: bool) -> None:
        """Accept a decoded reply from the drone."""
        self.last_result = has_sensor
        logger.info(f"Height sensor {'DETECTED' if has_sensor else 'NOT FOUND'}")

        if self._pending is not None and self._complete(self._pending, has_sensor):
            logger.debug("Completed pending height sensor detection")
        else:
            logger.debug("No pending height sensor detection to complete")

        self.detected.emit(has_sensor)

    def cancel(self) -> None:
        """Resolve any pending detection with False (session close)."""
        if self._pending is not None:
            self._complete(self._pending, False)
            self._pending = None
        self.last_result = None

    @staticmethod
    def _complete(future: "asyncio.Future[bool]", result: bool) -> bool:
        """Complete a future once. Returns False if it was already done."""
        if future.done():
            return False
        future.set_result(result)
        return True

    def get_status(self) -> dict[str, Any]:
        return {
            "pending": self.is_pending,
            "last_result": self.last_result,
            "attempts": self.attempts,
            "timeout_s": self.timeout_s,
        }
