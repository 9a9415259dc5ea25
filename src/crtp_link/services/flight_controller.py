"""
Fixed-rate flight command loop.

Turns normalized stick input and trim offsets into commander or hover
setpoints at the command rate (50 Hz by default). A new loop first arms the
vehicle with a run of zero-thrust frames. Height hold switches the output to
hover setpoints after enabling the high-level commander, and landing ramps
the target height down before handing control back to manual flight.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.crtp_link.core.base_service import BaseService, cancel_task
from src.crtp_link.core.config import FlightConfig
from src.crtp_link.services.command_emitter import CommandEmitter
from src.crtp_link.utils.signals import Signal

logger = logging.getLogger(__name__)


class FlightMode(Enum):
    """Command loop modes."""

    IDLE = "idle"
    ARMING = "arming"
    MANUAL = "manual"
    HEIGHT_HOLD = "height_hold"
    LANDING = "landing"


@dataclass
class StickInput:
    """Normalized stick positions: roll/pitch/yaw in [-1, 1], thrust in [0, 1]."""

    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0
    thrust: float = 0.0
    yaw_enabled: bool = False


@dataclass
class Trim:
    """Roll/pitch trim offsets in normalized stick units."""

    roll: float = 0.0
    pitch: float = 0.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class FlightController(BaseService):
    """50 Hz setpoint stream with arming, height hold, landing and emergency stop."""

    def __init__(
        self,
        emitter: CommandEmitter,
        config: FlightConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(service_name="flight_controller")
        self.emitter = emitter
        self.config = config or FlightConfig()
        self._clock = clock

        self.mode = FlightMode.IDLE
        self.sticks = StickInput()
        self.trim = Trim()
        self.target_height = self.config.FLIGHT_DEFAULT_HEIGHT_M

        self.arming_packets_sent = 0
        self.packets_sent = 0
        self.armed_changed: Signal[bool] = Signal("armed_changed")

        self._landing_task: asyncio.Task[None] | None = None
        self._paused_until = 0.0
        # bumped whenever arming restarts or the stream stops
        self._generation = 0

    @property
    def is_armed(self) -> bool:
        return self.mode in (FlightMode.MANUAL, FlightMode.HEIGHT_HOLD, FlightMode.LANDING)

    @property
    def period_s(self) -> float:
        return 1.0 / self.config.FLIGHT_COMMAND_RATE_HZ

    async def start_service(self) -> None:
        self._begin_arming()
        await super().start_service()

    async def stop_service(self) -> None:
        await cancel_task(self._landing_task)
        self._landing_task = None
        await super().stop_service()

        was_armed = self.is_armed
        self._generation += 1
        self.mode = FlightMode.IDLE
        self.emitter.send_stop(self.config.FLIGHT_STOP_PACKETS)
        if was_armed:
            self.armed_changed.emit(False)
        logger.info("Command stream stopped, vehicle disarmed")

    def tick(self) -> None:
        """Emit the setpoint for the current mode."""
        if self._clock() < self._paused_until:
            return

        if self.mode == FlightMode.ARMING:
            self.emitter.send_commander(0.0, 0.0, 0.0, 0)
            self.arming_packets_sent += 1
            if self.arming_packets_sent >= self.config.FLIGHT_ARMING_PACKETS:
                self.mode = FlightMode.MANUAL
                logger.info("Arming complete, motors ready for thrust")
                self.armed_changed.emit(True)
        elif self.mode in (FlightMode.HEIGHT_HOLD, FlightMode.LANDING):
            self.emitter.send_hover(*self.compute_hover())
        elif self.mode == FlightMode.MANUAL:
            self.emitter.send_commander(*self.compute_commander())
        else:
            return

        self.packets_sent += 1

    def compute_commander(self) -> tuple[float, float, float, int]:
        """Scale trimmed stick input to (roll deg, pitch deg, yaw deg/s, thrust)."""
        cfg = self.config
        roll = _clamp(self.sticks.roll + self.trim.roll, -1.0, 1.0) * cfg.FLIGHT_MAX_ROLL_PITCH_DEG
        pitch = (
            _clamp(self.sticks.pitch + self.trim.pitch, -1.0, 1.0) * cfg.FLIGHT_MAX_ROLL_PITCH_DEG
        )
        yaw = (self.sticks.yaw if self.sticks.yaw_enabled else 0.0) * cfg.FLIGHT_MAX_YAW_RATE_DPS

        thrust = 0
        if self.is_armed and self.sticks.thrust > 0.0:
            thrust = round(
                cfg.FLIGHT_MIN_THRUST
                + self.sticks.thrust * (cfg.FLIGHT_MAX_THRUST - cfg.FLIGHT_MIN_THRUST)
            )
        return roll, pitch, yaw, thrust

    def compute_hover(self) -> tuple[float, float, float, float]:
        """Scale trimmed stick input to (vx, vy, yaw_rate, height)."""
        cfg = self.config
        roll = _clamp(self.sticks.roll + self.trim.roll, -1.0, 1.0)
        pitch = _clamp(self.sticks.pitch + self.trim.pitch, -1.0, 1.0)
        vx = pitch * cfg.FLIGHT_HOVER_VELOCITY_SCALE
        vy = -roll * cfg.FLIGHT_HOVER_VELOCITY_SCALE
        yaw_rate = (
            self.sticks.yaw if self.sticks.yaw_enabled else 0.0
        ) * cfg.FLIGHT_HOVER_YAW_RATE_SCALE
        return vx, vy, yaw_rate, self.target_height

    def set_sticks(
        self,
        roll: float = 0.0,
        pitch: float = 0.0,
        yaw: float = 0.0,
        thrust: float = 0.0,
        yaw_enabled: bool | None = None,
    ) -> None:
        """Update stick input, clamped to the normalized ranges."""
        self.sticks.roll = _clamp(roll, -1.0, 1.0)
        self.sticks.pitch = _clamp(pitch, -1.0, 1.0)
        self.sticks.yaw = _clamp(yaw, -1.0, 1.0)
        self.sticks.thrust = _clamp(thrust, 0.0, 1.0)
        if yaw_enabled is not None:
            self.sticks.yaw_enabled = yaw_enabled

    def set_trim(self, roll: float = 0.0, pitch: float = 0.0) -> None:
        self.trim.roll = roll
        self.trim.pitch = pitch

    async def enable_height_hold(self, height_m: float) -> bool:
        """
        Hold an absolute height with hover setpoints.

        Args:
            height_m: Target height, clamped to the configured bounds

        Returns:
            True if height hold is active. False if the vehicle is not armed, or
            if an emergency stop, re-arm or stop happened during the enable
            sequence.
        """
        if self.mode not in (FlightMode.MANUAL, FlightMode.HEIGHT_HOLD):
            logger.warning(f"Cannot enable height hold in mode {self.mode.value}")
            return False

        cfg = self.config
        self.target_height = _clamp(height_m, cfg.FLIGHT_MIN_HEIGHT_M, cfg.FLIGHT_MAX_HEIGHT_M)
        generation = self._generation
        await self.emitter.enable_high_level_commander(cfg.FLIGHT_HIGH_LEVEL_ENABLE_DELAY_S)

        if generation != self._generation:
            logger.warning(f"Height hold abandoned, mode changed to {self.mode.value}")
            return False

        self.mode = FlightMode.HEIGHT_HOLD
        logger.info(f"Height hold ACTIVATED - {self.target_height * 100:.0f}cm target")
        return True

    def start_landing(self) -> bool:
        """Ramp the target height down, then return to manual flight."""
        if self.mode != FlightMode.HEIGHT_HOLD:
            logger.warning(f"Cannot land from mode {self.mode.value}")
            return False

        self.mode = FlightMode.LANDING
        self._landing_task = asyncio.create_task(self._landing_ramp())
        logger.info("Starting smooth landing")
        return True

    async def _landing_ramp(self) -> None:
        cfg = self.config
        step = cfg.FLIGHT_LANDING_RATE_MPS * cfg.FLIGHT_LANDING_STEP_S
        while self.target_height > cfg.FLIGHT_MIN_HEIGHT_M:
            await asyncio.sleep(cfg.FLIGHT_LANDING_STEP_S)
            self.target_height = max(cfg.FLIGHT_MIN_HEIGHT_M, self.target_height - step)

        await asyncio.sleep(cfg.FLIGHT_LANDING_HOLD_S)
        if self.mode == FlightMode.LANDING:
            self.mode = FlightMode.MANUAL
            logger.info("Landing complete - height hold DEACTIVATED")
        self._landing_task = None

    def emergency_stop(self) -> int:
        """
        Cut the motors immediately and restart arming after a short pause.

        Returns:
            Number of zero-thrust frames sent
        """
        if self._landing_task is not None:
            self._landing_task.cancel()
            self._landing_task = None

        was_armed = self.is_armed
        self.sticks = StickInput()
        self.target_height = self.config.FLIGHT_DEFAULT_HEIGHT_M
        sent = self.emitter.send_stop(self.config.FLIGHT_STOP_PACKETS)
        logger.warning("EMERGENCY STOP ACTIVATED - all motors stopped")

        if self.is_running:
            self._begin_arming()
            self._paused_until = self._clock() + self.config.FLIGHT_EMERGENCY_RESTART_DELAY_S
        else:
            self._generation += 1
            self.mode = FlightMode.IDLE

        if was_armed:
            self.armed_changed.emit(False)
        return sent

    def rearm(self) -> None:
        """Drop back to the arming sequence, e.g. after the link was lost."""
        if not self.is_running:
            return
        if self._landing_task is not None:
            self._landing_task.cancel()
            self._landing_task = None

        was_armed = self.is_armed
        self._begin_arming()
        if was_armed:
            self.armed_changed.emit(False)

    def _begin_arming(self) -> None:
        self._generation += 1
        self.mode = FlightMode.ARMING
        self.arming_packets_sent = 0
        logger.info(
            f"Starting arming sequence ({self.config.FLIGHT_ARMING_PACKETS} zero-thrust frames)"
        )

    def get_status(self) -> dict[str, Any]:
        status = super().get_status()
        status.update(
            {
                "mode": self.mode.value,
                "armed": self.is_armed,
                "target_height": self.target_height,
                "arming_packets_sent": self.arming_packets_sent,
                "packets_sent": self.packets_sent,
            }
        )
        return status
