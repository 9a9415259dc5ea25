"""Battery voltage telemetry over the CRTP logging port."""

import asyncio
import logging
from typing import Any

from src.crtp_link.constants.crtp_frames import (
    VOLTAGE_LOG_CONFIG,
    VOLTAGE_LOG_START,
    VOLTAGE_LOG_STOP,
)
from src.crtp_link.core.base_service import cancel_task
from src.crtp_link.hal.udp_transport import UDPTransportSession
from src.crtp_link.utils.signals import Signal

logger = logging.getLogger(__name__)


class TelemetryMonitor:
    """Samples battery voltage with a short log config/start/stop sequence.

    The sequence is fire-and-forget. The voltage itself arrives later as a
    log data frame and is handed over by the inbound dispatcher through
    ``record_voltage``, regardless of which sequence asked for it.
    """

    def __init__(
        self,
        transport: UDPTransportSession,
        period_s: float = 10.0,
        config_to_start_delay_s: float = 0.1,
        start_to_stop_delay_s: float = 0.3,
    ):
        self.transport = transport
        self.period_s = period_s
        self.config_to_start_delay_s = config_to_start_delay_s
        self.start_to_stop_delay_s = start_to_stop_delay_s

        self.last_voltage: float | None = None
        self.samples_received = 0
        self.sequences_started = 0

        self.voltage_updated: Signal[float] = Signal("voltage_updated")
        self._periodic_task: asyncio.Task[None] | None = None
        self._sequences: set[asyncio.Task[None]] = set()

    @property
    def is_sampling(self) -> bool:
        """Check if the periodic trigger is active."""
        return self._periodic_task is not None and not self._periodic_task.done()

    def start_periodic_sampling(self, period_s: float | None = None) -> None:
        """Start (or restart) the recurring sampling trigger."""
        if period_s is not None:
            self.period_s = period_s
        if self._periodic_task is not None:
            self._periodic_task.cancel()
        self._periodic_task = asyncio.create_task(self._periodic_loop())
        logger.info(f"Voltage monitoring started (every {self.period_s:.1f}s)")

    def stop_periodic_sampling(self) -> None:
        """Cancel the recurring trigger. Sequences already running are left alone."""
        if self._periodic_task is not None:
            self._periodic_task.cancel()
            self._periodic_task = None
            logger.info("Voltage monitoring stopped")

    async def _periodic_loop(self) -> None:
        while True:
            await asyncio.sleep(self.period_s)
            self.trigger_sample()

    def trigger_sample(self) -> "asyncio.Task[None]":
        """Schedule one sampling sequence without waiting for it."""
        task = asyncio.create_task(self.sample_once())
        self._sequences.add(task)
        task.add_done_callback(self._sequences.discard)
        return task

    async def sample_once(self) -> None:
        """Send log config, start and stop frames with the configured gaps."""
        if not self.transport.is_active:
            logger.debug("Skipping voltage sample, UDP session not open")
            return

        self.sequences_started += 1
        sent = self.transport.send(VOLTAGE_LOG_CONFIG)
        await asyncio.sleep(self.config_to_start_delay_s)
        sent = self.transport.send(VOLTAGE_LOG_START) and sent
        await asyncio.sleep(self.start_to_stop_delay_s)
        sent = self.transport.send(VOLTAGE_LOG_STOP) and sent

        if not sent:
            logger.warning("Voltage sampling sequence incomplete, will retry next period")

    def record_voltage(self, voltage: float) -> None:
        """Store a decoded voltage sample and notify the subscriber."""
        self.last_voltage = voltage
        self.samples_received += 1
        logger.debug(f"Battery voltage: {voltage:.2f} V")
        self.voltage_updated.emit(voltage)

    def clear(self) -> None:
        """Forget the last voltage reading."""
        self.last_voltage = None

    async def shutdown(self) -> None:
        """Cancel the trigger and any sequence still in flight."""
        periodic = self._periodic_task
        self._periodic_task = None
        await cancel_task(periodic)
        for task in list(self._sequences):
            await cancel_task(task)
        self._sequences.clear()

    def get_status(self) -> dict[str, Any]:
        return {
            "sampling": self.is_sampling,
            "period_s": self.period_s,
            "last_voltage": self.last_voltage,
            "samples_received": self.samples_received,
            "sequences_started": self.sequences_started,
        }
