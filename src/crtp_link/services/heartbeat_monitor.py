"""Heartbeat-based link liveness monitoring."""

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from src.crtp_link.constants.crtp_frames import HEARTBEAT_PING
from src.crtp_link.core.base_service import BaseService
from src.crtp_link.hal.udp_transport import UDPTransportSession
from src.crtp_link.utils.signals import Signal

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Link connection states."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class HeartbeatMonitor(BaseService):
    """Sends liveness pings and tracks whether the drone is answering.

    The state starts DISCONNECTED. A heartbeat reply moves it to CONNECTED;
    more than ``staleness_s`` without a reply moves it back. The connection
    signal fires only on those transitions.
    """

    def __init__(
        self,
        transport: UDPTransportSession,
        interval_s: float = 1.0,
        staleness_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(service_name="heartbeat_monitor")
        self.transport = transport
        self.interval_s = interval_s
        self.staleness_s = staleness_s
        self._clock = clock

        self.state = ConnectionState.DISCONNECTED
        self.last_reply_time: float | None = None
        self.pings_sent = 0
        self.replies_received = 0

        self.connection_changed: Signal[bool] = Signal("connection_changed")

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def period_s(self) -> float:
        return self.interval_s

    def tick(self) -> None:
        """One heartbeat period: send a ping, then evaluate staleness."""
        if self.transport.send(HEARTBEAT_PING):
            self.pings_sent += 1
        self.check_staleness()

    def record_reply(self) -> None:
        """Note a heartbeat reply from the drone."""
        self.last_reply_time = self._clock()
        self.replies_received += 1
        if self.state == ConnectionState.DISCONNECTED:
            self._set_state(ConnectionState.CONNECTED)

    def check_staleness(self) -> None:
        """Drop to DISCONNECTED when replies stopped for longer than the window."""
        if self.state != ConnectionState.CONNECTED or self.last_reply_time is None:
            return

        silence = self._clock() - self.last_reply_time
        if silence > self.staleness_s:
            logger.warning(f"Heartbeat timeout ({silence:.1f}s without reply)")
            self._set_state(ConnectionState.DISCONNECTED)

    def reset(self) -> None:
        """Force DISCONNECTED, e.g. when the session closes."""
        self._set_state(ConnectionState.DISCONNECTED)
        self.last_reply_time = None

    def _set_state(self, new_state: ConnectionState) -> None:
        """Update connection state and notify on an actual transition."""
        if self.state == new_state:
            return

        old_state = self.state
        self.state = new_state
        logger.info(f"Link connection state changed: {old_state.value} -> {new_state.value}")
        self.connection_changed.emit(new_state == ConnectionState.CONNECTED)

    def get_status(self) -> dict[str, Any]:
        status = super().get_status()
        status.update(
            {
                "connection_state": self.state.value,
                "seconds_since_reply": (
                    self._clock() - self.last_reply_time
                    if self.last_reply_time is not None
                    else None
                ),
                "pings_sent": self.pings_sent,
                "replies_received": self.replies_received,
            }
        )
        return status
