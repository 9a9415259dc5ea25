"""Outbound flight command frames."""

import asyncio
import logging

from src.crtp_link.constants.crtp_frames import (
    HIGH_LEVEL_ENABLE_STEP1,
    HIGH_LEVEL_ENABLE_STEP2,
)
from src.crtp_link.hal.crtp_codec import encode_commander, encode_hover_setpoint
from src.crtp_link.hal.udp_transport import UDPTransportSession

logger = logging.getLogger(__name__)


class CommandEmitter:
    """Encodes setpoints and hands them to the transport.

    Sends are best effort: a failed frame is logged by the transport and
    reported as False, and the next frame of the caller's cadence replaces it.
    """

    def __init__(self, transport: UDPTransportSession):
        self.transport = transport

    def create_commander_packet(self, roll: float, pitch: float, yaw: float, thrust: int) -> bytes:
        """Build a commander setpoint frame without sending it."""
        return encode_commander(roll, pitch, yaw, thrust)

    def send_packet(self, packet: bytes | bytearray) -> bool:
        """Send a raw, already encoded frame."""
        return self.transport.send(packet)

    def send_commander(self, roll: float, pitch: float, yaw: float, thrust: int) -> bool:
        """Encode and send a commander setpoint."""
        return self.transport.send(encode_commander(roll, pitch, yaw, thrust))

    def send_hover(self, vx: float, vy: float, yaw_rate: float, height: float) -> bool:
        """Encode and send a hover setpoint."""
        return self.transport.send(encode_hover_setpoint(vx, vy, yaw_rate, height))

    def send_stop(self, count: int = 5) -> int:
        """Send a burst of zero-thrust commander frames. Returns how many went out."""
        packet = encode_commander(0.0, 0.0, 0.0, 0)
        return sum(1 for _ in range(count) if self.transport.send(packet))

    async def enable_high_level_commander(self, step_delay_s: float = 0.2) -> bool:
        """Switch the vehicle to the controller that honours hover setpoints."""
        first = self.transport.send(HIGH_LEVEL_ENABLE_STEP1)
        await asyncio.sleep(step_delay_s)
        second = self.transport.send(HIGH_LEVEL_ENABLE_STEP2)

        if first and second:
            logger.info("High-level commander enabled")
        else:
            logger.warning("High-level commander enable sequence incomplete")
        return first and second
