"""
Mock drone for testing without hardware
"""

import asyncio
import logging
import struct

from src.crtp_link.constants.crtp_frames import (
    HEARTBEAT_PING,
    HEIGHT_SENSOR_MARKER,
    HEIGHT_SENSOR_PRESENT,
    VOLTAGE_LOG_START,
    VOLTAGE_MARKER,
)
from src.crtp_link.hal.crtp_codec import decode_commander, format_frame

logger = logging.getLogger(__name__)


class _MockDroneProtocol(asyncio.DatagramProtocol):
    def __init__(self, drone: "MockDrone") -> None:
        self._drone = drone

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self._drone._handle(data, addr)


class MockDrone:
    """UDP peer that answers like the drone's access point firmware"""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 0,
        voltage: float = 3.7,
        has_height_sensor: bool = True,
    ):
        self.host = host
        self.port = port
        self.voltage = voltage
        self.has_height_sensor = has_height_sensor
        self.silent = False

        self.received: list[bytes] = []
        self._transport: asyncio.DatagramTransport | None = None

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); only valid after start()"""
        if self._transport is None:
            return (self.host, self.port)
        return self._transport.get_extra_info("sockname")[:2]

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._transport, _ = await loop.create_datagram_endpoint(
            lambda: _MockDroneProtocol(self), local_addr=(self.host, self.port)
        )
        logger.info(f"Mock drone listening on {self.address}")

    def stop(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None

    async def __aenter__(self) -> "MockDrone":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    def frames_with_header(self, header: int) -> list[bytes]:
        """All received frames whose first byte equals header"""
        return [frame for frame in self.received if frame and frame[0] == header]

    def commander_setpoints(self) -> list:
        """Decoded commander setpoints in arrival order"""
        setpoints = (decode_commander(frame) for frame in self.received)
        return [sp for sp in setpoints if sp is not None]

    def voltage_frame(self) -> bytes:
        return VOLTAGE_MARKER + bytes([0x00, 0x00, 0x25]) + struct.pack("<f", self.voltage) + b"\x00"

    def height_sensor_frame(self) -> bytes:
        status = HEIGHT_SENSOR_PRESENT if self.has_height_sensor else 0x00
        return HEIGHT_SENSOR_MARKER + bytes([0x00, 0x00, status])

    def _handle(self, data: bytes, addr: tuple[str, int]) -> None:
        self.received.append(data)
        logger.debug(f"Mock drone received {format_frame(data)}")

        if self.silent or self._transport is None:
            return

        if data and data[0] == HEARTBEAT_PING[0]:
            self._transport.sendto(data, addr)
        elif data == VOLTAGE_LOG_START:
            self._transport.sendto(self.voltage_frame(), addr)
        elif data[:2] == HEIGHT_SENSOR_MARKER:
            self._transport.sendto(self.height_sensor_frame(), addr)
