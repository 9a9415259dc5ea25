"""
UDP transport session for the drone access point.

Owns the datagram socket: binds the local port, sends to the fixed peer and
forwards every received datagram to a single handler from the event loop.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.crtp_link.core.config import LinkConfig
from src.crtp_link.core.exceptions import BindFailureError
from src.crtp_link.hal.crtp_codec import format_frame

logger = logging.getLogger(__name__)

DatagramHandler = Callable[[bytes], None]


@dataclass(frozen=True)
class Endpoint:
    """Local bind address and drone peer address."""

    local_host: str = "0.0.0.0"
    local_port: int = 2399
    peer_address: str = "192.168.43.42"
    peer_port: int = 2390

    @classmethod
    def from_config(cls, config: LinkConfig) -> "Endpoint":
        """Build an endpoint from the LINK_* configuration section."""
        return cls(
            local_host=config.LINK_LOCAL_HOST,
            local_port=config.LINK_LOCAL_PORT,
            peer_address=config.LINK_PEER_ADDRESS,
            peer_port=config.LINK_PEER_PORT,
        )

    @property
    def peer(self) -> tuple[str, int]:
        return (self.peer_address, self.peer_port)


class SessionState(Enum):
    """Transport session lifecycle."""

    NEW = "new"
    ACTIVE = "active"
    CLOSED = "closed"


class _CRTPDatagramProtocol(asyncio.DatagramProtocol):
    """asyncio protocol that hands datagrams back to the session."""

    def __init__(self, session: "UDPTransportSession") -> None:
        self._session = session

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self._session._on_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        # ICMP errors for earlier sends surface here, e.g. peer unreachable
        self._session.send_failures += 1
        logger.warning(f"UDP error reported by socket: {exc}")

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None:
            logger.error(f"UDP socket lost: {exc}")


class UDPTransportSession:
    """UDP session bound to a local port and targeting one peer."""

    def __init__(self, endpoint: Endpoint, on_datagram: DatagramHandler | None = None):
        """
        Initialize the transport session.

        Args:
            endpoint: Local bind and peer addresses
            on_datagram: Handler called synchronously for each inbound datagram
        """
        self.endpoint = endpoint
        self._on_datagram_handler = on_datagram
        self._transport: asyncio.DatagramTransport | None = None
        self.state = SessionState.NEW

        self.datagrams_sent = 0
        self.datagrams_received = 0
        self.send_failures = 0

    @property
    def is_active(self) -> bool:
        """Check if the socket is bound and receiving."""
        return self.state == SessionState.ACTIVE and self._transport is not None

    @property
    def local_address(self) -> tuple[str, int] | None:
        """Actual bound address (useful when binding port 0)."""
        if self._transport is None:
            return None
        return self._transport.get_extra_info("sockname")

    def set_handler(self, on_datagram: DatagramHandler | None) -> None:
        """Replace the inbound datagram handler."""
        self._on_datagram_handler = on_datagram

    async def open(self) -> None:
        """
        Bind the local UDP port and start receiving.

        Raises:
            BindFailureError: If the socket cannot be bound
        """
        if self.is_active:
            logger.warning("UDP session already open")
            return

        loop = asyncio.get_running_loop()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _CRTPDatagramProtocol(self),
                local_addr=(self.endpoint.local_host, self.endpoint.local_port),
            )
        except OSError as e:
            logger.error(
                f"Failed to bind UDP socket on "
                f"{self.endpoint.local_host}:{self.endpoint.local_port}: {e}"
            )
            raise BindFailureError(
                f"Cannot bind {self.endpoint.local_host}:{self.endpoint.local_port}: {e}"
            ) from e

        self._transport = transport
        self.state = SessionState.ACTIVE
        logger.info(
            f"UDP session open on {self.local_address}, "
            f"peer {self.endpoint.peer_address}:{self.endpoint.peer_port}"
        )

    def send(self, data: bytes | bytearray) -> bool:
        """
        Send one datagram to the peer.

        Returns:
            True if handed to the socket, False if the session is closed or
            the send failed
        """
        if not self.is_active:
            logger.debug("Dropping outbound frame, UDP session not open")
            return False

        assert self._transport is not None
        try:
            self._transport.sendto(bytes(data), self.endpoint.peer)
        except OSError as e:
            self.send_failures += 1
            logger.warning(f"Failed to send {len(data)} byte frame: {e}")
            return False

        self.datagrams_sent += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"[SENT] {format_frame(data)}")
        return True

    def _on_datagram(self, data: bytes, addr: tuple[str, int]) -> None:
        """Forward one inbound datagram to the handler."""
        self.datagrams_received += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"[RECEIVED] {len(data)} bytes from {addr}: {format_frame(data)}")

        if self._on_datagram_handler is None:
            return
        try:
            self._on_datagram_handler(data)
        except Exception as e:
            logger.error(f"Error handling inbound datagram: {e}", exc_info=True)

    def close(self) -> None:
        """Stop receiving and release the socket. Safe to call repeatedly."""
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            logger.info("UDP session closed")

        if self.state != SessionState.NEW:
            self.state = SessionState.CLOSED

    def get_status(self) -> dict[str, Any]:
        """Get transport status information."""
        return {
            "state": self.state.value,
            "local_address": self.local_address,
            "peer": f"{self.endpoint.peer_address}:{self.endpoint.peer_port}",
            "datagrams_sent": self.datagrams_sent,
            "datagrams_received": self.datagrams_received,
            "send_failures": self.send_failures,
        }
