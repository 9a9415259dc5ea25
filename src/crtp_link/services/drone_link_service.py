"""
Drone link service.

Facade over one UDP session to the drone: wires the transport, inbound
dispatcher, heartbeat, telemetry, height-sensor detector, command emitter
and flight controller together and exposes the operations the UI layer
uses.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from src.crtp_link.core.config import Config, get_config
from src.crtp_link.hal.udp_transport import Endpoint, UDPTransportSession
from src.crtp_link.services.command_emitter import CommandEmitter
from src.crtp_link.services.flight_controller import FlightController
from src.crtp_link.services.heartbeat_monitor import ConnectionState, HeartbeatMonitor
from src.crtp_link.services.height_sensor_detector import HeightSensorDetector
from src.crtp_link.services.inbound_dispatcher import InboundDispatcher
from src.crtp_link.services.telemetry_monitor import TelemetryMonitor
from src.crtp_link.utils.logging import clear_session_id, get_logger, set_session_id
from src.crtp_link.utils.signals import Signal

logger = get_logger(__name__)


class DroneLinkService:
    """One CRTP-over-UDP session with a drone."""

    def __init__(
        self,
        config: Config | None = None,
        endpoint: Endpoint | None = None,
    ):
        """
        Initialize the link service.

        Args:
            config: Configuration, defaults to the global configuration
            endpoint: Overrides the LINK_* addresses from the configuration
        """
        self.config = config or get_config()
        self.endpoint = endpoint or Endpoint.from_config(self.config.link)

        self.transport = UDPTransportSession(self.endpoint)
        self.heartbeat = HeartbeatMonitor(
            self.transport,
            interval_s=self.config.heartbeat.HEARTBEAT_INTERVAL_S,
            staleness_s=self.config.heartbeat.HEARTBEAT_STALENESS_S,
        )
        self.telemetry = TelemetryMonitor(
            self.transport,
            period_s=self.config.telemetry.TELEMETRY_VOLTAGE_PERIOD_S,
            config_to_start_delay_s=self.config.telemetry.TELEMETRY_CONFIG_TO_START_DELAY_S,
            start_to_stop_delay_s=self.config.telemetry.TELEMETRY_START_TO_STOP_DELAY_S,
        )
        self.height_sensor = HeightSensorDetector(
            self.transport,
            attempts=self.config.height_sensor.HEIGHT_SENSOR_ATTEMPTS,
            attempt_gap_s=self.config.height_sensor.HEIGHT_SENSOR_ATTEMPT_GAP_S,
            timeout_s=self.config.height_sensor.HEIGHT_SENSOR_TIMEOUT_S,
        )
        self.dispatcher = InboundDispatcher(self.heartbeat, self.telemetry, self.height_sensor)
        self.emitter = CommandEmitter(self.transport)
        self.flight = FlightController(self.emitter, self.config.flight)

        self.connection_changed: Signal[bool] = Signal("connection_change")
        self.transport.set_handler(self.dispatcher.dispatch)
        self.heartbeat.connection_changed.subscribe(self._handle_connection_change)

    @property
    def is_open(self) -> bool:
        return self.transport.is_active

    @property
    def is_connected(self) -> bool:
        return self.heartbeat.is_connected

    @property
    def connection_state(self) -> ConnectionState:
        return self.heartbeat.state

    @property
    def last_voltage(self) -> float | None:
        return self.telemetry.last_voltage

    @property
    def height_sensor_detected(self) -> bool | None:
        return self.height_sensor.last_result

    async def open(self) -> None:
        """
        Bind the UDP session and start the heartbeat.

        Raises:
            BindFailureError: If the local port cannot be bound
        """
        if self.transport.is_active:
            logger.warning("Drone link already open")
            return

        session_id = set_session_id()
        logger.info(f"Opening drone link session {session_id}")
        try:
            await self.transport.open()
        except Exception:
            clear_session_id()
            raise
        await self.heartbeat.start()

    async def close(self) -> None:
        """Tear the session down. Safe to call from any state, any number of times."""
        if self.flight.is_running:
            self.emitter.send_stop(self.config.flight.FLIGHT_STOP_PACKETS)

        self.transport.close()

        await self.flight.stop()
        await self.heartbeat.stop()
        await self.telemetry.shutdown()

        self.height_sensor.cancel()
        self.heartbeat.reset()
        logger.info("Drone link closed")
        clear_session_id()

    async def __aenter__(self) -> "DroneLinkService":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    def _handle_connection_change(self, connected: bool) -> None:
        """Apply the connect/disconnect side effects, then notify the subscriber."""
        if connected:
            if self.config.telemetry.TELEMETRY_AUTO_START_ON_CONNECT and self.transport.is_active:
                self.telemetry.start_periodic_sampling()
                self.telemetry.trigger_sample()
        else:
            self.telemetry.stop_periodic_sampling()
            self.telemetry.clear()
            self.flight.rearm()

        self.connection_changed.emit(connected)

    # Commands

    def create_commander_packet(self, roll: float, pitch: float, yaw: float, thrust: int) -> bytes:
        return self.emitter.create_commander_packet(roll, pitch, yaw, thrust)

    def send_commander(self, roll: float, pitch: float, yaw: float, thrust: int) -> bool:
        return self.emitter.send_commander(roll, pitch, yaw, thrust)

    def send_hover(self, vx: float, vy: float, yaw_rate: float, height: float) -> bool:
        return self.emitter.send_hover(vx, vy, yaw_rate, height)

    def send_packet(self, packet: bytes | bytearray) -> bool:
        return self.emitter.send_packet(packet)

    # Telemetry

    def start_voltage_monitoring(self, period_s: float | None = None) -> None:
        self.telemetry.start_periodic_sampling(period_s)

    def stop_voltage_monitoring(self) -> None:
        self.telemetry.stop_periodic_sampling()

    def sample_voltage_once(self) -> "asyncio.Task[None]":
        """Fire one voltage sampling sequence. The reading arrives via on_voltage."""
        return self.telemetry.trigger_sample()

    async def detect_height_sensor(self) -> bool:
        return await self.height_sensor.detect()

    # Flight

    async def start_flight(self) -> None:
        await self.flight.start()

    async def stop_flight(self) -> None:
        await self.flight.stop()

    # Observers

    def on_connection_change(self, callback: Callable[[bool], None] | None) -> None:
        self.connection_changed.subscribe(callback)

    def on_voltage(self, callback: Callable[[float], None] | None) -> None:
        self.telemetry.voltage_updated.subscribe(callback)

    def on_height_sensor(self, callback: Callable[[bool], None] | None) -> None:
        self.height_sensor.detected.subscribe(callback)

    def on_armed(self, callback: Callable[[bool], None] | None) -> None:
        self.flight.armed_changed.subscribe(callback)

    def get_status(self) -> dict[str, Any]:
        """Get a snapshot of the whole session."""
        return {
            "open": self.is_open,
            "connected": self.is_connected,
            "connection_state": self.connection_state.value,
            "last_voltage": self.last_voltage,
            "height_sensor_detected": self.height_sensor_detected,
            "transport": self.transport.get_status(),
            "heartbeat": self.heartbeat.get_status(),
            "telemetry": self.telemetry.get_status(),
            "height_sensor": self.height_sensor.get_status(),
            "inbound": self.dispatcher.get_status(),
            "flight": self.flight.get_status(),
        }
