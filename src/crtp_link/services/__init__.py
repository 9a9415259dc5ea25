"""Services module for the CRTP link client."""

from .command_emitter import CommandEmitter
from .drone_link_service import DroneLinkService
from .flight_controller import FlightController, FlightMode, StickInput, Trim
from .heartbeat_monitor import ConnectionState, HeartbeatMonitor
from .height_sensor_detector import HeightSensorDetector
from .inbound_dispatcher import InboundDispatcher
from .telemetry_monitor import TelemetryMonitor

__all__ = [
    "CommandEmitter",
    "ConnectionState",
    "DroneLinkService",
    "FlightController",
    "FlightMode",
    "HeartbeatMonitor",
    "HeightSensorDetector",
    "InboundDispatcher",
    "StickInput",
    "TelemetryMonitor",
    "Trim",
]
