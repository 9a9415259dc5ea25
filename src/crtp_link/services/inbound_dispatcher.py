"""Routes inbound CRTP datagrams to the component that owns them."""

import logging
from typing import Any

from src.crtp_link.constants.crtp_frames import (
    HEARTBEAT_REPLY_SIGNATURE,
    HEIGHT_SENSOR_REPLY_SIGNATURE,
    VOLTAGE_LOG_SIGNATURE,
)
from src.crtp_link.hal.crtp_codec import (
    decode_header,
    decode_height_sensor_status,
    decode_voltage,
    format_frame,
)
from src.crtp_link.services.heartbeat_monitor import HeartbeatMonitor
from src.crtp_link.services.height_sensor_detector import HeightSensorDetector
from src.crtp_link.services.telemetry_monitor import TelemetryMonitor

logger = logging.getLogger(__name__)


class InboundDispatcher:
    """Classifies each datagram by header and forwards it.

    Frames that match no known signature, or fail to decode, are ordinary
    traffic and are dropped without raising.
    """

    def __init__(
        self,
        heartbeat: HeartbeatMonitor,
        telemetry: TelemetryMonitor,
        height_sensor: HeightSensorDetector,
    ):
        self.heartbeat = heartbeat
        self.telemetry = telemetry
        self.height_sensor = height_sensor

        self.counters: dict[str, int] = {
            "heartbeats": 0,
            "voltage_samples": 0,
            "height_sensor_replies": 0,
            "dropped": 0,
        }

    def dispatch(self, data: bytes) -> None:
        """Handle one inbound datagram."""
        if not data:
            self.counters["dropped"] += 1
            return

        signature = decode_header(data[0])

        if signature == HEARTBEAT_REPLY_SIGNATURE:
            self.counters["heartbeats"] += 1
            self.heartbeat.record_reply()
            return

        if signature == VOLTAGE_LOG_SIGNATURE:
            voltage = decode_voltage(data)
            if voltage is not None:
                self.counters["voltage_samples"] += 1
                self.telemetry.record_voltage(voltage)
                return

        elif signature == HEIGHT_SENSOR_REPLY_SIGNATURE:
            logger.debug(f"Received parameter packet: {format_frame(data)}")
            has_sensor = decode_height_sensor_status(data)
            if has_sensor is not None:
                self.counters["height_sensor_replies"] += 1
                self.height_sensor.resolve(has_sensor)
                return

        self.counters["dropped"] += 1
        logger.debug(f"Dropped frame port={signature[0]} channel={signature[1]}")

    def get_status(self) -> dict[str, Any]:
        return dict(self.counters)
