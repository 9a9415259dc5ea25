"""Unit tests for InboundDispatcher routing."""

from unittest.mock import MagicMock

import pytest

from src.crtp_link.services.heartbeat_monitor import HeartbeatMonitor
from src.crtp_link.services.height_sensor_detector import HeightSensorDetector
from src.crtp_link.services.inbound_dispatcher import InboundDispatcher
from src.crtp_link.services.telemetry_monitor import TelemetryMonitor

VOLTAGE_3V7 = bytes([0x52, 0x01, 0x00, 0x00, 0x25, 0xCD, 0xCC, 0x6C, 0x40, 0x00])


@pytest.fixture
def components():
    """Provide mocked heartbeat, telemetry and height-sensor components."""
    return (
        MagicMock(spec=HeartbeatMonitor),
        MagicMock(spec=TelemetryMonitor),
        MagicMock(spec=HeightSensorDetector),
    )


@pytest.fixture
def dispatcher(components):
    return InboundDispatcher(*components)


class TestInboundDispatcher:
    """Test classification by header signature."""

    def test_heartbeat_reply(self, dispatcher, components):
        heartbeat, telemetry, height = components

        dispatcher.dispatch(bytes([0xFD, 0x00, 0xFD]))

        heartbeat.record_reply.assert_called_once()
        telemetry.record_voltage.assert_not_called()
        assert dispatcher.counters["heartbeats"] == 1

    def test_any_link_control_payload_counts_as_heartbeat(self, dispatcher, components):
        dispatcher.dispatch(bytes([0xFD]))
        components[0].record_reply.assert_called_once()

    def test_voltage_frame(self, dispatcher, components):
        _, telemetry, _ = components

        dispatcher.dispatch(VOLTAGE_3V7)

        voltage = telemetry.record_voltage.call_args.args[0]
        assert voltage == pytest.approx(3.7, abs=1e-6)
        assert dispatcher.counters["voltage_samples"] == 1

    def test_voltage_frame_with_wrong_marker_is_dropped(self, dispatcher, components):
        dispatcher.dispatch(bytes([0x52, 0x02]) + VOLTAGE_3V7[2:])

        components[1].record_voltage.assert_not_called()
        assert dispatcher.counters["dropped"] == 1

    def test_height_sensor_reply(self, dispatcher, components):
        _, _, height = components

        dispatcher.dispatch(bytes([0x2D, 0x02, 0x00, 0x00, 0x01]))

        height.resolve.assert_called_once_with(True)
        assert dispatcher.counters["height_sensor_replies"] == 1

    def test_height_sensor_negative_reply(self, dispatcher, components):
        dispatcher.dispatch(bytes([0x2D, 0x02, 0x00, 0x00, 0x00]))
        components[2].resolve.assert_called_once_with(False)

    def test_short_height_reply_is_dropped(self, dispatcher, components):
        dispatcher.dispatch(bytes([0x2D, 0x02, 0x00]))
        components[2].resolve.assert_not_called()
        assert dispatcher.counters["dropped"] == 1

    @pytest.mark.parametrize(
        "frame",
        [
            b"",
            bytes([0x30] + [0] * 15),
            bytes([0x7C, 0x05]),
            bytes([0x00, 0x01, 0x02]),
        ],
    )
    def test_unknown_frames_are_dropped(self, dispatcher, components, frame):
        dispatcher.dispatch(frame)

        for component in components:
            assert not component.method_calls
        assert dispatcher.counters["dropped"] == 1

    def test_get_status_returns_counters_copy(self, dispatcher):
        status = dispatcher.get_status()
        status["dropped"] = 99
        assert dispatcher.counters["dropped"] == 0
