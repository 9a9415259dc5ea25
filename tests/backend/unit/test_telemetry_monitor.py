"""Unit tests for TelemetryMonitor voltage sampling."""

import asyncio
from unittest.mock import MagicMock

import pytest

from src.crtp_link.constants.crtp_frames import (
    VOLTAGE_LOG_CONFIG,
    VOLTAGE_LOG_START,
    VOLTAGE_LOG_STOP,
)
from src.crtp_link.services.telemetry_monitor import TelemetryMonitor


@pytest.fixture
def telemetry(mock_transport):
    """Provide a TelemetryMonitor with short sequence gaps."""
    return TelemetryMonitor(
        mock_transport, period_s=0.05, config_to_start_delay_s=0.01, start_to_stop_delay_s=0.01
    )


class TestSamplingSequence:
    """Test the config/start/stop sequence."""

    @pytest.mark.asyncio
    async def test_sample_once_sends_sequence_in_order(self, telemetry, sent_frames):
        await telemetry.sample_once()

        assert sent_frames() == [VOLTAGE_LOG_CONFIG, VOLTAGE_LOG_START, VOLTAGE_LOG_STOP]
        assert telemetry.sequences_started == 1

    @pytest.mark.asyncio
    async def test_sample_once_waits_between_frames(self, mock_transport):
        telemetry = TelemetryMonitor(
            mock_transport, config_to_start_delay_s=0.05, start_to_stop_delay_s=0.05
        )
        task = asyncio.create_task(telemetry.sample_once())

        await asyncio.sleep(0.02)
        assert mock_transport.send.call_count == 1
        await asyncio.sleep(0.05)
        assert mock_transport.send.call_count == 2
        await task
        assert mock_transport.send.call_count == 3

    @pytest.mark.asyncio
    async def test_sample_skipped_when_session_closed(self, telemetry, mock_transport):
        mock_transport.is_active = False
        await telemetry.sample_once()
        mock_transport.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_failure_completes_sequence(self, telemetry, mock_transport, caplog):
        mock_transport.send.return_value = False
        await telemetry.sample_once()

        assert mock_transport.send.call_count == 3
        assert "incomplete" in caplog.text

    @pytest.mark.asyncio
    async def test_trigger_sample_is_fire_and_forget(self, telemetry, sent_frames):
        task = telemetry.trigger_sample()
        assert not task.done()

        await task
        assert sent_frames()[-1] == VOLTAGE_LOG_STOP


class TestPeriodicSampling:
    """Test the recurring trigger."""

    @pytest.mark.asyncio
    async def test_periodic_sampling_repeats(self, telemetry):
        telemetry.start_periodic_sampling()
        assert telemetry.is_sampling

        await asyncio.sleep(0.18)
        await telemetry.shutdown()

        assert telemetry.sequences_started >= 2
        assert not telemetry.is_sampling

    @pytest.mark.asyncio
    async def test_first_trigger_waits_one_period(self, telemetry, mock_transport):
        telemetry.start_periodic_sampling()
        await asyncio.sleep(0.02)

        mock_transport.send.assert_not_called()
        await telemetry.shutdown()

    @pytest.mark.asyncio
    async def test_period_override(self, telemetry):
        telemetry.start_periodic_sampling(period_s=1.5)
        assert telemetry.period_s == 1.5
        await telemetry.shutdown()

    @pytest.mark.asyncio
    async def test_stop_leaves_in_flight_sequence_running(self, mock_transport, sent_frames):
        telemetry = TelemetryMonitor(
            mock_transport, period_s=0.02, config_to_start_delay_s=0.03, start_to_stop_delay_s=0.01
        )
        telemetry.start_periodic_sampling()
        await asyncio.sleep(0.03)
        telemetry.stop_periodic_sampling()
        assert not telemetry.is_sampling

        await asyncio.sleep(0.08)

        assert sent_frames() == [VOLTAGE_LOG_CONFIG, VOLTAGE_LOG_START, VOLTAGE_LOG_STOP]

    @pytest.mark.asyncio
    async def test_shutdown_cancels_in_flight_sequence(self, mock_transport, sent_frames):
        telemetry = TelemetryMonitor(
            mock_transport, config_to_start_delay_s=0.05, start_to_stop_delay_s=0.05
        )
        telemetry.trigger_sample()
        await asyncio.sleep(0.01)

        await telemetry.shutdown()
        await asyncio.sleep(0.1)

        assert sent_frames() == [VOLTAGE_LOG_CONFIG]

    @pytest.mark.asyncio
    async def test_restart_replaces_trigger(self, telemetry):
        telemetry.start_periodic_sampling()
        first = telemetry._periodic_task
        telemetry.start_periodic_sampling()

        await asyncio.sleep(0)
        assert first.cancelled()
        await telemetry.shutdown()


class TestVoltageRecording:
    """Test voltage storage and notification."""

    def test_record_voltage_notifies(self, telemetry):
        callback = MagicMock()
        telemetry.voltage_updated.subscribe(callback)

        telemetry.record_voltage(3.7)

        assert telemetry.last_voltage == 3.7
        assert telemetry.samples_received == 1
        callback.assert_called_once_with(3.7)

    def test_clear(self, telemetry):
        telemetry.record_voltage(3.9)
        telemetry.clear()
        assert telemetry.last_voltage is None

    def test_get_status(self, telemetry):
        telemetry.record_voltage(4.1)
        status = telemetry.get_status()
        assert status["last_voltage"] == 4.1
        assert status["sampling"] is False
