"""
Shared pytest fixtures for the CRTP link test suite.
These fixtures are available to all test files automatically.
"""

from unittest.mock import MagicMock

import pytest

from src.crtp_link.core import dependencies
from src.crtp_link.core.config import Config
from src.crtp_link.hal.udp_transport import UDPTransportSession


def pytest_configure(config):
    """Register custom pytest markers for test categorization."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (<100ms, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (real loopback sockets)"
    )
    config.addinivalue_line("markers", "property: mark test as property-based test (hypothesis)")
    config.addinivalue_line("markers", "slow: mark test as slow (>1s execution time)")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    """Provide a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def mock_transport():
    """Provide an open transport double that accepts every frame."""
    transport = MagicMock(spec=UDPTransportSession)
    transport.is_active = True
    transport.send.return_value = True
    return transport


@pytest.fixture
def sent_frames(mock_transport):
    """Provide a callable listing frames passed to the mock transport, in order."""
    return lambda: [bytes(call.args[0]) for call in mock_transport.send.call_args_list]


@pytest.fixture
def loopback_config():
    """Configuration for a loopback session with shortened timings."""
    config = Config()
    config.link.LINK_LOCAL_HOST = "127.0.0.1"
    config.link.LINK_LOCAL_PORT = 0
    config.link.LINK_PEER_ADDRESS = "127.0.0.1"
    config.link.LINK_PEER_PORT = 9
    config.heartbeat.HEARTBEAT_INTERVAL_S = 0.05
    config.heartbeat.HEARTBEAT_STALENESS_S = 0.2
    config.telemetry.TELEMETRY_VOLTAGE_PERIOD_S = 0.5
    config.telemetry.TELEMETRY_CONFIG_TO_START_DELAY_S = 0.01
    config.telemetry.TELEMETRY_START_TO_STOP_DELAY_S = 0.01
    config.height_sensor.HEIGHT_SENSOR_ATTEMPT_GAP_S = 0.02
    config.height_sensor.HEIGHT_SENSOR_TIMEOUT_S = 0.3
    config.flight.FLIGHT_COMMAND_RATE_HZ = 200.0
    config.flight.FLIGHT_ARMING_PACKETS = 10
    config.flight.FLIGHT_HIGH_LEVEL_ENABLE_DELAY_S = 0.01
    config.flight.FLIGHT_LANDING_STEP_S = 0.01
    config.flight.FLIGHT_LANDING_HOLD_S = 0.02
    config.flight.FLIGHT_EMERGENCY_RESTART_DELAY_S = 0.05
    return config


@pytest.fixture(autouse=True)
def reset_link_service():
    """Make sure no test leaks the global link service into the next one."""
    dependencies._link_service = None
    yield
    dependencies._link_service = None
