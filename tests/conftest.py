"""Pytest configuration and shared fixtures for telemetry relay tests."""

import socket
import time
from datetime import datetime, timezone

import pytest

from telemetry_relay.config import Settings
from telemetry_relay.data_interface.telemetry_data import TelemetryRecord


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingSubscriber:
    """Broadcaster subscriber that keeps every (event, payload) it is sent."""

    def __init__(self, fail=False):
        self.fail = fail
        self.events = []

    def send(self, event, payload):
        if self.fail:
            raise ConnectionError("subscriber went away")
        self.events.append((event, payload))

    def names(self):
        return [name for name, _ in self.events]


def wait_for(predicate, timeout=5.0, interval=0.01):
    """Poll until predicate() is truthy or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


@pytest.fixture
def free_port():
    """Find and return a free TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sample_record():
    """Return a sample telemetry record for testing."""
    return TelemetryRecord(
        timestamp=datetime(2024, 5, 1, 12, 30, 15, 250000, tzinfo=timezone.utc),
        altitude=35000.0,
        speed_x=450.0,
        speed_y=360.0,
        speed_z=270.0,
        heading=90.0,
        latitude=40.7128,
        longitude=-74.006,
        temperature=15.5,
        battery_percentage=87.25,
    )


@pytest.fixture
def sample_payload(sample_record):
    return sample_record.to_dict()


@pytest.fixture
def relay_settings(free_port):
    """Settings for an in-process relay on ephemeral ports."""
    return Settings(
        UDP_HOST="127.0.0.1",
        UDP_PORT=0,
        WS_HOST="127.0.0.1",
        WS_PORT=free_port,
        AUTOSTART_SIMULATOR=False,
        STATUS_INTERVAL_S=0.2,
    )


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Cleanup fixture that runs after each test."""
    yield
    # Wait a bit for sockets to close
    time.sleep(0.05)
