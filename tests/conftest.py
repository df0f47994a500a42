"""Pytest fixtures for the MycoWood bridge tests."""

import asyncio
from datetime import datetime

import pytest
import serial

from mycowood.bridge.config import SerialConfig
from mycowood.shared.models import TelemetryRecord
from mycowood.shared.reporting import OperationalReporter

VALID_FRAME = (
    b'{"mode":"Fruiting","temperature":24.5,"humidity":61.2,"soil":38,"alarm":"NONE"}'
)
TRUNCATED_FRAME = b'{"mode":"Fruiting"'

CAPTURED_AT = datetime(2026, 2, 25, 22, 30, 5)


class FakeSerialWriter:
    """Stands in for the write half of the serial stream pair."""

    def __init__(self, fail: bool = False):
        self.data = bytearray()
        self.writes = []
        self.fail = fail
        self.closed = False

    def write(self, data: bytes):
        if self.fail:
            raise serial.SerialException("write failed")
        self.writes.append(bytes(data))
        self.data.extend(data)

    async def drain(self):
        await asyncio.sleep(0)

    def close(self):
        self.closed = True


async def wait_for(condition, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def reporter() -> OperationalReporter:
    return OperationalReporter()


@pytest.fixture
def record() -> TelemetryRecord:
    return TelemetryRecord(
        temperature=24.5,
        humidity=61.2,
        soil_moisture=38,
        mode="Fruiting",
        alarm_state="NONE",
        captured_at=CAPTURED_AT,
    )


@pytest.fixture
def serial_config() -> SerialConfig:
    return SerialConfig(port="test://device", reconnect_initial=0.01, reconnect_max=0.05)


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "logs" / "mycowood_logs.csv"
