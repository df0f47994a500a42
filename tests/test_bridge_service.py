"""Tests for the bridge service lifecycle."""

import asyncio

import pytest

from mycowood.bridge.bridge_service import SerialBridge
from mycowood.bridge.config import Config, LogConfig, WebConfig
from mycowood.bridge.ingestion import LinkState
from mycowood.bridge.log_writer import LOG_HEADER
from mycowood.bridge.relay import CommandDeliveryError
from mycowood.shared.reporting import DEVICE

from .conftest import VALID_FRAME, FakeSerialWriter, wait_for


class DeviceOpener:
    """Returns each prepared connection once, then fails like an absent port."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self, config):
        self.calls += 1
        if not self.outcomes:
            raise OSError("no device")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_reader(*lines: bytes, eof: bool = False) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data(line + b"\r\n")
    if eof:
        reader.feed_eof()
    return reader


@pytest.fixture
def config(serial_config, log_path) -> Config:
    return Config(
        serial=serial_config,
        log=LogConfig(path=str(log_path), disk_threshold=None),
        web=WebConfig(host="127.0.0.1", port=0),
    )


@pytest.mark.asyncio
async def test_stop_writes_queued_rows_and_closes_components(config, log_path, record):
    """Test that shutdown drains the log and refuses further appends and commands."""
    writer = FakeSerialWriter()
    bridge = SerialBridge(config, opener=DeviceOpener((make_reader(VALID_FRAME, VALID_FRAME), writer)))

    await bridge.start()
    await wait_for(lambda: bridge.ingestion.records_accepted == 2)

    await bridge.relay.send("MUTE")
    assert bytes(writer.data) == b"MUTE\n"

    await bridge.stop()

    lines = log_path.read_text().splitlines()
    assert lines[0] == LOG_HEADER
    assert len(lines) == 3
    assert bridge.log_writer.append(record) is False
    with pytest.raises(CommandDeliveryError):
        await bridge.relay.send("UNMUTE")
    with pytest.raises(RuntimeError):
        bridge.hub.subscribe()
    assert writer.closed
    assert bridge.ingestion.state == LinkState.DISCONNECTED
    assert bridge.reporter.count(DEVICE) == 0


@pytest.mark.asyncio
async def test_stop_after_ingestion_failure(config, log_path, record):
    """Test that a crashed ingestion loop is reported and shutdown still completes."""
    opener = DeviceOpener(
        (make_reader(VALID_FRAME, eof=True), FakeSerialWriter()),
        RuntimeError("driver bug"),
    )
    bridge = SerialBridge(config, opener=opener)

    await bridge.start()
    await wait_for(lambda: bridge.reporter.count(DEVICE) == 2)

    assert "driver bug" in bridge.reporter.last(DEVICE).message
    assert bridge.ingestion.state == LinkState.DISCONNECTED

    await bridge.stop()

    lines = log_path.read_text().splitlines()
    assert len(lines) == 2
    assert lines[1].endswith('"Fruiting",24.5,61.2,38,"NONE"')
    assert bridge.log_writer.append(record) is False
    with pytest.raises(CommandDeliveryError):
        await bridge.relay.send("MUTE")
