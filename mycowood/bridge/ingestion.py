"""Ingestion loop: owns the serial connection and drives every frame through
the decoder, the broadcast hub and the CSV log."""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple

import serial
import serial_asyncio

from mycowood.shared.models import TelemetryRecord
from mycowood.shared.reporting import DEVICE, PERSISTENCE, OperationalReporter

from .config import SerialConfig
from .decoder import decode
from .hub import BroadcastHub
from .log_writer import CsvLogWriter
from .relay import CommandRelay

logger = logging.getLogger(__name__)

StreamPair = Tuple[asyncio.StreamReader, asyncio.StreamWriter]
Opener = Callable[[SerialConfig], Awaitable[StreamPair]]

# Failures that mean the link is gone, as opposed to a bad frame
LINK_ERRORS = (OSError, serial.SerialException, ConnectionError, asyncio.IncompleteReadError)


class LinkState(Enum):
    """Device link states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    ERROR = "error"


async def open_serial(config: SerialConfig) -> StreamPair:
    """Open the device as an asyncio stream pair."""
    return await serial_asyncio.open_serial_connection(
        url=config.port, baudrate=config.baudrate
    )


class IngestionLoop:
    """Reads the device line by line for the lifetime of the process."""

    def __init__(
        self,
        config: SerialConfig,
        hub: BroadcastHub,
        log_writer: CsvLogWriter,
        relay: CommandRelay,
        reporter: OperationalReporter,
        opener: Optional[Opener] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the loop.

        Args:
            config: Serial port and reconnect settings.
            hub: Receives every accepted record for live fan-out.
            log_writer: Receives every accepted record for the CSV log.
            relay: Gets the write half of each new connection.
            reporter: Receives device connection failures.
            opener: Coroutine opening the device; defaults to the serial port.
            clock: Source of receipt timestamps.
        """
        self.config = config
        self.hub = hub
        self.log_writer = log_writer
        self.relay = relay
        self.reporter = reporter
        self.opener = opener or open_serial
        self.clock = clock

        self.state = LinkState.DISCONNECTED
        self._running = False
        self._writer: Optional[asyncio.StreamWriter] = None
        self.frames_seen = 0
        self.records_accepted = 0
        self.connections = 0

    def _set_state(self, state: LinkState):
        if state != self.state:
            logger.info(f"Device link {self.state.value} -> {state.value}")
            self.state = state

    def handle_line(self, raw_line: bytes) -> Optional[TelemetryRecord]:
        """Decode one line and hand the record to the hub and the log.

        Publishing and appending are guarded separately so a failure in one
        never keeps the record from the other.
        """
        self.frames_seen += 1
        record = decode(raw_line, captured_at=self.clock())
        if record is None:
            logger.debug(f"Dropped frame: {raw_line[:80]!r}")
            return None

        self.records_accepted += 1
        try:
            self.hub.publish(record)
        except Exception as e:
            logger.error(f"Failed to publish record: {e}")
        try:
            self.log_writer.append(record)
        except Exception as e:
            self.reporter.report(PERSISTENCE, "Failed to queue record for the log", e)
        return record

    async def run(self):
        """Connect, stream, and reconnect with backoff until stopped."""
        self._running = True
        delay = self.config.reconnect_initial
        try:
            while self._running:
                self._set_state(LinkState.CONNECTING)
                try:
                    reader, writer = await self.opener(self.config)
                except LINK_ERRORS as e:
                    self._set_state(LinkState.ERROR)
                    self.reporter.report(DEVICE, f"Could not open {self.config.port}", e)
                else:
                    delay = self.config.reconnect_initial
                    await self._stream(reader, writer)

                if not self._running:
                    break
                logger.info(f"Reconnecting to {self.config.port} in {delay:.1f}s...")
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.config.reconnect_max)
        finally:
            self._running = False
            self._set_state(LinkState.DISCONNECTED)

    async def _stream(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.connections += 1
        self._writer = writer
        self.relay.attach(writer)
        self._set_state(LinkState.STREAMING)
        logger.info(f"Streaming from {self.config.port} at {self.config.baudrate} baud")
        try:
            while self._running:
                try:
                    line = await reader.readline()
                except ValueError:
                    # Line longer than the stream limit; the reader has discarded it
                    logger.debug("Dropped over-long frame")
                    continue
                if not line:
                    if not self._running:
                        break
                    raise ConnectionError("device closed the stream")
                self.handle_line(line)
        except LINK_ERRORS as e:
            self._set_state(LinkState.ERROR)
            self.reporter.report(DEVICE, f"Lost connection to {self.config.port}", e)
        finally:
            self.relay.detach()
            self._writer = None
            writer.close()

    def stop(self):
        """Ask the loop to finish. Cancel the task running run() to interrupt a read."""
        self._running = False
        if self._writer is not None:
            self._writer.close()
