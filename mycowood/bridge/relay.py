"""Command relay from dashboards to the device.

Commands are opaque strings. The relay only frames them as lines and writes
them one at a time, in arrival order, on the device connection's write half.
"""

import asyncio
import logging
from typing import Optional, Tuple

from mycowood.shared.reporting import DEVICE, OperationalReporter

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"


class CommandDeliveryError(Exception):
    """Raised to a sender whose command could not be written to the device."""

    pass


def frame_command(command: str) -> bytes:
    """Encode a command as one device line."""
    return (str(command).rstrip("\r\n") + LINE_TERMINATOR).encode("utf-8")


class CommandRelay:
    """Serializes commands from any number of subscribers onto the device."""

    def __init__(self, reporter: OperationalReporter):
        self.reporter = reporter
        self._queue: "asyncio.Queue[Tuple[bytes, asyncio.Future]]" = asyncio.Queue()
        self._writer: Optional[asyncio.StreamWriter] = None
        self._attached = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self.sent = 0

    def start(self):
        """Start the single writer task."""
        if self._task is None:
            self._task = asyncio.create_task(self._writer_loop(), name="command-relay")

    def attach(self, writer: asyncio.StreamWriter):
        """Use ``writer`` for outgoing commands. Called when the device connects."""
        self._writer = writer
        self._attached.set()

    def detach(self):
        """Stop writing until the next attach. Queued commands keep waiting."""
        self._writer = None
        self._attached.clear()

    @property
    def is_attached(self) -> bool:
        return self._writer is not None

    async def send(self, command: str):
        """Write ``command`` to the device after every command queued before it.

        Raises:
            CommandDeliveryError: If the relay is closed or the write failed.
        """
        if self._closed:
            raise CommandDeliveryError("Command relay is closed")
        done = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((frame_command(command), done))
        if not self.is_attached:
            logger.info(f"Device not connected, {command!r} queued")
        await done

    async def close(self):
        """Stop the writer task. Commands still queued fail."""
        self._closed = True
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        while not self._queue.empty():
            _, done = self._queue.get_nowait()
            if not done.done():
                done.set_exception(CommandDeliveryError("Command relay closed"))
        self.detach()

    async def _writer_loop(self):
        while True:
            line, done = await self._queue.get()
            try:
                # A sender that went away still gets its command delivered
                while self._writer is None:
                    await self._attached.wait()
                await self._write(line, done)
            except asyncio.CancelledError:
                if not done.done():
                    done.set_exception(CommandDeliveryError("Command relay closed"))
                raise
            finally:
                self._queue.task_done()

    async def _write(self, line: bytes, done: asyncio.Future):
        writer = self._writer
        try:
            writer.write(line)
            await writer.drain()
        except Exception as e:
            self.reporter.report(DEVICE, f"Failed to write command {line!r}", e)
            if not done.done():
                done.set_exception(CommandDeliveryError(str(e)))
            return
        self.sent += 1
        logger.debug(f"Sent command to device: {line!r}")
        if not done.done():
            done.set_result(None)
