"""HTTP and websocket surface for dashboards.

Routes:
    GET /ws        live telemetry push, inbound commands
    GET /api/logs  full CSV log dump
    GET /health    link state, subscriber count, reported errors
"""

import asyncio
import json
import logging
from typing import Optional, Set

from aiohttp import WSCloseCode, WSMsgType, web

from mycowood.shared.reporting import OperationalReporter

from .hub import BroadcastHub, Subscriber
from .ingestion import IngestionLoop
from .log_writer import CsvLogWriter
from .relay import CommandDeliveryError

logger = logging.getLogger(__name__)

COMMAND_EVENT = "sendCommand"


def parse_command(text: str) -> Optional[str]:
    """Extract a command from a websocket text frame.

    Accepts ``{"event": "sendCommand", "data": "MUTE"}`` or the bare command.
    Returns None for JSON objects carrying some other event.
    """
    try:
        payload = json.loads(text)
    except ValueError:
        return text
    if isinstance(payload, dict):
        if payload.get("event") != COMMAND_EVENT or payload.get("data") is None:
            return None
        return str(payload["data"])
    # A bare JSON scalar such as a number is still a command
    return text


class BridgeWebServer:
    """aiohttp application exposing the hub and the log."""

    def __init__(
        self,
        hub: BroadcastHub,
        log_writer: CsvLogWriter,
        reporter: OperationalReporter,
        ingestion: Optional[IngestionLoop] = None,
    ):
        self.hub = hub
        self.log_writer = log_writer
        self.reporter = reporter
        self.ingestion = ingestion
        self.websockets: Set[web.WebSocketResponse] = set()
        self._command_tasks: Set[asyncio.Task] = set()

    def create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        app.router.add_get("/ws", self.handle_ws)
        app.router.add_get("/api/logs", self.handle_logs)
        app.router.add_get("/health", self.handle_health)
        app.on_shutdown.append(self._on_shutdown)
        return app

    async def handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        """Push every published record to this dashboard and relay its commands."""
        ws = web.WebSocketResponse(heartbeat=30.0)
        await ws.prepare(request)

        try:
            subscriber = self.hub.subscribe()
        except RuntimeError:
            await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Shutting down")
            return ws

        self.websockets.add(ws)
        pump = asyncio.create_task(self._pump(subscriber, ws))
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    # The relay queues in call order, so spawning keeps commands FIFO
                    # while this loop keeps answering pings
                    task = asyncio.create_task(self._handle_text(subscriber, msg.data))
                    self._command_tasks.add(task)
                    task.add_done_callback(self._command_tasks.discard)
                elif msg.type == WSMsgType.ERROR:
                    logger.debug(f"Websocket error from subscriber {subscriber.id}: {ws.exception()}")
        finally:
            self.hub.unsubscribe(subscriber)
            pump.cancel()
            try:
                await pump
            except asyncio.CancelledError:
                pass
            self.websockets.discard(ws)

        return ws

    async def _handle_text(self, subscriber: Subscriber, text: str):
        command = parse_command(text)
        if command is None:
            logger.debug(f"Ignoring frame from subscriber {subscriber.id}: {text[:80]}")
            return
        try:
            await self.hub.on_command(subscriber, command)
        except CommandDeliveryError as e:
            logger.warning(f"Command {command!r} from subscriber {subscriber.id} not delivered: {e}")

    async def _pump(self, subscriber: Subscriber, ws: web.WebSocketResponse):
        while True:
            message = await subscriber.get()
            if message is None:
                break
            try:
                await ws.send_str(message)
            except (ConnectionError, RuntimeError) as e:
                logger.debug(f"Subscriber {subscriber.id} went away: {e}")
                break
        if not ws.closed:
            await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")

    async def handle_logs(self, request: web.Request) -> web.Response:
        """Return the whole CSV log."""
        try:
            data = await self.log_writer.read_all()
        except OSError as e:
            logger.error(f"Error reading log file: {e}")
            return web.Response(status=500, text="Error reading log file.")
        return web.Response(text=data, content_type="text/csv")

    async def handle_health(self, request: web.Request) -> web.Response:
        """Return bridge status as JSON."""
        return web.json_response({
            "link_state": self.ingestion.state.value if self.ingestion else None,
            "subscribers": self.hub.subscriber_count,
            "published": self.hub.published,
            "rows_written": self.log_writer.rows_written,
            "errors": self.reporter.snapshot(),
        })

    async def _on_shutdown(self, app: web.Application):
        for ws in list(self.websockets):
            await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")
