"""
Terminal Monitor for the grow chamber.
Subscribes to the bridge's live feed and renders the latest reading with Rich.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import aiohttp
from rich.align import Align
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

logger = logging.getLogger(__name__)

ALARM_STYLES = {
    "NONE": "green",
    "WARNING": "yellow",
    "CRITICAL": "bold red",
}


class TerminalMonitor:
    """Live terminal view of the bridge's telemetry feed."""

    def __init__(
        self,
        url: str = "ws://localhost:3000/ws",
        reconnect_delay: float = 5.0,
        console: Optional[Console] = None,
    ):
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.console = console or Console()
        self.latest: Optional[Dict[str, Any]] = None
        self.received = 0
        self.connected = False
        self._running = False

    def handle_message(self, text: str) -> bool:
        """Update state from one websocket frame. Returns True if it was a reading."""
        try:
            message = json.loads(text)
        except ValueError:
            logger.debug(f"Ignoring non-JSON frame: {text[:80]}")
            return False
        if not isinstance(message, dict) or message.get("event") != "sensorData":
            return False
        data = message.get("data")
        if not isinstance(data, dict):
            return False
        self.latest = data
        self.received += 1
        return True

    def render(self) -> Panel:
        """Build the full display for the current state."""
        return Panel(
            Group(self._create_header(), self._create_readings_table()),
            title="MYCOWOOD",
            style="cyan",
        )

    def _create_header(self) -> Align:
        header = Text()
        header.append("GROW CHAMBER MONITOR", style="bold cyan")
        header.append(f" - {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}", style="white")
        if self.connected:
            header.append(" - LIVE", style="green")
        else:
            header.append(" - OFFLINE", style="red")
        return Align.center(header)

    def _create_readings_table(self) -> Table:
        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Channel", style="white", width=14)
        table.add_column("Value", style="white", width=16)
        table.add_column("Alert", style="white", width=8)

        data = self.latest
        if data is None:
            table.add_row("Waiting for data...", "---", "")
            return table

        rows = (
            ("Temperature", data.get("temperature"), "°C", data.get("tempAlert")),
            ("Humidity", data.get("humidity"), "%", data.get("humAlert")),
            ("Soil Moisture", data.get("soil"), "%", data.get("soilAlert")),
        )
        for name, value, unit, alert in rows:
            value_text = f"{value:.1f}{unit}" if isinstance(value, (int, float)) else "---"
            table.add_row(
                name,
                value_text,
                "ALERT" if alert else "",
                style="red" if alert else "green",
            )

        alarm = data.get("alarm") or "UNKNOWN"
        table.add_row("Mode", str(data.get("mode") or "---"), "", style="cyan")
        table.add_row("Alarm", alarm, "", style=ALARM_STYLES.get(alarm, "white"))
        if "muted" in data:
            table.add_row("Buzzer", "MUTED" if data["muted"] else "ON", "", style="white")
        if "capturedAt" in data:
            table.add_row("Updated", str(data["capturedAt"])[11:19], "", style="white")
        return table

    async def _listen(self, session: aiohttp.ClientSession, live: Live):
        async with session.ws_connect(self.url, heartbeat=30.0) as ws:
            self.connected = True
            logger.info(f"Connected to {self.url}")
            live.update(self.render())
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT and self.handle_message(msg.data):
                    live.update(self.render())
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    break

    async def run(self):
        """Follow the live feed until cancelled, reconnecting on failure."""
        self._running = True
        with Live(self.render(), console=self.console, refresh_per_second=4) as live:
            async with aiohttp.ClientSession() as session:
                while self._running:
                    try:
                        await self._listen(session, live)
                    except aiohttp.ClientError as e:
                        logger.warning(f"Feed unavailable: {e}")
                    self.connected = False
                    live.update(self.render())
                    if self._running:
                        await asyncio.sleep(self.reconnect_delay)

    def stop(self):
        self._running = False
