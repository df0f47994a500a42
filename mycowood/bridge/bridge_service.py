"""Serial bridge service - main orchestrator."""

import asyncio
import logging
import signal
import sys
from typing import Optional

from aiohttp import web

from mycowood.shared.reporting import DEVICE, OperationalReporter

from .config import Config, load_config
from .hub import BroadcastHub
from .ingestion import IngestionLoop, Opener
from .log_writer import CsvLogWriter
from .relay import CommandRelay
from .web import BridgeWebServer

logger = logging.getLogger(__name__)


class SerialBridge:
    """Bridges the grow chamber controller to dashboards and the CSV log."""

    def __init__(self, config: Config, opener: Optional[Opener] = None):
        """Initialize the bridge service.

        Args:
            config: Configuration object.
            opener: Optional device opener, for running without hardware.
        """
        self.config = config
        self.opener = opener
        self.reporter = OperationalReporter()
        self.relay: Optional[CommandRelay] = None
        self.hub: Optional[BroadcastHub] = None
        self.log_writer: Optional[CsvLogWriter] = None
        self.ingestion: Optional[IngestionLoop] = None
        self._runner: Optional[web.AppRunner] = None
        self._ingestion_task: Optional[asyncio.Task] = None
        self._running = False

    def _setup_signal_handlers(self):
        """Set up signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            signame = signal.Signals(signum).name
            logger.info(f"Received {signame}, shutting down...")
            self._running = False

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

    async def start(self):
        """Create the components, open the log and start serving."""
        self.log_writer = CsvLogWriter(
            self.config.log.path,
            self.reporter,
            disk_threshold=self.config.log.disk_threshold,
        )
        self.log_writer.ensure_initialized()
        await self.log_writer.start()

        self.relay = CommandRelay(self.reporter)
        self.relay.start()

        self.hub = BroadcastHub(self.relay, buffer_size=self.config.hub.buffer_size)

        self.ingestion = IngestionLoop(
            self.config.serial,
            self.hub,
            self.log_writer,
            self.relay,
            self.reporter,
            opener=self.opener,
        )
        self._ingestion_task = asyncio.create_task(self.ingestion.run(), name="ingestion")
        self._ingestion_task.add_done_callback(self._on_ingestion_done)

        server = BridgeWebServer(self.hub, self.log_writer, self.reporter, self.ingestion)
        self._runner = web.AppRunner(server.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.web.host, self.config.web.port)
        await site.start()

        logger.info(
            f"MycoWood bridge running on http://{self.config.web.host}:{self.config.web.port}/ "
            f"logging to {self.config.log.path}"
        )

    def _on_ingestion_done(self, task: asyncio.Task):
        """Report an ingestion loop that ended with an exception and stop the service."""
        if task.cancelled() or task.exception() is None:
            return
        self.reporter.report(DEVICE, "Ingestion loop stopped unexpectedly", task.exception())
        self._running = False

    async def stop(self):
        """Shut down in dependency order; queued log rows are still written."""
        if self.ingestion:
            self.ingestion.stop()
        if self._ingestion_task:
            task, self._ingestion_task = self._ingestion_task, None
            task.cancel()
            # A loop that already died was reported by _on_ingestion_done
            await asyncio.gather(task, return_exceptions=True)

        if self.hub:
            self.hub.close()

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        if self.relay:
            await self.relay.close()

        if self.log_writer:
            await self.log_writer.close()

        logger.info("MycoWood bridge stopped.")

    async def run(self):
        """Run the bridge service until SIGINT or SIGTERM."""
        self._setup_signal_handlers()
        self._running = True

        await self.start()
        try:
            while self._running:
                await asyncio.sleep(1.0)
        except asyncio.CancelledError:
            pass
        finally:
            await self.stop()


def run_bridge(config_path: Optional[str] = None):
    """Run the serial bridge service.

    Args:
        config_path: Optional path to config file.
    """
    from mycowood.shared.logging import setup_logging

    config = load_config(config_path)
    setup_logging(config.log_level)

    logger.info("Starting MycoWood bridge...")

    bridge = SerialBridge(config)

    try:
        asyncio.run(bridge.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
