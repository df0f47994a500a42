"""Terminal display service."""

from .terminal_monitor import TerminalMonitor


def main():
    """Entry point for display service."""
    import argparse
    import asyncio
    from rich.console import Console
    from mycowood.bridge.config import load_config
    from mycowood.shared.logging import setup_logging

    parser = argparse.ArgumentParser(description="MycoWood terminal monitor")
    parser.add_argument("-c", "--config", help="Path to bridge YAML config")
    parser.add_argument("--url", help="Websocket URL of the bridge's live feed")
    args = parser.parse_args()

    config = load_config(args.config)
    console = Console()
    setup_logging(config.log_level, console=console)

    url = args.url or f"ws://localhost:{config.web.port}/ws"
    monitor = TerminalMonitor(url, console=console)

    try:
        asyncio.run(monitor.run())
    except KeyboardInterrupt:
        pass


__all__ = ["TerminalMonitor", "main"]
