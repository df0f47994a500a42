"""Logging configuration utilities."""

import logging
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    quiet_loggers: Optional[List[str]] = None,
    console: Optional[Console] = None,
) -> None:
    """Configure logging for MycoWood services.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_string: Custom format string for log messages.
        quiet_loggers: List of logger names to set to WARNING level.
        console: Route records through Rich on this console. The terminal
            monitor passes its own console so log lines print above the
            live display instead of tearing it.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if console is not None:
        logging.basicConfig(
            level=log_level,
            format=format_string or "%(name)s - %(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    else:
        logging.basicConfig(
            level=log_level,
            format=format_string or DEFAULT_FORMAT,
        )

    # The access log writes one line per /api/logs poll
    default_quiet = ["aiohttp.access", "asyncio"]
    quiet_loggers = (quiet_loggers or []) + default_quiet

    for logger_name in quiet_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
