"""Operational error reporting.

Persistence and device-connection failures are the only conditions surfaced to
the operator. Components hand them to an OperationalReporter instead of
raising, so one failed append or a dropped serial link never stops the
telemetry flow.
"""

import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

PERSISTENCE = "persistence"
DEVICE = "device"


@dataclass
class ReportedError:
    """Most recent failure seen for a category."""
    category: str
    message: str
    timestamp: float


class OperationalReporter:
    """Logs operational failures and keeps per-category counts for /health."""

    def __init__(self, name: str = "mycowood.operational"):
        self._logger = logging.getLogger(name)
        self._counts: Counter = Counter()
        self._last: Dict[str, ReportedError] = {}

    def report(self, category: str, message: str, exc: Optional[BaseException] = None):
        """Record a failure and log it at ERROR level."""
        if exc is not None:
            message = f"{message}: {exc}"
        self._counts[category] += 1
        self._last[category] = ReportedError(category, message, time.time())
        self._logger.error(f"[{category}] {message}")

    def count(self, category: str) -> int:
        """Number of failures reported under category."""
        return self._counts[category]

    def last(self, category: str) -> Optional[ReportedError]:
        """Most recent failure reported under category, if any."""
        return self._last.get(category)

    def snapshot(self) -> Dict[str, Any]:
        """Summary of reported errors, keyed by category."""
        return {
            category: {
                "count": self._counts[category],
                "last_message": self._last[category].message,
                "last_ts": self._last[category].timestamp,
            }
            for category in self._counts
        }
