"""Disk space guard for the CSV log.

The log writer calls this before each append so a nearly full card reports a
clear persistence error instead of leaving a truncated row behind.
"""

import logging
import shutil
from pathlib import Path
from typing import Tuple, Union

logger = logging.getLogger(__name__)

CRITICAL_THRESHOLD_PERCENT = 95.0


class DiskFullError(OSError):
    """Raised when disk is too full to safely append to the log."""

    pass


def get_disk_usage(path: Union[str, Path]) -> Tuple[int, int, float]:
    """Get disk usage for the filesystem holding ``path``.

    Returns:
        Tuple of (used_bytes, total_bytes, percent_used)
    """
    usage = shutil.disk_usage(str(path))
    percent = (usage.used / usage.total) * 100 if usage.total else 100.0
    return usage.used, usage.total, percent


def require_disk_space(
    path: Union[str, Path], threshold: float = CRITICAL_THRESHOLD_PERCENT
) -> None:
    """Raise DiskFullError if the filesystem holding ``path`` is above threshold.

    Args:
        path: A file or directory on the filesystem to check.
        threshold: Percentage threshold above which writes should stop.

    Raises:
        DiskFullError: If disk usage exceeds threshold.
    """
    used, total, percent = get_disk_usage(path)
    if percent >= threshold:
        used_mb = used / (1024**2)
        total_mb = total / (1024**2)
        raise DiskFullError(
            f"Disk usage critical: {percent:.1f}% ({used_mb:.0f}/{total_mb:.0f} MB). "
            f"Log appends suspended until usage drops below {threshold}%."
        )
