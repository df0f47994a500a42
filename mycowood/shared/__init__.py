"""Shared utilities for MycoWood services."""

from .models import TelemetryRecord
from .config import load_yaml_config, get_config_path
from .disk_check import DiskFullError, require_disk_space
from .logging import setup_logging
from .reporting import OperationalReporter

__all__ = [
    "TelemetryRecord",
    "load_yaml_config",
    "get_config_path",
    "DiskFullError",
    "require_disk_space",
    "setup_logging",
    "OperationalReporter",
]
