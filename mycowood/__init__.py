"""MycoWood grow chamber bridge: serial telemetry to live dashboards and CSV."""

__version__ = "0.1.0"
