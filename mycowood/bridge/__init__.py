"""Serial bridge - streams grow chamber telemetry to dashboards and a CSV log."""

from .bridge_service import SerialBridge
from .decoder import decode
from .hub import BroadcastHub, Subscriber
from .ingestion import IngestionLoop, LinkState
from .log_writer import CsvLogWriter
from .relay import CommandDeliveryError, CommandRelay


def main():
    """Entry point for the serial bridge service."""
    import argparse

    parser = argparse.ArgumentParser(description="MycoWood serial bridge")
    parser.add_argument("-c", "--config", help="Path to bridge YAML config")
    args = parser.parse_args()

    from .bridge_service import run_bridge
    run_bridge(args.config)


__all__ = [
    "SerialBridge",
    "decode",
    "BroadcastHub",
    "Subscriber",
    "IngestionLoop",
    "LinkState",
    "CsvLogWriter",
    "CommandRelay",
    "CommandDeliveryError",
    "main",
]
