"""Configuration loading for the serial bridge."""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from mycowood.shared.config import get_config_path, get_log_level, load_yaml_config
from mycowood.shared.disk_check import CRITICAL_THRESHOLD_PERCENT

logger = logging.getLogger(__name__)


@dataclass
class SerialConfig:
    """Device connection settings."""
    port: str = "/dev/ttyUSB0"
    baudrate: int = 115200
    reconnect_initial: float = 1.0
    reconnect_max: float = 30.0


@dataclass
class LogConfig:
    """CSV log settings. A disk_threshold of None disables the disk check."""
    path: str = "mycowood_logs.csv"
    disk_threshold: Optional[float] = CRITICAL_THRESHOLD_PERCENT


@dataclass
class HubConfig:
    """Live broadcast settings."""
    buffer_size: int = 32


@dataclass
class WebConfig:
    """HTTP/websocket listener settings."""
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class Config:
    """Main configuration."""
    serial: SerialConfig = field(default_factory=SerialConfig)
    log: LogConfig = field(default_factory=LogConfig)
    hub: HubConfig = field(default_factory=HubConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create config from a parsed YAML dictionary."""
        serial_data = data.get("serial", {}) or {}
        log_data = data.get("log", {}) or {}
        hub_data = data.get("hub", {}) or {}
        web_data = data.get("web", {}) or {}

        return cls(
            serial=SerialConfig(
                port=serial_data.get("port", "/dev/ttyUSB0"),
                baudrate=int(serial_data.get("baudrate", 115200)),
                reconnect_initial=float(serial_data.get("reconnect_initial", 1.0)),
                reconnect_max=float(serial_data.get("reconnect_max", 30.0)),
            ),
            log=LogConfig(
                path=log_data.get("path", "mycowood_logs.csv"),
                disk_threshold=log_data.get("disk_threshold", CRITICAL_THRESHOLD_PERCENT),
            ),
            hub=HubConfig(
                buffer_size=int(hub_data.get("buffer_size", 32)),
            ),
            web=WebConfig(
                host=web_data.get("host", "0.0.0.0"),
                port=int(web_data.get("port", 3000)),
            ),
            log_level=get_log_level(data),
        )

    def apply_env(self) -> "Config":
        """Override settings from MYCOWOOD_* environment variables."""
        port = os.getenv("MYCOWOOD_SERIAL_PORT")
        if port:
            self.serial.port = port
        baudrate = os.getenv("MYCOWOOD_BAUDRATE")
        if baudrate:
            self.serial.baudrate = int(baudrate)
        log_path = os.getenv("MYCOWOOD_LOG_PATH")
        if log_path:
            self.log.path = log_path
        http_port = os.getenv("MYCOWOOD_HTTP_PORT")
        if http_port:
            self.web.port = int(http_port)
        return self


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to config file. If None, looks for bridge.yaml
            (or bridge-$MYCOWOOD_ENV.yaml) in the repo's config directory
            and falls back to defaults when it is missing.

    Returns:
        Config object with loaded settings.

    Raises:
        FileNotFoundError: If an explicit config_path doesn't exist.
    """
    load_dotenv()

    if config_path is None:
        default_path = get_config_path("bridge")
        if default_path.exists():
            data = load_yaml_config(default_path, load_env=False)
        else:
            logger.info(f"No config at {default_path}, using defaults")
            data = {}
    else:
        data = load_yaml_config(config_path, load_env=False)

    return Config.from_dict(data).apply_env()
