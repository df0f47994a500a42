"""Configuration loading utilities.

Each service reads ``config/<service>.yaml`` at the repo root. Setting
MYCOWOOD_ENV selects ``config/<service>-<env>.yaml`` instead, so one checkout
can drive several chambers.
"""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv

REPO_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


def get_environment() -> Optional[str]:
    """Name of the active environment from MYCOWOOD_ENV, if any."""
    return os.getenv("MYCOWOOD_ENV") or None


def get_config_path(
    service: str,
    config_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """Get the config file path for a service.

    Args:
        service: Service name, e.g. 'bridge'.
        config_dir: Directory holding config files. Defaults to the repo's
            config directory.

    Returns:
        Path to the configuration file (which may not exist).
    """
    config_dir = Path(config_dir) if config_dir is not None else REPO_CONFIG_DIR
    env = get_environment()
    name = f"{service}-{env}.yaml" if env else f"{service}.yaml"
    return config_dir / name


def load_yaml_config(
    config_path: Union[str, Path],
    load_env: bool = True,
) -> dict:
    """Load a YAML configuration file.

    Args:
        config_path: Path to config file.
        load_env: Whether to load .env file first.

    Returns:
        Configuration dictionary, empty for an empty file.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
        ValueError: If the top level of the file is not a mapping.
    """
    if load_env:
        load_dotenv()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return data


def get_log_level(config: dict) -> str:
    """Extract log level from config, defaulting to INFO."""
    return str(config.get("log_level", "INFO")).upper()
