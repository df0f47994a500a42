"""Tests for configuration loading."""

import pytest

from mycowood.bridge import config as bridge_config
from mycowood.bridge.config import Config, load_config
from mycowood.shared.config import get_config_path, get_log_level, load_yaml_config

CONFIG_YAML = """
serial:
  port: COM5
  baudrate: 9600
  reconnect_max: 10
log:
  path: /var/lib/mycowood/logs.csv
  disk_threshold: null
hub:
  buffer_size: 8
web:
  port: 8080
log_level: debug
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MYCOWOOD_SERIAL_PORT", "MYCOWOOD_BAUDRATE", "MYCOWOOD_LOG_PATH",
                 "MYCOWOOD_HTTP_PORT", "MYCOWOOD_ENV"):
        monkeypatch.delenv(name, raising=False)


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "bridge.yaml"
    path.write_text(CONFIG_YAML)

    config = load_config(str(path))

    assert config.serial.port == "COM5"
    assert config.serial.baudrate == 9600
    assert config.serial.reconnect_initial == 1.0
    assert config.serial.reconnect_max == 10.0
    assert config.log.path == "/var/lib/mycowood/logs.csv"
    assert config.log.disk_threshold is None
    assert config.hub.buffer_size == 8
    assert config.web.host == "0.0.0.0"
    assert config.web.port == 8080
    assert config.log_level == "DEBUG"


def test_environment_overrides(tmp_path, monkeypatch):
    path = tmp_path / "bridge.yaml"
    path.write_text(CONFIG_YAML)
    monkeypatch.setenv("MYCOWOOD_SERIAL_PORT", "/dev/ttyACM0")
    monkeypatch.setenv("MYCOWOOD_HTTP_PORT", "3001")
    monkeypatch.setenv("MYCOWOOD_LOG_PATH", "elsewhere.csv")

    config = load_config(str(path))

    assert config.serial.port == "/dev/ttyACM0"
    assert config.web.port == 3001
    assert config.log.path == "elsewhere.csv"


def test_missing_explicit_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_defaults_without_config_file(tmp_path, monkeypatch):
    monkeypatch.setattr(bridge_config, "get_config_path", lambda service: tmp_path / service)

    config = load_config()

    assert config == Config()
    assert config.serial.baudrate == 115200
    assert config.web.port == 3000
    assert config.log.path == "mycowood_logs.csv"


def test_get_config_path(tmp_path, monkeypatch):
    assert get_config_path("bridge", config_dir=tmp_path) == tmp_path / "bridge.yaml"
    monkeypatch.setenv("MYCOWOOD_ENV", "chamber2")
    assert get_config_path("bridge", config_dir=tmp_path) == tmp_path / "bridge-chamber2.yaml"


def test_load_yaml_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "bridge.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_yaml_config(path, load_env=False)


def test_empty_config_file_gives_defaults(tmp_path):
    path = tmp_path / "bridge.yaml"
    path.write_text("")
    assert load_config(str(path)) == Config()


def test_get_log_level_default():
    assert get_log_level({}) == "INFO"
    assert get_log_level({"log_level": "warning"}) == "WARNING"


def test_setup_logging_quiets_access_log():
    import logging

    from mycowood.shared.logging import setup_logging

    setup_logging("DEBUG", quiet_loggers=["serial"])

    assert logging.getLogger("aiohttp.access").level == logging.WARNING
    assert logging.getLogger("serial").level == logging.WARNING
