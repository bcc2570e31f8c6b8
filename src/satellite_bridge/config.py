"""Configuration management for the Satellite Bridge."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import yaml


@dataclass
class DeviceConfig:
    """Configuration for the satellite hub BLE connection."""

    names: List[str] = None  # any advertised name in this list is accepted
    mac: str = ""  # connect directly when set, skipping the name scan
    adapter: str = "hci0"
    user_service_uuid: str = "152f2e2d-2c2b-2a29-2827-262524232221"
    gyro_service_uuid: str = "100f0e0d-0c0b-0a09-0807-060504030201"
    accel_service_uuid: str = "201f1e1d-1c1b-1a19-1817-161514131211"
    impact_service_uuid: str = "302f2e2d-2c2b-2a29-2827-262524232221"
    scan_timeout_sec: float = 10.0
    reconnect_initial_sec: float = 1.0
    reconnect_max_sec: float = 20.0
    reconnect_jitter_sec: float = 0.5

    def __post_init__(self) -> None:
        if self.names is None:
            self.names = ["Dummy Data"]
        elif isinstance(self.names, str):
            self.names = [self.names]


@dataclass
class MatrixConfig:
    """How unset matrix cells are shown to snapshot consumers."""

    unset_display: str = "zero"  # zero or none

    @property
    def unset_value(self) -> Optional[float]:
        return None if self.unset_display == "none" else 0.0


@dataclass
class ExportConfig:
    """Configuration for CSV export."""

    dir: str = "./exports"
    export_on_stop: bool = False


@dataclass
class LoggingConfig:
    """Configuration for the NDJSON event log."""

    dir: str = "./logs"
    file_prefix: str = "satellites"
    mode: str = "regular"  # regular or verbose
    verbose_whitelist: List[str] = None

    def __post_init__(self) -> None:
        if self.verbose_whitelist is None:
            self.verbose_whitelist = []


@dataclass
class AppConfig:
    """Main application configuration."""

    device: DeviceConfig = None
    matrix: MatrixConfig = None
    export: ExportConfig = None
    logging: LoggingConfig = None

    def __post_init__(self) -> None:
        if self.device is None:
            self.device = DeviceConfig()
        if self.matrix is None:
            self.matrix = MatrixConfig()
        if self.export is None:
            self.export = ExportConfig()
        if self.logging is None:
            self.logging = LoggingConfig()


def load_config(config_path: str) -> AppConfig:
    """Load configuration from YAML file with environment variable support."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if not raw_config:
        raise ValueError(f"Empty or invalid configuration file: {config_path}")

    _substitute_env_vars(raw_config)

    config = AppConfig()

    if "device" in raw_config:
        config.device = DeviceConfig(**raw_config["device"])

    if "matrix" in raw_config:
        config.matrix = MatrixConfig(**raw_config["matrix"])

    if "export" in raw_config:
        config.export = ExportConfig(**raw_config["export"])

    if "logging" in raw_config:
        logging_data = raw_config["logging"]
        # whitelist may be written as a mapping of message names
        if isinstance(logging_data.get("verbose_whitelist"), dict):
            logging_data["verbose_whitelist"] = list(logging_data["verbose_whitelist"].keys())
        config.logging = LoggingConfig(**logging_data)

    return config


def _substitute_env_vars(data: Any) -> None:
    """Recursively substitute ${VAR} values from the environment."""
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                data[key] = os.getenv(value[2:-1], value)
            else:
                _substitute_env_vars(value)
    elif isinstance(data, list):
        for index, item in enumerate(data):
            if isinstance(item, str) and item.startswith("${") and item.endswith("}"):
                data[index] = os.getenv(item[2:-1], item)
            else:
                _substitute_env_vars(item)


def validate_config(config: AppConfig) -> List[str]:
    """Validate configuration and return list of validation errors."""
    errors = []

    device = config.device
    if not device.mac and not device.names:
        errors.append("device: either mac or at least one name is required")

    service_uuids = {
        "gyro_service_uuid": device.gyro_service_uuid,
        "accel_service_uuid": device.accel_service_uuid,
        "impact_service_uuid": device.impact_service_uuid,
    }
    for field_name, uuid in service_uuids.items():
        if not uuid:
            errors.append(f"device.{field_name} is required")

    populated = [u.lower() for u in service_uuids.values() if u]
    if len(set(populated)) != len(populated):
        errors.append("device: gyro, accel and impact service UUIDs must be distinct")

    if device.scan_timeout_sec <= 0:
        errors.append("device.scan_timeout_sec must be positive")
    if device.reconnect_initial_sec <= 0:
        errors.append("device.reconnect_initial_sec must be positive")
    if device.reconnect_max_sec < device.reconnect_initial_sec:
        errors.append("device.reconnect_max_sec must be >= reconnect_initial_sec")

    if config.matrix.unset_display not in ("zero", "none"):
        errors.append(f"matrix.unset_display must be 'zero' or 'none', got {config.matrix.unset_display!r}")

    if config.logging.mode not in ("regular", "verbose"):
        errors.append(f"logging.mode must be 'regular' or 'verbose', got {config.logging.mode!r}")

    for path_name, path_str in [
        ("logging.dir", config.logging.dir),
        ("export.dir", config.export.dir),
    ]:
        path = Path(path_str)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create directory {path_name}: {path_str} - {e}")

    return errors
