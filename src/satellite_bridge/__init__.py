"""Satellite Bridge - multi-satellite gyro/accel/impact telemetry ingest."""

__version__ = "0.1.0"

from .bridge import Bridge
from .config import AppConfig, load_config
from .logs import NdjsonLogger
from .session import TelemetrySession

__all__ = ["AppConfig", "Bridge", "NdjsonLogger", "TelemetrySession", "load_config"]
