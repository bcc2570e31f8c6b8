"""Main bridge module that connects the satellite hub to a telemetry session."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional

from .ble.frame_parse import TelemetryFrame
from .ble.satellite_client import SatelliteClient
from .channels import SensorType
from .config import AppConfig
from .errors import FrameError, TelemetryError, UnknownChannel
from .logs import NdjsonLogger
from .session import Snapshot, TelemetrySession

logger = logging.getLogger(__name__)


class Bridge:
    """Coordinates the BLE client, the telemetry session and the event log."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

        self.logger = NdjsonLogger(config.logging.dir, config.logging.file_prefix)
        self.logger.mode = config.logging.mode
        if config.logging.verbose_whitelist:
            self.logger.verbose_whitelist.update(config.logging.verbose_whitelist)

        self.session = TelemetrySession(unset_value=config.matrix.unset_value)
        self.session.set_frame_callback(self._on_frame)
        self.session.set_error_callback(self._on_frame_error)
        self.session.set_snapshot_callback(self._on_snapshot)

        device = config.device
        self.client = SatelliteClient(
            service_types={
                device.gyro_service_uuid: SensorType.GYRO,
                device.accel_service_uuid: SensorType.ACCEL,
                device.impact_service_uuid: SensorType.IMPACT,
                device.user_service_uuid: None,
            },
            device_names=device.names,
            mac_address=device.mac,
            adapter=device.adapter,
            scan_timeout_sec=device.scan_timeout_sec,
            reconnect_initial_sec=device.reconnect_initial_sec,
            reconnect_max_sec=device.reconnect_max_sec,
            reconnect_jitter_sec=device.reconnect_jitter_sec,
        )
        self.client.set_connect_callback(self._on_connect)
        self.client.set_disconnect_callback(self._on_disconnect)
        self.client.set_channel_callback(self._on_channel)
        self.client.set_notification_callback(self.session.handle_notification)

        self._consumers: List[Callable[[Snapshot], None]] = []
        self._stop_requested = False
        self._tasks: List[asyncio.Task] = []

    def add_consumer(self, callback: Callable[[Snapshot], None]) -> None:
        """Register a snapshot consumer such as a chart view."""
        self._consumers.append(callback)

    async def start(self) -> None:
        self._stop_requested = False

        self.logger.status("Bridge starting", {
            "device_names": self.config.device.names,
            "mac": self.config.device.mac or None,
            "export_dir": self.config.export.dir,
        })

        await self.client.start()
        self._tasks.append(asyncio.create_task(self._status_loop()))

        self.logger.status("Bridge started")

    async def stop(self) -> None:
        self._stop_requested = True
        self.logger.status("Bridge stopping")

        await self.client.stop()

        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        if self.config.export.export_on_stop and self.session.matrix is not None:
            self.export_now()

        self.logger.status("Bridge stopped", self.session.get_status())
        self.logger.close()

    def export_now(self, directory: Optional[str] = None) -> Optional[Path]:
        """Write the current matrix to a timestamped CSV. Returns None if there is nothing to export."""
        try:
            path = self.session.save_export(directory or self.config.export.dir)
        except TelemetryError as e:
            logger.error(f"Export failed: {e}")
            self.logger.error("Export failed", {"error": str(e), "type": type(e).__name__})
            return None

        self.logger.event("Export", data={"path": str(path)})
        return path

    def load_file(self, path: str) -> bool:
        """Load a previously exported CSV into the session."""
        try:
            self.session.load_file(path)
        except (TelemetryError, OSError) as e:
            logger.error(f"Load of {path} failed: {e}")
            self.logger.error("Load failed", {"path": path, "error": str(e), "type": type(e).__name__})
            return False

        self.logger.event("Load", data={"path": path})
        return True

    async def _status_loop(self) -> None:
        while not self._stop_requested:
            await asyncio.sleep(30.0)
            self.logger.status("Bridge status", {
                "client": self.client.get_status(),
                "session": self.session.get_status(),
            })

    def _on_connect(self) -> None:
        self.session.channels.clear()
        self.session.begin()
        self.logger.status("Hub connected", self.client.get_status())

    def _on_disconnect(self) -> None:
        self.logger.status("Hub disconnected", self.session.get_status())

    def _on_channel(self, channel_id: str, sensor_type: Optional[SensorType]) -> None:
        if sensor_type is None:
            self.session.channels.ignore(channel_id)
        else:
            self.session.channels.register(channel_id, sensor_type)
        self.logger.debug("channel", {
            "channel_id": channel_id,
            "sensor": sensor_type.name if sensor_type is not None else "user",
        })

    def _on_frame(self, frame: TelemetryFrame, column: int) -> None:
        self.logger.event(
            "Frame",
            satellite=frame.satellite_id,
            device_ms=frame.start_timestamp,
            data=dict(frame.to_dict(), column=column),
        )

    def _on_frame_error(self, error: FrameError) -> None:
        data = {"error": str(error), "type": type(error).__name__}
        if isinstance(error, UnknownChannel):
            data["channel_id"] = error.channel_id
        self.logger.error("Frame dropped", data)

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        for consumer in self._consumers:
            consumer(snapshot)


async def run_bridge(config_path: str, load_path: Optional[str] = None) -> None:
    """Run the bridge with the specified configuration until interrupted."""
    from .config import load_config, validate_config

    config = load_config(config_path)
    errors = validate_config(config)

    if errors:
        logger.error("Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        return

    bridge = Bridge(config)
    if load_path:
        bridge.load_file(load_path)

    try:
        await bridge.start()
        while True:
            await asyncio.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, stopping bridge")
    finally:
        await bridge.stop()
