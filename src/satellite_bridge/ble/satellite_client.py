"""BLE client for the satellite hub."""

from __future__ import annotations

import asyncio
import logging
import time
from functools import partial
from typing import Callable, Dict, List, Optional

from bleak import BleakClient, BleakError, BleakScanner
from bleak.backends.characteristic import BleakGATTCharacteristic

from ..channels import SensorType

logger = logging.getLogger(__name__)


def channel_id_for(characteristic: BleakGATTCharacteristic) -> str:
    """Stable channel id for a characteristic; the handle disambiguates shared UUIDs."""
    return f"{characteristic.uuid}:{characteristic.handle}"


class SatelliteClient:
    """
    BLE client for the satellite hub device.

    The hub exposes one GATT service per sensor type (plus a user data
    service). Every notifying characteristic of those services becomes a
    channel; its bytes are forwarded untouched to the notification callback.
    """

    def __init__(
        self,
        service_types: Dict[str, Optional[SensorType]],
        device_names: Optional[List[str]] = None,
        mac_address: str = "",
        adapter: str = "hci0",
        scan_timeout_sec: float = 10.0,
        reconnect_initial_sec: float = 1.0,
        reconnect_max_sec: float = 20.0,
        reconnect_jitter_sec: float = 0.5,
    ) -> None:
        self.service_types = {uuid.lower(): stype for uuid, stype in service_types.items()}
        self.device_names = device_names or []
        self.mac_address = mac_address
        self.adapter = adapter
        self.scan_timeout_sec = scan_timeout_sec
        self.reconnect_initial_sec = reconnect_initial_sec
        self.reconnect_max_sec = reconnect_max_sec
        self.reconnect_jitter_sec = reconnect_jitter_sec

        self._client: Optional[BleakClient] = None
        self._connected = False
        self._stop_requested = False
        self._reconnect_task: Optional[asyncio.Task] = None

        self._device_name: Optional[str] = None
        self._chunk_count = 0
        self._last_chunk_ns: Optional[int] = None
        self._channels: Dict[str, Optional[SensorType]] = {}

        # Callbacks
        self._on_notification: Optional[Callable[[str, bytes], None]] = None
        self._on_channel: Optional[Callable[[str, Optional[SensorType]], None]] = None
        self._on_connect: Optional[Callable[[], None]] = None
        self._on_disconnect: Optional[Callable[[], None]] = None

    def set_notification_callback(self, callback: Callable[[str, bytes], None]) -> None:
        """Set callback for raw chunks. Receives (channel_id, data)."""
        self._on_notification = callback

    def set_channel_callback(self, callback: Callable[[str, Optional[SensorType]], None]) -> None:
        """Set callback for discovered channels. Sensor type is None for non-telemetry channels."""
        self._on_channel = callback

    def set_connect_callback(self, callback: Callable[[], None]) -> None:
        self._on_connect = callback

    def set_disconnect_callback(self, callback: Callable[[], None]) -> None:
        self._on_disconnect = callback

    async def start(self) -> None:
        """Start the client with automatic reconnection."""
        self._stop_requested = False
        self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def stop(self) -> None:
        """Stop the client and disconnect."""
        self._stop_requested = True

        if self._reconnect_task:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass

        await self._disconnect()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def get_status(self) -> dict:
        return {
            "device": self._device_name,
            "connected": self._connected,
            "channels": len(self._channels),
            "chunk_count": self._chunk_count,
            "last_chunk_ns": self._last_chunk_ns,
        }

    def matches_name(self, name: Optional[str]) -> bool:
        """Device-name filter shared by every hub firmware variant."""
        return bool(name) and name in self.device_names

    async def _reconnect_loop(self) -> None:
        """Connection loop with exponential backoff."""
        retry_delay = self.reconnect_initial_sec

        while not self._stop_requested:
            try:
                await self._connect()
                if self._connected:
                    retry_delay = self.reconnect_initial_sec
                    await self._wait_for_disconnect()

            except (BleakError, asyncio.TimeoutError, OSError) as e:
                logger.warning(f"Satellite hub connection failed: {e}")

            if not self._stop_requested:
                jitter = (asyncio.get_running_loop().time() % 1.0) * self.reconnect_jitter_sec
                await asyncio.sleep(retry_delay + jitter)
                retry_delay = min(retry_delay * 2, self.reconnect_max_sec)

    async def _find_target(self):
        if self.mac_address:
            return self.mac_address

        logger.info(f"Scanning for satellite hub named {self.device_names}")
        device = await BleakScanner.find_device_by_filter(
            lambda dev, adv: self.matches_name(dev.name or adv.local_name),
            timeout=self.scan_timeout_sec,
        )
        if device is None:
            raise BleakError(f"No device named {self.device_names} found")
        return device

    async def _connect(self) -> None:
        """Connect to the hub, discover channels and enable notifications."""
        if self._connected:
            return

        target = await self._find_target()
        self._device_name = getattr(target, "name", None) or str(target)
        logger.info(f"Connecting to satellite hub {self._device_name}")

        self._client = BleakClient(
            target,
            adapter=self.adapter,
            disconnected_callback=self._on_device_disconnect,
        )
        await self._client.connect()
        self._connected = True

        if self._on_connect:
            self._on_connect()

        self._channels.clear()
        for service in self._client.services:
            if service.uuid.lower() not in self.service_types:
                continue
            sensor_type = self.service_types[service.uuid.lower()]

            for characteristic in service.characteristics:
                if "notify" not in characteristic.properties:
                    continue

                channel_id = channel_id_for(characteristic)
                self._channels[channel_id] = sensor_type
                if self._on_channel:
                    self._on_channel(channel_id, sensor_type)

                await self._client.start_notify(
                    characteristic, partial(self._handle_notification, channel_id)
                )
                logger.info(
                    f"Notifications started for {channel_id} "
                    f"({sensor_type.name if sensor_type is not None else 'user'})"
                )

        logger.info(f"Satellite hub connected, {len(self._channels)} channels")

    async def _disconnect(self) -> None:
        if not self._connected:
            return

        self._connected = False

        if self._client:
            try:
                if self._client.is_connected:
                    await self._client.disconnect()
            except BleakError as e:
                logger.warning(f"Error during satellite hub disconnect: {e}")
            finally:
                self._client = None

        if self._on_disconnect:
            self._on_disconnect()

        logger.info("Satellite hub disconnected")

    async def _wait_for_disconnect(self) -> None:
        while self._connected and not self._stop_requested:
            await asyncio.sleep(1.0)

    def _on_device_disconnect(self, client: BleakClient) -> None:
        """Bleak disconnection callback."""
        logger.warning("Satellite hub dropped the connection")
        self._connected = False
        if self._on_disconnect:
            self._on_disconnect()

    def _handle_notification(self, channel_id: str, sender: BleakGATTCharacteristic, data: bytearray) -> None:
        self._last_chunk_ns = time.monotonic_ns()
        self._chunk_count += 1

        if self._on_notification:
            self._on_notification(channel_id, bytes(data))
