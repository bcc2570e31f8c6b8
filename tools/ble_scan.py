#!/usr/bin/env python3
"""Bleak scan helper: lists nearby devices and flags satellite hubs by advertised name."""

import argparse
import asyncio
import sys
from pathlib import Path

from bleak import BleakClient, BleakScanner

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from satellite_bridge.config import DeviceConfig, load_config


async def list_services(address: str, device: DeviceConfig) -> None:
    known = {
        device.gyro_service_uuid.lower(): "gyro",
        device.accel_service_uuid.lower(): "accel",
        device.impact_service_uuid.lower(): "impact",
        device.user_service_uuid.lower(): "user",
    }
    async with BleakClient(address, adapter=device.adapter) as client:
        for service in client.services:
            label = known.get(service.uuid.lower(), "-")
            print(f"  service {service.uuid} [{label}]")
            for char in service.characteristics:
                print(f"    char {char.uuid} handle={char.handle} {','.join(char.properties)}")


async def scan(device: DeviceConfig, timeout: float, services: bool) -> None:
    print(f"Starting BLE scan for {timeout:.0f}s...")
    found = await BleakScanner.discover(timeout=timeout, return_adv=True)
    print(f"Found {len(found)} devices")

    hubs = []
    for address, (d, adv) in found.items():
        name = d.name or adv.local_name
        marker = "*" if name in device.names else " "
        print(f"{marker} {address}  | {name!r} | rssi={adv.rssi}")
        if marker == "*":
            hubs.append(address)

    if services:
        for address in hubs:
            print(f"Services on {address}:")
            await list_services(address, device)


def main() -> None:
    parser = argparse.ArgumentParser(description="Scan for satellite hubs")
    parser.add_argument("--config", help="YAML config supplying device names and service UUIDs")
    parser.add_argument("--timeout", type=float, default=10.0, help="Scan duration in seconds")
    parser.add_argument("--services", action="store_true", help="Connect to each hub and list its GATT table")
    args = parser.parse_args()

    device = load_config(args.config).device if args.config else DeviceConfig()
    asyncio.run(scan(device, args.timeout, args.services))


if __name__ == "__main__":
    main()
