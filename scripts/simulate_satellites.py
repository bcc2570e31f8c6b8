#!/usr/bin/env python3
"""Feed simulated satellite notifications through a session and export the result."""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from satellite_bridge.channels import SensorType
from satellite_bridge.session import TelemetrySession
from satellite_bridge.simulator import SIM_CHANNELS, SatelliteSimulator


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the decode pipeline on simulated hub traffic")
    parser.add_argument("--chunk-size", type=int, default=20, help="Notification payload size in bytes")
    parser.add_argument("--seed", type=int, default=0, help="Channel interleaving seed")
    parser.add_argument("--out", default="exports", help="Export directory")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    session = TelemetrySession()
    for sensor_type, channel_id in SIM_CHANNELS.items():
        session.channels.register(channel_id, sensor_type)
    session.begin()

    simulator = SatelliteSimulator(chunk_size=args.chunk_size, seed=args.seed)
    frames = 0
    for channel_id, chunk in simulator.sweep():
        if session.handle_notification(channel_id, chunk) is not None:
            frames += 1

    status = session.get_status()
    print(f"Decoded {frames} frames, errors: {status['errors'] or 'none'}")
    for sensor_type in SensorType:
        print(f"  {sensor_type.title:<14} normalized starts: {session.registry.group(sensor_type)['normalized']}")

    path = session.save_export(args.out)
    print(f"Exported to {path}")


if __name__ == "__main__":
    main()
