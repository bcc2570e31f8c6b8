import math
import random
from typing import Dict, Iterator, List, Optional, Tuple

from .ble.frame_parse import build_frame
from .channels import NUM_SATELLITES, SensorType
from .matrix import NUM_ROWS

SIM_CHANNELS: Dict[SensorType, str] = {
    SensorType.GYRO: "sim-gyro",
    SensorType.ACCEL: "sim-accel",
    SensorType.IMPACT: "sim-impact",
}


class SatelliteSimulator:
    """
    Deterministic hub simulator producing notification-sized chunks.

    Intended for:
    - Pipeline bring-up without hardware
    - End-to-end tests of reassembly, decoding and export
    """

    def __init__(self, chunk_size: int = 20, seed: int = 0, base_time_ms: int = 1_000_000) -> None:
        self.chunk_size = chunk_size
        self.base_time_ms = base_time_ms
        self._rng = random.Random(seed)
        self._event_id = 0

    def start_time(self, satellite_id: int, sensor_type: SensorType) -> int:
        # satellites power up a few ms apart
        return self.base_time_ms + (satellite_id - 1) * 7 + int(sensor_type) * 3

    def waveform(self, satellite_id: int, sensor_type: SensorType, axis_type: int) -> List[int]:
        """Raw int16 counts for one frame."""
        amplitude = {SensorType.GYRO: 8000, SensorType.ACCEL: 2000, SensorType.IMPACT: 1500}[sensor_type]
        phase = satellite_id * 0.7 + axis_type * 1.3
        samples = []
        for i in range(NUM_ROWS):
            value = amplitude * math.sin(2 * math.pi * i / NUM_ROWS * (axis_type + 1) + phase)
            if sensor_type is SensorType.IMPACT:
                value = abs(value)
            samples.append(int(value))
        return samples

    def frame(self, satellite_id: int, sensor_type: SensorType, axis_type: int = 0) -> bytes:
        self._event_id = (self._event_id + 1) & 0xFFFF
        return build_frame(
            sensor_type,
            satellite_id,
            axis_type,
            self.start_time(satellite_id, sensor_type),
            self.waveform(satellite_id, sensor_type, axis_type),
            event_id=self._event_id,
        )

    def chunks(self, frame: bytes) -> Iterator[bytes]:
        for start in range(0, len(frame), self.chunk_size):
            yield frame[start:start + self.chunk_size]

    def channel_frames(self, sensor_type: SensorType, satellites: Optional[List[int]] = None) -> List[bytes]:
        """All frames one channel sends in a full sweep, in order."""
        satellites = satellites or list(range(1, NUM_SATELLITES + 1))
        axes = [0] if sensor_type is SensorType.IMPACT else [0, 1, 2]
        return [self.frame(sat, sensor_type, axis) for sat in satellites for axis in axes]

    def sweep(self, satellites: Optional[List[int]] = None) -> Iterator[Tuple[str, bytes]]:
        """
        Yield (channel_id, chunk) for one full sweep of every channel.

        Chunks of one channel stay in order; channels are interleaved at random.
        """
        streams = {
            SIM_CHANNELS[sensor_type]: [
                chunk for frame in self.channel_frames(sensor_type, satellites) for chunk in self.chunks(frame)
            ]
            for sensor_type in SensorType
        }
        positions = {channel: 0 for channel in streams}

        while positions:
            channel = self._rng.choice(sorted(positions))
            chunks = streams[channel]
            yield channel, chunks[positions[channel]]
            positions[channel] += 1
            if positions[channel] >= len(chunks):
                del positions[channel]
