"""Parser for satellite telemetry frames.

Frame layout (fixed offsets):
- bytes[0-1]:  Event id (uint16, little-endian, not validated)
- bytes[2]:    Satellite id (1..5)
- bytes[3]:    Axis type (0..2 for Gyro/Accel, ignored for Impact)
- bytes[4-7]:  Start timestamp in ms, device clock (uint32, little-endian)
- bytes[8-13]: Reserved
- bytes[14-]:  Samples, int16. Accel words are little-endian, Gyro and
               Impact words are big-endian.

A full frame is 354 bytes (170 samples from offset 14). A 353-byte frame
is shifted one byte earlier and carries 169 samples from offset 13. The
sensor type is not in the payload; it comes from the delivering channel.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Tuple

from ..channels import SensorType
from ..errors import MalformedFrame

HEADER_FORMAT = "<HBBI"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
SAMPLE_AREA_OFFSET = 14


@dataclass(frozen=True)
class TelemetryFrame:
    """One decoded frame from a satellite sensor channel."""

    event_id: int
    satellite_id: int
    sensor_type: SensorType
    axis_type: int
    start_timestamp: int
    samples: Tuple[int, ...]

    def to_dict(self) -> dict:
        """Summary for structured logging (samples omitted)."""
        return {
            "event_id": self.event_id,
            "satellite_id": self.satellite_id,
            "sensor": self.sensor_type.name,
            "axis": self.axis_type,
            "start_ms": self.start_timestamp,
            "sample_count": len(self.samples),
        }


def sample_count(frame_length: int) -> int:
    """Number of whole samples carried by a frame of the given length."""
    return max(0, (frame_length - SAMPLE_AREA_OFFSET) // 2)


def parse_frame(sensor_type: SensorType, data: bytes, decode_offset: int = SAMPLE_AREA_OFFSET) -> TelemetryFrame:
    """
    Decode a completed frame buffer.

    Args:
        sensor_type: Type of the channel the bytes arrived on
        data: Complete frame bytes from the reassembly buffer
        decode_offset: Byte offset of the first sample (14, or 13 for short frames)

    Returns:
        TelemetryFrame with raw integer samples

    Raises:
        MalformedFrame: buffer shorter than the header, or too short for the
            sample area starting at decode_offset
    """
    if len(data) < HEADER_SIZE:
        raise MalformedFrame(f"Frame too short: {len(data)} bytes, need at least {HEADER_SIZE}")
    if decode_offset < HEADER_SIZE:
        raise MalformedFrame(f"Sample offset {decode_offset} overlaps the {HEADER_SIZE}-byte header")

    event_id, satellite_id, axis_type, start_timestamp = struct.unpack_from(HEADER_FORMAT, data, 0)

    count = sample_count(len(data))
    if decode_offset + count * 2 > len(data):
        raise MalformedFrame(
            f"Sample area of {count} words at offset {decode_offset} exceeds {len(data)} bytes"
        )

    samples = struct.unpack_from(f"{sensor_type.byte_order}{count}h", data, decode_offset)

    return TelemetryFrame(
        event_id=event_id,
        satellite_id=satellite_id,
        sensor_type=sensor_type,
        axis_type=axis_type,
        start_timestamp=start_timestamp,
        samples=samples,
    )


def build_frame(
    sensor_type: SensorType,
    satellite_id: int,
    axis_type: int,
    start_timestamp: int,
    samples,
    event_id: int = 0,
) -> bytes:
    """Encode a full 354-byte frame (inverse of parse_frame). Used by the simulator."""
    header = struct.pack(HEADER_FORMAT, event_id, satellite_id, axis_type, start_timestamp)
    header += bytes(SAMPLE_AREA_OFFSET - HEADER_SIZE)
    return header + struct.pack(f"{sensor_type.byte_order}{len(samples)}h", *samples)
