"""Sensor types, column mapping and calibration for the satellite array.

Matrix layout (35 columns, 7 per satellite):
- column = (satellite_id - 1) * 7 + local offset
- local offset 0..2: Gyro X/Y/Z (axis_type)
- local offset 3..5: Accel X/Y/Z (3 + axis_type)
- local offset 6:    Impact (axis_type ignored)

Calibration multipliers are fixed per sensor type and are part of the
public data contract:
- Gyro:   raw / 16.4      -> deg/s
- Accel:  raw * 0.2       -> g
- Impact: raw * 2.42/4095 -> V
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import OutOfRangeColumn, UnknownChannel

logger = logging.getLogger(__name__)

NUM_SATELLITES = 5
CHANNELS_PER_SATELLITE = 7
NUM_COLUMNS = NUM_SATELLITES * CHANNELS_PER_SATELLITE
NUM_AXES = 3

GYRO_SCALE = 1 / 16.4
ACCEL_SCALE = 0.2
IMPACT_SCALE = 2.42 / 4095

AXIS_LABELS = (
    "Gyro X", "Gyro Y", "Gyro Z",
    "Accel X", "Accel Y", "Accel Z",
    "Impact",
)


class SensorType(IntEnum):
    """Sensor type of a notification channel. Value is the registry slot."""
    GYRO = 0
    ACCEL = 1
    IMPACT = 2

    @property
    def byte_order(self) -> str:
        """struct byte-order prefix for sample words."""
        return "<" if self is SensorType.ACCEL else ">"

    @property
    def scale(self) -> float:
        return _SCALES[self]

    @property
    def sample_rate_hz(self) -> float:
        return _SAMPLE_RATES[self]

    @property
    def title(self) -> str:
        return _TITLES[self]

    @property
    def unit(self) -> str:
        return _UNITS[self]

    @property
    def display_range(self) -> Tuple[float, float]:
        return _DISPLAY_RANGES[self]


_SCALES = {
    SensorType.GYRO: GYRO_SCALE,
    SensorType.ACCEL: ACCEL_SCALE,
    SensorType.IMPACT: IMPACT_SCALE,
}

_SAMPLE_RATES = {
    SensorType.GYRO: 2730.66,
    SensorType.ACCEL: 5120.0,
    SensorType.IMPACT: 5461.33,
}

_TITLES = {
    SensorType.GYRO: "Gyroscope",
    SensorType.ACCEL: "Accelerometer",
    SensorType.IMPACT: "Impact",
}

_UNITS = {
    SensorType.GYRO: "deg/s",
    SensorType.ACCEL: "g",
    SensorType.IMPACT: "V",
}

# Axis limits used by the dashboard charts
_DISPLAY_RANGES = {
    SensorType.GYRO: (-2000.0, 2000.0),
    SensorType.ACCEL: (-4000.0, 4000.0),
    SensorType.IMPACT: (0.0, 2.4),
}


def column_index(satellite_id: int, sensor_type: SensorType, axis_type: int = 0) -> int:
    """
    Map (satellite, sensor type, axis) to a logical matrix column.

    Raises:
        OutOfRangeColumn: satellite outside 1..5, or axis outside 0..2 for
            Gyro/Accel frames.
    """
    if not 1 <= satellite_id <= NUM_SATELLITES:
        raise OutOfRangeColumn(f"Satellite id {satellite_id} outside 1..{NUM_SATELLITES}")

    sat_offset = (satellite_id - 1) * CHANNELS_PER_SATELLITE

    if sensor_type is SensorType.IMPACT:
        return sat_offset + 6

    if not 0 <= axis_type < NUM_AXES:
        raise OutOfRangeColumn(
            f"Axis type {axis_type} outside 0..{NUM_AXES - 1} for {sensor_type.name}"
        )

    if sensor_type is SensorType.GYRO:
        return sat_offset + axis_type
    return sat_offset + 3 + axis_type


def calibrate(sensor_type: SensorType, samples: Sequence[int]) -> List[float]:
    """Scale raw integer counts into physical units."""
    scale = sensor_type.scale
    return [raw * scale for raw in samples]


def map_and_scale(frame) -> Tuple[int, List[float]]:
    """Return the target column and the calibrated samples for a decoded frame."""
    column = column_index(frame.satellite_id, frame.sensor_type, frame.axis_type)
    return column, calibrate(frame.sensor_type, frame.samples)


def column_name(column: int) -> str:
    """Key used for a column in consumer snapshots."""
    return f"col{column}"


def column_label(column: int) -> str:
    """Human readable column label, e.g. 'Accel Y 3'."""
    satellite = column // CHANNELS_PER_SATELLITE + 1
    return f"{AXIS_LABELS[column % CHANNELS_PER_SATELLITE]} {satellite}"


def satellite_columns(satellite_id: int, sensor_type: Optional[SensorType] = None) -> List[int]:
    """Columns owned by one satellite, optionally limited to one sensor type."""
    start = (satellite_id - 1) * CHANNELS_PER_SATELLITE
    if sensor_type is SensorType.GYRO:
        offsets = range(0, 3)
    elif sensor_type is SensorType.ACCEL:
        offsets = range(3, 6)
    elif sensor_type is SensorType.IMPACT:
        offsets = range(6, 7)
    else:
        offsets = range(CHANNELS_PER_SATELLITE)
    return [start + offset for offset in offsets]


class ChannelMap:
    """Classifies notification channel ids as Gyro/Accel/Impact or ignored."""

    def __init__(self) -> None:
        self._types: Dict[str, SensorType] = {}
        self._ignored: set[str] = set()

    def register(self, channel_id: str, sensor_type: SensorType) -> None:
        key = channel_id.lower()
        self._ignored.discard(key)
        self._types[key] = sensor_type
        logger.debug(f"Channel {channel_id} classified as {sensor_type.name}")

    def ignore(self, channel_id: str) -> None:
        """Mark a channel as known but outside the telemetry core (e.g. user data)."""
        key = channel_id.lower()
        self._types.pop(key, None)
        self._ignored.add(key)

    def is_ignored(self, channel_id: str) -> bool:
        return channel_id.lower() in self._ignored

    def classify(self, channel_id: str) -> SensorType:
        """Return the sensor type for a channel or raise UnknownChannel."""
        try:
            return self._types[channel_id.lower()]
        except KeyError:
            raise UnknownChannel(channel_id) from None

    def clear(self) -> None:
        self._types.clear()
        self._ignored.clear()

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, channel_id: str) -> bool:
        return channel_id.lower() in self._types
