"""Per-satellite start timestamps and cross-satellite normalization.

Each satellite reports a device-local start time (ms) with its frames. The
first value seen for every satellite/sensor-type pair is kept. Once all five
satellites of a sensor type have reported, the group minimum is subtracted
so that the earliest satellite starts at t=0 and the others are offset by
how late they started.

Registry index = (satellite_id - 1) * 3 + sensor slot (Gyro=0, Accel=1, Impact=2).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .channels import NUM_SATELLITES, SensorType
from .errors import OutOfRangeColumn

logger = logging.getLogger(__name__)

REGISTRY_SIZE = NUM_SATELLITES * len(SensorType)


class GroupState(Enum):
    """Normalization state of one sensor-type group."""
    EMPTY = "empty"            # no satellite captured yet
    CAPTURED = "captured"      # some or all captured, not normalized
    NORMALIZED = "normalized"  # group minimum subtracted, never again


def registry_index(satellite_id: int, sensor_type: SensorType) -> int:
    if not 1 <= satellite_id <= NUM_SATELLITES:
        raise OutOfRangeColumn(f"Satellite id {satellite_id} outside 1..{NUM_SATELLITES}")
    return (satellite_id - 1) * len(SensorType) + int(sensor_type)


class StartTimeRegistry:
    """Raw and normalized start times for 5 satellites x 3 sensor types."""

    def __init__(self) -> None:
        self.raw: List[Optional[int]] = [None] * REGISTRY_SIZE
        self.normalized: List[Optional[int]] = [None] * REGISTRY_SIZE
        self._states: Dict[SensorType, GroupState] = {t: GroupState.EMPTY for t in SensorType}

    def observe(self, satellite_id: int, sensor_type: SensorType, start_timestamp: int) -> bool:
        """
        Record a frame's start time if this slot is still empty.

        Returns True when the slot was captured by this call. Later frames for
        the same slot never overwrite it.
        """
        index = registry_index(satellite_id, sensor_type)
        if self.raw[index] is not None:
            return False

        self.raw[index] = start_timestamp
        self.normalized[index] = start_timestamp
        if self._states[sensor_type] is GroupState.EMPTY:
            self._states[sensor_type] = GroupState.CAPTURED

        logger.info(
            f"Start time captured: satellite {satellite_id} {sensor_type.name} = {start_timestamp} ms"
        )
        self.normalize_group(sensor_type)
        return True

    def normalize_group(self, sensor_type: SensorType) -> bool:
        """
        Subtract the group minimum from every slot of one sensor type.

        Runs at most once per group: only when all five slots are captured and
        the group is not already normalized. Returns True if it ran.
        """
        if self._states[sensor_type] is GroupState.NORMALIZED:
            return False

        indices = self._group_indices(sensor_type)
        if any(self.raw[i] is None for i in indices):
            return False

        group_min = min(self.normalized[i] for i in indices)
        for i in indices:
            self.normalized[i] -= group_min
        self._states[sensor_type] = GroupState.NORMALIZED

        logger.info(
            f"{sensor_type.name} start times normalized (min {group_min} ms): "
            f"{[self.normalized[i] for i in indices]}"
        )
        return True

    def state(self, sensor_type: SensorType) -> GroupState:
        return self._states[sensor_type]

    def offset_ms(self, satellite_id: int, sensor_type: SensorType) -> Optional[int]:
        """Time-axis offset for a satellite/sensor pair, None until captured."""
        return self.normalized[registry_index(satellite_id, sensor_type)]

    def group(self, sensor_type: SensorType) -> Dict[str, List[Optional[int]]]:
        indices = self._group_indices(sensor_type)
        return {
            "raw": [self.raw[i] for i in indices],
            "normalized": [self.normalized[i] for i in indices],
        }

    def reset(self) -> None:
        self.raw = [None] * REGISTRY_SIZE
        self.normalized = [None] * REGISTRY_SIZE
        self._states = {t: GroupState.EMPTY for t in SensorType}

    def load(self, raw: Sequence[Optional[int]], normalized: Sequence[Optional[int]]) -> None:
        """
        Overwrite slots from a persisted file.

        A None entry leaves that slot as it is. Group states are rebuilt from
        the resulting values. A complete group counts as normalized only when
        the file supplied all five normalized values; a group completed by
        merging file and live slots is normalized again from its raw times.
        """
        if len(raw) != REGISTRY_SIZE or len(normalized) != REGISTRY_SIZE:
            raise ValueError(f"Registry arrays must have {REGISTRY_SIZE} entries")

        for i in range(REGISTRY_SIZE):
            if raw[i] is not None:
                self.raw[i] = int(raw[i])
            if normalized[i] is not None:
                self.normalized[i] = int(normalized[i])
            elif raw[i] is not None and self.normalized[i] is None:
                self.normalized[i] = int(raw[i])

        for sensor_type in SensorType:
            indices = self._group_indices(sensor_type)
            captured = [self.raw[i] is not None for i in indices]
            if all(captured):
                if all(raw[i] is not None and normalized[i] is not None for i in indices):
                    self._states[sensor_type] = GroupState.NORMALIZED
                else:
                    for i in indices:
                        self.normalized[i] = self.raw[i]
                    self._states[sensor_type] = GroupState.CAPTURED
                    self.normalize_group(sensor_type)
            elif any(captured):
                self._states[sensor_type] = GroupState.CAPTURED
            else:
                self._states[sensor_type] = GroupState.EMPTY

    def get_status(self) -> dict:
        return {sensor_type.name: self._states[sensor_type].value for sensor_type in SensorType}

    @staticmethod
    def _group_indices(sensor_type: SensorType) -> List[int]:
        return [registry_index(sat, sensor_type) for sat in range(1, NUM_SATELLITES + 1)]
