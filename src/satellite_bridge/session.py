"""Telemetry session: the single owner of buffer, matrix and start-time state."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

from . import codec
from .ble.frame_parse import TelemetryFrame, parse_frame
from .ble.reassembly import ReassemblyBuffer
from .channels import ChannelMap, SensorType, map_and_scale
from .errors import FrameError
from .matrix import NUM_ROWS, Cell, SensorMatrix
from .start_times import StartTimeRegistry

logger = logging.getLogger(__name__)

Snapshot = Dict[str, List[Cell]]


class TelemetrySession:
    """
    Serial processing of satellite notifications into the sensor matrix.

    All mutation of the reassembly buffer, matrix and registry goes through
    this object under one lock, so notification callbacks, file import and
    export never interleave.
    """

    def __init__(self, channel_map: Optional[ChannelMap] = None, unset_value: Cell = 0.0) -> None:
        self.channels = channel_map or ChannelMap()
        self.unset_value = unset_value
        self.buffer = ReassemblyBuffer()
        self.registry = StartTimeRegistry()
        self.matrix: Optional[SensorMatrix] = None

        self._lock = threading.RLock()
        self._on_snapshot: Optional[Callable[[Snapshot], None]] = None
        self._on_frame: Optional[Callable[[TelemetryFrame, int], None]] = None
        self._on_error: Optional[Callable[[FrameError], None]] = None

        self._frame_count = 0
        self._ignored_count = 0
        self._error_counts: Dict[str, int] = {}
        self._callback_errors = 0

    def set_snapshot_callback(self, callback: Callable[[Snapshot], None]) -> None:
        """Set callback receiving a fresh snapshot after every frame or load."""
        self._on_snapshot = callback

    def set_frame_callback(self, callback: Callable[[TelemetryFrame, int], None]) -> None:
        """Set callback receiving each stored frame and its column."""
        self._on_frame = callback

    def set_error_callback(self, callback: Callable[[FrameError], None]) -> None:
        """Set callback for per-frame errors (malformed, unknown channel, bad column)."""
        self._on_error = callback

    def begin(self) -> None:
        """Start a new session: fresh matrix, empty buffers, empty registry."""
        with self._lock:
            self.matrix = SensorMatrix()
            self.buffer.reset()
            self.registry.reset()
            logger.info("Telemetry session started")

    def handle_notification(self, channel_id: str, data: bytes) -> Optional[TelemetryFrame]:
        """
        Feed one notification chunk through the pipeline.

        Returns the decoded frame when this chunk completed one, otherwise
        None. Per-frame errors are logged and counted, never raised.
        """
        with self._lock:
            if self.channels.is_ignored(channel_id):
                self._ignored_count += 1
                return None

            if self.matrix is None:
                self.begin()

            try:
                sensor_type = self.channels.classify(channel_id)
                self.buffer.append(channel_id, data)
                completed = self.buffer.take_frame(channel_id)
                if completed is None:
                    return None

                frame = parse_frame(sensor_type, completed.data, completed.decode_offset)
                self.process_frame(frame)
            except FrameError as e:
                self._record_error(e)
                return None

            return frame

    def process_frame(self, frame: TelemetryFrame) -> int:
        """
        Store a decoded frame and capture its start time.

        Returns the matrix column written.

        Raises:
            OutOfRangeColumn: satellite or axis outside the matrix; nothing is stored.
        """
        with self._lock:
            if self.matrix is None:
                self.begin()

            column, scaled = map_and_scale(frame)
            self.matrix.write(column, scaled)
            self.registry.observe(frame.satellite_id, frame.sensor_type, frame.start_timestamp)
            self._frame_count += 1

            logger.debug(
                f"Stored satellite {frame.satellite_id} {frame.sensor_type.name} "
                f"col {column}, {len(frame.samples)} samples"
            )

            if self._on_frame:
                self._run_callback("frame", self._on_frame, frame, column)
            self._publish()
            return column

    def snapshot(self) -> Snapshot:
        with self._lock:
            matrix = self.matrix or SensorMatrix()
            return matrix.snapshot(self.unset_value)

    def time_axis(self, satellite_id: int, sensor_type: SensorType, count: int = NUM_ROWS) -> List[float]:
        """Sample times in ms, shifted by the satellite's normalized start time."""
        with self._lock:
            offset = self.registry.offset_ms(satellite_id, sensor_type) or 0
        step_ms = 1000.0 / sensor_type.sample_rate_hz
        return [offset + i * step_ms for i in range(count)]

    def export_csv(self) -> str:
        with self._lock:
            return codec.export_csv(self.matrix, self.registry)

    def save_export(self, directory: str, filename: Optional[str] = None) -> Path:
        """Export to a timestamped CSV in directory and return the file path."""
        text = self.export_csv()
        return codec.save_export(text, directory, filename)

    def load_csv(self, text: str) -> None:
        """
        Replace the matrix and registry with the contents of an exported file.

        Raises:
            ImportParseError: the text is not a valid export; current state is kept.
        """
        imported = codec.import_csv(text)

        with self._lock:
            if self.matrix is None:
                self.matrix = SensorMatrix()
            self.matrix.replace(imported.rows)
            self.registry.load(imported.raw, imported.normalized)
            self.buffer.reset()
            logger.info("Sensor matrix replaced from file")
            self._publish()

    def load_file(self, path: str) -> None:
        self.load_csv(codec.load_export(path))

    def get_status(self) -> dict:
        with self._lock:
            buffer_status = self.buffer.get_status()
            return {
                "active": self.matrix is not None,
                "frames": self._frame_count,
                "ignored_chunks": self._ignored_count,
                "errors": dict(self._error_counts),
                "callback_errors": self._callback_errors,
                "bytes_discarded": buffer_status["bytes_discarded"],
                "pending_bytes": buffer_status["pending_bytes"],
                "columns_written": self.matrix.written_columns() if self.matrix else [],
                "start_times": self.registry.get_status(),
            }

    def _record_error(self, error: FrameError) -> None:
        kind = type(error).__name__
        self._error_counts[kind] = self._error_counts.get(kind, 0) + 1
        logger.warning(f"Frame dropped ({kind}): {error}")
        if self._on_error:
            self._run_callback("error", self._on_error, error)

    def _publish(self) -> None:
        if self._on_snapshot:
            self._run_callback("snapshot", self._on_snapshot, self.matrix.snapshot(self.unset_value))

    def _run_callback(self, name: str, callback: Callable, *args) -> None:
        """Invoke a consumer callback; a failing consumer never stops the pipeline."""
        try:
            callback(*args)
        except Exception as e:
            self._callback_errors += 1
            logger.error(f"{name} callback failed: {type(e).__name__}: {e}")
