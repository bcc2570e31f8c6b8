"""Error kinds raised by the telemetry decode path and the matrix codec."""

from __future__ import annotations

from typing import Optional


class TelemetryError(ValueError):
    """Base class for all satellite telemetry errors."""


class FrameError(TelemetryError):
    """A single frame could not be used. Non-fatal; processing continues."""


class MalformedFrame(FrameError):
    """Buffer too short for the frame header or the requested sample offset."""


class UnknownChannel(FrameError):
    """Bytes arrived on a channel that is not classified as Gyro/Accel/Impact."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(f"Unknown notification channel: {channel_id}")
        self.channel_id = channel_id


class OutOfRangeColumn(FrameError):
    """Computed column or registry slot falls outside the sensor matrix."""


class ImportParseError(TelemetryError):
    """A persisted file could not be parsed. The import is aborted."""

    def __init__(self, message: str, line_number: Optional[int] = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class EmptyExportSource(TelemetryError):
    """Export requested before any sensor matrix exists."""
