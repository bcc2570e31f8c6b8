"""BLE package: satellite hub client, chunk reassembly and frame parsing."""

from .frame_parse import TelemetryFrame, parse_frame
from .reassembly import CompletedFrame, ReassemblyBuffer
from .satellite_client import SatelliteClient

__all__ = ["CompletedFrame", "ReassemblyBuffer", "SatelliteClient", "TelemetryFrame", "parse_frame"]
