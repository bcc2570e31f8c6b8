"""Tests for chunk reassembly and frame decoding."""

import struct

import pytest

from satellite_bridge.ble.frame_parse import build_frame, parse_frame, sample_count
from satellite_bridge.ble.reassembly import ReassemblyBuffer
from satellite_bridge.channels import SensorType
from satellite_bridge.errors import MalformedFrame


def make_header(satellite_id: int, axis_type: int, start_ms: int, event_id: int = 7) -> bytes:
    # event id, satellite, axis, start time, then 6 reserved bytes
    return struct.pack("<HBBI", event_id, satellite_id, axis_type, start_ms) + bytes(6)


class TestParseFrame:
    """Header and sample decoding."""

    def test_header_fields(self):
        """Test the little-endian header fields are decoded."""
        data = make_header(3, 2, 123456, event_id=513) + struct.pack(">170h", *range(170))
        frame = parse_frame(SensorType.GYRO, data, 14)

        assert frame.event_id == 513
        assert frame.satellite_id == 3
        assert frame.axis_type == 2
        assert frame.start_timestamp == 123456
        assert frame.sensor_type is SensorType.GYRO

    def test_gyro_samples_big_endian(self):
        """Test gyro samples are read big-endian."""
        values = [(-1) ** i * i * 100 for i in range(170)]
        data = make_header(1, 0, 0) + struct.pack(">170h", *values)
        assert len(data) == 354

        frame = parse_frame(SensorType.GYRO, data, 14)
        assert list(frame.samples) == values

    def test_impact_samples_big_endian(self):
        """Test impact samples are read big-endian."""
        values = [i * 10 for i in range(170)]
        data = make_header(2, 0, 0) + struct.pack(">170h", *values)

        frame = parse_frame(SensorType.IMPACT, data, 14)
        assert list(frame.samples) == values

    def test_accel_samples_little_endian(self):
        """Test accel samples are read little-endian."""
        values = [-32768, 32767, 1, -1] + [256] * 166
        data = make_header(4, 1, 99) + struct.pack("<170h", *values)

        frame = parse_frame(SensorType.ACCEL, data, 14)
        assert list(frame.samples) == values

    def test_endianness_matters(self):
        """Test the same bytes decode differently for accel and gyro."""
        data = make_header(1, 0, 0) + struct.pack(">170h", *([1] * 170))
        # same bytes read as accel (little-endian) give 256 instead of 1
        frame = parse_frame(SensorType.ACCEL, data, 14)
        assert frame.samples[0] == 256

    def test_short_frame_yields_169_samples_from_offset_13(self):
        """Test a 353-byte frame decodes 169 samples from offset 13."""
        values = list(range(1000, 1169))
        data = struct.pack("<HBBI", 1, 5, 0, 42) + bytes(5) + struct.pack(">169h", *values)
        data += bytes(353 - len(data))
        assert len(data) == 353

        frame = parse_frame(SensorType.GYRO, data, 13)
        assert len(frame.samples) == 169
        assert list(frame.samples) == values

    def test_sample_count(self):
        """Test the sample count for full, short and tiny frames."""
        assert sample_count(354) == 170
        assert sample_count(353) == 169
        assert sample_count(14) == 0
        assert sample_count(8) == 0

    def test_too_short_for_header(self):
        """Test a buffer shorter than the header is malformed."""
        with pytest.raises(MalformedFrame):
            parse_frame(SensorType.GYRO, bytes(7), 14)

    def test_empty_buffer(self):
        """Test an empty buffer is malformed."""
        with pytest.raises(MalformedFrame):
            parse_frame(SensorType.IMPACT, b"", 14)

    def test_offset_inside_header(self):
        """Test a sample offset inside the header is rejected."""
        with pytest.raises(MalformedFrame):
            parse_frame(SensorType.GYRO, bytes(354), 4)

    def test_offset_past_sample_area(self):
        """Test a sample area running past the buffer is rejected."""
        with pytest.raises(MalformedFrame):
            parse_frame(SensorType.GYRO, bytes(354), 20)

    def test_build_frame_matches_parser(self):
        """Test built frames decode back to their fields."""
        data = build_frame(SensorType.ACCEL, 2, 1, 5000, [10, -20, 30] + [0] * 167, event_id=9)
        assert len(data) == 354

        frame = parse_frame(SensorType.ACCEL, data, 14)
        assert frame.satellite_id == 2
        assert frame.axis_type == 1
        assert frame.start_timestamp == 5000
        assert frame.samples[:3] == (10, -20, 30)


class TestReassemblyBuffer:
    """Chunk accumulation and frame completion."""

    def setup_method(self):
        """Set up an empty reassembly buffer."""
        self.buffer = ReassemblyBuffer()

    def test_incomplete_returns_none(self):
        """Test a channel below 353 bytes yields no frame."""
        self.buffer.append("gyro", bytes(352))
        assert not self.buffer.is_complete("gyro")
        assert self.buffer.take_frame("gyro") is None
        assert self.buffer.pending("gyro") == 352

    def test_unknown_channel_is_empty(self):
        """Test an unseen channel has nothing pending."""
        assert self.buffer.pending("nothing") == 0
        assert self.buffer.take_frame("nothing") is None

    def test_exact_353(self):
        """Test exactly 353 bytes completes a short frame."""
        self.buffer.append("gyro", bytes(353))
        assert self.buffer.is_complete("gyro")

        frame = self.buffer.take_frame("gyro")
        assert frame.size_used == 353
        assert frame.decode_offset == 13
        assert len(frame.data) == 353
        assert frame.discarded == 0
        assert self.buffer.pending("gyro") == 0

    def test_354_uses_offset_14(self):
        """Test 354 bytes completes a full frame."""
        self.buffer.append("accel", bytes(354))
        frame = self.buffer.take_frame("accel")
        assert frame.size_used == 354
        assert frame.decode_offset == 14
        assert frame.discarded == 0

    def test_excess_bytes_are_discarded(self, caplog):
        """Test bytes past the frame are dropped and logged."""
        payload = bytes(range(256)) + bytes(144)
        self.buffer.append("impact", payload)

        with caplog.at_level("WARNING"):
            frame = self.buffer.take_frame("impact")

        assert frame.data == payload[:354]
        assert frame.discarded == 46
        assert self.buffer.pending("impact") == 0
        assert "dropped 46 bytes" in caplog.text
        assert self.buffer.get_status()["bytes_discarded"] == 46

    def test_split_delivery_matches_single_delivery(self):
        """Test 200 + 154 byte chunks equal one 354-byte delivery."""
        data = build_frame(SensorType.GYRO, 1, 0, 77, list(range(170)))

        self.buffer.append("a", data[:200])
        assert self.buffer.take_frame("a") is None
        self.buffer.append("a", data[200:])
        split = self.buffer.take_frame("a")

        self.buffer.append("b", data)
        single = self.buffer.take_frame("b")

        assert split.data == single.data
        assert split.size_used == single.size_used
        assert split.decode_offset == single.decode_offset

    def test_channels_are_independent(self):
        """Test channels accumulate separately."""
        self.buffer.append("gyro", bytes(300))
        self.buffer.append("accel", bytes(354))

        assert self.buffer.take_frame("gyro") is None
        assert self.buffer.take_frame("accel") is not None
        assert self.buffer.pending("gyro") == 300

    def test_reset(self):
        """Test reset clears pending bytes."""
        self.buffer.append("gyro", bytes(100))
        self.buffer.append("accel", bytes(100))

        self.buffer.reset("gyro")
        assert self.buffer.pending("gyro") == 0
        assert self.buffer.pending("accel") == 100

        self.buffer.reset()
        assert self.buffer.pending("accel") == 0
