"""Tests for the NDJSON event log."""

import json

from satellite_bridge.logs import NdjsonLogger


def read_records(logger):
    with logger.current_path.open(encoding="utf-8") as f:
        return [json.loads(line) for line in f]


def test_records_have_sequence_and_fields(tmp_path):
    """Test records carry sequence numbers and optional fields."""
    with NdjsonLogger(str(tmp_path), "test") as logger:
        logger.status("Bridge starting", {"sensor_count": 5})
        logger.event("Frame", satellite=3, device_ms=1200, data={"column": 14})
        logger.error("Frame dropped", {"type": "MalformedFrame"})
        path = logger.current_path

    assert path.name.startswith("test_") and path.suffix == ".ndjson"

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [r["seq"] for r in records] == [1, 2, 3]
    assert [r["type"] for r in records] == ["status", "event", "error"]
    assert records[1]["satellite"] == 3
    assert records[1]["device_ms"] == 1200
    assert records[1]["data"] == {"column": 14}
    assert "satellite" not in records[0]
    assert all("hms" in r and "ts_ms" in r for r in records)


def test_debug_filtered_in_regular_mode(tmp_path):
    """Test debug records are dropped unless whitelisted."""
    logger = NdjsonLogger(str(tmp_path))
    logger.verbose_whitelist.add("channel")

    logger.debug("noise")
    logger.debug("channel", {"channel_id": "abc"})
    records = read_records(logger)
    logger.close()

    assert [r["msg"] for r in records] == ["channel"]


def test_verbose_mode_keeps_debug(tmp_path):
    """Test verbose mode keeps debug records."""
    logger = NdjsonLogger(str(tmp_path))
    logger.mode = "verbose"

    logger.debug("noise")
    records = read_records(logger)
    logger.close()

    assert records[0]["type"] == "debug"


def test_closed_logger_drops_records(tmp_path):
    """Test records after close are not written."""
    logger = NdjsonLogger(str(tmp_path))
    logger.status("one")
    logger.close()
    logger.status("two")

    records = [json.loads(line) for line in logger.current_path.read_text(encoding="utf-8").splitlines()]
    assert [r["msg"] for r in records] == ["one"]
