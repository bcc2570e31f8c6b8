"""NDJSON event log with sequence numbers and daily rotation."""

from __future__ import annotations

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, TextIO


class NdjsonLogger:
    """Structured session log: one JSON object per line, rotated per day."""

    def __init__(self, log_dir: str, file_prefix: str = "satellites") -> None:
        self.log_dir = Path(log_dir)
        self.file_prefix = file_prefix
        self.mode = "regular"  # regular or verbose
        self.verbose_whitelist: set[str] = set()

        self.log_dir.mkdir(parents=True, exist_ok=True)

        self._seq = 0
        self._current_file: Optional[TextIO] = None
        self._current_date: Optional[str] = None
        self._start_time_ns = time.monotonic_ns()

        self._rotate_if_needed()

    def log(
        self,
        msg_type: str,
        msg: str,
        satellite: Optional[int] = None,
        device_ms: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Write one record. Debug records are dropped in regular mode unless whitelisted."""
        if msg_type == "debug" and self.mode == "regular" and msg not in self.verbose_whitelist:
            return

        self._rotate_if_needed()
        self._seq += 1

        record: Dict[str, Any] = {
            "seq": self._seq,
            "type": msg_type,
            "ts_ms": round((time.monotonic_ns() - self._start_time_ns) / 1_000_000, 3),
            "msg": msg,
        }
        if satellite is not None:
            record["satellite"] = satellite
        if device_ms is not None:
            record["device_ms"] = device_ms
        if data is not None:
            record["data"] = data
        record["hms"] = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        if self._current_file:
            json.dump(record, self._current_file, separators=(",", ":"), ensure_ascii=False)
            self._current_file.write("\n")
            self._current_file.flush()

    def event(
        self,
        msg: str,
        satellite: Optional[int] = None,
        device_ms: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.log("event", msg, satellite=satellite, device_ms=device_ms, data=data)

    def status(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.log("status", msg, data=data)

    def error(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.log("error", msg, data=data)

    def debug(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.log("debug", msg, data=data)

    @property
    def current_path(self) -> Optional[Path]:
        if self._current_date is None:
            return None
        return self.log_dir / f"{self.file_prefix}_{self._current_date}.ndjson"

    def close(self) -> None:
        if self._current_file:
            self._current_file.close()
            self._current_file = None

    def _rotate_if_needed(self) -> None:
        """Open a new file when the calendar date changes."""
        current_date = datetime.now().strftime("%Y%m%d")
        if self._current_date == current_date:
            return

        if self._current_file:
            self._current_file.close()

        self._current_date = current_date
        self._current_file = self.current_path.open("a", encoding="utf-8", buffering=1)

    def __enter__(self) -> NdjsonLogger:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
