"""CSV export/import of the sensor matrix and start-time registry.

File layout (UTF-8, comma separated, "\\n" line endings):
- Header: 35 column labels ("Gyro X 1" .. "Impact 5"), then
  "RawStartTime" and "NormalizedStartTime"
- 170 data rows, one per sample index, 37 fields each
- Fields 0-34: calibrated values with 4 decimals, "0" for an unset cell
- Fields 35-36: raw/normalized start time for registry index = row number,
  present on rows 0-14 only (empty elsewhere)

Exported files are named SensorData_<UTC ISO8601 to the second, ':' -> '-'>.csv
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .channels import NUM_COLUMNS, column_label
from .errors import EmptyExportSource, ImportParseError
from .matrix import NUM_ROWS, Cell, SensorMatrix
from .start_times import REGISTRY_SIZE, StartTimeRegistry

logger = logging.getLogger(__name__)

RAW_START_HEADER = "RawStartTime"
NORMALIZED_START_HEADER = "NormalizedStartTime"
UNSET_FIELD = "0"
FILE_PREFIX = "SensorData"


@dataclass
class ImportedMatrix:
    """Parsed contents of an exported file, not yet applied to a session."""

    rows: List[List[Cell]]
    raw: List[Optional[int]]
    normalized: List[Optional[int]]


def header_row() -> List[str]:
    return [column_label(c) for c in range(NUM_COLUMNS)] + [RAW_START_HEADER, NORMALIZED_START_HEADER]


def export_csv(matrix: Optional[SensorMatrix], registry: StartTimeRegistry) -> str:
    """Serialize the matrix and registry to CSV text."""
    if matrix is None:
        raise EmptyExportSource("No sensor matrix to export")

    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(header_row())

    for index, row in enumerate(matrix.rows()):
        fields = [_format_cell(value) for value in row]
        if index < REGISTRY_SIZE:
            fields.append(_format_time(registry.raw[index]))
            fields.append(_format_time(registry.normalized[index]))
        else:
            fields.extend(["", ""])
        writer.writerow(fields)

    return out.getvalue()


def import_csv(text: str) -> ImportedMatrix:
    """
    Parse CSV text produced by export_csv.

    Raises:
        ImportParseError: missing header, more than 170 data rows, a row with
            fewer than 35 fields, or a non-numeric data field.
    """
    records = list(csv.reader(io.StringIO(text)))
    while records and not any(field.strip() for field in records[-1]):
        records.pop()

    if not records:
        raise ImportParseError("File is empty")

    data_rows = records[1:]
    if len(data_rows) > NUM_ROWS:
        raise ImportParseError(f"Expected at most {NUM_ROWS} data rows, found {len(data_rows)}")

    rows: List[List[Cell]] = [[None] * NUM_COLUMNS for _ in range(NUM_ROWS)]
    raw: List[Optional[int]] = [None] * REGISTRY_SIZE
    normalized: List[Optional[int]] = [None] * REGISTRY_SIZE

    for index, fields in enumerate(data_rows):
        line_number = index + 2
        if len(fields) < NUM_COLUMNS:
            raise ImportParseError(
                f"Expected at least {NUM_COLUMNS} fields, found {len(fields)}", line_number
            )

        for column in range(NUM_COLUMNS):
            rows[index][column] = _parse_cell(fields[column], line_number, column)

        if index < REGISTRY_SIZE:
            raw[index] = _parse_time(fields, NUM_COLUMNS)
            normalized[index] = _parse_time(fields, NUM_COLUMNS + 1)

    logger.info(f"Parsed {len(data_rows)} data rows from CSV")
    return ImportedMatrix(rows=rows, raw=raw, normalized=normalized)


def export_filename(now: Optional[datetime] = None) -> str:
    """Default export name, e.g. SensorData_2025-06-01T14-03-09.csv."""
    if now is None:
        now = datetime.now(timezone.utc)
    return f"{FILE_PREFIX}_{now.strftime('%Y-%m-%dT%H-%M-%S')}.csv"


def save_export(text: str, directory: str, filename: Optional[str] = None) -> Path:
    """Write exported text to a file and return its path."""
    export_dir = Path(directory)
    export_dir.mkdir(parents=True, exist_ok=True)

    path = export_dir / (filename or export_filename())
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(text)

    logger.info(f"Sensor data exported to {path}")
    return path


def load_export(path: str) -> str:
    """Read an exported file as text."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Export file not found: {path}")

    with file_path.open("r", encoding="utf-8", newline="") as f:
        return f.read()


def _format_cell(value: Cell) -> str:
    return UNSET_FIELD if value is None else f"{value:.4f}"


def _format_time(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def _parse_cell(field: str, line_number: int, column: int) -> Cell:
    text = field.strip()
    # export writes a bare "0" only for unset cells; real readings carry decimals
    if text == UNSET_FIELD:
        return None
    try:
        return float(text)
    except ValueError:
        raise ImportParseError(
            f"Non-numeric value {field!r} in column {column}", line_number
        ) from None


def _parse_time(fields: List[str], position: int) -> Optional[int]:
    if position >= len(fields):
        return None
    try:
        return int(round(float(fields[position])))
    except (ValueError, OverflowError):
        return None
