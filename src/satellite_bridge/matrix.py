"""Fixed-shape store of calibrated samples, one column per satellite channel."""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Sequence

from .channels import NUM_COLUMNS, column_name
from .errors import OutOfRangeColumn

NUM_ROWS = 170

Cell = Optional[float]


class SensorMatrix:
    """
    170 x 35 grid of calibrated values.

    Rows are sample indices, columns are logical channels. A cell is None
    until a frame writes it, so "no reading yet" stays distinct from a real
    0.0 reading. The grid is never resized.
    """

    def __init__(self) -> None:
        self._rows: List[List[Cell]] = _empty_rows()
        self._written: set[int] = set()

    def write(self, column: int, scaled_samples: Sequence[float]) -> int:
        """
        Copy samples down one column, starting at row 0.

        Samples past row 169 are dropped. Returns the number of rows written.

        Raises:
            OutOfRangeColumn: column outside 0..34; nothing is written.
        """
        if not 0 <= column < NUM_COLUMNS:
            raise OutOfRangeColumn(f"Column {column} outside 0..{NUM_COLUMNS - 1}")

        count = min(len(scaled_samples), NUM_ROWS)
        for i in range(count):
            self._rows[i][column] = float(scaled_samples[i])
        self._written.add(column)
        return count

    def snapshot(self, unset_value: Cell = 0.0) -> Dict[str, List[Cell]]:
        """Column-keyed copy of the whole grid for downstream consumers."""
        columns = zip(*self._rows)
        return {
            column_name(index): [unset_value if value is None else value for value in values]
            for index, values in enumerate(columns)
        }

    def replace(self, rows: Sequence[Sequence[Cell]]) -> None:
        """Swap in a complete grid, e.g. one restored from a persisted file."""
        if len(rows) != NUM_ROWS or any(len(row) != NUM_COLUMNS for row in rows):
            raise ValueError(f"Replacement matrix must be {NUM_ROWS}x{NUM_COLUMNS}")

        new_rows = [[None if v is None else float(v) for v in row] for row in rows]
        self._rows = new_rows
        self._written = {
            col for col in range(NUM_COLUMNS) if any(row[col] is not None for row in new_rows)
        }

    def clear(self) -> None:
        self._rows = _empty_rows()
        self._written.clear()

    def cell(self, row: int, column: int) -> Cell:
        return self._rows[row][column]

    def column(self, column: int) -> List[Cell]:
        return [row[column] for row in self._rows]

    def rows(self) -> Iterator[List[Cell]]:
        """Iterate copies of the rows in sample order."""
        for row in self._rows:
            yield list(row)

    def written_columns(self) -> List[int]:
        return sorted(self._written)

    @property
    def shape(self) -> tuple:
        return (NUM_ROWS, NUM_COLUMNS)


def _empty_rows() -> List[List[Cell]]:
    return [[None] * NUM_COLUMNS for _ in range(NUM_ROWS)]
