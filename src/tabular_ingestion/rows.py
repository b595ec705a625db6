"""Dense row reconstruction from sparse cell values."""

from collections.abc import Sequence
from enum import Enum

from tabular_ingestion.exceptions import SourceStateError


class RowState(Enum):
    BEFORE_ROW = "before_row"
    IN_ROW = "in_row"
    ROW_COMPLETE = "row_complete"


def is_empty_row(row: Sequence[str] | None) -> bool:
    """Check whether a row has no cells or only blank cells."""
    if not row:
        return True
    return all(not cell or cell.isspace() for cell in row)


class RowReconstructor:
    """Rebuilds dense rows from (column, value) pairs.

    Spreadsheet formats omit empty cells, so a row arrives as a sparse list
    of column positions. Missing interior columns are filled with empty
    strings, and once the header row has been seen every later row is padded
    to the header width. Columns are zero-based.

    Attributes:
        header_width: Length of the first non-empty row, or None until seen
        header_cells: Number of cells actually stored in the header row
    """

    def __init__(self):
        self.state = RowState.BEFORE_ROW
        self.header_width: int | None = None
        self.header_cells = 0
        self._cells: list[str] = []
        self._last_column = -1
        self._observed = 0

    def start_row(self) -> None:
        """Begin a new row, discarding anything accumulated."""
        self._cells = []
        self._last_column = -1
        self._observed = 0
        self.state = RowState.IN_ROW

    def add_cell(self, column: int, value: str) -> None:
        """Place a value at a column of the current row.

        Args:
            column: Zero-based column position
            value: Resolved cell text

        Raises:
            SourceStateError: If no row has been started
        """
        if self.state is not RowState.IN_ROW:
            raise SourceStateError(f"Cell at column {column} outside of a row")

        if column > self._last_column + 1:
            self._cells.extend([""] * (column - self._last_column - 1))
        self._cells.append(value)
        self._last_column = max(self._last_column, column)
        self._observed += 1

    def end_row(self) -> list[str]:
        """Finish the current row.

        Returns:
            The dense row, padded to the header width once one is known

        Raises:
            SourceStateError: If no row has been started
        """
        if self.state is not RowState.IN_ROW:
            raise SourceStateError("Row ended without being started")

        row = self._cells
        if self.header_width is not None:
            if len(row) < self.header_width:
                row.extend([""] * (self.header_width - len(row)))
        elif not is_empty_row(row):
            self.header_width = len(row)
            self.header_cells = self._observed

        self._cells = []
        self.state = RowState.ROW_COMPLETE
        return row
