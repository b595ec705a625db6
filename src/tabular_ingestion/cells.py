"""Cell events and typed value resolution.

Spreadsheet parsers emit one CellEvent per stored cell. The resolver turns
an event into the canonical string placed in the row, without touching any
row state.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from xlrd.biffh import error_text_from_code

from tabular_ingestion.exceptions import CellAnomaly
from tabular_ingestion.formats import (
    builtin_format,
    format_date,
    format_general,
    format_number,
    is_date_pattern,
)


class CellType(Enum):
    """Declared type of a stored cell."""

    BOOLEAN = "boolean"
    ERROR = "error"
    FORMULA = "formula"
    INLINE_STRING = "inline_string"
    SHARED_STRING = "shared_string"
    NUMBER = "number"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FormatDescriptor:
    """Number format attached to a numeric cell.

    Attributes:
        index: Number format id
        pattern: Pattern text, or None to use the builtin pattern for the id
        date1904: Whether the workbook uses the 1904 date system
    """

    index: int
    pattern: str | None = None
    date1904: bool = False


@dataclass(frozen=True)
class CellEvent:
    """One stored cell as reported by a format parser."""

    column: int
    cell_type: CellType
    raw: str
    fmt: FormatDescriptor | None = None
    cached_type: CellType | None = None


@dataclass(frozen=True)
class CellResolution:
    """Resolved cell text plus the anomaly encountered, if any."""

    value: str
    anomaly: CellAnomaly | None = None


class CellValueResolver:
    """Resolves cell events into canonical strings."""

    def __init__(self, shared_strings: Sequence[str] = ()):
        """Initialize resolver.

        Args:
            shared_strings: Workbook shared string table
        """
        self.shared_strings = shared_strings

    def resolve(self, event: CellEvent) -> CellResolution:
        """Resolve a cell event.

        Args:
            event: Cell to resolve

        Returns:
            Canonical text and an optional anomaly
        """
        cell_type = event.cell_type
        if cell_type is CellType.FORMULA:
            cell_type = event.cached_type or self._guess_cached_type(event.raw)
            if cell_type is CellType.FORMULA:
                return CellResolution(event.raw)

        if cell_type is CellType.BOOLEAN:
            return CellResolution("TRUE" if event.raw.strip().lower() in ("1", "true") else "FALSE")
        if cell_type is CellType.ERROR:
            return CellResolution(self._error_text(event.raw))
        if cell_type is CellType.INLINE_STRING:
            return CellResolution(event.raw)
        if cell_type is CellType.SHARED_STRING:
            return self._shared_string(event)
        if cell_type is CellType.NUMBER:
            return self._number(event)

        return CellResolution(
            event.raw,
            CellAnomaly(
                kind="unknown_type",
                column=event.column,
                raw=event.raw,
                message=f"Unknown cell type for column {event.column}",
            ),
        )

    @staticmethod
    def _guess_cached_type(raw: str) -> CellType:
        try:
            float(raw)
        except ValueError:
            return CellType.FORMULA
        return CellType.NUMBER

    @staticmethod
    def _error_text(raw: str) -> str:
        text = raw.strip()
        if text.isdigit():
            return error_text_from_code.get(int(text), raw)
        return raw

    def _shared_string(self, event: CellEvent) -> CellResolution:
        try:
            index = int(event.raw)
            if index < 0:
                raise IndexError(index)
            return CellResolution(self.shared_strings[index])
        except (ValueError, IndexError):
            return CellResolution(
                "",
                CellAnomaly(
                    kind="shared_string_index",
                    column=event.column,
                    raw=event.raw,
                    message=f"Shared string index {event.raw!r} is not in the table "
                    f"of {len(self.shared_strings)} strings",
                ),
            )

    def _number(self, event: CellEvent) -> CellResolution:
        raw = event.raw.strip()
        if raw == "":
            return CellResolution("")

        try:
            value = float(raw)
        except ValueError:
            value = math.nan
        if not math.isfinite(value):
            return CellResolution(
                event.raw,
                CellAnomaly(
                    kind="numeric_literal",
                    column=event.column,
                    raw=event.raw,
                    message=f"Not a finite number: {event.raw!r}",
                ),
            )

        fmt = event.fmt
        if fmt is None:
            return CellResolution(raw)

        if is_date_pattern(fmt.index, fmt.pattern):
            if value < 0:
                return CellResolution(format_general(value))
            try:
                return CellResolution(format_date(value, fmt.date1904))
            except (ValueError, OverflowError) as e:
                return CellResolution(
                    format_general(value),
                    CellAnomaly(
                        kind="date_conversion",
                        column=event.column,
                        raw=event.raw,
                        message=f"Cannot convert {raw} to a date: {e}",
                    ),
                )

        pattern = fmt.pattern if fmt.pattern is not None else builtin_format(fmt.index)
        return CellResolution(format_number(value, pattern))
