"""Mapping of rows onto named record fields."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from tabular_ingestion.config import ColumnMapping

logger = logging.getLogger(__name__)


@dataclass
class FileRecord:
    """One row of a file keyed by field name.

    Attributes:
        row_number: Zero-based produced row number within the file
        values: Field values in mapping order
    """

    row_number: int
    values: dict[str, Any] = field(default_factory=dict)

    def get(self, field_name: str, default: Any = None) -> Any:
        return self.values.get(field_name, default)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.values)


class RecordMapper:
    """Maps dense rows to FileRecords using one-based column mappings."""

    def __init__(self, mappings: list[ColumnMapping]):
        """Initialize record mapper.

        Args:
            mappings: Column to field mappings, in output field order
        """
        self.mappings = mappings

    @classmethod
    def from_headers(cls, headers: Mapping[int, str]) -> "RecordMapper":
        """Build a mapper that keeps every non-blank header column.

        Repeated header names get the column number appended.

        Args:
            headers: One-based column number to header text

        Returns:
            Mapper with one STRING field per header
        """
        mappings = []
        seen = set()
        for column_index, header in sorted(headers.items()):
            name = header.strip()
            if not name:
                continue
            if name in seen:
                name = f"{name}_{column_index}"
            seen.add(name)
            mappings.append(ColumnMapping(column_index=column_index, field_name=name, column_name=header))
        return cls(mappings)

    def map_row(self, row_number: int, row: list[str]) -> FileRecord:
        values = {}
        for mapping in self.mappings:
            position = mapping.column_index - 1
            raw_value = row[position] if position < len(row) else ""
            values[mapping.field_name] = self._cast_value(raw_value, mapping.type, mapping.field_name)
        return FileRecord(row_number=row_number, values=values)

    def map_rows(self, rows: Mapping[int, list[str]] | Iterable[tuple[int, list[str]]]) -> list[FileRecord]:
        """Map numbered rows to records.

        Args:
            rows: Row number to row mapping, or (row number, row) pairs

        Returns:
            Records in input order
        """
        items = rows.items() if isinstance(rows, Mapping) else rows
        records = [self.map_row(row_number, row) for row_number, row in items]
        logger.debug(f"Mapped {len(records)} rows onto {len(self.mappings)} fields")
        return records

    def _cast_value(self, value: str, target_type: str, field_name: str) -> Any:
        """Cast a single value to target type.

        Args:
            value: Cell text
            target_type: Target type (STRING, INTEGER, FLOAT, BOOLEAN, DATE)
            field_name: Field name for logging

        Returns:
            Casted value, or None for empty or uncastable non-string values
        """
        if target_type == "STRING":
            return value
        if value is None or value.strip() == "":
            return None

        try:
            if target_type == "INTEGER":
                return int(float(value))
            elif target_type == "FLOAT":
                return float(value)
            elif target_type == "BOOLEAN":
                return value.strip().lower() in ("true", "1", "yes", "y")
            elif target_type == "DATE":
                # Dates are already rendered as MM/DD/YYYY text
                return value
            else:
                logger.warning(f"Unknown type {target_type} for field {field_name}")
                return value
        except (ValueError, OverflowError) as e:
            logger.debug(f"Failed to cast '{value}' to {target_type} for field {field_name}: {e}")
            return None
