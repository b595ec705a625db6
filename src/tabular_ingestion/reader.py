"""Uniform access to CSV, XLS and XLSX files."""

import logging
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from tabular_ingestion.config import ColumnMapping, ReaderOptions
from tabular_ingestion.exceptions import ResourceCleanupError
from tabular_ingestion.records import FileRecord, RecordMapper
from tabular_ingestion.source import RowSource
from tabular_ingestion.text_source import TextRowSource
from tabular_ingestion.xls_source import XlsRowSource
from tabular_ingestion.xlsx_source import XlsxRowSource

logger = logging.getLogger(__name__)


class SourceKind(Enum):
    """Input format, chosen from the file extension."""

    TEXT = "text"
    LEGACY_BINARY = "legacy_binary"
    ZIP_XML = "zip_xml"

    @classmethod
    def for_name(cls, name: str | Path) -> "SourceKind":
        """Pick the kind for a file name.

        ``.csv`` is text, ``.xlsx`` is zipped XML and every other extension
        is treated as a legacy binary workbook.
        """
        suffix = Path(str(name)).suffix.lower()
        if suffix == ".csv":
            return cls.TEXT
        if suffix == ".xlsx":
            return cls.ZIP_XML
        return cls.LEGACY_BINARY

    @property
    def source_class(self) -> type[RowSource]:
        return _SOURCE_CLASSES[self]


_SOURCE_CLASSES: dict[SourceKind, type[RowSource]] = {
    SourceKind.TEXT: TextRowSource,
    SourceKind.LEGACY_BINARY: XlsRowSource,
    SourceKind.ZIP_XML: XlsxRowSource,
}


def create_source(
    source: str | Path | BinaryIO | None,
    options: ReaderOptions | None = None,
    kind: SourceKind | None = None,
) -> RowSource:
    """Create an unopened row source.

    Args:
        source: File path or binary stream
        options: Reader options
        kind: Input format; derived from the path or stream name when omitted

    Returns:
        Row source in the NEW state
    """
    if kind is None:
        name = source if isinstance(source, (str, Path)) else getattr(source, "name", "")
        kind = SourceKind.for_name(name or "")
    return kind.source_class(source, options)


def open_source(
    source: str | Path | BinaryIO | None,
    options: ReaderOptions | None = None,
    kind: SourceKind | None = None,
) -> RowSource:
    """Create and open a row source.

    Raises:
        SourceNotFoundError: If the path does not exist or no stream was given
        MalformedContainerError: If the input cannot be opened as its format
    """
    return create_source(source, options, kind).open()


class TabularReader:
    """Reads whole files through a row source.

    Empty rows are skipped unless the options say otherwise.
    """

    def __init__(self, options: ReaderOptions | None = None):
        """Initialize reader.

        Args:
            options: Reader options; defaults skip empty rows
        """
        self.options = options or ReaderOptions(read_empty_rows=False)

    def open(self, source: str | Path | BinaryIO, kind: SourceKind | None = None) -> RowSource:
        return open_source(source, self.options, kind)

    def read_rows(
        self,
        source: str | Path | BinaryIO,
        offset: int = 0,
        limit: int | None = None,
        kind: SourceKind | None = None,
    ) -> dict[int, list[str]]:
        """Read rows into a map keyed by zero-based row number.

        Args:
            source: File path or binary stream
            offset: Number of leading rows to leave out
            limit: Maximum number of rows to return

        Returns:
            Row number to row mapping, in file order
        """
        rows: dict[int, list[str]] = {}
        row_source = self.open(source, kind)
        try:
            for row_number, row in enumerate(row_source):
                if limit is not None and len(rows) >= limit:
                    break
                if row_number < offset:
                    continue
                rows[row_number] = row
                if limit is not None and len(rows) >= limit:
                    break
        finally:
            self._close(row_source)

        logger.info(f"Read {len(rows)} rows from {row_source.name}")
        return rows

    def read_headers(self, source: str | Path | BinaryIO, kind: SourceKind | None = None) -> dict[int, str]:
        """Read the first row as headers.

        Returns:
            One-based column number to header text, empty for an empty file
        """
        return _header_map(self.read_rows(source, offset=0, limit=1, kind=kind))

    def read_records(
        self,
        source: str | Path | BinaryIO,
        mappings: list[ColumnMapping] | None = None,
        offset: int = 0,
        limit: int | None = None,
        kind: SourceKind | None = None,
    ) -> list[FileRecord]:
        """Read rows and map them onto named fields.

        Without explicit mappings every non-blank header becomes a field
        and the header row itself is not returned as a record.

        Args:
            source: File path or binary stream
            mappings: One-based column to field mappings
            offset: Number of leading rows to leave out
            limit: Maximum number of records

        Returns:
            Records in file order
        """
        if mappings is not None:
            return RecordMapper(mappings).map_rows(self.read_rows(source, offset, limit, kind))

        first = max(offset, 1)
        rows = self.read_rows(source, 0, None if limit is None else first + limit, kind)
        mapper = RecordMapper.from_headers(_header_map(rows))
        return mapper.map_rows((n, row) for n, row in rows.items() if n >= first)

    def _close(self, row_source: RowSource) -> None:
        try:
            row_source.close()
        except ResourceCleanupError as e:
            logger.warning(f"Ignoring close failure after reading {row_source.name}: {e}")


def _header_map(rows: dict[int, list[str]]) -> dict[int, str]:
    if 0 not in rows:
        return {}
    return {index + 1: text for index, text in enumerate(rows[0])}
