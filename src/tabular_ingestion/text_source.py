"""Delimited text row source."""

import io
import logging
from collections.abc import Iterator

from tabular_ingestion.rows import RowReconstructor
from tabular_ingestion.source import RowSource
from tabular_ingestion.tokenizer import FieldTokenizer

logger = logging.getLogger(__name__)


class TextRowSource(RowSource):
    """Reads CSV-style text through the field tokenizer.

    Tokenized fields go through the same row reconstructor as spreadsheet
    cells, so text rows are padded to the header width as well.
    """

    read_errors = (OSError, UnicodeDecodeError)

    def __init__(self, source, options=None):
        super().__init__(source, options)
        self.tokenizer = FieldTokenizer(self.options.tokenizer)
        self._handle: io.TextIOBase | None = None
        self._wrapper: io.TextIOWrapper | None = None

    def _open(self) -> None:
        if self.path is not None:
            self._handle = open(self.path, encoding=self.options.encoding, newline=None)
        elif isinstance(self.stream, io.TextIOBase):
            self._handle = self.stream
        else:
            self._wrapper = io.TextIOWrapper(self.stream, encoding=self.options.encoding, newline=None)
            self._handle = self._wrapper

    def _lines(self) -> Iterator[str]:
        for line in self._handle:
            yield line[:-1] if line.endswith("\n") else line

    def _iter_rows(self) -> Iterator[list[str]]:
        lines = self._lines()
        skipped = 0
        while skipped < self.options.skip_lines and next(lines, None) is not None:
            skipped += 1
        self._log_skipped(skipped)

        reconstructor = RowReconstructor()
        for fields in self.tokenizer.records(lines):
            self._row_number += 1
            reconstructor.start_row()
            for column, value in enumerate(fields):
                reconstructor.add_cell(column, value)
            yield reconstructor.end_row()

    def _release(self) -> None:
        if self.path is not None:
            self._handle.close()
        elif self._wrapper is not None:
            # Leave the caller's byte stream open.
            self._wrapper.detach()
        self._handle = None
        self._wrapper = None
