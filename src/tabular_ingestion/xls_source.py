"""Legacy binary (.xls) row source backed by xlrd."""

import logging
from collections.abc import Iterator

import xlrd
from xlrd.compdoc import CompDocError

from tabular_ingestion.cells import CellEvent, CellType, CellValueResolver, FormatDescriptor
from tabular_ingestion.exceptions import MalformedContainerError
from tabular_ingestion.rows import RowReconstructor
from tabular_ingestion.sheets import SheetDescriptor, select_active_sheet
from tabular_ingestion.source import RowSource

logger = logging.getLogger(__name__)

_SKIPPED_CELL_TYPES = (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK)


class XlsRowSource(RowSource):
    """Reads the active sheet of a BIFF workbook.

    The workbook is opened on demand. Each probed sheet that is not the
    selected tab is unloaded right after its flag is read, so at most one
    parsed sheet is held at a time.
    """

    read_errors = (OSError, xlrd.XLRDError, CompDocError)

    def __init__(self, source, options=None):
        super().__init__(source, options)
        self._book = None
        self.sheet: SheetDescriptor | None = None

    def _open(self) -> None:
        try:
            if self.path is not None:
                self._book = xlrd.open_workbook(
                    filename=str(self.path), formatting_info=True, on_demand=True, ragged_rows=True
                )
            else:
                self._book = xlrd.open_workbook(
                    file_contents=self.stream.read(), formatting_info=True, on_demand=True, ragged_rows=True
                )
            self._select_sheet()
        except (xlrd.XLRDError, CompDocError, EOFError) as e:
            if self._book is not None:
                self._book.release_resources()
                self._book = None
            logger.error(f"Cannot open {self.name} as an xls workbook: {e}")
            raise MalformedContainerError(f"Cannot open {self.name} as an xls workbook: {e}", self.name) from e

    def _select_sheet(self) -> None:
        book = self._book
        candidates = [
            SheetDescriptor(name, index, self._probe(index))
            for index, name in enumerate(book.sheet_names())
        ]
        self.sheet = select_active_sheet(candidates)
        if self.sheet is None:
            logger.warning(f"Workbook {self.name} has no sheets")
            return
        logger.debug(f"Reading sheet {self.sheet.name!r} of {self.name}")

    def _probe(self, index: int):
        def is_selected() -> bool:
            # xlrd only knows the selected flag once the sheet is parsed
            selected = bool(self._book.sheet_by_index(index).sheet_selected)
            if not selected:
                self._book.unload_sheet(index)
            return selected

        return is_selected

    def _iter_rows(self) -> Iterator[list[str]]:
        if self.sheet is None:
            return

        sheet = self._book.sheet_by_index(self.sheet.handle)
        resolver = CellValueResolver()
        reconstructor = RowReconstructor()
        skip = min(self.options.skip_lines, sheet.nrows)
        self._log_skipped(skip)
        self._row_number = skip

        for rowx in range(skip, sheet.nrows):
            self._row_number += 1
            reconstructor.start_row()
            for colx in range(sheet.row_len(rowx)):
                event = self._cell_event(sheet, rowx, colx)
                if event is not None:
                    reconstructor.add_cell(colx, self._resolve(resolver, event))
            yield reconstructor.end_row()

    def _cell_event(self, sheet, rowx: int, colx: int) -> CellEvent | None:
        cell_type = sheet.cell_type(rowx, colx)
        if cell_type in _SKIPPED_CELL_TYPES:
            return None

        value = sheet.cell_value(rowx, colx)
        if cell_type == xlrd.XL_CELL_TEXT:
            return CellEvent(colx, CellType.INLINE_STRING, value)
        if cell_type in (xlrd.XL_CELL_NUMBER, xlrd.XL_CELL_DATE):
            return CellEvent(colx, CellType.NUMBER, repr(float(value)), self._format(sheet, rowx, colx))
        if cell_type == xlrd.XL_CELL_BOOLEAN:
            return CellEvent(colx, CellType.BOOLEAN, str(int(value)))
        if cell_type == xlrd.XL_CELL_ERROR:
            return CellEvent(colx, CellType.ERROR, str(value))
        return CellEvent(colx, CellType.UNKNOWN, str(value))

    def _format(self, sheet, rowx: int, colx: int) -> FormatDescriptor:
        book = self._book
        xf_index = sheet.cell_xf_index(rowx, colx)
        if not 0 <= xf_index < len(book.xf_list):
            return FormatDescriptor(0, "General", bool(book.datemode))
        format_key = book.xf_list[xf_index].format_key
        number_format = book.format_map.get(format_key)
        pattern = number_format.format_str if number_format is not None else None
        return FormatDescriptor(format_key, pattern, bool(book.datemode))

    def _release(self) -> None:
        if self._book is not None:
            self._book.release_resources()
            self._book = None
