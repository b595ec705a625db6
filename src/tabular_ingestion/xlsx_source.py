"""XLSX (zipped XML) row source.

Package metadata (relationships, the workbook part, shared strings and the
style sheet) is parsed with openpyxl's readers. The chosen worksheet is then
streamed with ElementTree.iterparse so only one row is held in memory.
"""

import logging
import xml.etree.ElementTree as ET
import zipfile
import zlib
from collections.abc import Iterator

from openpyxl.cell.text import Text
from openpyxl.packaging.relationship import get_dependents
from openpyxl.reader.strings import read_string_table
from openpyxl.reader.workbook import WorkbookParser
from openpyxl.styles.numbers import BUILTIN_FORMATS_MAX_SIZE
from openpyxl.styles.stylesheet import Stylesheet
from openpyxl.utils.cell import column_index_from_string, coordinate_from_string
from openpyxl.utils.datetime import CALENDAR_MAC_1904
from openpyxl.utils.exceptions import CellCoordinatesException
from openpyxl.xml.constants import ARC_ROOT_RELS, ARC_WORKBOOK, REL_NS
from openpyxl.xml.functions import fromstring

from tabular_ingestion.cells import CellEvent, CellType, CellValueResolver, FormatDescriptor
from tabular_ingestion.exceptions import CellAnomaly, MalformedContainerError
from tabular_ingestion.rows import RowReconstructor
from tabular_ingestion.sheets import SheetDescriptor, select_active_sheet
from tabular_ingestion.source import RowSource

logger = logging.getLogger(__name__)

_CELL_TYPES = {
    "b": CellType.BOOLEAN,
    "e": CellType.ERROR,
    "inlineStr": CellType.INLINE_STRING,
    "s": CellType.SHARED_STRING,
    "str": CellType.INLINE_STRING,
    "n": CellType.NUMBER,
    "d": CellType.INLINE_STRING,
}

_TRUE_VALUES = ("1", "true")

# Errors openpyxl's part readers raise on a damaged package
_METADATA_ERRORS = (KeyError, SyntaxError, zipfile.BadZipFile, zlib.error, ValueError, TypeError)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class StyleTable:
    """Cell style index to number format lookup.

    Built from an openpyxl ``Stylesheet``, whose reader already renumbers
    workbook defined formats to ids from 164 upward.

    Attributes:
        cell_formats: numFmtId of each cellXfs entry, indexed by style id
        custom_formats: Workbook defined pattern text, indexed by id - 164
        date1904: Workbook date system
    """

    def __init__(self, stylesheet: Stylesheet | None = None, date1904: bool = False):
        self.cell_formats: list[int] = []
        self.custom_formats: list[str] = []
        if stylesheet is not None:
            self.cell_formats = [style.numFmtId for style in stylesheet.cell_styles]
            self.custom_formats = list(stylesheet.number_formats)
        self.date1904 = date1904

    def format_for(self, style: str | None) -> FormatDescriptor | None:
        """Number format for a cell's ``s`` attribute, or None if unstyled."""
        if style is None or not self.cell_formats:
            return None
        try:
            index = int(style)
        except ValueError:
            index = 0
        if not 0 <= index < len(self.cell_formats):
            index = 0
        format_id = self.cell_formats[index]
        return FormatDescriptor(format_id, self._pattern(format_id), self.date1904)

    def _pattern(self, format_id: int) -> str | None:
        offset = format_id - BUILTIN_FORMATS_MAX_SIZE
        if 0 <= offset < len(self.custom_formats):
            return self.custom_formats[offset]
        return None


class XlsxRowSource(RowSource):
    """Streams the active sheet of an XLSX workbook."""

    read_errors = (OSError, ET.ParseError, zipfile.BadZipFile, zlib.error, EOFError)

    def __init__(self, source, options=None):
        super().__init__(source, options)
        self._zip: zipfile.ZipFile | None = None
        self.shared_strings: list[str] = []
        self.styles = StyleTable()
        self.sheet: SheetDescriptor | None = None

    def _open(self) -> None:
        try:
            self._zip = zipfile.ZipFile(self.path if self.path is not None else self.stream)
        except (zipfile.BadZipFile, OSError) as e:
            logger.error(f"Cannot open {self.name} as a zip package: {e}")
            raise MalformedContainerError(f"Cannot open {self.name} as a zip package: {e}", self.name) from e

        try:
            self._load_workbook()
        except _METADATA_ERRORS as e:
            self._zip.close()
            self._zip = None
            logger.error(f"Malformed workbook {self.name}: {e}")
            raise MalformedContainerError(f"Malformed workbook {self.name}: {e}", self.name) from e

    def _load_workbook(self) -> None:
        parser = WorkbookParser(self._zip, self._workbook_part(), keep_links=False)
        parser.parse()
        date1904 = parser.wb.epoch == CALENDAR_MAC_1904

        stylesheet = None
        for rel in parser.rels.values():
            if rel.Type.endswith("/sharedStrings"):
                self.shared_strings = self._load_shared_strings(rel.target)
            elif rel.Type.endswith("/styles"):
                stylesheet = Stylesheet.from_tree(fromstring(self._zip.read(rel.target)))
        self.styles = StyleTable(stylesheet, date1904)

        names = set(self._zip.namelist())
        candidates = []
        for sheet, rel in parser.find_sheets():
            if not rel.Type.endswith("/worksheet"):
                # Chartsheets and dialog sheets have no cell data
                continue
            if rel.target not in names:
                raise KeyError(f"Worksheet part {rel.target} is missing")
            candidates.append(SheetDescriptor(sheet.name, rel.target, self._probe(rel.target)))

        self.sheet = select_active_sheet(candidates)
        if self.sheet is None:
            logger.warning(f"Workbook {self.name} has no worksheets")
        else:
            logger.debug(f"Reading sheet {self.sheet.name!r} ({self.sheet.handle}) of {self.name}")

    def _workbook_part(self) -> str:
        try:
            package_rels = get_dependents(self._zip, ARC_ROOT_RELS)
        except KeyError:
            return ARC_WORKBOOK
        for rel in package_rels.find(f"{REL_NS}/officeDocument"):
            return rel.target
        return ARC_WORKBOOK

    def _load_shared_strings(self, part: str) -> list[str]:
        with self._zip.open(part) as fh:
            strings = read_string_table(fh)
        logger.debug(f"Loaded {len(strings)} shared strings from {self.name}")
        return strings

    def _probe(self, part: str):
        def is_selected() -> bool:
            with self._zip.open(part) as fh:
                for _, elem in ET.iterparse(fh, events=("start",)):
                    name = _local(elem.tag)
                    if name == "sheetView":
                        return elem.get("tabSelected", "").lower() in _TRUE_VALUES
                    if name == "sheetData":
                        return False
            return False

        return is_selected

    def _iter_rows(self) -> Iterator[list[str]]:
        if self.sheet is None:
            return

        resolver = CellValueResolver(self.shared_strings)
        reconstructor = RowReconstructor()
        skipped = 0
        sheet_data = None
        with self._zip.open(self.sheet.handle) as fh:
            for event, elem in ET.iterparse(fh, events=("start", "end")):
                name = _local(elem.tag)
                if event == "start":
                    if name == "sheetData":
                        sheet_data = elem
                    continue
                if name != "row" or sheet_data is None:
                    continue

                self._row_number += 1
                if skipped < self.options.skip_lines:
                    skipped += 1
                    if skipped == self.options.skip_lines:
                        self._log_skipped(skipped)
                else:
                    yield self._build_row(elem, resolver, reconstructor)
                sheet_data.clear()

    def _build_row(
        self, row: ET.Element, resolver: CellValueResolver, reconstructor: RowReconstructor
    ) -> list[str]:
        reconstructor.start_row()
        last_column = -1
        for cell in row:
            if _local(cell.tag) != "c":
                continue
            event = self._cell_event(cell, last_column)
            if event is None:
                continue
            reconstructor.add_cell(event.column, self._resolve(resolver, event))
            last_column = event.column
        return reconstructor.end_row()

    def _cell_event(self, cell: ET.Element, last_column: int) -> CellEvent | None:
        raw = None
        has_formula = False
        for child in cell:
            name = _local(child.tag)
            if name == "v":
                raw = child.text or ""
            elif name == "is":
                raw = Text.from_tree(child).content
            elif name == "f":
                has_formula = True
        if raw is None:
            return None

        column = self._column(cell.get("r"), last_column, raw)
        type_attr = cell.get("t", "n")
        cell_type = _CELL_TYPES.get(type_attr, CellType.UNKNOWN)
        fmt = self.styles.format_for(cell.get("s")) if cell_type is CellType.NUMBER else None

        if has_formula or type_attr == "str":
            return CellEvent(column, CellType.FORMULA, raw, fmt, cached_type=cell_type)
        return CellEvent(column, cell_type, raw, fmt)

    def _column(self, ref: str | None, last_column: int, raw: str) -> int:
        if ref:
            try:
                letters, _ = coordinate_from_string(ref)
                return column_index_from_string(letters) - 1
            except (CellCoordinatesException, ValueError):
                pass
        column = last_column + 1
        self._record_anomaly(
            CellAnomaly(
                kind="cell_reference",
                column=column,
                raw=raw,
                message=f"Invalid cell reference {ref!r}, placed after column {last_column + 1}",
            )
        )
        return column

    def _release(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None
