from __future__ import annotations

import zipfile
from collections.abc import Callable
from pathlib import Path
from xml.sax.saxutils import quoteattr

import openpyxl
import pytest

MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
REL_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"


def _sheet_xml(rows: str, tab_selected: str | None, ns: str) -> str:
    view = ""
    if tab_selected is not None:
        view = f'<sheetViews><sheetView tabSelected="{tab_selected}" workbookViewId="0"/></sheetViews>'
    return f'<?xml version="1.0" encoding="UTF-8"?><worksheet xmlns="{ns}">{view}<sheetData>{rows}</sheetData></worksheet>'


def build_xlsx(
    path: Path,
    sheets: list[tuple[str, str, str | None]],
    shared_strings: list[str] | None = None,
    styles: tuple[dict[int, str], list[int]] | None = None,
    date1904: bool = False,
) -> Path:
    """Write a minimal XLSX package.

    Args:
        path: Output file
        sheets: (name, sheetData inner XML, tabSelected value or None) per sheet
        shared_strings: Shared string table
        styles: (custom numFmts by id, numFmtId per cellXfs entry)
        date1904: Set the workbook 1904 date system flag
    """
    ns = MAIN_NS
    workbook_pr = '<workbookPr date1904="1"/>' if date1904 else ""
    sheet_entries = "".join(
        f'<sheet name="{name}" sheetId="{i + 1}" r:id="rId{i + 1}"/>' for i, (name, _, _) in enumerate(sheets)
    )
    workbook = (
        f'<?xml version="1.0" encoding="UTF-8"?><workbook xmlns="{ns}" xmlns:r="{REL_NS}">'
        f"{workbook_pr}<sheets>{sheet_entries}</sheets></workbook>"
    )

    rels = [
        f'<Relationship Id="rId{i + 1}" Type="{REL_TYPE}/worksheet" Target="worksheets/sheet{i + 1}.xml"/>'
        for i in range(len(sheets))
    ]
    if shared_strings is not None:
        rels.append(f'<Relationship Id="rIdSst" Type="{REL_TYPE}/sharedStrings" Target="sharedStrings.xml"/>')
    if styles is not None:
        rels.append(f'<Relationship Id="rIdStyles" Type="{REL_TYPE}/styles" Target="styles.xml"/>')
    workbook_rels = f'<?xml version="1.0" encoding="UTF-8"?><Relationships xmlns="{PKG_REL_NS}">{"".join(rels)}</Relationships>'

    package_rels = (
        f'<?xml version="1.0" encoding="UTF-8"?><Relationships xmlns="{PKG_REL_NS}">'
        f'<Relationship Id="rId1" Type="{REL_TYPE}/officeDocument" Target="xl/workbook.xml"/>'
        "</Relationships>"
    )

    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("[Content_Types].xml", '<?xml version="1.0" encoding="UTF-8"?><Types/>')
        zf.writestr("_rels/.rels", package_rels)
        zf.writestr("xl/workbook.xml", workbook)
        zf.writestr("xl/_rels/workbook.xml.rels", workbook_rels)
        for i, (_, rows, tab_selected) in enumerate(sheets):
            zf.writestr(f"xl/worksheets/sheet{i + 1}.xml", _sheet_xml(rows, tab_selected, ns))
        if shared_strings is not None:
            items = "".join(f"<si><t>{text}</t></si>" for text in shared_strings)
            zf.writestr(
                "xl/sharedStrings.xml",
                f'<?xml version="1.0" encoding="UTF-8"?><sst xmlns="{ns}">{items}</sst>',
            )
        if styles is not None:
            custom, xfs = styles
            num_fmts = "".join(f'<numFmt numFmtId="{k}" formatCode={quoteattr(v)}/>' for k, v in custom.items())
            cell_xfs = "".join(f'<xf numFmtId="{n}"/>' for n in xfs)
            zf.writestr(
                "xl/styles.xml",
                f'<?xml version="1.0" encoding="UTF-8"?><styleSheet xmlns="{ns}">'
                f"<numFmts>{num_fmts}</numFmts>"
                f'<cellStyleXfs><xf numFmtId="0"/></cellStyleXfs>'
                f"<cellXfs>{cell_xfs}</cellXfs></styleSheet>",
            )
    return path


@pytest.fixture
def xlsx_package(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing hand-built XLSX packages into tmp_path."""

    def factory(*args, name: str = "book.xlsx", **kwargs) -> Path:
        return build_xlsx(tmp_path / name, *args, **kwargs)

    return factory


@pytest.fixture
def csv_file(tmp_path: Path) -> Callable[[str], Path]:
    """Factory writing CSV text into tmp_path."""

    def factory(text: str, name: str = "data.csv", encoding: str = "utf-8") -> Path:
        path = tmp_path / name
        path.write_bytes(text.encode(encoding))
        return path

    return factory


@pytest.fixture
def openpyxl_workbook(tmp_path: Path) -> Path:
    """Workbook saved by openpyxl with a header, sparse rows and a second active sheet."""
    workbook = openpyxl.Workbook()
    first = workbook.active
    first.title = "Summary"
    first.append(["ignored"])

    data = workbook.create_sheet("Data")
    data.append(["name", "amount", "when", "flag"])
    data["A2"] = "alpha"
    data["B2"] = 1234.5
    data["B2"].number_format = "#,##0.00"
    data["C2"] = 45000
    data["C2"].number_format = "yyyy-mm-dd"
    data["D2"] = True
    data["A4"] = "gamma"

    first.sheet_view.tabSelected = False
    data.sheet_view.tabSelected = True
    workbook.active = 1

    path = tmp_path / "openpyxl.xlsx"
    workbook.save(path)
    return path
