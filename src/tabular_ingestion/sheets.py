"""Active sheet selection."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class SheetDescriptor:
    """A candidate sheet with a lazily evaluated active flag.

    Attributes:
        name: Sheet name as listed in the workbook
        handle: Format specific reference used to open the sheet
        probe: Callable returning True when the sheet is the selected tab
    """

    name: str
    handle: Any
    probe: Callable[[], bool] = field(repr=False, default=lambda: False)

    def is_active(self) -> bool:
        return bool(self.probe())


def select_active_sheet(candidates: Iterable[SheetDescriptor]) -> SheetDescriptor | None:
    """Pick the sheet to read.

    Candidates are probed in workbook order and the first one flagged as the
    selected tab wins. Without any flagged sheet the first sheet is used.

    Args:
        candidates: Sheets in workbook order

    Returns:
        The chosen sheet, or None if the workbook has no sheets
    """
    first = None
    for sheet in candidates:
        if first is None:
            first = sheet
        if sheet.is_active():
            logger.debug(f"Selected active sheet {sheet.name!r}")
            return sheet

    if first is not None:
        logger.debug(f"No active sheet flagged, using first sheet {first.name!r}")
    return first
