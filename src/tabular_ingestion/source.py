"""Row source lifecycle shared by every input format."""

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from tabular_ingestion.cells import CellEvent, CellValueResolver
from tabular_ingestion.config import ReaderOptions
from tabular_ingestion.exceptions import (
    CellAnomaly,
    ResourceCleanupError,
    RowReadError,
    SourceNotFoundError,
    SourceStateError,
)
from tabular_ingestion.rows import is_empty_row

logger = logging.getLogger(__name__)


class SourceState(Enum):
    NEW = "new"
    OPEN = "open"
    CLOSED = "closed"


class IterationState(Enum):
    IDLE = "idle"
    ROW_READY = "row_ready"
    EXHAUSTED = "exhausted"


class RowSource(ABC):
    """Pull-based iterator over the rows of one tabular input.

    Subclasses implement ``_open`` (establish the line or sheet stream),
    ``_iter_rows`` (yield dense rows, honouring ``skip_lines``) and
    ``_release`` (free handles). Everything else, including the
    ``has_next``/``next_row`` protocol, empty row filtering and anomaly
    collection, lives here.

    Attributes:
        name: Path or stream name used in log messages and errors
        options: Reader options
        state: Lifecycle state
        iteration: Iteration state
        anomalies: Cell anomalies collected so far
    """

    # Errors that may surface while rows are produced and are reported as RowReadError
    read_errors: tuple[type[BaseException], ...] = (OSError,)

    def __init__(self, source: str | Path | BinaryIO | None, options: ReaderOptions | None = None):
        """Initialize row source.

        Args:
            source: File path or readable binary stream. A stream is never
                closed by the source.
            options: Reader options
        """
        self.options = options or ReaderOptions()
        self.path: Path | None = None
        self.stream: BinaryIO | None = None
        if isinstance(source, (str, Path)):
            self.path = Path(source)
            self.name = str(self.path)
        else:
            self.stream = source
            self.name = str(getattr(source, "name", "<stream>"))

        self.state = SourceState.NEW
        self.iteration = IterationState.IDLE
        self.anomalies: list[CellAnomaly] = []
        self._rows: Iterator[list[str]] | None = None
        self._current: list[str] | None = None
        self._row_number = 0

    def open(self) -> "RowSource":
        """Open the underlying input.

        Returns:
            self

        Raises:
            SourceNotFoundError: If the path does not exist or no stream was given
            MalformedContainerError: If the input is not a valid container
            SourceStateError: If the source was already opened
        """
        if self.state is not SourceState.NEW:
            raise SourceStateError(f"Source {self.name} is already {self.state.value}")

        if self.path is None and self.stream is None:
            logger.error("No input stream supplied")
            raise SourceNotFoundError("No input stream supplied")
        if self.path is not None and not self.path.is_file():
            logger.error(f"File not found: {self.path}")
            raise SourceNotFoundError(f"File not found: {self.path}")

        self._open()
        self._rows = self._iter_rows()
        self.state = SourceState.OPEN
        logger.info(f"Opened {self.name}")
        return self

    def has_next(self) -> bool:
        """Advance to the next qualifying row.

        Returns:
            True if a row is ready for ``next_row``, False at end of input or
            once the source is closed

        Raises:
            SourceStateError: If the source was never opened
            RowReadError: If the input fails while rows are produced
        """
        if self.state is SourceState.NEW:
            raise SourceStateError(f"Source {self.name} has not been opened")
        if self.state is SourceState.CLOSED or self.iteration is IterationState.EXHAUSTED:
            return False

        try:
            for row in self._rows:
                if self.options.read_empty_rows or not is_empty_row(row):
                    self._current = row
                    self.iteration = IterationState.ROW_READY
                    return True
        except self.read_errors as e:
            logger.error(f"Failed reading rows from {self.name}: {e}")
            raise RowReadError(f"Failed reading rows from {self.name}: {e}") from e

        self._current = None
        self.iteration = IterationState.EXHAUSTED
        return False

    def next_row(self) -> list[str]:
        """Return the row found by the last successful ``has_next``.

        Raises:
            SourceStateError: If no row is ready or the source is closed
        """
        if self.state is not SourceState.OPEN or self.iteration is not IterationState.ROW_READY:
            raise SourceStateError(f"No row ready on {self.name}; call has_next() first")
        return self._current

    def close(self) -> None:
        """Close the source and release its handles.

        Raises:
            SourceStateError: If the source was never opened
            ResourceCleanupError: If releasing a handle fails. The source is
                closed regardless.
        """
        if self.state is SourceState.NEW:
            raise SourceStateError(f"Source {self.name} was never opened")
        if self.state is SourceState.CLOSED:
            return

        self.state = SourceState.CLOSED
        self.iteration = IterationState.EXHAUSTED
        self._current = None
        rows, self._rows = self._rows, None
        try:
            if rows is not None:
                rows.close()
            self._release()
        except OSError as e:
            logger.error(f"Failed to release {self.name}: {e}")
            raise ResourceCleanupError(f"Failed to release {self.name}: {e}") from e
        logger.info(f"Closed {self.name}")

    def __iter__(self) -> Iterator[list[str]]:
        while self.has_next():
            yield self.next_row()

    def __enter__(self) -> "RowSource":
        if self.state is SourceState.NEW:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @abstractmethod
    def _open(self) -> None:
        """Establish the format's row stream."""

    @abstractmethod
    def _iter_rows(self) -> Iterator[list[str]]:
        """Yield dense rows, skipping ``options.skip_lines`` raw rows first."""

    @abstractmethod
    def _release(self) -> None:
        """Release handles opened by ``_open``."""

    def _resolve(self, resolver: CellValueResolver, event: CellEvent) -> str:
        """Resolve a cell, recording any anomaly against the current raw row."""
        resolution = resolver.resolve(event)
        if resolution.anomaly is not None:
            self._record_anomaly(resolution.anomaly)
        return resolution.value

    def _record_anomaly(self, anomaly: CellAnomaly) -> None:
        anomaly = dataclasses.replace(anomaly, row=self._row_number)
        self.anomalies.append(anomaly)
        logger.warning(f"{self.name} row {anomaly.row} column {anomaly.column + 1}: {anomaly.message}")

    def _log_skipped(self, skipped: int) -> None:
        if skipped:
            logger.debug(f"Skipped {skipped} leading rows of {self.name}")
