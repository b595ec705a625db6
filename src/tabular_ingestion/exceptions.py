"""Exception hierarchy and cell anomaly values.

Exception Hierarchy:
    TabularIngestionError (base)
    ├── SourceNotFoundError (also a FileNotFoundError)
    ├── MalformedContainerError
    ├── RowReadError
    ├── SourceStateError
    ├── ResourceCleanupError
    └── ConfigurationError

Per-cell problems are not raised: they are reported as CellAnomaly values
and processing of the row continues.
"""

from dataclasses import dataclass
from typing import Literal


class TabularIngestionError(Exception):
    """Base exception for all tabular ingestion errors."""


class SourceNotFoundError(TabularIngestionError, FileNotFoundError):
    """Raised when a path does not exist or a byte stream is missing."""


class MalformedContainerError(TabularIngestionError):
    """Raised when a container cannot be opened as the expected format.

    Attributes:
        source: Path or description of the offending input
    """

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class RowReadError(TabularIngestionError):
    """Raised when an unexpected I/O or parse failure interrupts row production."""


class SourceStateError(TabularIngestionError):
    """Raised when a row source is used outside its lifecycle."""


class ResourceCleanupError(TabularIngestionError):
    """Raised when releasing the underlying handle fails."""


class ConfigurationError(TabularIngestionError):
    """Raised for invalid configuration values."""


AnomalyKind = Literal[
    "shared_string_index",
    "numeric_literal",
    "unknown_type",
    "date_conversion",
    "cell_reference",
]


@dataclass(frozen=True)
class CellAnomaly:
    """A recoverable problem with a single cell.

    The affected cell still receives a fallback value; the anomaly only
    records what went wrong so callers can inspect it.
    """

    kind: AnomalyKind
    column: int
    raw: str
    message: str
    row: int | None = None
