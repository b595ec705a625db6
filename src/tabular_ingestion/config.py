"""Configuration management for tabular ingestion."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml

from tabular_ingestion.exceptions import ConfigurationError

DEFAULT_SEPARATOR = ","
DEFAULT_QUOTE_CHARACTER = '"'
DEFAULT_ESCAPE_CHARACTER = "\\"
DEFAULT_STRICT_QUOTES = False
DEFAULT_IGNORE_LEADING_WHITESPACE = True
DEFAULT_SKIP_LINES = 0

FieldType = Literal["STRING", "INTEGER", "FLOAT", "BOOLEAN", "DATE"]


@dataclass
class TokenizerConfig:
    """Delimited text tokenizer configuration."""

    separator: str = DEFAULT_SEPARATOR
    quotechar: str = DEFAULT_QUOTE_CHARACTER
    escapechar: str = DEFAULT_ESCAPE_CHARACTER
    strict_quotes: bool = DEFAULT_STRICT_QUOTES
    ignore_leading_whitespace: bool = DEFAULT_IGNORE_LEADING_WHITESPACE

    def __post_init__(self):
        if len(self.separator) != 1:
            raise ConfigurationError(f"Separator must be a single character: {self.separator!r}")
        if len(self.quotechar) != 1:
            raise ConfigurationError(f"Quote character must be a single character: {self.quotechar!r}")
        if len(self.escapechar) > 1:
            raise ConfigurationError(f"Escape character must be at most one character: {self.escapechar!r}")
        if self.separator == self.quotechar:
            raise ConfigurationError("Separator and quote character must differ")


@dataclass
class ReaderOptions:
    """Options applied when opening a row source."""

    skip_lines: int = DEFAULT_SKIP_LINES
    read_empty_rows: bool = True
    encoding: str = "utf-8"
    tokenizer: TokenizerConfig = field(default_factory=TokenizerConfig)

    def __post_init__(self):
        if self.skip_lines < 0:
            raise ConfigurationError(f"skip_lines must not be negative: {self.skip_lines}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReaderOptions":
        """Construct reader options from dictionary."""
        data = data.copy()
        data["tokenizer"] = TokenizerConfig(**(data.get("tokenizer") or {}))
        return cls(**data)


@dataclass
class ColumnMapping:
    """Maps a one-based column number onto a named record field."""

    column_index: int
    field_name: str
    column_name: str | None = None
    type: FieldType = "STRING"

    def __post_init__(self):
        if self.column_index < 1:
            raise ConfigurationError(
                f"column_index is one-based, got {self.column_index} for {self.field_name}"
            )


@dataclass
class ExtractionConfig:
    """Main extraction pipeline configuration."""

    input_path: Path
    output_directory: Path = field(default_factory=lambda: Path("./output"))
    output_format: Literal["jsonl", "parquet"] = "jsonl"
    file_patterns: list[str] = field(
        default_factory=lambda: ["**/*.csv", "**/*.xls", "**/*.xlsx"]
    )
    ignore_patterns: list[str] = field(
        default_factory=lambda: ["~$*", ".~*", "*.tmp", "*.temp"]
    )
    offset: int = 0
    limit: int | None = None
    columns: list[ColumnMapping] = field(default_factory=list)
    reader: ReaderOptions = field(default_factory=lambda: ReaderOptions(read_empty_rows=False))
    dry_run: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        if self.offset < 0:
            raise ConfigurationError(f"offset must not be negative: {self.offset}")
        if self.limit is not None and self.limit < 0:
            raise ConfigurationError(f"limit must not be negative: {self.limit}")
        if self.output_format not in ("jsonl", "parquet"):
            raise ConfigurationError(f"Unsupported output format: {self.output_format}")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ExtractionConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractionConfig":
        """Construct configuration from dictionary."""
        data = data.copy()

        if "input_path" not in data:
            raise ConfigurationError("input_path is required")
        data["input_path"] = Path(data["input_path"])
        data["output_directory"] = Path(data.get("output_directory", "./output"))

        reader_data = dict(data.get("reader") or {})
        reader_data.setdefault("read_empty_rows", False)
        data["reader"] = ReaderOptions.from_dict(reader_data)

        columns_data = data.get("columns", [])
        data["columns"] = [ColumnMapping(**column) for column in columns_data]

        return cls(**data)

    @classmethod
    def from_env(cls) -> "ExtractionConfig":
        """Load configuration from environment variables."""
        limit = os.getenv("TABULAR_LIMIT")
        return cls.from_dict(
            {
                "input_path": os.getenv("TABULAR_INPUT_PATH", "./input"),
                "output_directory": os.getenv("TABULAR_OUTPUT_DIR", "./output"),
                "output_format": os.getenv("TABULAR_OUTPUT_FORMAT", "jsonl"),
                "offset": int(os.getenv("TABULAR_OFFSET", "0")),
                "limit": int(limit) if limit else None,
                "reader": {
                    "skip_lines": int(os.getenv("TABULAR_SKIP_LINES", "0")),
                    "read_empty_rows": os.getenv("TABULAR_READ_EMPTY_ROWS", "false").lower() == "true",
                    "encoding": os.getenv("TABULAR_ENCODING", "utf-8"),
                    "tokenizer": {
                        "separator": os.getenv("TABULAR_SEPARATOR", DEFAULT_SEPARATOR),
                    },
                },
                "dry_run": os.getenv("TABULAR_DRY_RUN", "false").lower() == "true",
                "log_level": os.getenv("TABULAR_LOG_LEVEL", "INFO"),
            }
        )
