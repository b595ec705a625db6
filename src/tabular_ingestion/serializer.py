"""Record serialization to JSON Lines and Parquet."""

import json
import logging
from pathlib import Path
from typing import Any, Literal

import pyarrow as pa
import pyarrow.parquet as pq

logger = logging.getLogger(__name__)


class DataSerializer:
    """Serializes records to JSON Lines or Parquet format."""

    def __init__(self, output_dir: Path, format: Literal["jsonl", "parquet"] = "jsonl"):
        """Initialize data serializer.

        Args:
            output_dir: Output directory for serialized files
            format: Output format (jsonl or parquet)
        """
        if format not in ("jsonl", "parquet"):
            raise ValueError(f"Unsupported format: {format}")
        self.output_dir = Path(output_dir)
        self.format = format

    def serialize(self, data: list[dict[str, Any]], file_stem: str) -> Path:
        """Serialize records to a file named after the source file.

        Args:
            data: List of dictionaries to serialize
            file_stem: Base filename (without extension)

        Returns:
            Path to serialized file
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"{file_stem}.{self.format}"

        try:
            if self.format == "parquet":
                self._write_parquet(data, output_path)
            else:
                self._write_jsonl(data, output_path)
        except (OSError, pa.ArrowException) as e:
            logger.error(f"Failed to serialize to {output_path}: {e}")
            raise

        logger.info(f"Serialized {len(data)} rows to {output_path}")
        return output_path

    def _write_parquet(self, data: list[dict[str, Any]], output_path: Path) -> None:
        if not data:
            table = pa.table({})
        else:
            table = pa.Table.from_pylist(data)

        pq.write_table(table, output_path, compression="snappy")

    def _write_jsonl(self, data: list[dict[str, Any]], output_path: Path) -> None:
        with open(output_path, "w", encoding="utf-8") as f:
            for row in data:
                f.write(json.dumps(row, ensure_ascii=False))
                f.write("\n")
