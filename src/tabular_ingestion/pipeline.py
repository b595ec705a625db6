"""Main extraction pipeline orchestration."""

import logging
from pathlib import Path

from tabular_ingestion.config import ExtractionConfig
from tabular_ingestion.discovery import FileDiscoverer
from tabular_ingestion.reader import TabularReader
from tabular_ingestion.serializer import DataSerializer

logger = logging.getLogger(__name__)


class ExtractionPipeline:
    """Orchestrates discovery, reading, record mapping and serialization."""

    def __init__(self, config: ExtractionConfig):
        """Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration
        """
        self.config = config

        self.discoverer = FileDiscoverer(
            root=config.input_path,
            patterns=config.file_patterns,
            ignore_patterns=config.ignore_patterns,
        )
        self.reader = TabularReader(options=config.reader)
        self.serializer = DataSerializer(
            output_dir=config.output_directory,
            format=config.output_format,
        )

    def run(self) -> int:
        """Execute the extraction pipeline.

        Returns:
            Exit code (0 for success, 1 if any file failed, 2 on pipeline failure)
        """
        try:
            logger.info(f"Starting extraction from {self.config.input_path}")

            files = self.discoverer.discover()
            if not files:
                logger.warning("No files discovered")
                return 0

            processed_count = 0
            failed_count = 0
            row_count = 0

            for file_path in files:
                try:
                    row_count += self._process_file(file_path)
                    processed_count += 1
                except Exception as e:
                    logger.error(f"Failed to process {file_path}: {e}", exc_info=True)
                    failed_count += 1

            logger.info(
                f"Pipeline complete: {processed_count} processed, "
                f"{failed_count} failed, {row_count} records"
            )

            return 1 if failed_count > 0 else 0

        except Exception as e:
            logger.error(f"Pipeline failed: {e}", exc_info=True)
            return 2

    def _process_file(self, file_path: Path) -> int:
        """Process a single file.

        Args:
            file_path: Path to file

        Returns:
            Number of records extracted
        """
        logger.info(f"Processing {file_path}")

        records = self.reader.read_records(
            file_path,
            mappings=self.config.columns or None,
            offset=self.config.offset,
            limit=self.config.limit,
        )

        data = []
        for record in records:
            row = record.to_dict()
            row["source_file"] = str(file_path)
            row["row_number"] = record.row_number
            data.append(row)

        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would write {len(data)} records from {file_path}")
            return len(data)

        file_stem = f"{file_path.stem}_{file_path.suffix.lstrip('.').lower()}"
        serialized_path = self.serializer.serialize(data=data, file_stem=file_stem)
        logger.info(f"Successfully processed {file_path} -> {serialized_path}")
        return len(data)
