"""CLI entrypoint for the tabular extraction pipeline."""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from tabular_ingestion.config import ExtractionConfig
from tabular_ingestion.discovery import FileDiscoverer
from tabular_ingestion.pipeline import ExtractionPipeline
from tabular_ingestion.reader import TabularReader


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter using stdlib only."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record

        Returns:
            JSON formatted string
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=None).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "name": record.name,
            "levelname": record.levelname,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Configure structured logging.

    Args:
        level: Log level
        json_format: Use JSON formatter
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Tabular ingestion - CSV, XLS and XLSX to JSON Lines or Parquet",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--input",
        type=Path,
        help="Input file or directory (overrides configuration)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Output directory (overrides configuration)",
    )
    parser.add_argument(
        "--format",
        choices=["jsonl", "parquet"],
        help="Output format (overrides configuration)",
    )
    parser.add_argument(
        "--offset",
        type=int,
        help="Number of leading rows to leave out",
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Maximum number of rows per file",
    )
    parser.add_argument(
        "--headers",
        action="store_true",
        help="Print the header row of each input file as JSON and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Read files without writing output",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level",
    )
    log_format = parser.add_mutually_exclusive_group()
    log_format.add_argument(
        "--json-logs",
        dest="json_logs",
        action="store_true",
        default=True,
        help="Output logs in JSON format",
    )
    log_format.add_argument(
        "--plain-logs",
        dest="json_logs",
        action="store_false",
        help="Output logs as plain text",
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> ExtractionConfig:
    """Build the configuration from a file, the environment and CLI overrides."""
    logger = logging.getLogger(__name__)

    if args.config:
        logger.info(f"Loading configuration from {args.config}")
        config = ExtractionConfig.from_yaml(args.config)
    elif args.input:
        config = ExtractionConfig(input_path=args.input)
    else:
        logger.info("Loading configuration from environment variables")
        config = ExtractionConfig.from_env()

    if args.input:
        config.input_path = args.input
    if args.output_dir:
        config.output_directory = args.output_dir
    if args.format:
        config.output_format = args.format
    if args.offset is not None:
        config.offset = args.offset
    if args.limit is not None:
        config.limit = args.limit
    if args.dry_run:
        config.dry_run = True

    # Re-run validation after overrides
    config.__post_init__()
    return config


def print_headers(config: ExtractionConfig) -> int:
    """Print one JSON line with the headers of each discovered file."""
    logger = logging.getLogger(__name__)
    reader = TabularReader(options=config.reader)
    discoverer = FileDiscoverer(config.input_path, config.file_patterns, config.ignore_patterns)

    failed = 0
    for file_path in discoverer.discover():
        try:
            headers = reader.read_headers(file_path)
        except Exception as e:
            logger.error(f"Failed to read headers from {file_path}: {e}", exc_info=True)
            failed += 1
            continue
        print(json.dumps({"file": str(file_path), "headers": headers}, ensure_ascii=False))

    return 1 if failed else 0


def main(argv: list[str] | None = None) -> int:
    """Main entrypoint.

    Returns:
        Exit code
    """
    args = parse_args(argv)

    setup_logging(level=args.log_level, json_format=args.json_logs)
    logger = logging.getLogger(__name__)

    try:
        config = load_config(args)

        if config.log_level and args.log_level == "INFO":
            logging.getLogger().setLevel(config.log_level)

        if args.headers:
            return print_headers(config)

        pipeline = ExtractionPipeline(config)
        exit_code = pipeline.run()

        return exit_code

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 3


if __name__ == "__main__":
    sys.exit(main())
