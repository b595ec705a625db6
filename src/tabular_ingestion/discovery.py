"""File discovery utilities."""

import fnmatch
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PATTERNS = ["**/*.csv", "**/*.xls", "**/*.xlsx"]
DEFAULT_IGNORE_PATTERNS = ["~$*", ".~*", "*.tmp", "*.temp"]


class FileDiscoverer:
    """Discovers tabular files under a path."""

    def __init__(
        self,
        root: Path,
        patterns: list[str] | None = None,
        ignore_patterns: list[str] | None = None,
    ):
        """Initialize file discoverer.

        Args:
            root: Directory to search, or a single file
            patterns: Glob patterns for file matching
            ignore_patterns: List of patterns to ignore (e.g., lock and temp files)
        """
        self.root = Path(root)
        self.patterns = patterns or DEFAULT_PATTERNS
        self.ignore_patterns = ignore_patterns if ignore_patterns is not None else DEFAULT_IGNORE_PATTERNS

    def discover(self) -> list[Path]:
        """Discover all matching files.

        A file given as the root is returned as-is.

        Returns:
            Sorted list of discovered file paths
        """
        if self.root.is_file():
            return [self.root]

        if not self.root.exists():
            logger.error(f"Input path does not exist: {self.root}")
            return []

        discovered = set()
        for pattern in self.patterns:
            for file_path in self.root.glob(pattern):
                if not file_path.is_file():
                    continue

                if self._should_ignore(file_path):
                    logger.debug(f"Ignoring file: {file_path}")
                    continue

                discovered.add(file_path)

        logger.info(f"Discovered {len(discovered)} files in {self.root}")
        return sorted(discovered)

    def _should_ignore(self, file_path: Path) -> bool:
        file_name = file_path.name
        return any(fnmatch.fnmatch(file_name, pattern) for pattern in self.ignore_patterns)
