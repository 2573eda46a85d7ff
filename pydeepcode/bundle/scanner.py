"""Directory scanning for bundle creation."""

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import FileSystemError
from .filters import ServerFilterList
from .ignore import ExclusionFilter, load_ignore_rules
from .progress import FilesProgress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    """Outcome of a directory scan."""

    count: int
    """Number of eligible files below the scanned folder"""

    exclusion_filter: ExclusionFilter
    """Filter in effect for the scanned folder itself (for reporting only)"""


class DirectoryScanner:
    """Walks a workspace honouring .gitignore and .dcignore files.

    Ignore files apply to the directory containing them and all of its
    descendants. Each directory is listed once; if it contains ignore
    files, the filter received from its parent is copied and extended
    once, then used for all of its children.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> result = scanner.scan(Path("/home/user/project"))
        >>> print(f"{result.count} files to analyse")
    """

    def __init__(
        self,
        server_filter: Optional[ServerFilterList] = None,
        progress: Optional[FilesProgress] = None,
    ):
        """Initialize directory scanner.

        Args:
            server_filter: When set, only files it accepts are counted
            progress: Receives one add_total() per counted file
        """
        self.server_filter = server_filter
        self.progress = progress

    def scan(
        self, folder: Path, exclusion_filter: Optional[ExclusionFilter] = None
    ) -> ScanResult:
        """Count the eligible files below a folder.

        Args:
            folder: Directory to scan
            exclusion_filter: Filter inherited from the caller (not modified)

        Returns:
            ScanResult with the recursive file count

        Raises:
            FileSystemError: If the folder itself cannot be listed
        """
        folder_filter, files = self._walk(folder, exclusion_filter)
        count = sum(1 for _ in files)
        logger.debug(f"Scanned {folder}: {count} files")
        return ScanResult(count=count, exclusion_filter=folder_filter)

    def list_files(
        self, folder: Path, exclusion_filter: Optional[ExclusionFilter] = None
    ) -> list[Path]:
        """Return the eligible files below a folder, sorted by path.

        Raises:
            FileSystemError: If the folder itself cannot be listed
        """
        _, files = self._walk(folder, exclusion_filter)
        return sorted(files)

    def _walk(
        self, folder: Path, exclusion_filter: Optional[ExclusionFilter]
    ) -> tuple[ExclusionFilter, Iterator[Path]]:
        """List the root eagerly and return its filter plus a file iterator."""
        if exclusion_filter is None:
            exclusion_filter = ExclusionFilter()
        try:
            entries = self._list_directory(folder)
        except OSError as e:
            raise FileSystemError(f"Cannot list {folder}: {e}", str(folder)) from e
        folder_filter = self._derive_filter(folder, entries, exclusion_filter)
        return folder_filter, self._iter_tree(folder, entries, folder_filter)

    def _iter_tree(
        self,
        folder: Path,
        entries: list[os.DirEntry],
        folder_filter: ExclusionFilter,
    ) -> Iterator[Path]:
        visited = {self._identity(folder)}
        stack: list[tuple[list[os.DirEntry], ExclusionFilter]] = [
            (entries, folder_filter)
        ]

        while stack:
            entries, current_filter = stack.pop()
            for entry in entries:
                path = Path(entry.path)
                is_dir = self._is_dir(entry)
                if current_filter.excludes(path, is_dir=is_dir):
                    logger.debug(f"Excluded: {path}")
                    continue

                if is_dir:
                    child = self._enter_directory(path, current_filter, visited)
                    if child is not None:
                        stack.append(child)
                    continue

                if self.server_filter is not None and not self.server_filter.accepts(
                    entry.name
                ):
                    continue
                if self.progress is not None:
                    self.progress.add_total(1, str(path))
                yield path

    def _enter_directory(
        self,
        directory: Path,
        parent_filter: ExclusionFilter,
        visited: set[tuple[int, int]],
    ) -> Optional[tuple[list[os.DirEntry], ExclusionFilter]]:
        """List a subdirectory and derive its filter.

        Returns:
            (entries, filter) or None if the directory was already visited
            or cannot be listed

        Raises:
            FileSystemError: If an ignore file in the directory cannot be read
        """
        try:
            identity = self._identity(directory)
            if identity in visited:
                logger.debug(f"Skipping already visited directory: {directory}")
                return None
            visited.add(identity)
            entries = self._list_directory(directory)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {directory}: {e}")
            return None
        return entries, self._derive_filter(directory, entries, parent_filter)

    def _derive_filter(
        self,
        directory: Path,
        entries: list[os.DirEntry],
        parent_filter: ExclusionFilter,
    ) -> ExclusionFilter:
        """Extend the parent filter with this directory's ignore files.

        Returns the parent filter itself when there are none.
        """
        rules = load_ignore_rules(directory, (entry.name for entry in entries))
        if not rules:
            return parent_filter
        derived = parent_filter.copy()
        for rule in rules:
            derived.add_exclusion_rule(rule)
        return derived

    @staticmethod
    def _list_directory(directory: Path) -> list[os.DirEntry]:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda entry: entry.name)

    @staticmethod
    def _is_dir(entry: os.DirEntry) -> bool:
        try:
            return entry.is_dir()
        except OSError:
            return False

    @staticmethod
    def _identity(directory: Path) -> tuple[int, int]:
        stat = directory.stat()
        return stat.st_dev, stat.st_ino
