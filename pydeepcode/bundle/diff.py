"""Change classification of workspace files against a bundle manifest."""

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..exceptions import FileSystemError
from ..utils import (
    DEFAULT_MAX_WORKERS,
    create_file_hash,
    read_file_bytes,
    to_relative_path,
)
from .ignore import is_ignore_file
from .progress import FilesProgress

logger = logging.getLogger(__name__)

BundleManifest = Mapping[str, str]


class FileStatus(str, Enum):
    """Status of a file relative to the manifest."""

    SAME = "same"
    """Content hash equals the manifest hash"""

    MODIFIED = "modified"
    """Content hash differs from the manifest hash"""

    CREATED = "created"
    """File is not in the manifest"""

    DELETED = "deleted"
    """File is in the manifest but can no longer be read"""


@dataclass(frozen=True)
class FileChangeRecord:
    """Result of comparing one file with the manifest."""

    relative_path: str
    """Workspace-relative path (forward slashes)"""

    file_hash: str
    """Current content hash, empty for deleted files"""

    status: FileStatus


class BundleDiffEngine:
    """Compares files on disk with the last server-confirmed manifest.

    The engine keeps no state between calls, so diff() may run
    concurrently for different paths.
    """

    def __init__(self, progress: Optional[FilesProgress] = None):
        """Initialize diff engine.

        Args:
            progress: Advanced once for every file whose content was hashed
        """
        self.progress = progress

    def diff(
        self,
        file_path: Path,
        workspace_root: Path,
        manifest: Optional[BundleManifest],
    ) -> FileChangeRecord:
        """Classify a single file.

        Args:
            file_path: Path of the file inside the workspace
            workspace_root: Workspace root the manifest paths are relative to
            manifest: Relative path -> hash of the last known state

        Returns:
            FileChangeRecord for the file

        Raises:
            FileSystemError: If the file cannot be read and is not in the
                manifest
        """
        manifest = manifest or {}
        relative_path = to_relative_path(file_path, workspace_root)

        try:
            content = read_file_bytes(Path(file_path))
        except FileSystemError:
            if relative_path in manifest:
                logger.debug(f"Deleted: {relative_path}")
                return FileChangeRecord(relative_path, "", FileStatus.DELETED)
            raise

        file_hash = create_file_hash(content)
        if self.progress is not None:
            self.progress.advance(1, relative_path)

        known_hash = manifest.get(relative_path)
        if known_hash is None:
            status = FileStatus.CREATED
        elif known_hash == file_hash:
            status = FileStatus.SAME
        else:
            status = FileStatus.MODIFIED
        return FileChangeRecord(relative_path, file_hash, status)

    def diff_files(
        self,
        file_paths: Iterable[Path],
        workspace_root: Path,
        manifest: Optional[BundleManifest],
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> list[FileChangeRecord]:
        """Classify many files, keeping their order.

        Files that cannot be read and are unknown to the manifest are
        logged and left out of the result.

        Args:
            file_paths: Paths of files inside the workspace
            workspace_root: Workspace root
            manifest: Relative path -> hash of the last known state
            max_workers: Number of worker threads

        Returns:
            One record per classifiable file, in input order
        """
        paths = list(file_paths)
        results: list[Optional[FileChangeRecord]] = [None] * len(paths)

        def classify(index: int) -> None:
            try:
                results[index] = self.diff(paths[index], workspace_root, manifest)
            except FileSystemError as e:
                logger.debug(f"Ignoring unreadable new file: {e}")

        if max_workers <= 1:
            for index in range(len(paths)):
                classify(index)
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = [executor.submit(classify, i) for i in range(len(paths))]
                for future in as_completed(futures):
                    future.result()

        return [record for record in results if record is not None]

    def compare_workspace(
        self,
        file_paths: Iterable[Path],
        workspace_root: Path,
        manifest: Optional[BundleManifest],
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> list[FileChangeRecord]:
        """Classify the current files plus manifest entries no longer among them.

        A manifest path missing from file_paths is reported as deleted,
        whether the file is gone or has become excluded.

        Returns:
            Records for the given files in input order, followed by deleted
            records sorted by path
        """
        records = self.diff_files(file_paths, workspace_root, manifest, max_workers)
        present = {record.relative_path for record in records}
        for relative_path in deleted_paths(manifest or {}, present):
            records.append(FileChangeRecord(relative_path, "", FileStatus.DELETED))
        return records


def deleted_paths(manifest: BundleManifest, present: Iterable[str]) -> list[str]:
    """Return manifest paths that are not among the present paths."""
    present_set = set(present)
    return sorted(path for path in manifest if path not in present_set)


def missing_files(records: Iterable[FileChangeRecord]) -> list[str]:
    """Return relative paths that must be uploaded (created or modified)."""
    return [
        record.relative_path
        for record in records
        if record.status in (FileStatus.CREATED, FileStatus.MODIFIED)
    ]


def build_manifest(
    file_paths: Iterable[Path],
    workspace_root: Path,
    max_workers: int = DEFAULT_MAX_WORKERS,
    progress: Optional[FilesProgress] = None,
) -> dict[str, str]:
    """Hash files into a new manifest.

    Raises:
        FileSystemError: If any file cannot be read
    """
    paths = list(file_paths)

    def hash_one(path: Path) -> tuple[str, str]:
        relative_path = to_relative_path(path, workspace_root)
        file_hash = create_file_hash(read_file_bytes(Path(path)))
        if progress is not None:
            progress.advance(1, relative_path)
        return relative_path, file_hash

    if max_workers <= 1:
        pairs = [hash_one(path) for path in paths]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            pairs = list(executor.map(hash_one, paths))

    return dict(pairs)


def is_file_changing_bundle(name: str) -> bool:
    """Check whether a change to this file requires a full rescan.

    Editing an ignore file changes which files belong to the bundle, so
    the per-file diff is not enough.
    """
    return is_ignore_file(name)
