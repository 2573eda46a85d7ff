"""Progress reporting for bundle scans and hashing."""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class FilesProgressEvent(str, Enum):
    """Kinds of progress updates."""

    FILE_FOUND = "file_found"
    """A file was counted by the scanner (total grows)"""

    FILE_PROCESSED = "file_processed"
    """A file was hashed or read (processed grows)"""


@dataclass(frozen=True)
class FilesProgressInfo:
    """Snapshot of progress counters passed to the callback."""

    event: FilesProgressEvent
    processed: int
    total: int
    path: str = ""


class FilesProgress:
    """Processed/total file counters for one scan.

    Counters only ever grow. The callback is invoked after every update,
    from whichever thread made it.

    Examples:
        >>> progress = FilesProgress()
        >>> progress.add_total(2)
        >>> progress.advance()
        >>> (progress.processed, progress.total)
        (1, 2)
    """

    def __init__(self, callback: Optional[Callable[[FilesProgressInfo], None]] = None):
        self._callback = callback
        self._lock = threading.Lock()
        self._processed = 0
        self._total = 0

    @property
    def processed(self) -> int:
        return self._processed

    @property
    def total(self) -> int:
        return self._total

    def add_total(self, count: int = 1, path: str = "") -> None:
        """Record newly discovered files."""
        with self._lock:
            self._total += count
            info = FilesProgressInfo(
                FilesProgressEvent.FILE_FOUND, self._processed, self._total, path
            )
        self._notify(info)

    def advance(self, count: int = 1, path: str = "") -> None:
        """Record processed files."""
        with self._lock:
            self._processed += count
            info = FilesProgressInfo(
                FilesProgressEvent.FILE_PROCESSED, self._processed, self._total, path
            )
        self._notify(info)

    def _notify(self, info: FilesProgressInfo) -> None:
        if self._callback is not None:
            self._callback(info)
