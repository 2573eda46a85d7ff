"""CLI progress display for bundle scans.

This module provides a Rich-based progress display that is driven by
the FilesProgress tracker of the bundle package.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from . import messages
from .bundle.progress import FilesProgress, FilesProgressEvent, FilesProgressInfo


class FilesProgressDisplay:
    """Rich-based progress display for file discovery and hashing.

    While files are being discovered the total grows; hashing then fills
    the bar up to that total.
    """

    def __init__(self, enabled: bool = True) -> None:
        """Initialize the progress display.

        Args:
            enabled: When False, the tracker works but nothing is drawn
        """
        self.enabled = enabled
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def create_tracker(self) -> FilesProgress:
        """Create a FilesProgress that updates this display."""
        return FilesProgress(callback=self._handle_event)

    def _handle_event(self, info: FilesProgressInfo) -> None:
        if self._progress is None or self._task is None:
            return

        if info.event == FilesProgressEvent.FILE_FOUND:
            self._progress.update(self._task, total=info.total)
        else:
            self._progress.update(
                self._task, total=info.total, completed=info.processed
            )

    def __enter__(self) -> "FilesProgressDisplay":
        """Enter context manager - start progress display."""
        if not self.enabled:
            return self
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            transient=True,
            refresh_per_second=4,
        )
        self._progress.__enter__()
        self._task = self._progress.add_task(messages.FILE_LOADING_PROGRESS, total=None)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._task = None
