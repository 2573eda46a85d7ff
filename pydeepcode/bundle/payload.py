"""Upload payload assembly and size-bounded chunking."""

import json
import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Union

from ..config import config
from ..utils import DEFAULT_MAX_WORKERS, create_file_hash, read_file
from .progress import FilesProgress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayloadItem:
    """One file to transfer."""

    file_hash: str
    file_path: str
    file_content: str

    def to_dict(self) -> dict[str, str]:
        """Wire representation."""
        return {
            "fileHash": self.file_hash,
            "filePath": self.file_path,
            "fileContent": self.file_content,
        }


@dataclass(frozen=True)
class UnchunkedPayload:
    """Items small enough to be sent in a single request."""

    items: Sequence[PayloadItem]

    @property
    def chunks(self) -> bool:
        return False

    def to_wire(self) -> dict[str, Any]:
        return {
            "chunks": False,
            "payload": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True)
class ChunkedPayload:
    """Items split into requests that each stay below the safe size."""

    chunks_list: Sequence[Sequence[PayloadItem]]

    @property
    def chunks(self) -> bool:
        return True

    def to_wire(self) -> dict[str, Any]:
        return {
            "chunks": True,
            "payload": [
                [item.to_dict() for item in chunk] for chunk in self.chunks_list
            ],
        }


PayloadBatch = Union[UnchunkedPayload, ChunkedPayload]


def _encoded_size(value: Any) -> int:
    # ASCII escaping never produces fewer bytes than raw UTF-8
    return len(json.dumps(value, ensure_ascii=True).encode("utf-8"))


def payload_item_size(item: PayloadItem) -> int:
    """Worst-case serialized size of one item in bytes."""
    return _encoded_size(item.to_dict())


def payload_size(items: Sequence[PayloadItem]) -> int:
    """Worst-case serialized size of an item sequence in bytes."""
    return _encoded_size([item.to_dict() for item in items])


class PayloadAssembler:
    """Reads and hashes missing files into payload items."""

    def __init__(self, progress: Optional[FilesProgress] = None):
        self.progress = progress

    def assemble(
        self,
        missing_files: Sequence[str],
        workspace_root: Path,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> list[PayloadItem]:
        """Build payload items for files the server does not have.

        Args:
            missing_files: Workspace-relative paths
            workspace_root: Workspace root the paths are relative to
            max_workers: Number of worker threads for reading and hashing

        Returns:
            One item per path, in the order of missing_files

        Raises:
            FileSystemError: If any file cannot be read
            EncodingError: If any file is not valid UTF-8
        """
        if max_workers <= 1 or len(missing_files) <= 1:
            return [self._create_item(path, workspace_root) for path in missing_files]

        results: list[Optional[PayloadItem]] = [None] * len(missing_files)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self._create_item, path, workspace_root): index
                for index, path in enumerate(missing_files)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()

        return [item for item in results if item is not None]

    def _create_item(self, relative_path: str, workspace_root: Path) -> PayloadItem:
        file_path = Path(workspace_root) / relative_path.lstrip("/")
        content = read_file(file_path)
        item = PayloadItem(
            file_hash=create_file_hash(content),
            file_path=file_path.as_posix(),
            file_content=content,
        )
        if self.progress is not None:
            self.progress.advance(1, relative_path)
        return item


class PayloadChunker:
    """Splits payload items into batches that fit the transfer ceiling.

    Examples:
        >>> chunker = PayloadChunker(allowed_payload_size=4 * 1024 * 1024)
        >>> batch = chunker.size_payload(items)
        >>> if batch.chunks:
        ...     print(f"{len(batch.chunks_list)} requests")
    """

    def __init__(
        self,
        allowed_payload_size: Optional[int] = None,
        item_size: Callable[[PayloadItem], int] = payload_item_size,
        total_size: Callable[[Sequence[PayloadItem]], int] = payload_size,
    ):
        """Initialize payload chunker.

        Args:
            allowed_payload_size: Absolute size ceiling in bytes
                (uses config if not provided)
            item_size: Size estimate of a single item
            total_size: Size estimate of a whole item sequence
        """
        if allowed_payload_size is None:
            allowed_payload_size = config.allowed_payload_size
        self.allowed_payload_size = allowed_payload_size
        self.safe_payload_size = allowed_payload_size / 2
        self.item_size = item_size
        self.total_size = total_size

    def size_payload(self, items: Sequence[PayloadItem]) -> PayloadBatch:
        """Return the items as-is if they fit, chunked otherwise."""
        size = self.total_size(items)
        if size < self.allowed_payload_size:
            logger.debug(f"Payload of {size} bytes sent unchunked")
            return UnchunkedPayload(items)
        return self.pack(items, size)

    def pack(self, items: Sequence[PayloadItem], total_size: int) -> ChunkedPayload:
        """Pack items left to right into chunks below the safe size.

        Items are never reordered or split. An item larger than the safe
        size gets a chunk of its own.

        Args:
            items: Items in upload order
            total_size: Size of the whole sequence (for logging)

        Returns:
            ChunkedPayload whose concatenated chunks equal items
        """
        chunks: list[list[PayloadItem]] = []
        current_size = 0

        for item in items:
            size = self.item_size(item)
            if not chunks or current_size + size > self.safe_payload_size:
                chunks.append([item])
                current_size = size
            else:
                chunks[-1].append(item)
                current_size += size

        logger.debug(
            f"Payload of {total_size} bytes split into {len(chunks)} chunks "
            f"(safe size {self.safe_payload_size:.0f} bytes)"
        )
        return ChunkedPayload(chunks)
