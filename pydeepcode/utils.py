"""Utility functions for pydeepcode."""

import hashlib
from pathlib import Path
from typing import Union

from .exceptions import EncodingError, FileSystemError

# =============================================================================
# Constants for file operations
# =============================================================================

HASH_ALGORITHM: str = "sha256"

FILE_ENCODING: str = "utf-8"

# Default number of worker threads for hashing and payload assembly
DEFAULT_MAX_WORKERS: int = 1


# =============================================================================
# Hash calculation utilities
# =============================================================================


def create_file_hash(content: Union[bytes, str]) -> str:
    """Calculate the content fingerprint of a file.

    Text is encoded as UTF-8 before hashing, so a file hashes the same
    whether its bytes or its decoded text are passed in.

    Args:
        content: File content as bytes or text

    Returns:
        Lowercase hexadecimal SHA-256 digest (64 characters)

    Examples:
        >>> create_file_hash(b"")
        'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
        >>> create_file_hash("abc") == create_file_hash(b"abc")
        True
    """
    if isinstance(content, str):
        content = content.encode(FILE_ENCODING)
    return hashlib.new(HASH_ALGORITHM, content).hexdigest()


# =============================================================================
# File reading utilities
# =============================================================================


def read_file_bytes(file_path: Path) -> bytes:
    """Read raw file content.

    Raises:
        FileSystemError: If the file cannot be read
    """
    try:
        return file_path.read_bytes()
    except OSError as e:
        raise FileSystemError(f"Cannot read {file_path}: {e}", str(file_path)) from e


def read_file(file_path: Path) -> str:
    """Read a file as UTF-8 text.

    Args:
        file_path: Path to the file

    Returns:
        Decoded file content

    Raises:
        FileSystemError: If the file cannot be read
        EncodingError: If the content is not valid UTF-8
    """
    data = read_file_bytes(file_path)
    try:
        return data.decode(FILE_ENCODING)
    except UnicodeDecodeError as e:
        raise EncodingError(
            f"{file_path} is not valid {FILE_ENCODING}: {e.reason}", str(file_path)
        ) from e


def to_relative_path(file_path: Path, workspace_root: Path) -> str:
    """Strip the workspace root from a path.

    Returns:
        Relative path using forward slashes

    Raises:
        ValueError: If file_path is not inside workspace_root
    """
    return Path(file_path).relative_to(workspace_root).as_posix()


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: Union[int, float]) -> str:
    """Format a byte count in human-readable form.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{int(size_bytes)} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
