"""PyDeepCode - bundle workspaces for incremental upload to a code analysis backend."""

from .api import DeepCodeClient
from .exceptions import (
    DeepCodeAPIError,
    DeepCodeAuthenticationError,
    DeepCodeConfigError,
    DeepCodeError,
    DeepCodeNetworkError,
    DeepCodeNotFoundError,
    DeepCodePermissionError,
    EncodingError,
    FileSystemError,
)
from .utils import create_file_hash, read_file

__all__ = [
    "DeepCodeClient",
    "DeepCodeAPIError",
    "DeepCodeAuthenticationError",
    "DeepCodeConfigError",
    "DeepCodeError",
    "DeepCodeNetworkError",
    "DeepCodeNotFoundError",
    "DeepCodePermissionError",
    "EncodingError",
    "FileSystemError",
    "create_file_hash",
    "read_file",
]
