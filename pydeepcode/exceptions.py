"""Exceptions raised by pydeepcode."""

from typing import Optional


class DeepCodeError(Exception):
    """Base exception for all pydeepcode errors."""


class FileSystemError(DeepCodeError):
    """A file or directory could not be read or listed."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class EncodingError(DeepCodeError):
    """File content is not in the expected text encoding."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class DeepCodeConfigError(DeepCodeError):
    """Configuration is missing or invalid."""


class DeepCodeAPIError(DeepCodeError):
    """Request to the analysis backend failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DeepCodeAuthenticationError(DeepCodeAPIError):
    """Authentication failed (HTTP 401)."""

    def __init__(self, message: str, status_code: Optional[int] = 401):
        super().__init__(message, status_code)


class DeepCodePermissionError(DeepCodeAPIError):
    """Access to the content or bundle is forbidden (HTTP 403)."""

    def __init__(self, message: str, status_code: Optional[int] = 403):
        super().__init__(message, status_code)


class DeepCodeNotFoundError(DeepCodeAPIError):
    """Resource not found (HTTP 404)."""

    def __init__(self, message: str, status_code: Optional[int] = 404):
        super().__init__(message, status_code)


class DeepCodeNetworkError(DeepCodeAPIError):
    """The backend could not be reached."""

    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        address_resolution_failed: bool = False,
    ):
        super().__init__(message, status_code=None)
        self.host = host
        self.address_resolution_failed = address_resolution_failed
