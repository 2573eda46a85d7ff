"""API client for the DeepCode analysis backend."""

from __future__ import annotations

import socket
from typing import Any, NoReturn
from urllib.parse import urlparse

import httpx

from .bundle.payload import PayloadBatch
from .config import config
from .exceptions import (
    DeepCodeAPIError,
    DeepCodeAuthenticationError,
    DeepCodeConfigError,
    DeepCodeNetworkError,
    DeepCodeNotFoundError,
    DeepCodePermissionError,
)


def _is_address_resolution_failure(error: BaseException) -> bool:
    """Check whether a connection error was caused by a DNS lookup failure."""
    seen = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        message = str(current)
        if "getaddrinfo" in message or "Name or service not known" in message:
            return True
        current = current.__cause__ or current.__context__
    return False


class DeepCodeClient:
    """Transport for uploading bundle payloads.

    Failed requests are raised as exceptions carrying the HTTP status code;
    the client itself never retries.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        timeout: float = 30.0,
    ):
        """Initialize API client.

        Args:
            api_key: Optional API key (uses config if not provided)
            api_url: Optional API URL (uses config if not provided)
            timeout: Request timeout in seconds (default: 30.0)
        """
        self.api_key = api_key or config.api_key
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.timeout = timeout

        if not self.api_key:
            raise DeepCodeConfigError(
                "API key not configured. "
                "Please set DEEPCODE_API_KEY environment variable."
            )

        self._client: httpx.Client | None = None

    @property
    def host(self) -> str:
        """Host name of the backend."""
        return urlparse(self.api_url).hostname or ""

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Session-Token": self.api_key or ""},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> DeepCodeClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _raise_for_status(self, e: httpx.HTTPStatusError) -> NoReturn:
        """Translate an HTTP error into a pydeepcode exception."""
        status_code = e.response.status_code

        if status_code == 401:
            raise DeepCodeAuthenticationError(
                "Invalid API key or unauthorized access"
            ) from e
        elif status_code == 403:
            raise DeepCodePermissionError(
                "Access forbidden - check your permissions"
            ) from e
        elif status_code == 404:
            raise DeepCodeNotFoundError("Resource not found") from e

        error_msg = f"API request failed with status {status_code}"
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    msg = error_data.get("message") or error_data.get("error")
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            # Body is not JSON, keep the status-based message
            pass
        raise DeepCodeAPIError(error_msg, status_code=status_code) from e

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data ({} for empty bodies)

        Raises:
            DeepCodeAPIError: If the request fails
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        client = self._get_client()

        try:
            response = client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self._raise_for_status(e)
        except httpx.TimeoutException as e:
            raise DeepCodeAPIError(f"Request timed out: {e}", status_code=504) from e
        except httpx.RequestError as e:
            raise DeepCodeNetworkError(
                f"Network error: {e}",
                host=self.host,
                address_resolution_failed=_is_address_resolution_failure(e),
            ) from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"text": response.text}

    def upload_files(self, bundle_id: str, batch: PayloadBatch) -> list[Any]:
        """Upload missing files of a bundle.

        An unchunked batch is sent in one request, a chunked batch with one
        request per chunk, in order.

        Args:
            bundle_id: Server-side bundle identifier
            batch: Payload produced by PayloadChunker.size_payload()

        Returns:
            Response data of every request
        """
        wire = batch.to_wire()
        endpoint = f"/publicapi/file/{bundle_id}"
        if not wire["chunks"]:
            return [self._request("POST", endpoint, json=wire["payload"])]
        return [
            self._request("POST", endpoint, json=chunk) for chunk in wire["payload"]
        ]

    def report_error(self, error_data: dict[str, Any]) -> Any:
        """Send an error report to the backend."""
        return self._request("POST", "/publicapi/error", json=error_data)
