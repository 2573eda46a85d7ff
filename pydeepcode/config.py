"""Configuration management for pydeepcode.

Values are read from environment variables first and fall back to the JSON
config file in ``~/.config/pydeepcode/config.json``.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from .exceptions import DeepCodeConfigError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.deepcode.ai"

# Maximum request body accepted by the backend (4 MB)
DEFAULT_ALLOWED_PAYLOAD_SIZE: int = 4 * 1024 * 1024


class Config:
    """Runtime configuration loaded from environment and config file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding config.json. Defaults to
                ~/.config/pydeepcode
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "pydeepcode"
        self.config_dir = config_dir

    def get_config_path(self) -> Path:
        """Return the path of the JSON config file."""
        return self.config_dir / "config.json"

    def _load_file(self) -> dict[str, Any]:
        config_path = self.get_config_path()
        if not config_path.exists():
            return {}
        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read config file {config_path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {config_path}: not an object")
            return {}
        return data

    def _save_value(self, key: str, value: Any) -> None:
        data = self._load_file()
        data[key] = value
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.get_config_path(), "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    @property
    def api_key(self) -> Optional[str]:
        """API key used to authenticate against the backend."""
        return os.environ.get("DEEPCODE_API_KEY") or self._load_file().get("api_key")

    @property
    def api_url(self) -> str:
        """Base URL of the analysis backend."""
        url = os.environ.get("DEEPCODE_URL") or self._load_file().get("api_url")
        return (url or DEFAULT_API_URL).rstrip("/")

    @property
    def api_host(self) -> str:
        """Host name of the analysis backend."""
        return urlparse(self.api_url).hostname or ""

    @property
    def allowed_payload_size(self) -> int:
        """Absolute payload size ceiling in bytes."""
        raw = os.environ.get("DEEPCODE_ALLOWED_PAYLOAD_SIZE")
        if raw is None:
            raw = self._load_file().get("allowed_payload_size")
        if raw is None:
            return DEFAULT_ALLOWED_PAYLOAD_SIZE
        try:
            size = int(raw)
        except (TypeError, ValueError) as e:
            raise DeepCodeConfigError(
                f"Invalid allowed payload size: {raw!r}"
            ) from e
        if size <= 0:
            raise DeepCodeConfigError(
                f"Allowed payload size must be positive, got {size}"
            )
        return size

    def is_configured(self) -> bool:
        """Check whether an API key is available."""
        return bool(self.api_key)

    def save_api_key(self, api_key: str) -> None:
        """Persist the API key to the config file."""
        self._save_value("api_key", api_key)

    def save_api_url(self, api_url: str) -> None:
        """Persist the backend URL to the config file."""
        self._save_value("api_url", api_url)


config = Config()
