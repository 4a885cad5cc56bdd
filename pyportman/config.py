"""Configuration management for pyportman.

Settings are resolved from environment variables first and then from the
user config file at ``~/.config/pyportman/config``, which holds simple
``KEY=VALUE`` lines. Command line options take precedence over both and are
applied by the CLI.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.getpostman.com"
DEFAULT_CACHE_FILE = "./tmp/.portman.cache"

API_KEY_VAR = "POSTMAN_API_KEY"
API_URL_VAR = "POSTMAN_API_URL"
COLLECTION_UID_VAR = "POSTMAN_COLLECTION_UID"
WORKSPACE_NAME_VAR = "POSTMAN_WORKSPACE_NAME"
CACHE_FILE_VAR = "PORTMAN_CACHE_FILE"


class Config:
    """Runtime configuration backed by the environment and a config file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                      ~/.config/pyportman/
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "pyportman"
        self.config_dir = config_dir
        self.config_file = config_dir / "config"

    def get_config_path(self) -> Path:
        """Return the path of the user config file."""
        return self.config_file

    def _read_file(self) -> dict[str, str]:
        """Read KEY=VALUE pairs from the config file.

        Returns:
            Mapping of keys to values, empty if the file is missing or unreadable
        """
        values: dict[str, str] = {}
        if not self.config_file.exists():
            return values

        try:
            with open(self.config_file, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, value = line.split("=", 1)
                    values[key.strip()] = value.strip().strip('"').strip("'")
        except OSError as e:
            logger.warning(f"Failed to read config file {self.config_file}: {e}")
        return values

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._read_file().get(key) or None

    def _save(self, key: str, value: str) -> None:
        """Write a single key to the config file, keeping the others."""
        values = self._read_file()
        values[key] = value

        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            for k, v in values.items():
                f.write(f"{k}={v}\n")
        # The file holds the API key
        self.config_file.chmod(0o600)

    @property
    def api_key(self) -> Optional[str]:
        return self._get(API_KEY_VAR)

    @property
    def api_url(self) -> str:
        return self._get(API_URL_VAR) or DEFAULT_API_URL

    def is_configured(self) -> bool:
        """Check whether an API key is available."""
        return bool(self.api_key)

    def save_api_key(self, api_key: str) -> None:
        """Persist the API key to the config file."""
        self._save(API_KEY_VAR, api_key)

    def get_collection_uid(self) -> Optional[str]:
        """Fixed remote collection uid to update instead of looking up by name."""
        return self._get(COLLECTION_UID_VAR)

    def get_workspace_name(self) -> Optional[str]:
        """Name of the workspace collections are published to."""
        return self._get(WORKSPACE_NAME_VAR)

    def get_cache_file(self) -> Path:
        """Location of the sync cache file."""
        return Path(self._get(CACHE_FILE_VAR) or DEFAULT_CACHE_FILE)


config = Config()
