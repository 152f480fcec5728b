"""Configuration management for the weedclient CLI."""

import json
import os
import shutil
from pathlib import Path

from common.constants import (
    DEFAULT_CHUNK_SIZE_BYTES,
    DEFAULT_MASTER_HOST,
    DEFAULT_MASTER_PORT,
    HTTP_MAX_CONNECTIONS,
    HTTP_TIMEOUT_SECONDS,
)
from common.logging_config import get_logger

logger = get_logger(__name__)


class Config:
    """Manages CLI configuration stored in a JSON file."""

    DEFAULT_CONFIG = {
        "master_host": os.environ.get("WEED_MASTER_HOST", DEFAULT_MASTER_HOST),
        "master_port": int(os.environ.get("WEED_MASTER_PORT", str(DEFAULT_MASTER_PORT))),
        "chunk_size": int(os.environ.get("WEED_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE_BYTES))),
        "timeout": HTTP_TIMEOUT_SECONDS,
        "max_connections": HTTP_MAX_CONNECTIONS,
        "collection": "",
        "ttl": "",
        "use_public_url": True,
        "max_workers": 1,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.weedclient/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        A file that cannot be parsed is copied to config.json.bak and
        defaults are used instead.
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            import tempfile
            self.config_path = Path(tempfile.gettempdir()) / '.weedclient' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Unreadable config {self.config_path} ({e}), backing up to {backup_path}")
                try:
                    shutil.copy(self.config_path, backup_path)
                except IOError as copy_error:
                    logger.warning(f"Could not back up config: {copy_error}")
                return self.DEFAULT_CONFIG.copy()

        config = self.DEFAULT_CONFIG.copy()
        try:
            with open(self.config_path, 'w') as f:
                json.dump(config, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not write default config to {self.config_path}: {e}")
        return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config to {self.config_path}: {e}")

    def get_master(self) -> str:
        """
        Get master address.

        Returns:
            host:port string (e.g., "localhost:9333")
        """
        host = self.data.get('master_host', DEFAULT_MASTER_HOST)
        port = self.data.get('master_port', DEFAULT_MASTER_PORT)
        return f"{host}:{port}"

    def get_chunk_size(self) -> int:
        return int(self.data.get('chunk_size', DEFAULT_CHUNK_SIZE_BYTES))

    def set_chunk_size(self, chunk_size: int) -> None:
        self.data['chunk_size'] = chunk_size
        self.save()

    def get_timeout(self) -> float:
        return float(self.data.get('timeout', HTTP_TIMEOUT_SECONDS))

    def get_max_connections(self) -> int:
        return int(self.data.get('max_connections', HTTP_MAX_CONNECTIONS))

    def get_placement(self) -> dict:
        """
        Get default placement hints.

        Returns:
            Dictionary with 'collection' and 'ttl'
        """
        return {
            'collection': self.data.get('collection', ''),
            'ttl': self.data.get('ttl', ''),
        }

    def use_public_url(self) -> bool:
        return bool(self.data.get('use_public_url', True))

    def get_max_workers(self) -> int:
        return max(1, int(self.data.get('max_workers', 1)))
