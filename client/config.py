"""Configuration management for the SliceUpload client."""

import json
import os
import shutil
from pathlib import Path
from typing import Optional

from common.constants import CHUNK_SIZE_BYTES, DEFAULT_SERVER_PORT, SAMPLE_WINDOW_BYTES
from common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.sliceupload' / 'config.json'


class Config:
    """Manages client configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "server_host": os.environ.get("SLICEUPLOAD_SERVER_HOST", "localhost"),
        "server_port": int(os.environ.get("SLICEUPLOAD_SERVER_PORT", str(DEFAULT_SERVER_PORT))),
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
        "retry_initial_delay": 0.5,
        "chunk_size": CHUNK_SIZE_BYTES,
        "sample_window": SAMPLE_WINDOW_BYTES,
        "degrade_on_lookup_error": False,
    }

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (defaults to ~/.sliceupload/config.json)
        """
        self.config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            import tempfile
            self.config_path = Path(tempfile.gettempdir()) / '.sliceupload' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Unreadable config file {self.config_path}: {e}; using defaults")
                backup_path = self.config_path.with_suffix('.json.bak')
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as backup_error:
                    logger.warning(f"Failed to back up config file: {backup_error}")
                return self.DEFAULT_CONFIG.copy()
        else:
            config = self.DEFAULT_CONFIG.copy()
            try:
                with open(self.config_path, 'w') as f:
                    json.dump(config, f, indent=2)
            except OSError as e:
                logger.warning(f"Failed to write default config file: {e}")
            return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except OSError as e:
            logger.warning(f"Failed to save config file: {e}")

    def get_base_url(self) -> str:
        """
        Get server base URL.

        Returns:
            Base URL string (e.g., "http://localhost:3000")
        """
        host = self.data.get('server_host', 'localhost')
        port = self.data.get('server_port', DEFAULT_SERVER_PORT)
        return f"http://{host}:{port}"

    def get_timeout(self) -> float:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return self.data.get('timeout', 30)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries', 'retry_backoff_multiplier' and 'retry_initial_delay'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
            'retry_initial_delay': self.data.get('retry_initial_delay', 0.5),
        }

    def get_chunk_size(self) -> int:
        return int(self.data.get('chunk_size', CHUNK_SIZE_BYTES))

    def get_sample_window(self) -> int:
        return int(self.data.get('sample_window', SAMPLE_WINDOW_BYTES))

    def degrade_on_lookup_error(self) -> bool:
        return bool(self.data.get('degrade_on_lookup_error', False))
