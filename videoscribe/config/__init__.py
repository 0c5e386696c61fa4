"""YAML configuration for VideoScribe."""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import yaml

from ..errors import InvalidModelError
from ..models.transcription import MODELS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "videoscribe.yaml"

# (section, key) pairs holding paths relative to the config file
RELATIVE_PATH_KEYS = (
    ("storage", "data_directory"),
    ("logging", "file_path"),
)


class VideoScribeConfig:
    """Settings read from a YAML file, addressed with dotted keys like ``server.port``."""

    def __init__(self, config_path: Optional[str] = None):
        """Load the configuration.

        Args:
            config_path: YAML file to read, ``videoscribe.yaml`` in the
                         working directory if None

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is empty or not a YAML mapping
        """
        self.config_file = Path(config_path or DEFAULT_CONFIG_FILE)
        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._read_file()
        self._anchor_relative_paths()

    def _read_file(self) -> Dict[str, Any]:
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}") from e

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")
        return loaded

    def _anchor_relative_paths(self) -> None:
        base_dir = self.config_file.parent
        for section, key in RELATIVE_PATH_KEYS:
            value = self.get(f"{section}.{key}")
            if value and not os.path.isabs(value):
                self.config[section][key] = str(base_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dotted key, returning default if any part is missing."""
        node = self.config
        for part in key_path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        """Override a dotted key in memory, creating missing sections."""
        *sections, leaf = key_path.split('.')
        node = self.config
        for part in sections:
            node = node.setdefault(part, {})
        node[leaf] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_data_directory(self) -> str:
        return str(Path(self.get('storage.data_directory', 'data')).absolute())

    def get_preferences_path(self) -> str:
        """Path of the key/value store inside the data directory."""
        filename = self.get('storage.preferences_file', 'preferences.json')
        return str(Path(self.get_data_directory()) / filename)

    def get_server_address(self) -> Tuple[str, int]:
        """(host, port) of the transcription service."""
        return self.get('server.host', '127.0.0.1'), int(self.get('server.port', 5000))

    def get_timeout(self) -> Optional[float]:
        """Per-request timeout in seconds, None to keep the HTTP client's default."""
        timeout = self.get('server.timeout_seconds')
        return None if timeout is None else float(timeout)

    def get_model(self) -> str:
        """Default transcription model; raises InvalidModelError for unknown names."""
        model = self.get('transcription.model', 'small')
        if model not in MODELS:
            raise InvalidModelError(f"Unknown transcription model '{model}', expected one of {', '.join(MODELS)}")
        return model
