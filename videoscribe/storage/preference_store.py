"""Key/value store backed by a single JSON file."""

import os
import json
import logging
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Union

from ..errors import StorageUnavailable

logger = logging.getLogger(__name__)

# Recognized keys
VIDEO_LOCATION = "video_location"
TRANSCRIPT_TEXT = "transcript_text"
SUMMARY_TEXT = "summary_text"
CREATE_SUMMARY_PREFERENCE = "create_summary_preference"
PENDING_POLLING_KEY = "pending_polling_key"
# Summarize flag the pending job was submitted with
PENDING_SUMMARIZE = "pending_summarize"


class PreferenceStore:
    """Durable string/bool key/value storage surviving process restarts.
    
    Every ``set`` rewrites the whole file through a temporary file and an
    atomic rename, so a crash never leaves a half-written store behind.
    Reads never fail: an unreadable store behaves like an empty one.
    """
    
    def __init__(self, path: Union[str, Path]):
        """Initialize the store.
        
        Args:
            path: JSON file holding the values; created on first write
        """
        self.path = Path(path)
        self.lock = threading.Lock()
        logger.info(f"PreferenceStore initialized with file: {self.path}")
    
    def get(self, key: str, default: Any = "") -> Any:
        """Read a value, returning ``default`` when absent or unreadable.
        
        Args:
            key: Store key
            default: Value returned when the key is missing
            
        Returns:
            Stored value or default
        """
        with self.lock:
            values = self._read()
        return values.get(key, default)
    
    def set(self, key: str, value: Union[str, bool]) -> None:
        """Write a single value and commit it atomically.
        
        Raises:
            StorageUnavailable: If the store file could not be written
        """
        with self.lock:
            values = self._read()
            values[key] = value
            self._commit(values)
        logger.debug(f"Stored {key}")
    
    def clear(self, keys: Iterable[str]) -> None:
        """Remove keys so later reads return their defaults.
        
        Raises:
            StorageUnavailable: If the store file could not be written
        """
        keys = list(keys)
        with self.lock:
            values = self._read()
            for key in keys:
                values.pop(key, None)
            self._commit(values)
        logger.debug(f"Cleared keys: {', '.join(keys)}")
    
    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Store unreadable, using defaults: {e}")
            return {}
        
        if not isinstance(data, dict):
            logger.warning(f"Store file {self.path} does not hold an object, using defaults")
            return {}
        return data
    
    def _commit(self, values: Dict[str, Any]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(values, f, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error(f"Error writing store {self.path}: {e}")
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageUnavailable(f"Cannot write {self.path}: {e}") from e
