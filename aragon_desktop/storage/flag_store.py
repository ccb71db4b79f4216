"""
Persistent flag store.

Small JSON documents kept under the user data directory, one file per key:

    storage/
        main%3AinitialClient.json

Writes go to a temporary file that is then renamed over the target, so a
crash mid-write leaves either the old value or the new one.
"""

from typing import Any, Optional
from pathlib import Path
from urllib.parse import quote
import json
import logging
import os

logger = logging.getLogger(__name__)


class JsonFlagStore:
    """Durable key/value store that survives application restarts."""

    def __init__(self, storage_dir: Path):
        """
        Initialize flag store.

        Args:
            storage_dir: Directory holding one JSON file per key
        """
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> Optional[Any]:
        """
        Read a value.

        Returns:
            Stored value, or None if absent or unreadable
        """
        file_path = self._get_file_path(key)
        if not file_path.exists():
            return None

        try:
            return json.loads(file_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable flag {key} at {file_path}: {e}")
            return None

    def set(self, key: str, value: Any):
        file_path = self._get_file_path(key)
        tmp_path = file_path.with_suffix(".json.tmp")

        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(value, f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, file_path)

        logger.debug(f"Stored flag {key} at {file_path}")

    def _get_file_path(self, key: str) -> Path:
        return self.storage_dir / f"{quote(key, safe='')}.json"
