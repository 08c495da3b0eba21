import json
import logging
import os
import tempfile
import threading
from typing import Dict, Optional

from .errors import StorageUnavailable

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    String key/value store persisted as a single JSON document.

    Mirrors the browser localStorage API the app was designed around:
    values are strings (callers JSON-encode them), every write replaces
    the whole document, and a size quota rejects oversized writes.

    With path=None the store lives in memory only (handy for tests).

    Usage:
        storage = LocalStorage("flashcard-storage.json")
        storage.set_item("flashcard-theme", "dark")
        storage.get_item("flashcard-theme")  # -> "dark"
    """

    def __init__(self, path: Optional[str] = None, quota: Optional[int] = None):
        self.path = path
        self.quota = quota
        self._memory: Dict[str, str] = {}
        # Every write rewrites the whole document, so read-modify-write must not interleave
        self._lock = threading.RLock()

    def _read(self) -> Dict[str, str]:
        if self.path is None:
            return dict(self._memory)
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageUnavailable(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageUnavailable(f"Unexpected document in {self.path}")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: Dict[str, str]):
        payload = json.dumps(data)
        if self.quota is not None and len(payload.encode("utf-8")) > self.quota:
            raise StorageUnavailable(f"Storage quota of {self.quota} bytes exceeded")

        if self.path is None:
            self._memory = dict(data)
            return

        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            # Write to a temp file first so a crash never leaves half a document
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageUnavailable(f"Could not write {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str):
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove_item(self, key: str):
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

    def keys(self):
        with self._lock:
            return list(self._read().keys())

    def clear(self):
        with self._lock:
            self._write({})
        logger.debug("Cleared local storage")
