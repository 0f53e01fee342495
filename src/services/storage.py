"""Key-value storage backends.

The caches and the notification history persist JSON strings through a
minimal synchronous get/set contract, so any backend satisfying
``KeyValueStorage`` can be injected:

- MemoryStorage: dict-backed, nothing survives the process
- JsonFileStorage: one JSON document on disk, rewritten atomically
- DiskCacheStorage: diskcache-backed, no expiry
"""

import json
from pathlib import Path
from typing import Dict, MutableMapping, Optional, Protocol

import diskcache
import structlog

from src.models.config import StorageBackend, StorageSettings

logger = structlog.get_logger()


class KeyValueStorage(Protocol):
    """Storage operations required by the caches and history."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryStorage:
    """Storage over a plain mapping.

    The mapping is used as-is, so callers may pass a dict and inspect it.
    """

    def __init__(self, data: Optional[MutableMapping[str, str]] = None):
        self.data = data if data is not None else {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage:
    """All keys in one JSON object on disk"""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        with open(self.path, "r") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Storage file is not a JSON object: {self.path}")
        return data

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def _save(self) -> None:
        """Write to .tmp then rename"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")

        try:
            with open(temp_path, "w") as f:
                json.dump(self._data, f)

            temp_path.replace(self.path)
        except Exception as e:
            logger.error("storage_save_failed", path=str(self.path), error=str(e))
            if temp_path.exists():  # pragma: no cover
                temp_path.unlink()
            raise


class DiskCacheStorage:
    """Storage in a diskcache directory"""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._cache = diskcache.Cache(str(self.directory))

    def get(self, key: str) -> Optional[str]:
        value = self._cache.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._cache.set(key, value)

    def close(self) -> None:
        self._cache.close()


def create_storage(settings: StorageSettings) -> KeyValueStorage:
    """Build the backend selected in configuration."""
    if settings.backend == StorageBackend.MEMORY:
        storage: KeyValueStorage = MemoryStorage()
    elif settings.backend == StorageBackend.DISKCACHE:
        storage = DiskCacheStorage(Path(settings.path))
    else:
        storage = JsonFileStorage(Path(settings.path))

    logger.info("storage_opened", backend=settings.backend.value, path=settings.path)
    return storage
