"""Persisted user id -> avatar URL cache.

Unbounded, no expiry: avatar URLs rarely change and the set of distinct
authors is small. Every ``set`` rewrites the whole mapping to storage.
"""

import json
from typing import Dict, Optional

import structlog

from src.services.storage import KeyValueStorage

logger = structlog.get_logger()


class AvatarCache:
    """Write-through avatar URL cache"""

    STORAGE_KEY = "avatarCache"

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._urls: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        raw = self.storage.get(self.STORAGE_KEY)
        if not raw:
            return {}
        return json.loads(raw)

    def get(self, user_id: int) -> Optional[str]:
        """Cached URL, or None on a miss"""
        return self._urls.get(str(user_id))

    def set(self, user_id: int, avatar_url: str) -> None:
        self._urls[str(user_id)] = avatar_url
        self.storage.set(self.STORAGE_KEY, json.dumps(self._urls))
        logger.debug("avatar_cached", user_id=user_id)

    def __len__(self) -> int:
        return len(self._urls)
