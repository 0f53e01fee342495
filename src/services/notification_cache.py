"""Notification cache: the durable dedup ledger.

Each distinct activity item maps to one cache key. Once a key is marked it
stays marked: there is no eviction, so the ledger grows with the lifetime of
the installation.

Usage:
    from src.services.notification_cache import NotificationCache
    from src.services.storage import MemoryStorage

    cache = NotificationCache(MemoryStorage())
    if not cache.has(event):
        cache.add(event)
"""

import json
from typing import Dict

import structlog

from src.models.gitlab import ProjectEvent
from src.services.storage import KeyValueStorage

logger = structlog.get_logger()


class NotificationCache:
    """Persisted set of already-notified events.

    The whole mapping is serialized into a single storage slot on every
    mutation and loaded once at construction.

    Attributes:
        storage: Backend holding the ``notificationCache`` slot.
    """

    STORAGE_KEY = "notificationCache"

    def __init__(self, storage: KeyValueStorage) -> None:
        """Initialize the cache from storage.

        Args:
            storage: Key-value backend. A missing slot means an empty cache.
        """
        self.storage = storage
        self._notified: Dict[str, bool] = self._load()

    def _load(self) -> Dict[str, bool]:
        raw = self.storage.get(self.STORAGE_KEY)
        if not raw:
            return {}
        return json.loads(raw)

    @staticmethod
    def cache_key(event: ProjectEvent) -> str:
        """Derive the cache key from the event's identity fields.

        Only project id, target type, target id, action name and creation
        timestamp take part, so two records of the same activity item map to
        the same key whatever else they carry. Repeated actions on one target
        differ by ``created_at``.

        Args:
            event: Fetched project event.

        Returns:
            Key of the form ``{project_id}_{target_type}_{target_id}_{action_name}_{created_at}``.
        """
        parts = [
            event.project_id,
            event.target_type,
            event.target_id,
            event.action_name,
            event.created_at,
        ]
        return "_".join("" if part is None else str(part) for part in parts)

    def has(self, event: ProjectEvent) -> bool:
        return self._notified.get(self.cache_key(event), False)

    def add(self, event: ProjectEvent) -> None:
        """Mark the event as notified (no-op if already marked)."""
        key = self.cache_key(event)
        if self._notified.get(key):
            return

        self._notified[key] = True
        self.storage.set(self.STORAGE_KEY, json.dumps(self._notified))
        logger.debug("notification_cached", cache_key=key, size=len(self._notified))

    def __len__(self) -> int:
        return len(self._notified)
