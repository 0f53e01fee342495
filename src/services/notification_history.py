"""Notification history sink.

Keeps the list of emitted notifications, newest first, in the
``notifiedHistories`` storage slot.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

import structlog

from src.models.notification import NotificationHistoryEntry
from src.services.storage import KeyValueStorage

logger = structlog.get_logger()


class NotificationHistory:
    """Persisted history of emitted notifications"""

    STORAGE_KEY = "notifiedHistories"

    def __init__(self, storage: KeyValueStorage, max_entries: Optional[int] = None):
        """
        Args:
            storage: Key-value backend
            max_entries: Newest entries kept; None keeps everything
        """
        self.storage = storage
        self.max_entries = max_entries
        self._entries: List[Dict[str, Any]] = self._load()

    def _load(self) -> List[Dict[str, Any]]:
        raw = self.storage.get(self.STORAGE_KEY)
        if not raw:
            return []
        return json.loads(raw)

    @property
    def entries(self) -> List[Dict[str, Any]]:
        """Stored records, newest first"""
        return list(self._entries)

    def add_notified_histories(
        self, entries: Sequence[NotificationHistoryEntry]
    ) -> None:
        """Prepend entries and persist"""
        if not entries:
            return

        records = [entry.to_record() for entry in reversed(entries)]
        self._entries = records + self._entries
        if self.max_entries is not None:
            self._entries = self._entries[: self.max_entries]

        self.storage.set(self.STORAGE_KEY, json.dumps(self._entries))
        logger.debug(
            "notification_history_updated",
            added=len(records),
            size=len(self._entries),
        )
