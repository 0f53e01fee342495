"""Runtime context wiring the notifier components together.

One context owns the storage backend, the GitLab client, both caches, the
history sink and the notifier for the lifetime of a CLI command or daemon.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from src.models.config import NotifierConfig
from src.orchestration.poll_cycle import PollCycle
from src.services.gitlab_client import ErrorCallback, GitLabClient
from src.services.notification_cache import NotificationCache
from src.services.notification_history import NotificationHistory
from src.services.notifier import Notifier, PlatformNotifier
from src.services.storage import KeyValueStorage, create_storage

logger = structlog.get_logger()


@dataclass
class NotifierContext:
    """Shared components for one notifier process."""

    config: NotifierConfig
    storage: KeyValueStorage
    client: GitLabClient
    notification_cache: NotificationCache
    history: NotificationHistory
    notifier: Notifier
    cycle: PollCycle

    @classmethod
    def from_config(
        cls,
        config: NotifierConfig,
        platform: PlatformNotifier,
        storage: Optional[KeyValueStorage] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> "NotifierContext":
        """Build every component from configuration.

        Args:
            config: Validated notifier configuration
            platform: Where notifications and the badge are shown
            storage: Backend override. Default: the configured backend.
            on_error: User-visible channel for loader failures
        """
        if storage is None:
            storage = create_storage(config.storage)

        client = GitLabClient.from_settings(config.gitlab, storage, on_error=on_error)
        notification_cache = NotificationCache(storage)
        history = NotificationHistory(storage, max_entries=config.history.max_entries)
        notifier = Notifier(config.notifier, platform, notification_cache, history)

        logger.debug(
            "notifier_context_created",
            offline=not client.is_configured,
            api_version=client.api_version.major,
            cached_notifications=len(notification_cache),
        )
        return cls(
            config=config,
            storage=storage,
            client=client,
            notification_cache=notification_cache,
            history=history,
            notifier=notifier,
            cycle=PollCycle(client, notifier),
        )

    async def close(self) -> None:
        """Release the HTTP session and the storage backend."""
        await self.client.close()
        close_storage = getattr(self.storage, "close", None)
        if close_storage is not None:
            close_storage()
