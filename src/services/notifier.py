"""Notifier: the dedup-and-policy gate in front of the platform notifier.

For each fetched event the notifier decides between three terminal outcomes:

- suppressed as duplicate (the notification cache already holds its key)
- suppressed as own activity (``ignore_own_events`` and the author is the
  current user); the cache is left untouched, so this is a display filter
  rather than a dedup fact
- notified: platform notification, unread badge, cache mark, history entry

Usage:
    from src.services.notifier import Notifier

    notifier = Notifier(settings, platform, notification_cache, history)
    notified = notifier.notify(
        project=project,
        project_event=event,
        internal=resolved,
        current_time=datetime.now(timezone.utc),
        message="[Issue] #445 TestIssue closed",
        author_id=event.author_id,
    )
"""

import re
from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Sequence
from urllib.parse import urlsplit, urlunsplit

import structlog

from src.models.config import NotifierSettings
from src.models.gitlab import EventKind, Project, ProjectEvent, ResolvedTarget
from src.models.notification import NotificationHistoryEntry, NotificationOptions
from src.observability.metrics import NOTIFICATIONS_TOTAL, UNREAD_NOTIFICATIONS
from src.services.notification_cache import NotificationCache

logger = structlog.get_logger()

# Project resource paths moved under "/-/" in GitLab 16.0
RESOURCE_SEGMENTS = frozenset(
    {
        "issues",
        "merge_requests",
        "milestones",
        "commit",
        "commits",
        "compare",
        "tree",
        "blob",
        "tags",
        "pipelines",
        "jobs",
        "wikis",
    }
)


class PlatformNotifier(Protocol):
    """Desktop notification operations required by the notifier."""

    def create(self, notification_id: str, options: Dict[str, Any]) -> None:
        ...

    def set_badge_text(self, text: str) -> None:
        ...


class HistorySink(Protocol):
    """Receiver of emitted notification records."""

    def add_notified_histories(
        self, entries: Sequence[NotificationHistoryEntry]
    ) -> None:
        ...


class Notifier:
    """Decides whether an event is surfaced and emits it.

    Attributes:
        settings: Own-event policy and instance version
        platform: Platform notification capability
        notification_cache: Dedup ledger
        history: History sink
        notification_count: Unread counter shown on the badge
    """

    def __init__(
        self,
        settings: NotifierSettings,
        platform: PlatformNotifier,
        notification_cache: NotificationCache,
        history: HistorySink,
    ) -> None:
        self.settings = settings
        self.platform = platform
        self.notification_cache = notification_cache
        self.history = history
        self.notification_count = 0

    def accepts(self, project: Project, kind: Optional[EventKind]) -> bool:
        """Per-project event kind filter.

        Events that map to no kind are never notified.
        """
        if kind is None:
            return False
        return project.is_enabled(kind)

    def notify(
        self,
        project: Project,
        project_event: ProjectEvent,
        internal: ResolvedTarget,
        current_time: datetime,
        message: str,
        author_id: Optional[int],
    ) -> bool:
        """Emit a notification for the event unless it is suppressed.

        Args:
            project: Project the event belongs to.
            project_event: Fetched event.
            internal: Resolved target id and URL.
            current_time: Recorded as ``notified_at``.
            message: Formatted message text.
            author_id: Author of the event.

        Returns:
            True if a notification was emitted, False if suppressed.
        """
        if self.notification_cache.has(project_event):
            NOTIFICATIONS_TOTAL.labels(outcome="duplicate").inc()
            return False

        if (
            self.settings.ignore_own_events
            and self.settings.user_id is not None
            and author_id == self.settings.user_id
        ):
            NOTIFICATIONS_TOTAL.labels(outcome="own_event").inc()
            logger.debug(
                "notification_suppressed_own_event",
                project=project.name,
                author_id=author_id,
            )
            return False

        cache_key = self.notification_cache.cache_key(project_event)
        options = NotificationOptions(
            iconUrl=project.avatar_url,
            title=project.name,
            message=message,
        )
        self.platform.create(cache_key, options.model_dump())

        self.notification_count += 1
        self.platform.set_badge_text(str(self.notification_count))
        UNREAD_NOTIFICATIONS.set(self.notification_count)

        self.notification_cache.add(project_event)

        entry = NotificationHistoryEntry.from_event(
            project_event.model_dump(mode="json", exclude_unset=True),
            cache_key=cache_key,
            project_name=project.name,
            target_id=internal.target_id,
            target_url=internal.target_url,
            notified_at=current_time,
            message=message,
            author_id=author_id,
        )
        self.history.add_notified_histories([entry])

        NOTIFICATIONS_TOTAL.labels(outcome="notified").inc()
        logger.info(
            "notification_emitted",
            project=project.name,
            cache_key=cache_key,
            unread=self.notification_count,
        )
        return True

    def clear_badge(self) -> None:
        """Mark everything as read."""
        self.notification_count = 0
        self.platform.set_badge_text("")
        UNREAD_NOTIFICATIONS.set(0)

    def sanitize_url(self, url: str, project_path: Optional[str] = None) -> str:
        """Normalize a target URL for linking.

        Collapses runs of slashes after the scheme and, on GitLab 16.0+,
        inserts ``-/`` between the project and the resource it links to.
        Idempotent.

        Args:
            url: Absolute target URL.
            project_path: Namespace-qualified project path. When given, ``-/``
                goes right after it. Without it the first resource segment
                after namespace and repo is used, which misplaces the prefix
                for nested groups whose names match a resource segment.
        """
        scheme, sep, rest = url.partition("://")
        if not sep:
            scheme, rest = "", url
        url = f"{scheme}{sep}{re.sub(r'/{2,}', '/', rest)}"

        if not self.settings.is_gitlab_16_0():
            return url

        parts = urlsplit(url)
        path = self._insert_dash_segment(parts.path, project_path)
        return urlunsplit(
            (parts.scheme, parts.netloc, path, parts.query, parts.fragment)
        )

    @staticmethod
    def _insert_dash_segment(path: str, project_path: Optional[str] = None) -> str:
        segments = path.split("/")

        if project_path:
            project = project_path.strip("/").split("/")
            for start in range(1, len(segments) - len(project) + 1):
                if segments[start : start + len(project)] != project:
                    continue
                end = start + len(project)
                if end == len(segments) or segments[end] in ("", "-"):
                    return path
                return "/".join(segments[:end] + ["-"] + segments[end:])

        # segments[0] is "" for absolute paths; need namespace and repo first
        for index in range(3, len(segments)):
            segment = segments[index]
            if segment == "-":
                return path
            if segment in RESOURCE_SEGMENTS:
                return "/".join(segments[:index] + ["-"] + segments[index:])
        return path
