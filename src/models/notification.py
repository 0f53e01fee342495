"""Notification models.

Provides Pydantic models for:
- NotificationOptions: Payload handed to the platform notifier
- NotificationHistoryEntry: Record appended to the history sink per emission

Usage:
    from src.models.notification import NotificationOptions

    options = NotificationOptions(
        iconUrl=project.avatar_url,
        title=project.name,
        message="[Issue] #445 TestIssue closed",
    )
    platform.create(cache_key, options.model_dump())
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationOptions(BaseModel):
    """Options of a single platform notification.

    Field names follow the platform notification API (camelCase).

    Attributes:
        type: Notification template, always "basic".
        iconUrl: Project avatar shown next to the message.
        title: Project name.
        message: Formatted event message.
        priority: Platform priority (0 = default).
    """

    type: Literal["basic"] = "basic"
    iconUrl: Optional[str] = None
    title: str
    message: str
    priority: int = Field(default=0, ge=-2, le=2)


class NotificationHistoryEntry(BaseModel):
    """An emitted notification: the raw event fields plus emission metadata.

    ``entry_id`` is serialized as ``_id`` and always equals the notification cache
    key that gated the emission.

    Attributes:
        entry_id: Cache key of the event.
        project_name: Name of the project the event belongs to.
        target_id: Human-facing id (IID) of the event target.
        target_url: Browsable URL of the event target.
        notified_at: When the notification was emitted.
        message: Message shown to the user.
        author_id: Author of the event.
    """

    model_config = ConfigDict(extra="allow")

    entry_id: str = Field(..., alias="_id")
    project_name: str
    target_id: Optional[int] = None
    target_url: Optional[str] = None
    notified_at: datetime
    message: str
    author_id: Optional[int] = None

    @classmethod
    def from_event(
        cls,
        event_fields: Dict[str, Any],
        *,
        cache_key: str,
        project_name: str,
        target_id: Optional[int],
        target_url: Optional[str],
        notified_at: datetime,
        message: str,
        author_id: Optional[int],
    ) -> "NotificationHistoryEntry":
        """Overlay emission metadata on the event fields.

        Metadata wins on conflicts, so ``target_id`` is the resolved IID
        rather than the internal id of the raw record.
        """
        payload: Dict[str, Any] = dict(event_fields)
        payload.update(
            {
                "_id": cache_key,
                "project_name": project_name,
                "target_id": target_id,
                "target_url": target_url,
                "notified_at": notified_at,
                "message": message,
                "author_id": author_id,
            }
        )
        return cls(**payload)

    def to_record(self) -> Dict[str, Any]:
        """JSON-compatible dict with ``_id`` as key."""
        return self.model_dump(mode="json", by_alias=True)
