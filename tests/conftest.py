"""Shared fixtures for the notifier test suite."""

import pytest

from src.models.config import NotifierSettings
from src.models.gitlab import Project, ProjectEvent
from src.services.notification_cache import NotificationCache
from src.services.notification_history import NotificationHistory
from src.services.notifier import Notifier
from src.services.storage import MemoryStorage


class RecordingPlatform:
    """Platform notifier that remembers every call."""

    def __init__(self):
        self.created = []
        self.badges = []

    def create(self, notification_id, options):
        self.created.append((notification_id, options))

    def set_badge_text(self, text):
        self.badges.append(text)


@pytest.fixture
def project() -> Project:
    return Project(
        id=1,
        name="sue445/example",
        avatar_url="http://example.com/avatar.png",
        web_url="http://example.com/sue445/example",
    )


@pytest.fixture
def issue_event() -> ProjectEvent:
    return ProjectEvent.model_validate(
        {
            "title": None,
            "project_id": 1,
            "action_name": "closed",
            "target_id": 160,
            "target_type": "Issue",
            "target_title": "TestIssue",
            "author_id": 25,
            "author_username": "john",
            "created_at": "2017-01-01T00:00:00.000Z",
            "author": {
                "id": 25,
                "name": "John Smith",
                "username": "john",
                "state": "active",
                "avatar_url": "http://example.com/john.png",
                "web_url": "http://example.com/john",
            },
        }
    )


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def platform() -> RecordingPlatform:
    return RecordingPlatform()


@pytest.fixture
def notifier_factory(storage, platform):
    """Build a Notifier over shared in-memory storage."""

    def _build(**settings) -> Notifier:
        return Notifier(
            NotifierSettings(**settings),
            platform,
            NotificationCache(storage),
            NotificationHistory(storage),
        )

    return _build
