"""Tests for NotificationCache."""

import json

from src.models.gitlab import ProjectEvent
from src.services.notification_cache import NotificationCache
from src.services.storage import MemoryStorage


def make_event(**overrides) -> ProjectEvent:
    fields = {
        "project_id": 1,
        "action_name": "closed",
        "target_id": 160,
        "target_type": "Issue",
        "created_at": "2017-01-01T00:00:00.000Z",
    }
    fields.update(overrides)
    return ProjectEvent.model_validate(fields)


class TestCacheKey:
    """Key derivation."""

    def test_format(self):
        key = NotificationCache.cache_key(make_event())

        assert key == "1_Issue_160_closed_2017-01-01T00:00:00.000Z"

    def test_ignores_non_identity_fields(self):
        a = make_event(data={"ref": "main"}, target_title="A")
        b = make_event(data={"ref": "dev"}, target_title="B", author_id=3)

        assert NotificationCache.cache_key(a) == NotificationCache.cache_key(b)

    def test_created_at_distinguishes_repeated_actions(self):
        a = make_event()
        b = make_event(created_at="2017-01-02T00:00:00.000Z")

        assert NotificationCache.cache_key(a) != NotificationCache.cache_key(b)

    def test_missing_target_fields(self):
        event = make_event(target_id=None, target_type=None, action_name="pushed to")

        key = NotificationCache.cache_key(event)

        assert key == "1___pushed to_2017-01-01T00:00:00.000Z"


class TestHasAdd:
    """Membership and persistence."""

    def test_empty_storage_means_empty_cache(self):
        cache = NotificationCache(MemoryStorage())

        assert len(cache) == 0
        assert not cache.has(make_event())

    def test_add_marks_and_persists(self):
        storage = MemoryStorage()
        cache = NotificationCache(storage)
        event = make_event()

        cache.add(event)

        assert cache.has(event)
        assert json.loads(storage.get("notificationCache")) == {
            NotificationCache.cache_key(event): True
        }

    def test_add_is_idempotent(self):
        storage = MemoryStorage()
        cache = NotificationCache(storage)
        event = make_event()

        cache.add(event)
        storage.data["notificationCache"] = "sentinel"
        cache.add(event)

        # Second add does not rewrite storage
        assert storage.get("notificationCache") == "sentinel"
        assert len(cache) == 1

    def test_loads_existing_slot(self):
        event = make_event()
        storage = MemoryStorage(
            {"notificationCache": json.dumps({NotificationCache.cache_key(event): True})}
        )

        cache = NotificationCache(storage)

        assert cache.has(event)
        assert len(cache) == 1
