"""Tests for notification models."""

from datetime import datetime, timezone

from src.models.notification import NotificationHistoryEntry, NotificationOptions


def test_options_payload():
    options = NotificationOptions(
        iconUrl="http://example.com/avatar.png",
        title="sue445/example",
        message="[Issue] #445 TestIssue closed",
    )

    assert options.model_dump() == {
        "type": "basic",
        "iconUrl": "http://example.com/avatar.png",
        "title": "sue445/example",
        "message": "[Issue] #445 TestIssue closed",
        "priority": 0,
    }


def test_history_entry_overlays_metadata():
    entry = NotificationHistoryEntry.from_event(
        {
            "project_id": 1,
            "action_name": "closed",
            "target_id": 160,
            "author_id": 25,
            "id": 12345,
        },
        cache_key="1_Issue_160_closed_2017-01-01T00:00:00.000Z",
        project_name="sue445/example",
        target_id=445,
        target_url="http://example.com/sue445/example/issues/445",
        notified_at=datetime(2017, 1, 1, tzinfo=timezone.utc),
        message="[Issue] #445 TestIssue closed",
        author_id=1,
    )

    record = entry.to_record()

    assert record["_id"] == "1_Issue_160_closed_2017-01-01T00:00:00.000Z"
    assert record["target_id"] == 445
    assert record["author_id"] == 1
    assert record["project_id"] == 1
    assert record["id"] == 12345
    assert "entry_id" not in record
