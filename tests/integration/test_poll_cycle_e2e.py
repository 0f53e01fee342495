"""End-to-end poll cycle over a stubbed GitLab API and on-disk storage.

Exercises the real client, caches, notifier and history together; only the
aiohttp session is replaced.
"""

import json

import pytest

from src.models.config import NotifierConfig
from src.orchestration.context import NotifierContext
from src.services.storage import JsonFileStorage
from tests.helpers import make_response, make_session, request_urls

API = "http://example.com/api/v4"

PROJECTS = [
    {
        "id": 1,
        "name": "example",
        "path_with_namespace": "sue445/example",
        "avatar_url": "http://example.com/avatar.png",
        "web_url": "http://example.com/sue445/example",
    }
]

EVENTS = [
    {
        "project_id": 1,
        "action_name": "closed",
        "target_id": 830,
        "target_iid": 445,
        "target_type": "Issue",
        "target_title": "TestIssue",
        "author_id": 1,
        "author": {"id": 1, "name": "sue445", "username": "sue445"},
        "created_at": "2017-01-01T00:00:00.000Z",
    }
]


class RecordingPlatform:
    def __init__(self):
        self.created = []
        self.badge = ""

    def create(self, notification_id, options):
        self.created.append((notification_id, options))

    def set_badge_text(self, text):
        self.badge = text


def build_config(tmp_path, **notifier):
    return NotifierConfig(
        gitlab={"api_path": API, "gitlab_path": "http://example.com", "per_page": 20},
        notifier=notifier,
        storage={"backend": "json", "path": str(tmp_path / "notifier.json")},
        projects=[{"name": "sue445/example"}],
    )


def one_cycle_session(events=EVENTS):
    return make_session(
        make_response(json_data=PROJECTS),
        make_response(json_data=events),
        make_response(json_data={"id": 1, "avatar_url": "http://example.com/sue445.png"}),
        make_response(json_data={"id": 830, "iid": 445}),
    )


async def run_cycle(config, platform, session, storage=None):
    context = NotifierContext.from_config(config, platform, storage=storage)
    context.client._session = session
    context.client._owns_session = False
    try:
        projects = await context.cycle.resolve_projects(config.projects)
        return context, await context.cycle.run(projects)
    finally:
        await context.close()


@pytest.mark.asyncio
async def test_first_poll_notifies_and_persists(tmp_path):
    config = build_config(tmp_path)
    platform = RecordingPlatform()
    session = one_cycle_session()

    context, summary = await run_cycle(config, platform, session)

    assert summary.notified == 1
    assert request_urls(session) == [
        f"{API}/projects",
        f"{API}/projects/1/events",
        f"{API}/users/1",
        f"{API}/projects/1/issues/830",
    ]

    cache_key = "1_Issue_830_closed_2017-01-01T00:00:00.000Z"
    assert platform.created == [
        (
            cache_key,
            {
                "type": "basic",
                "iconUrl": "http://example.com/avatar.png",
                "title": "sue445/example",
                "message": "[Issue] #445 TestIssue closed",
                "priority": 0,
            },
        )
    ]
    assert platform.badge == "1"

    stored = json.loads((tmp_path / "notifier.json").read_text())
    assert json.loads(stored["notificationCache"]) == {cache_key: True}
    assert json.loads(stored["avatarCache"]) == {"1": "http://example.com/sue445.png"}
    history = json.loads(stored["notifiedHistories"])
    assert history[0]["_id"] == cache_key
    assert history[0]["target_url"] == "http://example.com/sue445/example/issues/445"


@pytest.mark.asyncio
async def test_restart_does_not_renotify(tmp_path):
    config = build_config(tmp_path)
    await run_cycle(config, RecordingPlatform(), one_cycle_session())

    platform = RecordingPlatform()
    # Avatar comes from the persisted cache and the event is a known duplicate
    session = make_session(
        make_response(json_data=PROJECTS),
        make_response(json_data=EVENTS),
    )

    _, summary = await run_cycle(config, platform, session)

    assert summary.duplicates == 1
    assert summary.notified == 0
    assert platform.created == []
    assert request_urls(session) == [f"{API}/projects", f"{API}/projects/1/events"]


@pytest.mark.asyncio
async def test_own_event_suppressed_then_notified_after_policy_change(tmp_path):
    storage = JsonFileStorage(tmp_path / "notifier.json")

    suppressed = RecordingPlatform()
    _, summary = await run_cycle(
        build_config(tmp_path, ignore_own_events=True, user_id=1),
        suppressed,
        one_cycle_session(),
        storage=storage,
    )
    assert summary.suppressed == 1
    assert suppressed.created == []

    notified = RecordingPlatform()
    _, summary = await run_cycle(
        build_config(tmp_path, ignore_own_events=False, user_id=1),
        notified,
        make_session(
            make_response(json_data=PROJECTS),
            make_response(json_data=EVENTS),
            make_response(json_data={"id": 830, "iid": 445}),
        ),
        storage=storage,
    )
    assert summary.notified == 1
    assert len(notified.created) == 1


@pytest.mark.asyncio
async def test_gitlab_16_links(tmp_path):
    platform = RecordingPlatform()

    context, _ = await run_cycle(
        build_config(tmp_path, gitlab_version="16.4.1-ee"),
        platform,
        one_cycle_session(),
    )

    entry = context.history.entries[0]
    assert entry["target_url"] == "http://example.com/sue445/example/-/issues/445"
