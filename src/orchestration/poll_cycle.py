"""Poll cycle: one pass over every watched project.

Fetches each project's events concurrently, loads the authors' avatars in a
single fan-out, then walks the events oldest first through the notifier:

    fetched -> duplicate | filtered | resolve target -> notify

A project whose event fetch fails is recorded and skipped; it never aborts
the cycle. Nothing is retried here: the next cycle simply fetches again and
the notification cache absorbs anything already surfaced.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

import structlog

from src.models.config import WatchedProject
from src.models.gitlab import Project, ProjectEvent, ResolvedTarget
from src.observability.metrics import NOTIFICATIONS_TOTAL
from src.orchestration.result import PollSummary
from src.services.event_formatter import (
    event_kind,
    format_message,
    is_note,
    local_target,
    needs_resolution,
)
from src.services.gitlab_client import GitLabClient
from src.services.notifier import Notifier
from src.utils.exceptions import GitLabError

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PollCycle:
    """Runs the fetch -> dedup -> notify pipeline for a set of projects"""

    def __init__(
        self,
        client: GitLabClient,
        notifier: Notifier,
        clock: Optional[Clock] = None,
    ):
        self.client = client
        self.notifier = notifier
        self.clock = clock or _utc_now

    async def resolve_projects(
        self, watched: Sequence[WatchedProject]
    ) -> List[Project]:
        """Match watched project names against the user's project list.

        Raises:
            TransportFailure: If the project list cannot be loaded
        """
        api_projects = await self.client.load_projects()
        by_name = {
            raw.get("path_with_namespace") or raw.get("name"): raw
            for raw in api_projects
        }

        projects: List[Project] = []
        for watch in watched:
            raw = by_name.get(watch.name)
            if raw is None:
                logger.warning("watched_project_not_found", project=watch.name)
                continue

            projects.append(
                Project(
                    id=raw["id"],
                    name=watch.name,
                    avatar_url=raw.get("avatar_url"),
                    web_url=raw.get("web_url"),
                    events=watch.events,
                )
            )
        return projects

    async def run(self, projects: Sequence[Project]) -> PollSummary:
        """Poll every project once.

        Args:
            projects: Projects to poll.

        Returns:
            Aggregated outcome counts.
        """
        summary = PollSummary()

        fetched = await asyncio.gather(
            *(self._fetch_events(project) for project in projects)
        )

        author_ids = [
            event.author_id
            for _, events, _ in fetched
            for event in events
            if event.author_id is not None
        ]
        if author_ids:
            await self.client.load_avatar_urls(author_ids)

        for project, events, project_summary in fetched:
            # Server order is most recent first
            for event in reversed(events):
                await self._process_event(project, event, project_summary)
            summary.merge(project_summary)

        logger.info(
            "poll_cycle_completed",
            projects=summary.projects_polled,
            events=summary.events_fetched,
            notified=summary.notified,
            duplicates=summary.duplicates,
            suppressed=summary.suppressed,
            filtered=summary.filtered,
            failed_projects=summary.failed_projects,
            errors=len(summary.errors),
        )
        return summary

    async def _fetch_events(
        self, project: Project
    ) -> Tuple[Project, List[ProjectEvent], PollSummary]:
        summary = PollSummary(projects_polled=1)
        try:
            events = await self.client.get_project_events(project.id)
        except GitLabError as e:
            logger.error(
                "project_events_fetch_failed", project=project.name, error=str(e)
            )
            summary.failed_projects = 1
            summary.errors.append({"project": project.name, "error": str(e)})
            return project, [], summary

        summary.events_fetched = len(events)
        return project, events, summary

    async def _process_event(
        self, project: Project, event: ProjectEvent, summary: PollSummary
    ) -> None:
        # Cheap pre-check: skips the target lookup for known events
        if self.notifier.notification_cache.has(event):
            NOTIFICATIONS_TOTAL.labels(outcome="duplicate").inc()
            summary.duplicates += 1
            return

        if not self.notifier.accepts(project, event_kind(event)):
            NOTIFICATIONS_TOTAL.labels(outcome="filtered").inc()
            summary.filtered += 1
            return

        try:
            resolved = await self._resolve_target(project, event)
        except GitLabError as e:
            NOTIFICATIONS_TOTAL.labels(outcome="error").inc()
            logger.warning(
                "event_target_resolution_failed",
                project=project.name,
                target_type=event.target_type,
                target_id=event.target_id,
                error=str(e),
            )
            summary.errors.append({"project": project.name, "error": str(e)})
            return

        internal = ResolvedTarget(
            target_id=resolved.target_id,
            target_url=self.notifier.sanitize_url(
                resolved.target_url, project_path=project.name
            ),
        )
        author_id = event.author_id
        if author_id is None and event.author is not None:
            author_id = event.author.id

        notified = self.notifier.notify(
            project=project,
            project_event=event,
            internal=internal,
            current_time=self.clock(),
            message=format_message(event, internal),
            author_id=author_id,
        )
        if notified:
            summary.notified += 1
        else:
            summary.suppressed += 1

    async def _resolve_target(
        self, project: Project, event: ProjectEvent
    ) -> ResolvedTarget:
        if not needs_resolution(event):
            return local_target(event, project, self.client.gitlab_path)

        if is_note(event):
            # Comment without noteable_iid: resolve the commented entity
            note = event.note or {}
            resolved = await self.client.get_event_internal_id(
                target_type=note.get("noteable_type"),
                target_id=note["noteable_id"],
                project_id=event.project_id,
                project_name=project.name,
            )
            note_id = note.get("id") or event.target_id
            return ResolvedTarget(
                target_id=resolved.target_id,
                target_url=f"{resolved.target_url}#note_{note_id}",
            )

        return await self.client.get_event_internal_id(
            target_type=event.target_type,
            target_id=event.target_id,
            project_id=event.project_id,
            project_name=project.name,
        )
