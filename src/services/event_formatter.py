"""Event classification and message formatting.

Maps raw project events onto notification kinds, builds the user-visible
message, and derives target URLs for events that can be linked without an
API round trip (pushes and comments that carry their IID).

Message shapes:
    [Issue] #445 TestIssue closed
    [MergeRequest] #12 Add feature accepted
    [Milestone] v1.0 closed
    [Issue] #445 Dmitriy Zaporozhets commented: Looks good
    [Commit] Dmitriy Zaporozhets pushed 3 commits to master: Fix typo
"""

from typing import Any, Dict, Optional

from src.models.gitlab import EventKind, Project, ProjectEvent, ResolvedTarget

RESOLVABLE_TARGET_TYPES = frozenset({"Issue", "MergeRequest", "Milestone"})
NOTE_TARGET_TYPES = frozenset({"Note", "DiffNote", "DiscussionNote"})

# noteable_type -> (kind, web URL segment)
NOTEABLE_TYPES = {
    "Issue": (EventKind.ISSUE, "issues"),
    "MergeRequest": (EventKind.MERGE_REQUEST, "merge_requests"),
    "Commit": (EventKind.COMMIT, "commit"),
}

MAX_NOTE_CHARS = 100


def is_push(event: ProjectEvent) -> bool:
    return (
        event.action_name.startswith("pushed")
        or event.push_data is not None
        or event.data is not None
    )


def is_note(event: ProjectEvent) -> bool:
    return event.target_type in NOTE_TARGET_TYPES


def event_kind(event: ProjectEvent) -> Optional[EventKind]:
    """Notification kind of an event, or None if it is never notified"""
    if is_note(event):
        noteable_type = (event.note or {}).get("noteable_type")
        kind_and_segment = NOTEABLE_TYPES.get(noteable_type or "")
        return kind_and_segment[0] if kind_and_segment else None

    if event.target_type in RESOLVABLE_TARGET_TYPES:
        return EventKind(event.target_type)

    if is_push(event):
        return EventKind.COMMIT

    return None


def needs_resolution(event: ProjectEvent) -> bool:
    """Whether the target IID must be looked up through the API"""
    if event.target_type in RESOLVABLE_TARGET_TYPES:
        return True
    if is_note(event):
        note = event.note or {}
        return (
            note.get("noteable_type") in ("Issue", "MergeRequest")
            and note.get("noteable_iid") is None
            and note.get("noteable_id") is not None
        )
    return False


def _push_payload(event: ProjectEvent) -> Dict[str, Any]:
    """Normalize the v4 ``push_data`` and v3 ``data`` payloads"""
    if event.push_data is not None:
        push = event.push_data
        return {
            "ref": push.get("ref"),
            "before": push.get("commit_from"),
            "after": push.get("commit_to"),
            "count": push.get("commit_count") or 0,
            "title": push.get("commit_title"),
        }

    data = event.data or {}
    commits = data.get("commits") or []
    ref = data.get("ref") or ""
    if ref.startswith("refs/heads/"):
        ref = ref[len("refs/heads/") :]
    last_message = commits[-1].get("message") if commits else None
    return {
        "ref": ref or None,
        "before": data.get("before"),
        "after": data.get("after"),
        "count": data.get("total_commits_count", len(commits)),
        "title": last_message.splitlines()[0] if last_message else None,
    }


def _is_null_sha(sha: Optional[str]) -> bool:
    return not sha or set(sha) == {"0"}


def local_target(
    event: ProjectEvent, project: Project, gitlab_path: str
) -> ResolvedTarget:
    """Target of a push or comment event, built without an API call"""
    base = f"{gitlab_path}/{project.name}"

    if is_note(event):
        note = event.note or {}
        note_id = note.get("id") or event.target_id
        noteable_type = note.get("noteable_type")
        segment = NOTEABLE_TYPES.get(noteable_type or "", (None, "issues"))[1]

        if noteable_type == "Commit":
            sha = note.get("commit_id") or ""
            return ResolvedTarget(
                target_id=None, target_url=f"{base}/commit/{sha}#note_{note_id}"
            )

        iid = note.get("noteable_iid")
        if iid is None:
            return ResolvedTarget(target_id=None, target_url=project.web_url or base)
        return ResolvedTarget(
            target_id=iid, target_url=f"{base}/{segment}/{iid}#note_{note_id}"
        )

    push = _push_payload(event)
    if push["count"] == 1 and not _is_null_sha(push["after"]):
        url = f"{base}/commit/{push['after']}"
    elif not _is_null_sha(push["before"]) and not _is_null_sha(push["after"]):
        url = f"{base}/compare/{push['before']}...{push['after']}"
    elif push["ref"]:
        url = f"{base}/commits/{push['ref']}"
    else:
        url = project.web_url or base
    return ResolvedTarget(target_id=None, target_url=url)


def format_message(event: ProjectEvent, internal: ResolvedTarget) -> str:
    """User-visible notification text"""
    if is_note(event):
        note = event.note or {}
        label = note.get("noteable_type") or "Note"
        body = (note.get("body") or "").strip().splitlines()
        excerpt = body[0] if body else ""
        if len(excerpt) > MAX_NOTE_CHARS:
            excerpt = excerpt[: MAX_NOTE_CHARS - 3] + "..."
        reference = f" #{internal.target_id}" if internal.target_id else ""
        return f"[{label}]{reference} {event.author_name} commented: {excerpt}".rstrip()

    if event.target_type in RESOLVABLE_TARGET_TYPES:
        title = event.target_title or event.title or ""
        if event.target_type == "Milestone":
            return f"[Milestone] {title} {event.action_name}"
        return f"[{event.target_type}] #{internal.target_id} {title} {event.action_name}"

    push = _push_payload(event)
    count = push["count"]
    noun = "commit" if count == 1 else "commits"
    message = f"[Commit] {event.author_name} pushed"
    if count:
        message += f" {count} {noun}"
    if push["ref"]:
        message += f" to {push['ref']}"
    if push["title"]:
        message += f": {push['title']}"
    return message
