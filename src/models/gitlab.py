"""GitLab resource models.

Provides Pydantic models for:
- ApiVersion: REST API major version derived from the configured API path
- GitLabVersion: Instance version reported by /metadata or /version
- Project: A watched repository plus its per-kind notification filters
- ProjectEvent: One activity record from GET /projects/:id/events
- ResolvedTarget: Human-facing id and browsable URL of an event target

Usage:
    from src.models.gitlab import ApiVersion, ProjectEvent

    api_version = ApiVersion.from_api_path("https://gitlab.com/api/v4")
    event = ProjectEvent(**payload)
"""

import re
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Notification categories a user can toggle per project."""

    COMMIT = "Commit"
    ISSUE = "Issue"
    MERGE_REQUEST = "MergeRequest"
    MILESTONE = "Milestone"


class ApiVersion(BaseModel):
    """GitLab REST API major version.

    Resolved once per client so every version-sensitive branch consults the
    same value instead of re-parsing the API path.
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(0, ge=0)

    @classmethod
    def from_api_path(cls, api_path: str) -> "ApiVersion":
        """Parse the ``/api/v<N>`` suffix of an API base path (0 if absent)."""
        match = re.search(r"/api/v([0-9]+)$", api_path or "")
        if match:
            return cls(major=int(match.group(1)))
        return cls(major=0)

    @property
    def uses_membership_filter(self) -> bool:
        """Since v4, GET /projects lists every visible project.

        Passing membership=true restores the pre-v4 "member of" semantics.
        """
        return self.major >= 4

    @property
    def merge_request_segment(self) -> str:
        """Path segment of the single merge request endpoint."""
        return "merge_requests" if self.major >= 4 else "merge_request"


class GitLabVersion(BaseModel):
    """Version string reported by the GitLab instance (e.g. ``16.4.1-ee``)."""

    version: str
    revision: Optional[str] = None

    @property
    def major_minor(self) -> Tuple[int, int]:
        match = re.match(r"^\s*(\d+)(?:\.(\d+))?", self.version)
        if not match:
            return (0, 0)
        return (int(match.group(1)), int(match.group(2) or 0))

    def is_at_least(self, major: int, minor: int = 0) -> bool:
        return self.major_minor >= (major, minor)


class Author(BaseModel):
    """User summary embedded in events."""

    model_config = ConfigDict(extra="allow")

    id: int
    name: Optional[str] = None
    username: Optional[str] = None
    state: Optional[str] = None
    avatar_url: Optional[str] = None
    web_url: Optional[str] = None


class Project(BaseModel):
    """A watched repository"""

    id: int
    name: str = Field(..., min_length=1, description="Namespace-qualified path")
    avatar_url: Optional[str] = None
    web_url: Optional[str] = None
    events: Dict[EventKind, bool] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def is_enabled(self, kind: EventKind) -> bool:
        """Kinds missing from the filter map are enabled."""
        return self.events.get(kind, True)


class ProjectEvent(BaseModel):
    """Raw activity record; server fields not modelled here are preserved."""

    model_config = ConfigDict(extra="allow")

    project_id: int
    action_name: str
    target_id: Optional[int] = None
    target_iid: Optional[int] = None
    target_type: Optional[str] = None
    target_title: Optional[str] = None
    title: Optional[str] = None
    created_at: str = Field(..., description="ISO-8601 timestamp as sent by GitLab")
    author_id: Optional[int] = None
    author: Optional[Author] = None
    author_username: Optional[str] = None
    # v3 push payload
    data: Optional[Dict[str, Any]] = None
    # v4 push payload
    push_data: Optional[Dict[str, Any]] = None
    note: Optional[Dict[str, Any]] = None

    @property
    def author_name(self) -> str:
        if self.author is not None and self.author.name:
            return self.author.name
        return self.author_username or "someone"


class ResolvedTarget(BaseModel):
    """Entity-local id and absolute URL of an event target."""

    model_config = ConfigDict(frozen=True)

    target_id: Optional[int] = None
    target_url: str
