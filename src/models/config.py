from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict

from src.models.gitlab import EventKind, GitLabVersion


class StorageBackend(str, Enum):
    MEMORY = "memory"
    JSON = "json"
    DISKCACHE = "diskcache"


class GitLabSettings(BaseModel):
    """Connection settings for the GitLab REST API"""

    api_path: str = Field(
        "", description="API base, e.g. https://gitlab.com/api/v4 (empty = offline)"
    )
    gitlab_path: str = Field("", description="Web base used to build target URLs")
    private_token: Optional[str] = Field(
        None, description="Personal access token (from environment)"
    )
    per_page: int = Field(100, ge=1, le=100)
    timeout_seconds: float = Field(30.0, gt=0.0, le=300.0)

    @field_validator("api_path", "gitlab_path")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    @field_validator("private_token", mode="before")
    @classmethod
    def unset_placeholder(cls, v: Optional[str]) -> Optional[str]:
        # Unsubstituted ${VAR} means the variable was not set
        if v is None or v == "" or (v.startswith("${") and v.endswith("}")):
            return None
        return v

    @property
    def is_configured(self) -> bool:
        return len(self.api_path) > 0


class NotifierSettings(BaseModel):
    """Policy knobs consulted by the notifier"""

    ignore_own_events: bool = Field(
        False, description="Suppress notifications for the user's own activity"
    )
    user_id: Optional[int] = Field(None, description="GitLab id of the current user")
    gitlab_version: Optional[str] = Field(
        None, description="Instance version, e.g. '16.4.1-ee' (see `check`)"
    )

    def is_gitlab_16_0(self) -> bool:
        """Whether the instance uses the ``/-/`` resource path convention."""
        if not self.gitlab_version:
            return False
        return GitLabVersion(version=self.gitlab_version).is_at_least(16, 0)


class PollingSettings(BaseModel):
    """Poll cycle timing"""

    polling_second: int = Field(600, ge=10, le=86400)


class StorageSettings(BaseModel):
    """Where caches and history are persisted"""

    backend: StorageBackend = Field(StorageBackend.JSON)
    path: str = Field("./data/notifier.json")


class HistorySettings(BaseModel):
    """Notification history retention"""

    max_entries: Optional[int] = Field(
        100, ge=1, description="Newest entries kept (None = unbounded)"
    )


class WatchedProject(BaseModel):
    """A project to poll and the event kinds to notify for"""

    name: str = Field(..., min_length=1, max_length=500)
    events: Dict[EventKind, bool] = Field(
        default_factory=lambda: {kind: True for kind in EventKind}
    )

    @field_validator("name")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        name = v.strip().strip("/")
        if not name:
            raise ValueError("Project name cannot be empty")
        return name


class NotifierConfig(BaseModel):
    """Root configuration model"""

    model_config = ConfigDict(extra="forbid")

    gitlab: GitLabSettings = Field(default_factory=lambda: GitLabSettings())
    notifier: NotifierSettings = Field(default_factory=lambda: NotifierSettings())
    polling: PollingSettings = Field(default_factory=lambda: PollingSettings())
    storage: StorageSettings = Field(default_factory=lambda: StorageSettings())
    history: HistorySettings = Field(default_factory=lambda: HistorySettings())
    projects: List[WatchedProject] = Field(default_factory=list, max_length=500)
