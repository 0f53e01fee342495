"""Poll cycle result data structure."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class PollSummary:
    """Result of one poll cycle.

    Aggregates per-event outcomes across all watched projects.
    """

    projects_polled: int = 0
    events_fetched: int = 0
    notified: int = 0
    duplicates: int = 0
    suppressed: int = 0
    filtered: int = 0
    failed_projects: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "projects_polled": self.projects_polled,
            "events_fetched": self.events_fetched,
            "notified": self.notified,
            "duplicates": self.duplicates,
            "suppressed": self.suppressed,
            "filtered": self.filtered,
            "failed_projects": self.failed_projects,
            "errors": self.errors,
        }

    def merge(self, other: "PollSummary") -> None:
        """Merge a per-project summary into this one."""
        self.projects_polled += other.projects_polled
        self.events_fetched += other.events_fetched
        self.notified += other.notified
        self.duplicates += other.duplicates
        self.suppressed += other.suppressed
        self.filtered += other.filtered
        self.failed_projects += other.failed_projects
        self.errors.extend(other.errors)
