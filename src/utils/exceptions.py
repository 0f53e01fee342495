"""Custom exceptions for the GitLab notifier

This module defines the exception hierarchy for GitLab interaction:
- Base exception for all GitLab errors
- Transport failures (network errors, timeouts, non-2xx responses)
- Unexpected status from the version probe
- Unsupported event targets

All exceptions inherit from GitLabError to allow catching all GitLab-related
errors in a single except block when needed. An empty API path is not an
error: the client treats it as offline mode and returns empty results.
"""

from typing import Optional


class GitLabError(Exception):
    """Base exception for all GitLab errors

    Use this to catch any error raised by the client:
    ```python
    try:
        projects = await client.load_projects()
    except GitLabError as e:
        logger.error("poll_failed", error=str(e))
    ```
    """

    pass


class TransportFailure(GitLabError):
    """HTTP or network failure on a GitLab request

    Raised when:
    - The connection fails or times out
    - GitLab answers with a non-2xx status

    Attributes:
        status: HTTP status code, None for network errors
        url: Requested URL, when known
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.url = url


class UnexpectedStatus(TransportFailure):
    """GitLab answered the version probe with a status other than 200/404"""

    pass


class UnsupportedTargetError(GitLabError):
    """Event target type has no single-resource endpoint

    Raised when resolving targets other than Issue, MergeRequest or
    Milestone.
    """

    def __init__(self, target_type: Optional[str]) -> None:
        super().__init__(f"Unsupported target type: {target_type}")
        self.target_type = target_type
