"""GitLab REST API client.

Async façade over the GitLab REST API (v3 and v4) covering the resources the
notifier consumes:

- Paginated lists: projects, repository branches
- Single resources: triggers, users (avatars), current user, version
- Project events and resolution of an event's target to its IID and URL

API-version differences are isolated behind one ``ApiVersion`` value parsed
from the configured API path when the client is created.

An empty API path puts the client in offline mode: list operations return
empty results without touching the network.
"""

import asyncio
from types import MappingProxyType
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Collection,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)
from urllib.parse import quote

import aiohttp
import structlog

from src.models.config import GitLabSettings
from src.models.gitlab import ApiVersion, GitLabVersion, ProjectEvent, ResolvedTarget
from src.observability.metrics import EVENTS_FETCHED, GITLAB_REQUESTS
from src.services.avatar_cache import AvatarCache
from src.services.storage import KeyValueStorage, MemoryStorage
from src.utils.exceptions import (
    GitLabError,
    TransportFailure,
    UnexpectedStatus,
    UnsupportedTargetError,
)

logger = structlog.get_logger()

ErrorCallback = Callable[[GitLabError], None]

# target_type -> web URL segment
TARGET_URL_SEGMENTS = {
    "Issue": "issues",
    "MergeRequest": "merge_requests",
    "Milestone": "milestones",
}


class GitLabClient:
    """Version-aware GitLab API client.

    Attributes:
        api_path: API base without trailing slash (empty = offline)
        gitlab_path: Web base used to build target URLs
        api_version: Major API version resolved from ``api_path``
        projects: Result of the last ``load_projects`` call
        branches: Result of the last ``load_branches`` call
        triggers: Result of the last ``load_triggers`` call
        avatar_urls: Read-only result of the last ``load_avatar_urls`` call
    """

    def __init__(
        self,
        api_path: str = "",
        gitlab_path: str = "",
        private_token: Optional[str] = None,
        per_page: int = 100,
        avatar_cache: Optional[AvatarCache] = None,
        session: Optional[aiohttp.ClientSession] = None,
        on_error: Optional[ErrorCallback] = None,
        timeout_seconds: float = 30.0,
    ):
        """Initialize the client.

        Args:
            api_path: API base, e.g. ``https://gitlab.com/api/v4``
            gitlab_path: Web base, e.g. ``https://gitlab.com``
            private_token: Sent as ``PRIVATE-TOKEN`` on every request
            per_page: Page size for list requests
            avatar_cache: Persisted avatar cache. Default: in-memory.
            session: Optional externally managed aiohttp session
            on_error: User-visible error channel for loader failures
            timeout_seconds: Total timeout of the owned session
        """
        self.api_path = (api_path or "").rstrip("/")
        self.gitlab_path = (gitlab_path or "").rstrip("/")
        self.private_token = private_token
        self.per_page = per_page
        self.avatar_cache = (
            avatar_cache if avatar_cache is not None else AvatarCache(MemoryStorage())
        )
        self.on_error = on_error
        self.timeout_seconds = timeout_seconds
        self.api_version = ApiVersion.from_api_path(self.api_path)

        self._session = session
        self._owns_session = session is None

        self.projects: Optional[List[Dict[str, Any]]] = None
        self.branches: Optional[List[Dict[str, Any]]] = None
        self.triggers: Optional[List[Dict[str, Any]]] = None
        self.avatar_urls: Mapping[int, str] = MappingProxyType({})

    @classmethod
    def from_settings(
        cls,
        settings: GitLabSettings,
        storage: KeyValueStorage,
        on_error: Optional[ErrorCallback] = None,
    ) -> "GitLabClient":
        """Build a client from configuration with a persisted avatar cache."""
        return cls(
            api_path=settings.api_path,
            gitlab_path=settings.gitlab_path,
            private_token=settings.private_token,
            per_page=settings.per_page,
            avatar_cache=AvatarCache(storage),
            on_error=on_error,
            timeout_seconds=settings.timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return len(self.api_path) > 0

    # ==================== Session ====================

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "GitLabClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ==================== Transport ====================

    async def _request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        endpoint: str,
        api_path: Optional[str] = None,
        private_token: Optional[str] = None,
        accept: Collection[int] = (),
    ) -> Tuple[int, Any]:
        """GET ``{api_path}{path}`` and decode the JSON body.

        Statuses listed in ``accept`` are returned with a None body instead
        of raising.

        Returns:
            (status, decoded JSON body)

        Raises:
            TransportFailure: On network errors, timeouts, a non-2xx
                status not listed in ``accept``, or a body that is not JSON
        """
        url = f"{api_path or self.api_path}{path}"
        token = private_token or self.private_token
        headers = {"PRIVATE-TOKEN": token} if token else {}

        session = await self._get_session()
        try:
            async with session.get(url, params=params, headers=headers) as response:
                GITLAB_REQUESTS.labels(
                    endpoint=endpoint, status=str(response.status)
                ).inc()

                if 200 <= response.status < 300:
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        logger.warning(
                            "gitlab_invalid_json", endpoint=endpoint, error=str(e)
                        )
                        raise TransportFailure(
                            f"GET {url} returned invalid JSON",
                            status=response.status,
                            url=url,
                        ) from e
                    return response.status, data

                if response.status in accept:
                    return response.status, None

                body = await response.text()
                logger.warning(
                    "gitlab_request_failed",
                    endpoint=endpoint,
                    status=response.status,
                    body=body[:200],
                )
                raise TransportFailure(
                    f"GET {url} returned {response.status}",
                    status=response.status,
                    url=url,
                )
        except aiohttp.ClientError as e:
            GITLAB_REQUESTS.labels(endpoint=endpoint, status="error").inc()
            logger.error("gitlab_network_error", endpoint=endpoint, error=str(e))
            raise TransportFailure(f"GET {url} failed: {e}", url=url) from e
        except asyncio.TimeoutError as e:
            GITLAB_REQUESTS.labels(endpoint=endpoint, status="timeout").inc()
            logger.error("gitlab_timeout", endpoint=endpoint)
            raise TransportFailure(f"GET {url} timed out", url=url) from e

    async def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        endpoint: str,
        api_path: Optional[str] = None,
        private_token: Optional[str] = None,
    ) -> Any:
        _, data = await self._request(
            path,
            params,
            endpoint=endpoint,
            api_path=api_path,
            private_token=private_token,
        )
        return data

    async def _iter_pages(
        self, path: str, params: Dict[str, Any], endpoint: str
    ) -> AsyncIterator[List[Any]]:
        """Yield pages in order until a page shorter than ``per_page``.

        Page N+1 is only requested after page N has been consumed.
        """
        page = 1
        while True:
            page_params = dict(params, page=page, per_page=self.per_page)
            items = await self._get(path, page_params, endpoint=endpoint)
            items = items or []
            yield items

            if len(items) < self.per_page:
                # final page
                return
            page += 1

    async def _collect_pages(
        self, path: str, params: Dict[str, Any], endpoint: str
    ) -> List[Any]:
        accumulated: List[Any] = []
        async for items in self._iter_pages(path, params, endpoint):
            accumulated.extend(items)
        return accumulated

    def _report_error(self, event: str, error: GitLabError) -> None:
        """Log the failure and hand it to the user-visible error channel."""
        logger.error(
            event,
            error=str(error),
            status=getattr(error, "status", None),
        )
        if self.on_error is not None:
            self.on_error(error)

    @staticmethod
    def _project_segment(project: Union[int, str]) -> str:
        """Project id or URL-encoded ``namespace/name`` path."""
        return quote(str(project), safe="")

    # ==================== Paginated lists ====================

    async def load_projects(self) -> List[Dict[str, Any]]:
        """List projects ordered by name.

        GET /projects
        https://docs.gitlab.com/ee/api/projects.html#list-all-projects

        Returns:
            All pages concatenated in server order; [] when not configured.

        Raises:
            TransportFailure: If any page fails (``projects`` is left as [])
        """
        if not self.is_configured:
            self.projects = []
            return self.projects

        self.projects = None
        params: Dict[str, Any] = {"order_by": "name", "sort": "asc"}
        if self.api_version.uses_membership_filter:
            params["membership"] = "true"

        try:
            projects = await self._collect_pages("/projects", params, "projects")
        except TransportFailure as e:
            if self.projects is None:
                self.projects = []
            self._report_error("gitlab_projects_load_failed", e)
            raise

        self.projects = projects
        logger.info("gitlab_projects_loaded", count=len(projects))
        return projects

    async def load_branches(self, project_name: str) -> List[Dict[str, Any]]:
        """List repository branches of one project.

        GET /projects/:id/repository/branches
        https://docs.gitlab.com/ee/api/branches.html#list-repository-branches

        Raises:
            TransportFailure: If any page fails (``branches`` is left as [])
        """
        if not self.is_configured:
            self.branches = []
            return self.branches

        self.branches = None
        path = f"/projects/{self._project_segment(project_name)}/repository/branches"

        try:
            branches = await self._collect_pages(path, {}, "branches")
        except TransportFailure as e:
            if self.branches is None:
                self.branches = []
            self._report_error("gitlab_branches_load_failed", e)
            raise

        self.branches = branches
        logger.info(
            "gitlab_branches_loaded", project=project_name, count=len(branches)
        )
        return branches

    # ==================== Single resources ====================

    async def load_triggers(self, project_name: str) -> List[Dict[str, Any]]:
        """List pipeline triggers of one project.

        GET /projects/:id/triggers
        https://docs.gitlab.com/ee/api/pipeline_triggers.html
        """
        path = f"/projects/{self._project_segment(project_name)}/triggers"
        try:
            triggers = await self._get(path, endpoint="triggers")
        except TransportFailure as e:
            self._report_error("gitlab_triggers_load_failed", e)
            raise

        self.triggers = triggers or []
        return self.triggers

    async def get_user(self, user_id: int) -> Dict[str, Any]:
        """Single user.

        GET /users/:id
        https://docs.gitlab.com/ee/api/users.html#for-user
        """
        return await self._get(f"/users/{user_id}", endpoint="users")

    async def load_avatar_urls(self, user_ids: Iterable[int]) -> Mapping[int, str]:
        """Resolve avatar URLs, answering from the avatar cache first.

        Uncached users are fetched concurrently. The result is published on
        ``avatar_urls`` only once every lookup has settled, so the mapping is
        never observed half-filled. Failed lookups are logged and omitted.

        Returns:
            Read-only mapping of user id to avatar URL
        """
        if not self.is_configured:
            self.avatar_urls = MappingProxyType({})
            return self.avatar_urls

        urls: Dict[int, str] = {}
        missing: List[int] = []
        for user_id in dict.fromkeys(user_ids):
            cached_avatar_url = self.avatar_cache.get(user_id)
            if cached_avatar_url:
                urls[user_id] = cached_avatar_url
            else:
                missing.append(user_id)

        cached_count = len(urls)
        results = await asyncio.gather(
            *(self.get_user(user_id) for user_id in missing),
            return_exceptions=True,
        )

        for user_id, result in zip(missing, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    "gitlab_avatar_lookup_failed", user_id=user_id, error=str(result)
                )
                continue

            avatar_url = (result or {}).get("avatar_url")
            if avatar_url:
                self.avatar_cache.set(user_id, avatar_url)
                urls[user_id] = avatar_url

        self.avatar_urls = MappingProxyType(urls)
        logger.debug(
            "gitlab_avatars_loaded", cached=cached_count, fetched=len(urls) - cached_count
        )
        return self.avatar_urls

    async def get_project_events(self, project_id: int) -> List[ProjectEvent]:
        """List a project's visible events, most recent first.

        GET /projects/:id/events
        https://docs.gitlab.com/ee/api/events.html#list-a-projects-visible-events
        """
        path = f"/projects/{self._project_segment(project_id)}/events"
        data = await self._get(path, {"per_page": self.per_page}, endpoint="events")

        events: List[ProjectEvent] = []
        for item in data or []:
            try:
                events.append(ProjectEvent.model_validate(item))
            except ValueError as e:
                logger.warning(
                    "gitlab_event_parsing_failed",
                    project_id=project_id,
                    error=str(e),
                )
                continue

        EVENTS_FETCHED.inc(len(events))
        return events

    async def get_event_internal_id(
        self,
        target_type: Optional[str],
        target_id: int,
        project_id: int,
        project_name: str,
    ) -> ResolvedTarget:
        """Resolve an event target's internal id to its IID and web URL.

        GET /projects/:id/issues/:issue_iid
        GET /projects/:id/merge_requests/:merge_request_iid (v4+)
        GET /projects/:id/merge_request/:merge_request_id (until v3)
        GET /projects/:id/milestones/:milestone_id

        Milestones expose ``id`` only, so the result falls back to it when the
        response has no ``iid``. Transport failures propagate unchanged.

        Raises:
            UnsupportedTargetError: For target types without an endpoint
            TransportFailure: If the response carries neither ``iid`` nor ``id``
        """
        if target_type == "Issue":
            resource = "issues"
        elif target_type == "MergeRequest":
            resource = self.api_version.merge_request_segment
        elif target_type == "Milestone":
            resource = "milestones"
        else:
            raise UnsupportedTargetError(target_type)

        path = f"/projects/{self._project_segment(project_id)}/{resource}/{target_id}"
        res = await self._get(path, endpoint=resource) or {}

        resolved_id = res.get("iid") or res.get("id")
        if resolved_id is None:
            raise TransportFailure(
                f"GET {self.api_path}{path} returned no id",
                url=f"{self.api_path}{path}",
            )

        url = (
            f"{self.gitlab_path}/{project_name}/"
            f"{TARGET_URL_SEGMENTS[target_type]}/{resolved_id}"
        )
        return ResolvedTarget(target_id=resolved_id, target_url=url)

    async def get_current_user(
        self,
        api_path: Optional[str] = None,
        private_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Authenticated user.

        ``api_path`` and ``private_token`` override the configured values so
        connection settings can be validated before they are saved.

        GET /user
        """
        base = (api_path or self.api_path).rstrip("/")
        return await self._get(
            "/user", endpoint="user", api_path=base, private_token=private_token
        )

    async def get_gitlab_version(self) -> GitLabVersion:
        """Instance version.

        GET /metadata (GitLab 15.5+), falling back to GET /version on 404.

        Raises:
            UnexpectedStatus: If /metadata answers other than 200 or 404
            TransportFailure: If the request or the fallback fails
        """
        try:
            status, data = await self._request(
                "/metadata", endpoint="metadata", accept=range(300, 600)
            )
        except TransportFailure as e:
            self._report_error("gitlab_version_load_failed", e)
            raise

        if status == 404:
            try:
                data = await self._get("/version", endpoint="version")
            except TransportFailure as e:
                self._report_error("gitlab_version_load_failed", e)
                raise
        elif not 200 <= status < 300:
            error = UnexpectedStatus(
                f"GET /metadata returned {status}",
                status=status,
                url=f"{self.api_path}/metadata",
            )
            self._report_error("gitlab_version_load_failed", error)
            raise error

        version = GitLabVersion(version=data["version"], revision=data.get("revision"))
        logger.info("gitlab_version_detected", version=version.version)
        return version
