"""HTTP doubles for exercising GitLabClient without a network."""

from typing import Any, List, Mapping, Optional
from unittest.mock import AsyncMock, MagicMock


def make_response(
    status: int = 200,
    json_data: Any = None,
    text: str = "",
    json_error: Optional[Exception] = None,
) -> MagicMock:
    """aiohttp ``session.get(...)`` context manager yielding a canned response.

    ``json_error`` is raised by ``response.json()`` instead of returning data.
    """
    response = AsyncMock()
    response.status = status
    response.json.return_value = json_data
    if json_error is not None:
        response.json.side_effect = json_error
    response.text.return_value = text

    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=response)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


def make_session(*responses: Any) -> MagicMock:
    """Session whose successive GETs return (or raise) ``responses`` in order."""
    session = MagicMock()
    session.closed = False
    session.get = MagicMock(side_effect=list(responses))
    return session


def make_routed_session(routes: Mapping[str, Any]) -> MagicMock:
    """Session answering each GET by URL, independent of request order."""
    session = MagicMock()
    session.closed = False
    session.get = MagicMock(side_effect=lambda url, **kwargs: routes[url])
    return session


def request_urls(session: MagicMock) -> List[str]:
    return [c.args[0] for c in session.get.call_args_list]


def request_params(session: MagicMock) -> List[Any]:
    return [c.kwargs.get("params") for c in session.get.call_args_list]


def request_headers(session: MagicMock) -> List[Any]:
    return [c.kwargs.get("headers") for c in session.get.call_args_list]
