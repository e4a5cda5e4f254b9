"""Authorized HTTP requests against APIs protected by the session's tokens."""

from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any

import httpx


if TYPE_CHECKING:
    from .session import AuthSession


logger = logging.getLogger("tabauth.fetch")


async def authorized_request(
    session: AuthSession,
    client: httpx.AsyncClient,
    method: str,
    url: str | httpx.URL,
    *,
    logout_on_unauthorized: bool = False,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request carrying the session's current access token.

    Parameters
    ----------
    session : AuthSession
        Session supplying (and refreshing) the access token.
    client : httpx.AsyncClient
        Client to send the request with.
    method : str
        HTTP method.
    url : str or httpx.URL
        Target URL.
    logout_on_unauthorized : bool
        Log the session out when the API answers 401 (default False).
    **kwargs : Any
        Passed through to ``client.request``.

    Returns
    -------
    httpx.Response
        The response, whatever its status.
    """
    token = await session.get_access_token()

    headers = httpx.Headers(kwargs.pop("headers", None))
    if token:
        headers["Authorization"] = f"Bearer {token}"
    headers.setdefault("Accept", "application/json")

    resp = await client.request(method, url, headers=headers, **kwargs)

    if resp.status_code == 401 and logout_on_unauthorized:
        logger.info("API rejected the access token; logging out")
        await session.logout()

    return resp
