"""OpenID Connect wire client.

Builds the authorization URL and performs the code exchange, refresh and
UserInfo calls against the provider's endpoints.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import json
import logging
import time

from base64 import urlsafe_b64decode
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from .config import DEFAULT_SCOPES
from .exceptions import (
    ConfigurationError,
    HttpStatusError,
    NetworkError,
    TokenResponseError,
)
from .log import redact_sensitive_data
from .pkce import PKCEChallenge
from .types import TokenSet


if TYPE_CHECKING:
    from .config import AuthConfig


logger = logging.getLogger("tabauth.oidc")

DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class Endpoints:
    """Resolved provider endpoints."""

    authorize: str
    token: str
    userinfo: str
    end_session: str | None = None


def _require_url(value: str, field: str) -> str:
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        msg = f"Invalid {field} URL: {value!r}"
        raise ConfigurationError(msg, field=field)
    return value


def _with_params(url: str, params: dict[str, str]) -> str:
    """Set query parameters on ``url``, keeping the ones already present."""
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update(params)
    return urlunsplit(parts._replace(query=urlencode(query)))


def strip_query_params(url: str, names: tuple[str, ...] | list[str]) -> str:
    """Return ``url`` without the named query parameters."""
    parts = urlsplit(url)
    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in names]
    return urlunsplit(parts._replace(query=urlencode(kept)))


def resolve_endpoints(config: AuthConfig) -> Endpoints:
    """Derive the provider endpoints from the configuration.

    Explicit overrides win; otherwise authorize, token and UserInfo URLs
    are ``<issuer><endpoint_path_prefix>/<name>`` with trailing slashes
    stripped from the issuer. The end-session URL has no default.

    Parameters
    ----------
    config : AuthConfig
        The client configuration.

    Returns
    -------
    Endpoints
        The resolved endpoint URLs.

    Raises
    ------
    ConfigurationError
        If the issuer (when needed) or an override is not an http(s) URL.
    """
    overrides = {
        "authorize_endpoint": config.authorize_endpoint,
        "token_endpoint": config.token_endpoint,
        "userinfo_endpoint": config.userinfo_endpoint,
        "end_session_endpoint": config.end_session_endpoint,
    }
    for field, value in overrides.items():
        if value:
            _require_url(value, field)

    needs_issuer = not (
        config.authorize_endpoint and config.token_endpoint and config.userinfo_endpoint
    )
    base = ""
    if needs_issuer:
        if not config.issuer:
            msg = "An issuer is required unless every endpoint is configured explicitly"
            raise ConfigurationError(msg, field="issuer")
        base = _require_url(config.issuer, "issuer").rstrip("/")
        prefix = config.endpoint_path_prefix.strip("/")
        if prefix:
            base = f"{base}/{prefix}"

    return Endpoints(
        authorize=config.authorize_endpoint or f"{base}/authorize",
        token=config.token_endpoint or f"{base}/token",
        userinfo=config.userinfo_endpoint or f"{base}/userinfo",
        end_session=config.end_session_endpoint or None,
    )


@dataclass(frozen=True)
class AuthorizationRequest:
    """An authorization URL and the artifacts to persist before navigating.

    Attributes
    ----------
    url : str
        The full authorization URL.
    pkce : PKCEChallenge
        Verifier, challenge, state and nonce generated for this request.
    """

    url: str
    pkce: PKCEChallenge

    @property
    def verifier(self) -> str:
        """The PKCE code verifier."""
        return self.pkce.verifier

    @property
    def state(self) -> str:
        """The state value the callback must echo."""
        return self.pkce.state

    @property
    def nonce(self) -> str:
        """The nonce expected in the ID token."""
        return self.pkce.nonce


def build_authorization_request(
    config: AuthConfig,
    app_state: str | None = None,
) -> AuthorizationRequest:
    """Build the authorization URL with fresh PKCE artifacts.

    Parameters
    ----------
    config : AuthConfig
        The client configuration.
    app_state : str, optional
        Opaque application value sent as ``app_state``.

    Returns
    -------
    AuthorizationRequest
        The URL plus the generated verifier, challenge, state and nonce.

    Raises
    ------
    ConfigurationError
        If endpoints cannot be resolved or client_id/redirect_uri are unset.
    """
    endpoints = resolve_endpoints(config)
    if not config.client_id:
        msg = "client_id is required"
        raise ConfigurationError(msg, field="client_id")
    if not config.redirect_uri:
        msg = "redirect_uri is required"
        raise ConfigurationError(msg, field="redirect_uri")

    pkce = PKCEChallenge.generate(verifier_bytes=32, state_bytes=16)
    scopes = config.scopes or list(DEFAULT_SCOPES)

    params: dict[str, str] = {
        "response_type": "code",
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "scope": " ".join(scopes),
        "code_challenge": pkce.challenge,
        "code_challenge_method": pkce.method,
        "state": pkce.state,
        "nonce": pkce.nonce,
    }
    if config.audience:
        params["audience"] = config.audience
    if app_state:
        params["app_state"] = app_state
    # Provider-specific parameters go last and may override the ones above.
    params.update(config.extra_authorize_params)

    return AuthorizationRequest(url=_with_params(endpoints.authorize, params), pkce=pkce)


def build_end_session_url(config: AuthConfig, id_token: str | None = None) -> str | None:
    """Build the RP-initiated logout URL, or None when no endpoint is configured."""
    if not config.end_session_endpoint:
        return None
    end_session = _require_url(config.end_session_endpoint, "end_session_endpoint")
    params: dict[str, str] = {}
    if config.post_logout_redirect_uri:
        params["post_logout_redirect_uri"] = config.post_logout_redirect_uri
    if id_token:
        params["id_token_hint"] = id_token
    return _with_params(end_session, params) if params else end_session


def id_token_claims(id_token: str) -> dict[str, Any] | None:
    """Decode the payload segment of a JWT without verifying it.

    Returns None when the token is not a decodable three-part JWT.
    """
    parts = id_token.split(".")
    if len(parts) != 3:
        return None
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(urlsafe_b64decode(payload.encode("ascii")))
    except (ValueError, UnicodeError):
        return None
    return claims if isinstance(claims, dict) else None


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def parse_token_response(
    raw: Any,
    received_at: float,
    previous_refresh_token: str | None = None,
) -> TokenSet:
    """Turn a token endpoint JSON body into a ``TokenSet``.

    Parameters
    ----------
    raw : Any
        The decoded JSON body.
    received_at : float
        Epoch seconds at which the response was received.
    previous_refresh_token : str, optional
        Refresh token carried forward when the response omits one.

    Raises
    ------
    TokenResponseError
        If ``access_token`` is missing or ``expires_in`` is not an integer.
    """
    if not isinstance(raw, dict):
        msg = "Token response is not a JSON object"
        raise TokenResponseError(msg)

    access_token = raw.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        msg = "Token response has no access_token"
        raise TokenResponseError(msg)

    expires_in_raw = raw.get("expires_in")
    if expires_in_raw is None:
        expires_in = DEFAULT_EXPIRES_IN
    elif isinstance(expires_in_raw, bool):
        msg = f"Token response has a non-integer expires_in: {expires_in_raw!r}"
        raise TokenResponseError(msg)
    else:
        try:
            expires_in = int(expires_in_raw)
        except (TypeError, ValueError, OverflowError) as exc:
            msg = f"Token response has a non-integer expires_in: {expires_in_raw!r}"
            raise TokenResponseError(msg) from exc
    # expires_at must lie in the future at receipt time
    expires_in = max(expires_in, 1)

    return TokenSet(
        access_token=access_token,
        expires_at=int(received_at) + expires_in,
        id_token=_str_or_none(raw.get("id_token")),
        refresh_token=_str_or_none(raw.get("refresh_token")) or previous_refresh_token,
        token_type=_str_or_none(raw.get("token_type")),
        scope=_str_or_none(raw.get("scope")),
    )


class OIDCClient:
    """HTTP client for the provider's token and UserInfo endpoints.

    Parameters
    ----------
    config : AuthConfig
        The client configuration.
    http_client : httpx.AsyncClient, optional
        Client to send requests with. When omitted one is created lazily
        and closed by ``close()``.
    """

    def __init__(
        self,
        config: AuthConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the OIDC client."""
        self.config = config
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def endpoints(self) -> Endpoints:
        """The resolved provider endpoints."""
        return resolve_endpoints(self.config)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.config.http_timeout_seconds)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if (
            self._owns_client
            and self._http_client is not None
            and not self._http_client.is_closed
        ):
            await self._http_client.aclose()
            self._http_client = None

    async def _request(self, action: str, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and return its decoded JSON body.

        Raises
        ------
        NetworkError
            On transport failure.
        HttpStatusError
            On a non-2xx response.
        TokenResponseError
            On a 2xx response whose body is not JSON.
        """
        client = await self._get_client()
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            msg = f"{action} request failed: {exc}"
            raise NetworkError(msg, endpoint=url) from exc

        if not resp.is_success:
            msg = f"{action} failed ({resp.status_code})"
            raise HttpStatusError(msg, status_code=resp.status_code, endpoint=url)

        try:
            return resp.json()
        except ValueError as exc:
            msg = f"{action} response is not valid JSON"
            raise TokenResponseError(msg, endpoint=url) from exc

    async def _post_token(self, action: str, data: dict[str, str]) -> tuple[Any, float]:
        token_url = self.endpoints.token
        raw = await self._request(
            action,
            "POST",
            token_url,
            data=data,
            headers={"Accept": "application/json"},
        )
        received_at = time.time()
        if isinstance(raw, dict):
            logger.debug("%s response: %s", action, redact_sensitive_data(raw))
        return raw, received_at

    async def exchange_code(self, code: str, verifier: str) -> TokenSet:
        """Exchange an authorization code for tokens.

        Parameters
        ----------
        code : str
            The authorization code from the callback.
        verifier : str
            The PKCE code verifier persisted at login.

        Returns
        -------
        TokenSet
            The issued tokens.
        """
        data = {
            "grant_type": "authorization_code",
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "code": code,
            "code_verifier": verifier,
        }
        raw, received_at = await self._post_token("Token exchange", data)
        return parse_token_response(raw, received_at)

    async def refresh_tokens(self, refresh_token: str) -> TokenSet:
        """Refresh tokens with the refresh_token grant.

        If the provider does not rotate the refresh token, the one used
        for this request is carried forward.

        Parameters
        ----------
        refresh_token : str
            The current refresh token.

        Returns
        -------
        TokenSet
            A new token set with a fresh access token.
        """
        data = {
            "grant_type": "refresh_token",
            "client_id": self.config.client_id,
            "refresh_token": refresh_token,
        }
        raw, received_at = await self._post_token("Token refresh", data)
        return parse_token_response(raw, received_at, previous_refresh_token=refresh_token)

    async def fetch_userinfo(self, access_token: str) -> dict[str, Any]:
        """Fetch the user profile from the UserInfo endpoint.

        Parameters
        ----------
        access_token : str
            A valid access token.

        Returns
        -------
        dict[str, Any]
            The profile as returned by the provider.
        """
        raw = await self._request(
            "UserInfo",
            "GET",
            self.endpoints.userinfo,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not isinstance(raw, dict):
            msg = "UserInfo response is not a JSON object"
            raise TokenResponseError(msg)
        return raw
