"""Type definitions shared across the token lifecycle.

``TokenSet`` is what gets persisted; ``SessionState`` is what gets
published to subscribers.
"""

from __future__ import annotations

import json
import time

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from .exceptions import MalformedStorageDataError


class SessionStatus(str, Enum):
    """Lifecycle state of an ``AuthSession``."""

    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class TokenSet:
    """OAuth2 token set issued by the provider.

    Attributes
    ----------
    access_token : str
        The access token for API requests.
    expires_at : int
        Absolute expiry as epoch seconds, computed at receipt time.
    id_token : str or None
        Optional OIDC ID token (JWT).
    refresh_token : str or None
        Optional refresh token for obtaining new access tokens.
    token_type : str or None
        Token type, typically "Bearer".
    scope : str or None
        Space-separated list of granted scopes.
    """

    access_token: str
    expires_at: int
    id_token: str | None = None
    refresh_token: str | None = None
    token_type: str | None = None
    scope: str | None = None

    def is_expired(self, skew_seconds: int = 0, now: float | None = None) -> bool:
        """Check whether the access token is expired within ``skew_seconds``."""
        if now is None:
            now = time.time()
        return self.expires_at - skew_seconds <= int(now)

    def needs_refresh(self, leeway_seconds: int, now: float | None = None) -> bool:
        """Check whether the token is due for refresh (inclusive boundary)."""
        return self.is_expired(leeway_seconds, now)

    def to_json(self) -> str:
        """Serialize to the JSON form kept in storage."""
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, data: str, key: str | None = None) -> TokenSet:
        """Deserialize from the JSON form kept in storage.

        Raises
        ------
        MalformedStorageDataError
            If the data is not a JSON object with a string ``access_token``
            and an integer ``expires_at``.
        """
        try:
            obj = json.loads(data)
        except (TypeError, ValueError) as exc:
            msg = "Stored token set is not valid JSON"
            raise MalformedStorageDataError(msg, key=key) from exc

        if not isinstance(obj, dict):
            msg = "Stored token set is not a JSON object"
            raise MalformedStorageDataError(msg, key=key)

        access_token = obj.get("access_token")
        expires_at = obj.get("expires_at")
        if not isinstance(access_token, str) or not access_token:
            msg = "Stored token set has no access token"
            raise MalformedStorageDataError(msg, key=key)
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            msg = "Stored token set has no numeric expiry"
            raise MalformedStorageDataError(msg, key=key)

        return cls(
            access_token=access_token,
            expires_at=int(expires_at),
            id_token=_optional_str(obj.get("id_token")),
            refresh_token=_optional_str(obj.get("refresh_token")),
            token_type=_optional_str(obj.get("token_type")),
            scope=_optional_str(obj.get("scope")),
        )


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class SessionState:
    """Snapshot of a session as published to subscribers.

    Attributes
    ----------
    is_loading : bool
        True until the boot sequence has finished.
    is_authenticated : bool
        Whether usable tokens are held.
    user : dict[str, Any] or None
        Cached user profile from the UserInfo endpoint.
    tokens : TokenSet or None
        The current token set.
    error : str or None
        Message of the failure that ended boot, if any.
    """

    is_loading: bool = True
    is_authenticated: bool = False
    user: dict[str, Any] | None = None
    tokens: TokenSet | None = None
    error: str | None = None

    @property
    def status(self) -> SessionStatus:
        """The lifecycle state this snapshot represents."""
        if self.is_loading:
            return SessionStatus.LOADING
        if self.is_authenticated:
            return SessionStatus.AUTHENTICATED
        return SessionStatus.UNAUTHENTICATED
