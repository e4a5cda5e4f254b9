"""tabauth - OpenID Connect Authorization Code + PKCE client.

Builds login redirects, completes the provider callback, persists tokens,
and keeps access tokens fresh across sessions that share one storage
origin, coordinating refreshes through an advisory storage lock.
"""

from __future__ import annotations

from .config import AuthConfig, TabAuthSettings, get_settings
from .exceptions import (
    AuthenticationError,
    CallbackValidationError,
    ConfigurationError,
    HttpStatusError,
    MalformedStorageDataError,
    NetworkError,
    ProviderCallbackError,
    TabAuthError,
    TokenResponseError,
)
from .fetch import authorized_request
from .navigator import BrowserNavigator, MemoryNavigator, Navigator
from .oidc import OIDCClient, build_authorization_request, resolve_endpoints
from .pkce import PKCEChallenge, derive_challenge, generate_random_string
from .refresh_lock import RefreshLock
from .session import AuthSession
from .storage import (
    FileStorage,
    KeyringStorage,
    MemoryStorage,
    RedisStorage,
    SessionStorage,
    StorageAdapter,
    create_storage,
)
from .token_store import TokenStore
from .types import SessionState, SessionStatus, TokenSet


__version__ = "0.1.0"

__all__ = [
    "AuthConfig",
    "AuthSession",
    "AuthenticationError",
    "BrowserNavigator",
    "CallbackValidationError",
    "ConfigurationError",
    "FileStorage",
    "HttpStatusError",
    "KeyringStorage",
    "MalformedStorageDataError",
    "MemoryNavigator",
    "MemoryStorage",
    "Navigator",
    "NetworkError",
    "OIDCClient",
    "PKCEChallenge",
    "ProviderCallbackError",
    "RedisStorage",
    "RefreshLock",
    "SessionState",
    "SessionStatus",
    "SessionStorage",
    "StorageAdapter",
    "TabAuthError",
    "TokenResponseError",
    "TokenSet",
    "TokenStore",
    "TabAuthSettings",
    "__version__",
    "authorized_request",
    "build_authorization_request",
    "create_storage",
    "derive_challenge",
    "generate_random_string",
    "get_settings",
    "resolve_endpoints",
]
