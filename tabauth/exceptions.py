"""tabauth exception hierarchy.

All tabauth-specific exceptions inherit from TabAuthError, enabling
catch-all handling while supporting specific error types.
"""

from __future__ import annotations

from typing import Any


class TabAuthError(Exception):
    """Base exception for all tabauth errors."""

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize tabauth exception.

        Parameters
        ----------
        message : str
            Human-readable error message.
        **context : Any
            Additional context (endpoint, status_code, key, etc.).
        """
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        """Format exception with context."""
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ConfigurationError(TabAuthError):
    """Configuration is missing or malformed.

    Raised when the issuer, an endpoint override, the client ID or the
    redirect URI cannot be used to talk to the provider.
    """

    def __init__(self, message: str, field: str | None = None, **context: Any) -> None:
        """Initialize configuration error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        field : str, optional
            The configuration field at fault.
        **context : Any
            Additional context.
        """
        super().__init__(message, field=field, **context)
        self.field = field


class AuthenticationError(TabAuthError):
    """Base exception for all authentication flow failures."""


class NetworkError(AuthenticationError):
    """The provider endpoint could not be reached."""

    def __init__(self, message: str, endpoint: str | None = None, **context: Any) -> None:
        """Initialize network error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        endpoint : str, optional
            The URL that could not be reached.
        **context : Any
            Additional context.
        """
        super().__init__(message, endpoint=endpoint, **context)
        self.endpoint = endpoint


class HttpStatusError(AuthenticationError):
    """The provider answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        endpoint: str | None = None,
        **context: Any,
    ) -> None:
        """Initialize HTTP status error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        status_code : int
            The HTTP status code returned by the provider.
        endpoint : str, optional
            The URL that returned the status.
        **context : Any
            Additional context.
        """
        super().__init__(message, status_code=status_code, endpoint=endpoint, **context)
        self.status_code = status_code
        self.endpoint = endpoint


class TokenResponseError(AuthenticationError):
    """A successful response body could not be turned into tokens or a profile."""


class CallbackValidationError(AuthenticationError):
    """The authorization callback failed validation.

    Raised on a missing or mismatched ``state``, a missing PKCE verifier,
    or an ID token whose nonce does not match the stored one. Treated as
    a possibly forged or replayed callback: the code is never exchanged.
    """


class ProviderCallbackError(AuthenticationError):
    """The provider redirected back with an OAuth ``error`` parameter."""

    def __init__(
        self,
        message: str,
        error: str,
        error_description: str | None = None,
        **context: Any,
    ) -> None:
        """Initialize provider callback error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        error : str
            The OAuth error code (e.g. ``access_denied``).
        error_description : str, optional
            The provider's human-readable description.
        **context : Any
            Additional context.
        """
        super().__init__(message, error=error, **context)
        self.error = error
        self.error_description = error_description


class MalformedStorageDataError(TabAuthError):
    """Persisted data could not be decoded.

    Always recovered inside the token store: the entry is treated as absent.
    """

    def __init__(self, message: str, key: str | None = None, **context: Any) -> None:
        """Initialize malformed storage data error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        key : str, optional
            The storage key holding the malformed value.
        **context : Any
            Additional context.
        """
        super().__init__(message, key=key, **context)
        self.key = key
