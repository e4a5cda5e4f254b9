"""Tests for tabauth.exceptions module.

These tests verify the exception hierarchy, message formatting,
context storage, and inheritance relationships. No mocks needed -
we're testing actual exception behavior.
"""

from __future__ import annotations

import pytest

from tabauth.exceptions import (
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


class TestTabAuthError:
    """Test base exception class behavior."""

    def test_message_only(self) -> None:
        """Exception with just a message stores it correctly."""
        exc = TabAuthError("Something went wrong")
        assert exc.message == "Something went wrong"
        assert not exc.context
        assert str(exc) == "Something went wrong"

    def test_with_context(self) -> None:
        """Exception with context includes it in string representation."""
        exc = TabAuthError("Failed", endpoint="https://idp/token", attempt=2)
        assert exc.context == {"endpoint": "https://idp/token", "attempt": 2}
        assert str(exc) == "Failed (endpoint='https://idp/token', attempt=2)"

    def test_none_context_dropped(self) -> None:
        """Context entries that are None are left out."""
        exc = TabAuthError("Failed", endpoint=None)
        assert not exc.context
        assert str(exc) == "Failed"


class TestSubclasses:
    """Test the specific error types."""

    def test_configuration_error_field(self) -> None:
        """ConfigurationError records the offending field."""
        exc = ConfigurationError("bad issuer", field="issuer")
        assert exc.field == "issuer"
        assert str(exc) == "bad issuer (field='issuer')"

    def test_http_status_error(self) -> None:
        """HttpStatusError carries status code and endpoint."""
        exc = HttpStatusError("Token refresh failed (400)", status_code=400, endpoint="u")
        assert exc.status_code == 400
        assert exc.endpoint == "u"
        assert exc.message == "Token refresh failed (400)"

    def test_network_error_endpoint(self) -> None:
        """NetworkError carries the unreachable endpoint."""
        assert NetworkError("down", endpoint="u").endpoint == "u"

    def test_provider_callback_error(self) -> None:
        """ProviderCallbackError carries the OAuth error code and description."""
        exc = ProviderCallbackError("denied", error="access_denied", error_description="nope")
        assert exc.error == "access_denied"
        assert exc.error_description == "nope"

    def test_malformed_storage_key(self) -> None:
        """MalformedStorageDataError records the storage key."""
        assert MalformedStorageDataError("bad", key="tabauth_tokens").key == "tabauth_tokens"


class TestHierarchy:
    """Test inheritance relationships."""

    @pytest.mark.parametrize(
        "exc_cls",
        [
            NetworkError,
            TokenResponseError,
            CallbackValidationError,
        ],
    )
    def test_flow_errors_are_authentication_errors(self, exc_cls: type[TabAuthError]) -> None:
        """Flow failures can be caught as AuthenticationError."""
        assert issubclass(exc_cls, AuthenticationError)
        assert issubclass(exc_cls, TabAuthError)

    def test_status_and_provider_errors(self) -> None:
        """Status and provider callback errors are authentication errors."""
        assert issubclass(HttpStatusError, AuthenticationError)
        assert issubclass(ProviderCallbackError, AuthenticationError)

    def test_non_flow_errors(self) -> None:
        """Configuration and storage errors are not flow errors."""
        assert not issubclass(ConfigurationError, AuthenticationError)
        assert not issubclass(MalformedStorageDataError, AuthenticationError)

    def test_catch_all(self) -> None:
        """Everything can be caught as TabAuthError."""
        with pytest.raises(TabAuthError):
            raise CallbackValidationError("forged")
