"""Session orchestrator: boot, login, logout and access-token renewal.

An ``AuthSession`` starts in the loading state and leaves it exactly once,
when ``boot()`` finishes. Boot completes a pending authorization callback
or restores persisted tokens, refreshing them under the cross-session
refresh lock when they are due. ``login``, ``logout`` and
``get_access_token`` wait for boot before acting.

State changes are published to subscribers as immutable ``SessionState``
snapshots.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import asyncio
import dataclasses
import logging

from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlsplit

from .exceptions import CallbackValidationError, ProviderCallbackError
from .oidc import (
    OIDCClient,
    build_authorization_request,
    build_end_session_url,
    id_token_claims,
    strip_query_params,
)
from .refresh_lock import RefreshLock
from .storage import create_storage
from .token_store import TokenStore
from .types import SessionState, TokenSet


if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from .config import AuthConfig
    from .navigator import Navigator
    from .storage import StorageAdapter


logger = logging.getLogger("tabauth.session")

_CALLBACK_PARAMS = ("code", "state")
_ERROR_PARAMS = ("error", "error_description", "error_uri", "state")


class AuthSession:
    """OIDC Authorization Code + PKCE session.

    Parameters
    ----------
    config : AuthConfig
        The client configuration (read-only).
    navigator : Navigator
        Access to the current location.
    storage : StorageAdapter, optional
        Storage shared with other sessions of the same origin. Created
        from ``config.storage`` when omitted.
    http_client : httpx.AsyncClient, optional
        HTTP client for provider calls.
    oidc_client : OIDCClient, optional
        Wire client; built from ``config`` and ``http_client`` when omitted.
    """

    def __init__(
        self,
        config: AuthConfig,
        navigator: Navigator,
        *,
        storage: StorageAdapter | None = None,
        http_client: httpx.AsyncClient | None = None,
        oidc_client: OIDCClient | None = None,
    ) -> None:
        """Initialize the session in the loading state."""
        self.config = config
        self.navigator = navigator

        self._owns_storage = storage is None
        self.storage = storage if storage is not None else create_storage(config)
        self.token_store = TokenStore(self.storage)

        self._owns_oidc = oidc_client is None
        self.oidc = oidc_client if oidc_client is not None else OIDCClient(config, http_client)

        self.refresh_lock = RefreshLock(
            self.storage,
            key=config.refresh_lock_key,
            ttl_ms=config.refresh_lock_ttl_ms,
        )

        self._state = SessionState()
        self._listeners: list[Callable[[SessionState], None]] = []
        self._boot_task: asyncio.Task[None] | None = None

    # ── Observation ─────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        """The current session snapshot."""
        return self._state

    def subscribe(self, listener: Callable[[SessionState], None]) -> Callable[[], None]:
        """Register ``listener`` for state changes.

        The listener is called once right away with the current state and
        then with every new state.

        Returns
        -------
        callable
            A function that removes the listener.
        """
        self._listeners.append(listener)
        self._notify(listener, self._state)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, listener: Callable[[SessionState], None], state: SessionState) -> None:
        try:
            listener(state)
        except Exception:
            logger.exception("Session listener %r failed", listener)

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            self._notify(listener, state)

    def _update_state(self, **changes: Any) -> None:
        self._set_state(dataclasses.replace(self._state, **changes))

    # ── Boot ────────────────────────────────────────────────────────

    async def boot(self) -> None:
        """Run the boot sequence once; later calls wait for the same run."""
        if self._boot_task is None:
            self._boot_task = asyncio.ensure_future(self._boot())
        await asyncio.shield(self._boot_task)

    async def _boot(self) -> None:
        try:
            if await self._complete_callback():
                return

            tokens = await self.token_store.load()
            if tokens is None:
                logger.debug("No stored tokens")
                self._set_state(SessionState(is_loading=False))
                return

            if self._refresh_applicable(tokens) and self._refresh_due(tokens):
                refreshed = await self._refresh_if_needed()
                if refreshed is None or refreshed.is_expired(self.config.clock_skew_seconds):
                    self._set_state(SessionState(is_loading=False))
                    return
                self._set_state(
                    SessionState(
                        is_loading=False,
                        is_authenticated=True,
                        tokens=refreshed,
                        user=await self.token_store.load_user(),
                    )
                )
                return

            if tokens.is_expired(self.config.clock_skew_seconds):
                logger.info("Stored tokens expired; clearing session")
                await self.token_store.clear_all()
                self._set_state(SessionState(is_loading=False))
                return

            self._set_state(
                SessionState(
                    is_loading=False,
                    is_authenticated=True,
                    tokens=tokens,
                    user=await self.token_store.load_user(),
                )
            )
        except Exception as exc:
            logger.warning("Session boot failed: %s", exc)
            try:
                await self.token_store.clear_all()
            except Exception:
                logger.exception("Failed to clear credentials after boot failure")
            self._set_state(SessionState(is_loading=False, error=str(exc) or "Auth error"))

    async def _complete_callback(self) -> bool:
        """Finish an authorization redirect if the location carries one.

        Returns
        -------
        bool
            True if the location was a callback and the session is now
            authenticated; False if it was not a callback.
        """
        url = self.navigator.current_url
        query = parse_qs(urlsplit(url).query)
        code = query.get("code", [""])[0]
        returned_state = query.get("state", [""])[0]
        provider_error = query.get("error", [""])[0]

        if provider_error and returned_state:
            await self.token_store.discard_pending()
            self.navigator.replace(strip_query_params(url, _ERROR_PARAMS))
            description = query.get("error_description", [None])[0]
            msg = f"Provider returned error: {description or provider_error}"
            raise ProviderCallbackError(msg, error=provider_error, error_description=description)

        if not code or not returned_state:
            return False

        pending = await self.token_store.load_pending()
        # The artifacts are single use whatever the outcome.
        await self.token_store.discard_pending()

        if not pending.state or not pending.verifier or pending.state != returned_state:
            msg = "Invalid auth callback (state/verifier mismatch)"
            raise CallbackValidationError(msg)

        tokens = await self.oidc.exchange_code(code, pending.verifier)

        if tokens.id_token and pending.nonce:
            claims = id_token_claims(tokens.id_token)
            if claims is not None and "nonce" in claims and claims["nonce"] != pending.nonce:
                msg = "Invalid auth callback (ID token nonce mismatch)"
                raise CallbackValidationError(msg)

        await self.token_store.save(tokens)
        user = await self.oidc.fetch_userinfo(tokens.access_token)
        await self.token_store.save_user(user)

        self.navigator.replace(strip_query_params(url, _CALLBACK_PARAMS))
        logger.info("Authorization callback completed")

        self._set_state(
            SessionState(is_loading=False, is_authenticated=True, tokens=tokens, user=user)
        )
        return True

    # ── Refresh ─────────────────────────────────────────────────────

    def _refresh_applicable(self, tokens: TokenSet) -> bool:
        return self.config.use_refresh_token and bool(tokens.refresh_token)

    def _refresh_due(self, tokens: TokenSet) -> bool:
        return tokens.needs_refresh(self.config.refresh_leeway_seconds)

    async def _refresh_if_needed(self) -> TokenSet | None:
        """Return current tokens, refreshing them first when due.

        Only the session holding the refresh lock calls the token
        endpoint. The others wait for the lock and return whatever is
        persisted afterwards.
        """
        tokens = await self.token_store.load()
        if tokens is None:
            return None
        refresh_token = tokens.refresh_token
        if not self.config.use_refresh_token or not refresh_token or not self._refresh_due(tokens):
            return tokens

        if not await self.refresh_lock.acquire():
            logger.debug("Refresh in progress elsewhere; waiting")
            await self.refresh_lock.wait_for_release(self.config.refresh_lock_wait_ms)
            return await self.token_store.load()

        try:
            refreshed = await self.oidc.refresh_tokens(refresh_token)
            await self.token_store.save(refreshed)
            self._update_state(is_authenticated=True, tokens=refreshed)
            logger.info("Tokens refreshed")
            return refreshed
        finally:
            await self.refresh_lock.release()

    # ── Operations ──────────────────────────────────────────────────

    async def login(self, redirect_to: str | None = None) -> None:
        """Start the authorization flow by navigating to the provider.

        Resumption happens on the next boot through callback detection.

        Parameters
        ----------
        redirect_to : str, optional
            App route carried as ``app_state``. Defaults to the configured
            ``default_app_redirect`` or the current location's path.
        """
        await self.boot()
        app_state = (
            redirect_to
            or self.config.default_app_redirect
            or urlsplit(self.navigator.current_url).path
            or None
        )
        request = build_authorization_request(self.config, app_state=app_state)
        await self.token_store.save_pending(request.pkce)
        logger.debug("Redirecting to authorization endpoint")
        self.navigator.assign(request.url)

    async def logout(self) -> None:
        """Forget all credentials and leave through the end-session endpoint.

        Navigates to the provider's end-session endpoint when configured,
        otherwise to ``post_logout_redirect_uri`` when configured, otherwise
        stays put.
        """
        await self.boot()
        held = await self.token_store.load()
        id_token = held.id_token if held is not None else None

        await self.token_store.clear_all()
        self._set_state(SessionState(is_loading=False))
        logger.info("Logged out")

        end_session_url = build_end_session_url(self.config, id_token=id_token)
        if end_session_url:
            self.navigator.assign(end_session_url)
        elif self.config.post_logout_redirect_uri:
            self.navigator.assign(self.config.post_logout_redirect_uri)

    async def get_access_token(self) -> str | None:
        """Return a usable access token, refreshing it first when due.

        Returns
        -------
        str or None
            The access token, or None when there is no valid session.
        """
        await self.boot()
        tokens = await self._refresh_if_needed()
        if tokens is None or tokens.is_expired(self.config.clock_skew_seconds):
            return None
        return tokens.access_token

    # ── Teardown ────────────────────────────────────────────────────

    async def aclose(self) -> None:
        """Drop subscribers and close the resources this session created."""
        self._listeners.clear()
        if self._boot_task is not None and not self._boot_task.done():
            self._boot_task.cancel()
        if self._owns_oidc:
            await self.oidc.close()
        if self._owns_storage:
            await self.storage.close()

    async def __aenter__(self) -> AuthSession:
        """Boot the session."""
        await self.boot()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close the session."""
        await self.aclose()
