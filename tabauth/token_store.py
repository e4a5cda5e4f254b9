"""Typed persistence of tokens, the cached profile, and PKCE artifacts.

Everything is kept under fixed keys of a ``StorageAdapter`` that may be
shared with other sessions of the same origin, so any value read here may
have been written, or may be overwritten, by a concurrent actor.
"""

from __future__ import annotations

import json
import logging

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .exceptions import MalformedStorageDataError
from .types import TokenSet


if TYPE_CHECKING:
    from .pkce import PKCEChallenge
    from .storage import StorageAdapter


logger = logging.getLogger("tabauth.token_store")


class Keys:
    """Fixed storage keys."""

    TOKENS = "tabauth_tokens"
    USER = "tabauth_user"
    PKCE_VERIFIER = "tabauth_pkce_verifier"
    STATE = "tabauth_state"
    NONCE = "tabauth_nonce"

    PKCE = (PKCE_VERIFIER, STATE, NONCE)
    ALL = (TOKENS, USER, *PKCE)


@dataclass(frozen=True)
class PendingAuthorization:
    """PKCE artifacts persisted between ``login`` and the callback.

    Any field may be missing when storage was cleared, or overwritten by
    a login started in another session.
    """

    verifier: str | None
    state: str | None
    nonce: str | None


def _deserialize_user(data: str) -> dict[str, Any]:
    """Deserialize a cached user profile."""
    try:
        obj = json.loads(data)
    except ValueError as exc:
        msg = "Stored user profile is not valid JSON"
        raise MalformedStorageDataError(msg, key=Keys.USER) from exc
    if not isinstance(obj, dict):
        msg = "Stored user profile is not a JSON object"
        raise MalformedStorageDataError(msg, key=Keys.USER)
    return obj


class TokenStore:
    """Token set, profile and PKCE persistence over a storage adapter.

    Parameters
    ----------
    storage : StorageAdapter
        The backend holding all entries.
    """

    def __init__(self, storage: StorageAdapter) -> None:
        """Initialize the token store."""
        self.storage = storage

    async def save(self, tokens: TokenSet) -> None:
        """Persist the token set.

        Parameters
        ----------
        tokens : TokenSet
            The token set to persist.
        """
        await self.storage.set(Keys.TOKENS, tokens.to_json())

    async def load(self) -> TokenSet | None:
        """Load the token set.

        Missing or malformed data is reported as absent; this never raises
        for bad persisted data.

        Returns
        -------
        TokenSet or None
            The stored token set, or None.
        """
        raw = await self.storage.get(Keys.TOKENS)
        if raw is None:
            return None
        try:
            return TokenSet.from_json(raw, key=Keys.TOKENS)
        except MalformedStorageDataError as exc:
            logger.warning("Ignoring stored tokens: %s", exc)
            return None

    async def save_user(self, user: dict[str, Any]) -> None:
        """Persist the user profile."""
        await self.storage.set(Keys.USER, json.dumps(user))

    async def load_user(self) -> dict[str, Any] | None:
        """Load the cached user profile, or None if missing or malformed."""
        raw = await self.storage.get(Keys.USER)
        if raw is None:
            return None
        try:
            return _deserialize_user(raw)
        except MalformedStorageDataError as exc:
            logger.warning("Ignoring stored user profile: %s", exc)
            return None

    async def save_pending(self, pkce: PKCEChallenge) -> None:
        """Persist verifier, state and nonce ahead of the provider redirect."""
        await self.storage.set(Keys.PKCE_VERIFIER, pkce.verifier)
        await self.storage.set(Keys.STATE, pkce.state)
        await self.storage.set(Keys.NONCE, pkce.nonce)

    async def load_pending(self) -> PendingAuthorization:
        """Read whatever PKCE artifacts are currently persisted."""
        return PendingAuthorization(
            verifier=await self.storage.get(Keys.PKCE_VERIFIER),
            state=await self.storage.get(Keys.STATE),
            nonce=await self.storage.get(Keys.NONCE),
        )

    async def discard_pending(self) -> None:
        """Remove the PKCE artifacts."""
        for key in Keys.PKCE:
            await self.storage.remove(key)

    async def clear_all(self) -> None:
        """Remove tokens, cached profile and any lingering PKCE artifacts."""
        for key in Keys.ALL:
            await self.storage.remove(key)
