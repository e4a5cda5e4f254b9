"""Unit tests for token, profile and PKCE persistence."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import json

import pytest

from tabauth.exceptions import MalformedStorageDataError
from tabauth.pkce import PKCEChallenge
from tabauth.storage import MemoryStorage
from tabauth.token_store import Keys, TokenStore
from tabauth.types import TokenSet


# ── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture()
def sample_tokens() -> TokenSet:
    """Create sample tokens for testing."""
    return TokenSet(
        access_token="at_test_123",
        expires_at=1_900_000_000,
        id_token="id_tok",
        refresh_token="rt_test_456",
        token_type="Bearer",
        scope="openid email",
    )


@pytest.fixture()
def store(storage: MemoryStorage) -> TokenStore:
    """Create a TokenStore over the shared memory storage."""
    return TokenStore(storage)


# ── TokenSet serialization ──────────────────────────────────────────


class TestTokenSetJson:
    """Tests for TokenSet.to_json / from_json."""

    def test_round_trip(self, sample_tokens: TokenSet) -> None:
        """Every field survives serialization."""
        assert TokenSet.from_json(sample_tokens.to_json()) == sample_tokens

    def test_optional_fields_default_to_none(self) -> None:
        """Only access_token and expires_at are required."""
        tokens = TokenSet.from_json(json.dumps({"access_token": "a", "expires_at": 5}))
        assert tokens.refresh_token is None
        assert tokens.id_token is None

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[]",
            json.dumps({"expires_at": 5}),
            json.dumps({"access_token": "", "expires_at": 5}),
            json.dumps({"access_token": "a"}),
            json.dumps({"access_token": "a", "expires_at": "soon"}),
            json.dumps({"access_token": "a", "expires_at": True}),
        ],
    )
    def test_malformed(self, raw: str) -> None:
        """Anything but an object with access_token and numeric expiry is rejected."""
        with pytest.raises(MalformedStorageDataError):
            TokenSet.from_json(raw, key=Keys.TOKENS)


class TestTokenSetExpiry:
    """Tests for the expiry predicates."""

    def test_expired_boundary_is_inclusive(self) -> None:
        """A token expiring exactly at now - skew counts as expired."""
        tokens = TokenSet(access_token="a", expires_at=1060)
        assert tokens.is_expired(60, now=1000)
        assert not tokens.is_expired(59, now=1000)

    def test_needs_refresh_boundary_is_inclusive(self) -> None:
        """expires_at - leeway == now means refresh is due."""
        tokens = TokenSet(access_token="a", expires_at=1090)
        assert tokens.needs_refresh(90, now=1000)
        assert not tokens.needs_refresh(90, now=999)


# ── TokenStore ──────────────────────────────────────────────────────


class TestTokenStore:
    """Tests for TokenStore over MemoryStorage."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, store: TokenStore, sample_tokens: TokenSet) -> None:
        """Save and load round-trip."""
        await store.save(sample_tokens)
        assert await store.load() == sample_tokens

    @pytest.mark.asyncio
    async def test_load_missing(self, store: TokenStore) -> None:
        """Nothing stored loads as None."""
        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_load_malformed_is_absent(
        self, store: TokenStore, storage: MemoryStorage, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Garbage under the token key loads as None and is logged."""
        await storage.set(Keys.TOKENS, "{broken")
        assert await store.load() is None
        assert "Ignoring stored tokens" in caplog.text

    @pytest.mark.asyncio
    async def test_user_round_trip(self, store: TokenStore) -> None:
        """The cached profile round-trips."""
        await store.save_user({"sub": "u1", "email": "ada@example.com"})
        assert await store.load_user() == {"sub": "u1", "email": "ada@example.com"}

    @pytest.mark.asyncio
    async def test_user_malformed_is_absent(self, store: TokenStore, storage: MemoryStorage) -> None:
        """A profile that is not a JSON object loads as None."""
        await storage.set(Keys.USER, '"just a string"')
        assert await store.load_user() is None

    @pytest.mark.asyncio
    async def test_pending_round_trip(self, store: TokenStore) -> None:
        """Verifier, state and nonce are persisted under their keys."""
        pkce = PKCEChallenge.generate()
        await store.save_pending(pkce)
        pending = await store.load_pending()
        assert pending.verifier == pkce.verifier
        assert pending.state == pkce.state
        assert pending.nonce == pkce.nonce

    @pytest.mark.asyncio
    async def test_discard_pending(self, store: TokenStore, sample_tokens: TokenSet) -> None:
        """Discarding PKCE artifacts leaves tokens alone."""
        await store.save(sample_tokens)
        await store.save_pending(PKCEChallenge.generate())
        await store.discard_pending()
        pending = await store.load_pending()
        assert (pending.verifier, pending.state, pending.nonce) == (None, None, None)
        assert await store.load() == sample_tokens

    @pytest.mark.asyncio
    async def test_clear_all(
        self, store: TokenStore, storage: MemoryStorage, sample_tokens: TokenSet
    ) -> None:
        """clear_all removes every owned key and nothing else."""
        await store.save(sample_tokens)
        await store.save_user({"sub": "u1"})
        await store.save_pending(PKCEChallenge.generate())
        await storage.set("tabauth_refresh_lock", "123")

        await store.clear_all()

        assert storage.keys() == ["tabauth_refresh_lock"]

    @pytest.mark.asyncio
    async def test_clear_all_is_idempotent(self, store: TokenStore, storage: MemoryStorage) -> None:
        """Clearing an empty store is harmless."""
        await store.clear_all()
        await store.clear_all()
        assert storage.keys() == []
