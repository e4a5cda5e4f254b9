"""Advisory, self-expiring refresh lock shared through storage.

Prevents sessions that share one storage origin from refreshing the same
refresh token at once. With rotation, a refresh token is invalidated by
its first use, so a second concurrent refresh would fail or leave that
session holding a dead token.

The lock is a single storage entry holding the absolute expiry time in
epoch milliseconds. Acquisition is a plain read followed by a write: the
storage backends offer no compare-and-swap, so two actors can both read
"free" and both believe they hold the lock. That window is accepted. The
critical section is one network round trip, and with rotation the last
token set written is the one that persists.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import asyncio
import logging
import time

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from .storage import StorageAdapter


logger = logging.getLogger("tabauth.refresh_lock")

POLL_INTERVAL_SECONDS = 0.15


def _now_ms() -> int:
    return int(time.time() * 1000)


def _parse_expiry(raw: str) -> int | None:
    """Parse a stored expiry; unparseable values count as expired."""
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return None


class RefreshLock:
    """Cooperative lock stored under ``key``.

    Parameters
    ----------
    storage : StorageAdapter
        The storage shared with the other sessions.
    key : str
        Storage key of the lock entry.
    ttl_ms : int
        Lifetime of an acquired lock in milliseconds.
    """

    def __init__(self, storage: StorageAdapter, key: str, ttl_ms: int) -> None:
        """Initialize the refresh lock."""
        self.storage = storage
        self.key = key
        self.ttl_ms = ttl_ms

    async def acquire(self) -> bool:
        """Try to take the lock.

        Returns
        -------
        bool
            False if a live lock is held by someone, True after writing a
            new expiry. Contention is expected and is never an error.
        """
        raw = await self.storage.get(self.key)
        if raw is not None:
            expiry = _parse_expiry(raw)
            if expiry is not None and expiry > _now_ms():
                logger.debug("Refresh lock %s is held until %s", self.key, expiry)
                return False
        await self.storage.set(self.key, str(_now_ms() + self.ttl_ms))
        return True

    async def release(self) -> None:
        """Drop the lock. Safe to call when it is not held."""
        await self.storage.remove(self.key)

    async def wait_for_release(self, timeout_ms: int) -> bool:
        """Poll until the lock is gone or has expired.

        An entry observed past its expiry is removed. Never raises on
        timeout; callers re-read whatever state exists afterwards.

        Parameters
        ----------
        timeout_ms : int
            Maximum time to wait in milliseconds.

        Returns
        -------
        bool
            True if the lock was released or reclaimed, False on timeout.
        """
        deadline = time.monotonic() + timeout_ms / 1000
        while time.monotonic() < deadline:
            raw = await self.storage.get(self.key)
            if raw is None:
                return True
            expiry = _parse_expiry(raw)
            if expiry is None or expiry <= _now_ms():
                logger.debug("Reclaiming expired refresh lock %s", self.key)
                await self.storage.remove(self.key)
                return True
            await asyncio.sleep(min(POLL_INTERVAL_SECONDS, max(deadline - time.monotonic(), 0)))

        logger.debug("Timed out after %sms waiting for refresh lock %s", timeout_ms, self.key)
        return False
