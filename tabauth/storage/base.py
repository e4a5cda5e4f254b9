"""Abstract base class for pluggable key/value storage.

The storage adapter is the only medium shared between sessions of the
same origin. No backend is transactional: a read followed by a write can
interleave with another actor's read and write, and callers must tolerate
lost updates.
"""

# pylint: disable=unnecessary-ellipsis

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageAdapter(ABC):
    """String key/value storage interface.

    All methods are async to support both local and network-backed stores.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Get the value stored under ``key``.

        Parameters
        ----------
        key : str
            The storage key.

        Returns
        -------
        str or None
            The stored value, or None if absent.
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Parameters
        ----------
        key : str
            The storage key.
        value : str
            The value to store.
        """
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove ``key``. Removing an absent key is a no-op.

        Parameters
        ----------
        key : str
            The storage key.
        """
        ...

    async def close(self) -> None:
        """Release backend resources (connections, handles)."""
        return
