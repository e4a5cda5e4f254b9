"""In-memory storage adapter.

Cleared when the process exits. Sessions constructed with the same
``MemoryStorage`` instance share it like tabs sharing one origin.
"""

from __future__ import annotations

import asyncio

from .base import StorageAdapter


class MemoryStorage(StorageAdapter):
    """In-memory storage for tests and non-persistent modes.

    Thread-safe via asyncio.Lock.
    """

    def __init__(self) -> None:
        """Initialize the memory storage."""
        self._data: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        """Get a value from memory."""
        async with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        """Store a value in memory."""
        async with self._lock:
            self._data[key] = value

    async def remove(self, key: str) -> None:
        """Remove a value from memory."""
        async with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        """List the keys currently stored.

        Inspection aid for tests and debugging. Not part of the
        ``StorageAdapter`` interface; other backends cannot enumerate keys.
        """
        return list(self._data)
