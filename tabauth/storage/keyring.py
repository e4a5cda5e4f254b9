"""OS keyring storage adapter.

Each entry is one credential of ``service_name`` in the platform secret
store (macOS Keychain, Windows Credential Locker, Secret Service).
Requires the `keyring` package: pip install tabauth[keyring]
"""

from __future__ import annotations

import asyncio

from typing import Any

from .base import StorageAdapter


class KeyringStorage(StorageAdapter):
    """OS keyring-backed storage for durable credentials.

    The keyring API is blocking, so every call runs in the default
    executor.

    Parameters
    ----------
    service_name : str
        Service name the entries are stored under (default "tabauth").
    """

    def __init__(self, service_name: str = "tabauth") -> None:
        """Initialize the keyring storage."""
        try:
            import keyring as _keyring
        except ImportError:
            msg = "Keyring backend requires the 'keyring' package. Install with: pip install tabauth[keyring]"
            raise ImportError(msg) from None
        self.service_name = service_name
        self._keyring: Any = _keyring

    async def get(self, key: str) -> str | None:
        """Get a value from the OS keyring."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(  # type: ignore[no-any-return]
            None, self._keyring.get_password, self.service_name, key
        )

    async def set(self, key: str, value: str) -> None:
        """Store a value in the OS keyring."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, self._keyring.set_password, self.service_name, key, value
        )

    async def remove(self, key: str) -> None:
        """Remove a value from the OS keyring."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None, self._keyring.delete_password, self.service_name, key
            )
        except self._keyring.errors.PasswordDeleteError:
            pass  # absent entry
