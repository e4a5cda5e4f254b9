"""tabauth storage package.

Provides the key/value storage adapters the token store and the refresh
lock are built on. The backend is selected by ``AuthConfig.storage``:

- ``local``: durable JSON file (``FileStorage``)
- ``session``: file scoped to a browsing session (``SessionStorage``)
- ``memory``: in-process dict (``MemoryStorage``)
- ``redis``: shared Redis (``RedisStorage``, needs the ``redis`` extra)
- ``keyring``: OS secret store (``KeyringStorage``, needs the ``keyring`` extra)

``local`` is the durable fallback for hosts without a usable keyring; it
keeps entries in a plaintext file readable only by its owner.

Examples
--------
>>> from tabauth.storage import MemoryStorage
>>> storage = MemoryStorage()
>>> await storage.set("key", "value")
>>> await storage.get("key")
'value'
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import StorageAdapter
from .file import FileStorage, SessionStorage, default_session_scope
from .keyring import KeyringStorage
from .memory import MemoryStorage
from .redis import RedisStorage


if TYPE_CHECKING:
    from ..config import AuthConfig


def create_storage(config: AuthConfig) -> StorageAdapter:
    """Create the storage adapter selected by ``config.storage``.

    Parameters
    ----------
    config : AuthConfig
        The client configuration.

    Returns
    -------
    StorageAdapter
        A new adapter instance.
    """
    kind = config.storage
    if kind == "memory":
        return MemoryStorage()
    if kind == "session":
        return SessionStorage(scope=config.session_scope)
    if kind == "local":
        return FileStorage(config.storage_path)
    if kind == "redis":
        return RedisStorage(config.redis_url, prefix=config.storage_prefix)
    if kind == "keyring":
        return KeyringStorage(config.keyring_service)

    msg = f"Unknown storage backend: {kind}"
    raise ValueError(msg)


__all__ = [
    "FileStorage",
    "KeyringStorage",
    "MemoryStorage",
    "RedisStorage",
    "SessionStorage",
    "StorageAdapter",
    "create_storage",
    "default_session_scope",
]
