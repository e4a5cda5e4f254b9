"""File-backed storage adapters.

``FileStorage`` keeps all entries in one JSON object on disk and is the
durable backend. ``SessionStorage`` is the same file format placed in the
system temp directory and keyed by a browsing-session scope.

Every write rewrites the whole file through a temp file and ``os.replace``
so readers never observe a partial file. The read-modify-write cycle is
not atomic across processes.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile

from pathlib import Path

from .base import StorageAdapter


logger = logging.getLogger("tabauth.storage")


class FileStorage(StorageAdapter):
    """Durable JSON-file storage.

    Parameters
    ----------
    path : str or Path
        The JSON file holding all entries. Parent directories are created
        on first write.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize the file storage."""
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning("Cannot read storage file %s: %s", self.path, exc)
            return {}

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Storage file %s is corrupt; treating it as empty", self.path)
            return {}

        if not isinstance(data, dict):
            logger.warning("Storage file %s is not a JSON object; treating it as empty", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise

    def _get_sync(self, key: str) -> str | None:
        return self._read().get(key)

    def _set_sync(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def _remove_sync(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    async def get(self, key: str) -> str | None:
        """Get a value from the storage file."""
        loop = asyncio.get_running_loop()
        async with self._lock:
            return await loop.run_in_executor(None, self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        """Store a value in the storage file."""
        loop = asyncio.get_running_loop()
        async with self._lock:
            await loop.run_in_executor(None, self._set_sync, key, value)

    async def remove(self, key: str) -> None:
        """Remove a value from the storage file."""
        loop = asyncio.get_running_loop()
        async with self._lock:
            await loop.run_in_executor(None, self._remove_sync, key)


def default_session_scope() -> str:
    """Scope used when none is configured: the parent process id.

    Processes started from the same shell or launcher share a scope.
    """
    return str(os.getppid())


class SessionStorage(FileStorage):
    """Storage scoped to one browsing session.

    Survives restarts of a client process within the same scope and is
    discarded by ``clear()`` when the scope ends.

    Parameters
    ----------
    scope : str, optional
        Browsing-session identifier (default: parent process id).
    base_dir : str or Path, optional
        Directory holding scope files (default: ``<tempdir>/tabauth``).
    """

    def __init__(self, scope: str | None = None, base_dir: str | Path | None = None) -> None:
        """Initialize the session-scoped storage."""
        self.scope = scope or default_session_scope()
        root = Path(base_dir) if base_dir is not None else Path(tempfile.gettempdir()) / "tabauth"
        safe_scope = "".join(c if c.isalnum() or c in "-_." else "_" for c in self.scope)
        super().__init__(root / f"session-{safe_scope}.json")

    async def clear(self) -> None:
        """End the scope by deleting its file."""
        async with self._lock:
            with contextlib.suppress(FileNotFoundError):
                self.path.unlink()
