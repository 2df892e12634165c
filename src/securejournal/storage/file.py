"""
Directory-backed store: one file per key, written atomically.
"""

from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path

from ..core.errors import StorageUnavailable

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
_SUFFIX = ".json"


class FileVaultStore:
    """Persists each key to ``<directory>/<key>.json`` with mode 0600."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"invalid storage key: {key!r}")
        return self._dir / f"{key}{_SUFFIX}"

    async def get(self, key: str) -> str | None:
        path = self._path(key)

        def _read() -> str | None:
            try:
                return path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None

        try:
            return await asyncio.to_thread(_read)
        except OSError as exc:
            raise StorageUnavailable("failed to read key", cause=exc, key=key) from exc

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        temp_path = path.with_suffix(".tmp")

        def _write_atomic() -> None:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)

        try:
            await asyncio.to_thread(_write_atomic)
        except OSError as exc:
            raise StorageUnavailable("failed to write key", cause=exc, key=key) from exc

    async def delete(self, key: str) -> None:
        path = self._path(key)

        def _remove() -> None:
            try:
                os.remove(path)
            except FileNotFoundError:
                return

        try:
            await asyncio.to_thread(_remove)
        except OSError as exc:
            raise StorageUnavailable("failed to delete key", cause=exc, key=key) from exc

    async def keys(self) -> list[str]:
        def _list() -> list[str]:
            if not self._dir.is_dir():
                return []
            return sorted(
                p.name[: -len(_SUFFIX)]
                for p in self._dir.iterdir()
                if p.is_file() and p.name.endswith(_SUFFIX)
            )

        try:
            return await asyncio.to_thread(_list)
        except OSError as exc:
            raise StorageUnavailable("failed to list keys", cause=exc) from exc
