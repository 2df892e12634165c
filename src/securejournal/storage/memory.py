"""
In-process store used by tests and ephemeral sessions.
"""

from __future__ import annotations


class InMemoryVaultStore:
    """Dict-backed ``VaultStore``."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.writes: list[str] = []

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.writes.append(key)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return sorted(self._data)

    def snapshot(self) -> dict[str, str]:
        """Synchronous copy of the current contents (for assertions)."""
        return dict(self._data)
