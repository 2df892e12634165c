"""
Storage protocol and key layout.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

KEY_WRAPPED = "vault_wrapped_key"
KEY_SALT = "vault_salt"
KEY_ITERATIONS = "vault_iter"
KEY_CREATED = "vault_created"
KEY_ENTRIES = "vault_entries"
KEY_TAMPER_LOG = "vault_tamper_log"
KEY_META = "vault_meta"

KEY_MATERIAL_KEYS = (KEY_WRAPPED, KEY_SALT, KEY_ITERATIONS, KEY_CREATED)
ALL_KEYS = KEY_MATERIAL_KEYS + (KEY_ENTRIES, KEY_TAMPER_LOG, KEY_META)


@runtime_checkable
class VaultStore(Protocol):
    """Async string key-value store injected into every component.

    Implementations raise ``StorageUnavailable`` for I/O failures; a write
    either completes or fails as a whole.
    """

    async def get(self, key: str) -> str | None:
        """Return the stored value or ``None`` if the key is absent."""

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    async def keys(self) -> list[str]:
        """Return the keys currently present."""
