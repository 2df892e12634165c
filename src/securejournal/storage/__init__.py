"""
Key-value persistence for vault state.
"""

from .base import (
    ALL_KEYS,
    KEY_CREATED,
    KEY_ENTRIES,
    KEY_ITERATIONS,
    KEY_MATERIAL_KEYS,
    KEY_META,
    KEY_SALT,
    KEY_TAMPER_LOG,
    KEY_WRAPPED,
    VaultStore,
)
from .file import FileVaultStore
from .memory import InMemoryVaultStore

__all__ = [
    "VaultStore",
    "InMemoryVaultStore",
    "FileVaultStore",
    "ALL_KEYS",
    "KEY_MATERIAL_KEYS",
    "KEY_WRAPPED",
    "KEY_SALT",
    "KEY_ITERATIONS",
    "KEY_CREATED",
    "KEY_ENTRIES",
    "KEY_TAMPER_LOG",
    "KEY_META",
]
