"""
Public entrypoints for securejournal.

A local, passphrase-protected journal: entries are encrypted and
authenticated per record, and every security-relevant operation is
appended to a hash-chained audit log that can be verified and exported as
evidence.

Typical use::

    from securejournal import Vault

    async with Vault() as vault:
        await vault.create("correct-horse-battery")
        entry = await vault.add_entry("hello vault")
        assert await vault.view_entry(entry.id) == "hello vault"
"""

from __future__ import annotations

from ._version import __version__
from .chain import (
    AuditBlock,
    AuditChain,
    ChainVerification,
    EvidenceReport,
    ExportResult,
    verify_evidence,
)
from .core.errors import (
    BiometricDenied,
    ChainIntegrityBreak,
    CryptoPrimitiveUnavailable,
    DecryptionFailure,
    EmptyEntry,
    EntryNotFound,
    IntegrityFailure,
    PanicWipeIncomplete,
    StorageUnavailable,
    VaultAlreadyInitialized,
    VaultError,
    VaultLocked,
    VaultNotInitialized,
    WeakPassphrase,
    WipeNotConfirmed,
    WrongPassphrase,
)
from .core.settings import Settings
from .entries import Entry, EntryStore, IntegrityReport
from .keys import KeyManager, WrappedKeyRecord
from .storage import FileVaultStore, InMemoryVaultStore, VaultStore
from .vault import WIPE_CONFIRMATION, Vault, VaultMeta
from .wipe import PanicWipeCoordinator, WipeReport

__all__ = [
    "__version__",
    "VERSION",
    "Vault",
    "VaultMeta",
    "WIPE_CONFIRMATION",
    "Settings",
    "KeyManager",
    "WrappedKeyRecord",
    "EntryStore",
    "Entry",
    "IntegrityReport",
    "AuditChain",
    "AuditBlock",
    "ChainVerification",
    "ExportResult",
    "EvidenceReport",
    "verify_evidence",
    "PanicWipeCoordinator",
    "WipeReport",
    "VaultStore",
    "InMemoryVaultStore",
    "FileVaultStore",
    "VaultError",
    "WeakPassphrase",
    "WrongPassphrase",
    "VaultNotInitialized",
    "VaultAlreadyInitialized",
    "VaultLocked",
    "BiometricDenied",
    "EmptyEntry",
    "EntryNotFound",
    "IntegrityFailure",
    "DecryptionFailure",
    "ChainIntegrityBreak",
    "StorageUnavailable",
    "CryptoPrimitiveUnavailable",
    "PanicWipeIncomplete",
    "WipeNotConfirmed",
]

VERSION = __version__
