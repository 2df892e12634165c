"""
Core infrastructure: errors, settings, diagnostics and serialization helpers.
"""

from .errors import (
    BiometricDenied,
    ChainIntegrityBreak,
    CryptoPrimitiveUnavailable,
    DecryptionFailure,
    EmptyEntry,
    EntryNotFound,
    ErrorCategory,
    ErrorContext,
    ErrorRecoveryStrategy,
    ErrorSeverity,
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
from .settings import Settings

__all__ = [
    "Settings",
    "ErrorCategory",
    "ErrorContext",
    "ErrorRecoveryStrategy",
    "ErrorSeverity",
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
