"""
Error taxonomy for securejournal.

Every failure surfaced by the key manager, entry store, audit chain and
panic wipe coordinator is a :class:`VaultError` carrying an
:class:`ErrorContext`. Callers (a UI, the CLI) translate these into user
messages; the context is safe to log because it never holds key material,
passphrases or plaintext.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Broad classification used for logging and audit detail."""

    CRYPTO = "crypto"
    AUTH = "auth"
    INTEGRITY = "integrity"
    STORAGE = "storage"
    STATE = "state"
    VALIDATION = "validation"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorRecoveryStrategy(str, Enum):
    """What the caller is allowed to do after the failure."""

    USER_RETRY = "user_retry"
    CALLER_RETRY = "caller_retry"
    NONE = "none"


@dataclass
class ErrorContext:
    """Context captured at the moment an error is created."""

    category: ErrorCategory
    severity: ErrorSeverity
    recovery_strategy: ErrorRecoveryStrategy = ErrorRecoveryStrategy.NONE
    error_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    component_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_id": self.error_id,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            "category": self.category.value,
            "severity": self.severity.value,
            "recovery_strategy": self.recovery_strategy.value,
            "component_name": self.component_name,
            "extra": dict(self.extra),
        }


class VaultError(Exception):
    """Base class for all securejournal errors."""

    default_category = ErrorCategory.STATE
    default_severity = ErrorSeverity.MEDIUM
    default_recovery = ErrorRecoveryStrategy.NONE
    default_message = "vault operation failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
        component_name: str | None = None,
        cause: BaseException | None = None,
        **extra: Any,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.context = ErrorContext(
            category=category or self.default_category,
            severity=severity or self.default_severity,
            recovery_strategy=self.default_recovery,
            component_name=component_name,
            extra=extra,
        )
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and persistence."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "context": self.context.to_dict(),
        }


# Key manager -----------------------------------------------------------------


class WeakPassphrase(VaultError):
    default_category = ErrorCategory.VALIDATION
    default_severity = ErrorSeverity.LOW
    default_recovery = ErrorRecoveryStrategy.USER_RETRY
    default_message = "passphrase is too short"


class WrongPassphrase(VaultError):
    """Unwrapping failed.

    Raised with the same message whatever went wrong (padding, length,
    decoding) so the error does not act as an oracle.
    """

    default_category = ErrorCategory.AUTH
    default_severity = ErrorSeverity.MEDIUM
    default_recovery = ErrorRecoveryStrategy.USER_RETRY
    default_message = "incorrect passphrase"


class VaultNotInitialized(VaultError):
    default_message = "vault not initialized"


class VaultAlreadyInitialized(VaultError):
    default_message = "vault already initialized"


class VaultLocked(VaultError):
    default_recovery = ErrorRecoveryStrategy.USER_RETRY
    default_message = "vault is locked"


class BiometricDenied(VaultError):
    default_category = ErrorCategory.AUTH
    default_recovery = ErrorRecoveryStrategy.USER_RETRY
    default_message = "biometric authentication failed"


# Entry store -----------------------------------------------------------------


class EmptyEntry(VaultError):
    default_category = ErrorCategory.VALIDATION
    default_severity = ErrorSeverity.LOW
    default_recovery = ErrorRecoveryStrategy.USER_RETRY
    default_message = "entry is empty"


class EntryNotFound(VaultError):
    default_category = ErrorCategory.VALIDATION
    default_severity = ErrorSeverity.LOW
    default_message = "entry not found"


class IntegrityFailure(VaultError):
    default_category = ErrorCategory.INTEGRITY
    default_severity = ErrorSeverity.HIGH
    default_message = "entry integrity check failed"


class DecryptionFailure(VaultError):
    default_category = ErrorCategory.INTEGRITY
    default_severity = ErrorSeverity.HIGH
    default_message = "entry decryption failed"


# Audit chain -----------------------------------------------------------------


class ChainIntegrityBreak(VaultError):
    default_category = ErrorCategory.INTEGRITY
    default_severity = ErrorSeverity.HIGH
    default_message = "audit chain verification found breaks"


# Infrastructure --------------------------------------------------------------


class StorageUnavailable(VaultError):
    default_category = ErrorCategory.STORAGE
    default_severity = ErrorSeverity.CRITICAL
    default_recovery = ErrorRecoveryStrategy.CALLER_RETRY
    default_message = "vault storage unavailable"


class CryptoPrimitiveUnavailable(VaultError):
    default_category = ErrorCategory.CRYPTO
    default_severity = ErrorSeverity.CRITICAL
    default_message = "cryptographic backend unavailable"


# Panic wipe ------------------------------------------------------------------


class PanicWipeIncomplete(VaultError):
    default_category = ErrorCategory.STORAGE
    default_severity = ErrorSeverity.CRITICAL
    default_message = "panic wipe left residual data"


class WipeNotConfirmed(VaultError):
    default_category = ErrorCategory.VALIDATION
    default_severity = ErrorSeverity.LOW
    default_recovery = ErrorRecoveryStrategy.USER_RETRY
    default_message = "panic wipe confirmation did not match"
