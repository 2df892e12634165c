"""
Master key creation, passphrase wrapping and the locked/unlocked session.

The master key is 32 random bytes. It is stored only in wrapped form:
AES-256-CBC under a key derived from the passphrase with PBKDF2-SHA256.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .core import diagnostics
from .core.errors import (
    StorageUnavailable,
    VaultAlreadyInitialized,
    VaultLocked,
    VaultNotInitialized,
    WeakPassphrase,
    WrongPassphrase,
)
from .core.serialization import dumps, format_timestamp, loads, parse_timestamp, utc_now
from .core.settings import MAX_PBKDF2_ITERATIONS, CryptoSettings
from .crypto import primitives
from .crypto.keymaterial import SecretBytes
from .storage.base import (
    KEY_CREATED,
    KEY_ITERATIONS,
    KEY_MATERIAL_KEYS,
    KEY_SALT,
    KEY_WRAPPED,
    VaultStore,
)

MASTER_KEY_BYTES = 32
SALT_BYTES = 16


@dataclass(frozen=True)
class WrappedKeyRecord:
    """Everything needed to unwrap the master key, safe to store at rest."""

    wrapped_ciphertext: bytes
    wrap_iv: bytes
    salt: bytes
    iterations: int
    created_at: datetime

    def to_storage(self) -> dict[str, str]:
        """Map to the persisted key layout."""
        return {
            KEY_WRAPPED: dumps(
                {
                    "wrapped": primitives.b64encode(self.wrapped_ciphertext),
                    "wrapIvHex": primitives.to_hex(self.wrap_iv),
                }
            ),
            KEY_SALT: primitives.to_hex(self.salt),
            KEY_ITERATIONS: str(self.iterations),
            KEY_CREATED: format_timestamp(self.created_at),
        }

    @classmethod
    def from_storage(
        cls,
        wrapped_json: str,
        salt_hex: str,
        iterations: str,
        created: str | None,
    ) -> WrappedKeyRecord:
        """Decode the persisted layout; raises ``ValueError`` if it is malformed."""
        try:
            obj = loads(wrapped_json, key=KEY_WRAPPED)
            record = cls(
                wrapped_ciphertext=primitives.b64decode(obj["wrapped"]),
                wrap_iv=primitives.from_hex(obj["wrapIvHex"]),
                salt=primitives.from_hex(salt_hex),
                iterations=int(iterations, 10),
                created_at=parse_timestamp(created) or utc_now(),
            )
        except (KeyError, TypeError, ValueError, StorageUnavailable) as exc:
            raise ValueError("stored key material is malformed") from exc
        if not 1 <= record.iterations <= MAX_PBKDF2_ITERATIONS:
            raise ValueError("stored iteration count is out of range")
        return record


def derive_wrap_key(passphrase: str, salt: bytes, iterations: int) -> SecretBytes:
    return SecretBytes(primitives.pbkdf2_sha256(passphrase, salt, iterations))


def wrap_master_key(master_key: SecretBytes, wrap_key: SecretBytes, iv: bytes) -> bytes:
    return primitives.aes_cbc_encrypt(wrap_key.reveal(), iv, master_key.reveal())


def unwrap_master_key(
    wrapped: bytes, wrap_key: SecretBytes, iv: bytes
) -> SecretBytes | None:
    """Return the unwrapped key, or ``None`` for any failure at all."""
    try:
        raw = primitives.aes_cbc_decrypt(wrap_key.reveal(), iv, wrapped)
    except ValueError:
        return None
    secret = SecretBytes(raw)
    if len(secret) != MASTER_KEY_BYTES:
        secret.wipe()
        return None
    return secret


class KeyManager:
    """Creates the vault key material and owns the unlocked master key."""

    def __init__(
        self, store: VaultStore, settings: CryptoSettings | None = None
    ) -> None:
        self._store = store
        self._settings = settings or CryptoSettings()
        self._master_key: SecretBytes | None = None

    @property
    def is_unlocked(self) -> bool:
        return self._master_key is not None

    @property
    def master_key(self) -> SecretBytes:
        if self._master_key is None:
            raise VaultLocked()
        return self._master_key

    async def is_initialized(self) -> bool:
        return await self._store.get(KEY_WRAPPED) is not None

    async def create_vault(self, passphrase: str) -> WrappedKeyRecord:
        """Generate and persist a new wrapped master key.

        The fresh master key becomes the session key, so the vault is
        unlocked when this returns.
        """
        if len(passphrase) < self._settings.min_passphrase_length:
            raise WeakPassphrase(min_length=self._settings.min_passphrase_length)
        if await self.is_initialized():
            raise VaultAlreadyInitialized()

        iterations = self._settings.pbkdf2_iterations
        master_key = SecretBytes(primitives.random_bytes(MASTER_KEY_BYTES))
        salt = primitives.random_bytes(SALT_BYTES)
        wrap_iv = primitives.random_bytes(primitives.IV_BYTES)
        with derive_wrap_key(passphrase, salt, iterations) as wrap_key:
            wrapped = wrap_master_key(master_key, wrap_key, wrap_iv)

        record = WrappedKeyRecord(
            wrapped_ciphertext=wrapped,
            wrap_iv=wrap_iv,
            salt=salt,
            iterations=iterations,
            created_at=utc_now(),
        )
        for key, value in record.to_storage().items():
            await self._store.set(key, value)

        self._replace_master_key(master_key)
        diagnostics.info("keys", "vault key material created", iterations=iterations)
        return record

    async def _read_stored(self) -> tuple[str, str, str, str | None]:
        wrapped = await self._store.get(KEY_WRAPPED)
        salt = await self._store.get(KEY_SALT)
        iterations = await self._store.get(KEY_ITERATIONS)
        if not wrapped or not salt or not iterations:
            raise VaultNotInitialized()
        return wrapped, salt, iterations, await self._store.get(KEY_CREATED)

    async def load_record(self) -> WrappedKeyRecord:
        """Read the stored record; malformed material is a ``StorageUnavailable``."""
        stored = await self._read_stored()
        try:
            return WrappedKeyRecord.from_storage(*stored)
        except ValueError as exc:
            raise StorageUnavailable(
                "stored key material is malformed", cause=exc, key=KEY_WRAPPED
            ) from exc

    async def unlock(
        self, passphrase: str, record: WrappedKeyRecord | None = None
    ) -> SecretBytes:
        """Unwrap the master key and open the session.

        Every unwrap failure surfaces as the same ``WrongPassphrase``,
        including a stored record that does not decode or carries an
        unusable iteration count.
        """
        if record is None:
            stored = await self._read_stored()
        try:
            if record is None:
                record = WrappedKeyRecord.from_storage(*stored)
            with derive_wrap_key(passphrase, record.salt, record.iterations) as wrap_key:
                master_key = unwrap_master_key(
                    record.wrapped_ciphertext, wrap_key, record.wrap_iv
                )
        except (ValueError, OverflowError) as exc:
            diagnostics.warn("keys", "stored key material rejected", error=str(exc))
            raise WrongPassphrase() from None
        if master_key is None:
            raise WrongPassphrase()
        self._replace_master_key(master_key)
        return master_key

    def lock(self) -> None:
        """Drop and scrub the session key; safe to call repeatedly."""
        self._replace_master_key(None)

    async def delete_key_material(self) -> None:
        self.lock()
        for key in KEY_MATERIAL_KEYS:
            await self._store.delete(key)

    def _replace_master_key(self, master_key: SecretBytes | None) -> None:
        if self._master_key is not None and self._master_key is not master_key:
            self._master_key.wipe()
        self._master_key = master_key
