"""
Per-entry authenticated encryption and the append-only entry collection.

Entries are AES-256-CBC encrypted under the master key and authenticated
with HMAC-SHA256 over ``iv|ciphertext|timestamp`` keyed by
``SHA-256(master key)``. The HMAC is always checked before decryption.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass, field
from typing import Any

from .core import diagnostics
from .core.errors import DecryptionFailure, IntegrityFailure, StorageUnavailable
from .core.serialization import dumps, format_timestamp, loads, to_epoch_ms, utc_now
from .crypto import primitives
from .crypto.keymaterial import SecretBytes
from .storage.base import KEY_ENTRIES, VaultStore

ENTRY_FIELDS = ("id", "iv", "ciphertext", "hmac", "timestamp")


@dataclass
class Entry:
    id: str
    iv: str  # hex, 16 bytes
    ciphertext: str  # base64
    hmac: str  # hex
    timestamp: str  # ISO-8601
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if k != "extra"}
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entry:
        """Tolerant reader: missing fields become empty strings."""
        known = {k: _as_str(data.get(k)) for k in ENTRY_FIELDS}
        extra = {k: v for k, v in data.items() if k not in ENTRY_FIELDS}
        return cls(**known, extra=extra)


@dataclass
class IntegrityReport:
    ok: int = 0
    failed: int = 0
    failed_ids: list[str] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    def summary(self) -> str:
        return f"{self.ok} ok, {self.failed} fail"


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def integrity_key(master_key: SecretBytes) -> bytes:
    return primitives.sha256(master_key.reveal())


def compute_entry_hmac(
    master_key: SecretBytes, iv_hex: str, ciphertext_b64: str, timestamp: str
) -> str:
    return primitives.hmac_sha256_hex(
        integrity_key(master_key), f"{iv_hex}|{ciphertext_b64}|{timestamp}"
    )


def encrypt_entry(master_key: SecretBytes, plaintext: str) -> Entry:
    iv = primitives.random_bytes(primitives.IV_BYTES)
    ciphertext = primitives.aes_cbc_encrypt(
        master_key.reveal(), iv, plaintext.encode("utf-8")
    )
    now = utc_now()
    iv_hex = primitives.to_hex(iv)
    ciphertext_b64 = primitives.b64encode(ciphertext)
    timestamp = format_timestamp(now)
    return Entry(
        id=f"{to_epoch_ms(now)}-{iv_hex[:6]}",
        iv=iv_hex,
        ciphertext=ciphertext_b64,
        hmac=compute_entry_hmac(master_key, iv_hex, ciphertext_b64, timestamp),
        timestamp=timestamp,
    )


def verify_entry_hmac(master_key: SecretBytes, entry: Entry) -> bool:
    expected = compute_entry_hmac(master_key, entry.iv, entry.ciphertext, entry.timestamp)
    return primitives.constant_time_equals(expected, entry.hmac)


def decrypt_entry(master_key: SecretBytes, entry: Entry) -> str:
    if not verify_entry_hmac(master_key, entry):
        raise IntegrityFailure(entry_id=entry.id)
    try:
        iv = primitives.from_hex(entry.iv)
        ciphertext = primitives.b64decode(entry.ciphertext)
        plaintext = primitives.aes_cbc_decrypt(master_key.reveal(), iv, ciphertext)
        return plaintext.decode("utf-8")
    except ValueError as exc:  # UnicodeDecodeError is a ValueError
        raise DecryptionFailure(entry_id=entry.id, cause=exc) from exc


class EntryStore:
    """Newest-first, append-only collection persisted under ``vault_entries``."""

    def __init__(self, store: VaultStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    encrypt_entry = staticmethod(encrypt_entry)
    decrypt_entry = staticmethod(decrypt_entry)
    verify_entry_hmac = staticmethod(verify_entry_hmac)

    async def load_entries(self) -> list[Entry]:
        raw = await self._load_raw()
        entries = [Entry.from_dict(item) for item in raw if isinstance(item, dict)]
        if len(entries) != len(raw):
            diagnostics.warn(
                "entries",
                "skipped malformed entry records",
                count=len(raw) - len(entries),
            )
        return entries

    async def append_entry(self, entry: Entry) -> None:
        async with self._lock:
            raw = await self._load_raw()
            raw.insert(0, entry.to_dict())
            await self._store.set(KEY_ENTRIES, dumps(raw))

    async def get_entry(self, entry_id: str) -> Entry | None:
        for entry in await self.load_entries():
            if entry.id == entry_id:
                return entry
        return None

    async def count(self) -> int:
        return len(await self._load_raw())

    async def verify_all(self, master_key: SecretBytes) -> IntegrityReport:
        report = IntegrityReport()
        for entry in await self.load_entries():
            if verify_entry_hmac(master_key, entry):
                report.ok += 1
            else:
                report.failed += 1
                report.failed_ids.append(entry.id)
        return report

    async def initialize(self) -> None:
        await self._store.set(KEY_ENTRIES, dumps([]))

    async def overwrite_all(self, entries: list[dict[str, Any]]) -> None:
        """Replace the whole collection; reserved for the panic wipe."""
        async with self._lock:
            await self._store.set(KEY_ENTRIES, dumps(entries))

    async def clear(self) -> None:
        async with self._lock:
            await self._store.delete(KEY_ENTRIES)

    async def _load_raw(self) -> list[Any]:
        text = await self._store.get(KEY_ENTRIES)
        if text is None:
            return []
        data = loads(text, key=KEY_ENTRIES)
        if not isinstance(data, list):
            raise StorageUnavailable("entry store is not a list", key=KEY_ENTRIES)
        return data
