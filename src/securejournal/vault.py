"""
Vault session facade.

Wires the key manager, entry store, audit chain and panic wipe coordinator
over one :class:`VaultStore` and appends an audit block for every
security-relevant operation. Failures that are security events (wrong
passphrase, integrity failure) are recorded before they are raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .chain.audit_chain import AuditChain
from .chain.evidence import load_signing_seed
from .chain.models import AuditBlock, ChainVerification, ExportResult
from .core import diagnostics
from .core.errors import (
    BiometricDenied,
    DecryptionFailure,
    EmptyEntry,
    EntryNotFound,
    IntegrityFailure,
    VaultLocked,
    VaultNotInitialized,
    WipeNotConfirmed,
    WrongPassphrase,
)
from .core.serialization import dumps, loads
from .core.settings import Settings
from .entries import Entry, EntryStore, IntegrityReport
from .keys import KeyManager, WrappedKeyRecord
from .storage.base import KEY_META, VaultStore
from .wipe import PanicWipeCoordinator, WipeReport

WIPE_CONFIRMATION = "CONFIRM"

EVENT_VAULT_CREATED = "vault_created"
EVENT_UNLOCKED = "unlocked"
EVENT_UNLOCK_FAILED = "unlock_failed"
EVENT_LOCKED = "locked"
EVENT_ENTRY_ADDED = "entry_added"
EVENT_ENTRY_VIEWED = "entry_viewed"
EVENT_ENTRY_INTEGRITY_FAIL = "entry_integrity_fail"
EVENT_ENTRY_DECRYPT_FAIL = "entry_decrypt_fail"
EVENT_INTEGRITY_CHECK = "integrity_check"
EVENT_CHAIN_VERIFIED = "chain_verified"
EVENT_EVIDENCE_EXPORTED = "evidence_exported"
EVENT_BIOMETRIC_ENABLED = "biometric_enabled"
EVENT_BIOMETRIC_DISABLED = "biometric_disabled"

BiometricGate = Callable[[], Awaitable[bool]]


@dataclass
class VaultMeta:
    biometric_enabled: bool = False

    def to_json(self) -> str:
        return dumps({"biometricEnabled": self.biometric_enabled})

    @classmethod
    def from_json(cls, text: str | None) -> VaultMeta:
        if text is None:
            return cls()
        data = loads(text, key=KEY_META)
        if not isinstance(data, dict):
            return cls()
        return cls(biometric_enabled=bool(data.get("biometricEnabled", False)))


class Vault:
    """One local journal session."""

    def __init__(
        self,
        store: VaultStore | None = None,
        settings: Settings | None = None,
        *,
        biometric_gate: BiometricGate | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or Settings()
        diagnostics.configure(enabled=self.settings.core.internal_logging_enabled)
        self.store = store if store is not None else self.settings.build_store()
        self.keys = KeyManager(self.store, self.settings.crypto)
        self.entries = EntryStore(self.store)
        self.chain = AuditChain(self.store)
        self.wiper = PanicWipeCoordinator(
            self.store,
            self.keys,
            self.entries,
            self.chain,
            self.settings.wipe,
            sleep=sleep,
        )
        self._biometric_gate = biometric_gate

    async def __aenter__(self) -> Vault:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def is_unlocked(self) -> bool:
        return self.keys.is_unlocked

    async def is_initialized(self) -> bool:
        return await self.keys.is_initialized()

    async def _record(self, event: str, detail: str = "", **fields: Any) -> AuditBlock:
        return await self.chain.append_event(event, detail, **fields)

    # Lifecycle ---------------------------------------------------------------

    async def create(self, passphrase: str) -> WrappedKeyRecord:
        """Initialise a new vault; the session is unlocked afterwards."""
        record = await self.keys.create_vault(passphrase)
        await self.entries.initialize()
        await self.chain.initialize()
        await self.save_meta(VaultMeta())
        await self._record(EVENT_VAULT_CREATED)
        return record

    async def unlock(self, passphrase: str) -> None:
        if not await self.keys.is_initialized():
            raise VaultNotInitialized()
        meta = await self.load_meta()
        if meta.biometric_enabled and self._biometric_gate is not None:
            if not await self._biometric_gate():
                await self._record(EVENT_UNLOCK_FAILED, "biometric_denied")
                raise BiometricDenied()

        try:
            await self.keys.unlock(passphrase)
        except WrongPassphrase:
            await self._record(EVENT_UNLOCK_FAILED, "wrong_passphrase")
            raise

        if self.settings.core.verify_on_unlock:
            await self.verify_integrity()
        await self._record(EVENT_UNLOCKED, "success")

    async def lock(self) -> None:
        was_unlocked = self.keys.is_unlocked
        self.keys.lock()
        if was_unlocked:
            await self._record(EVENT_LOCKED, "user_lock")

    async def close(self) -> None:
        await self.lock()

    # Entries -----------------------------------------------------------------

    async def add_entry(self, text: str) -> Entry:
        master_key = self.keys.master_key
        if not text or not text.strip():
            raise EmptyEntry()
        entry = self.entries.encrypt_entry(master_key, text)
        await self.entries.append_entry(entry)
        await self._record(EVENT_ENTRY_ADDED, entry_id=entry.id)
        return entry

    async def list_entries(self) -> list[Entry]:
        return await self.entries.load_entries()

    async def view_entry(self, entry_id: str) -> str:
        master_key = self.keys.master_key
        entry = await self.entries.get_entry(entry_id)
        if entry is None:
            raise EntryNotFound(entry_id=entry_id)
        try:
            plaintext = self.entries.decrypt_entry(master_key, entry)
        except IntegrityFailure:
            await self._record(EVENT_ENTRY_INTEGRITY_FAIL, entry_id=entry.id)
            raise
        except DecryptionFailure:
            await self._record(EVENT_ENTRY_DECRYPT_FAIL, entry_id=entry.id)
            raise
        await self._record(EVENT_ENTRY_VIEWED, entry_id=entry.id)
        return plaintext

    async def verify_integrity(self) -> IntegrityReport:
        """HMAC sweep over every stored entry."""
        report = await self.entries.verify_all(self.keys.master_key)
        await self._record(EVENT_INTEGRITY_CHECK, report.summary())
        if not report.all_ok:
            diagnostics.warn("vault", "entry integrity failures", failed=report.failed)
        return report

    # Audit chain -------------------------------------------------------------

    async def verify_chain(self) -> ChainVerification:
        """Verify the chain, then record that a verification happened."""
        result = await self.chain.verify_chain()
        detail = "ok" if result.ok else f"breaks={result.breaks}"
        await self._record(EVENT_CHAIN_VERIFIED, detail)
        if not result.ok:
            diagnostics.warn(
                "chain", "audit chain breaks detected", broken_seqs=result.broken_seqs
            )
        return result

    async def head_fingerprint(self) -> str | None:
        return await self.chain.get_head_fingerprint()

    async def export_evidence(
        self,
        directory: str | Path | None = None,
        *,
        base_name: str | None = None,
        signing_seed: bytes | None = None,
    ) -> ExportResult:
        seed = signing_seed or load_signing_seed(self.settings.export.signing_key_env)
        result = await self.chain.export_chain_files(
            directory or self.settings.export.directory,
            base_name=base_name,
            signing_seed=seed,
        )
        await self._record(
            EVENT_EVIDENCE_EXPORTED,
            "signed" if result.signature_path else "unsigned",
            file=result.jsonl_path.name,
            file_hash=result.jsonl_hash,
        )
        return result

    # Metadata ----------------------------------------------------------------

    async def load_meta(self) -> VaultMeta:
        return VaultMeta.from_json(await self.store.get(KEY_META))

    async def save_meta(self, meta: VaultMeta) -> None:
        await self.store.set(KEY_META, meta.to_json())

    async def set_biometric(self, enabled: bool) -> None:
        if not self.keys.is_unlocked:
            raise VaultLocked()
        await self.save_meta(VaultMeta(biometric_enabled=enabled))
        await self._record(
            EVENT_BIOMETRIC_ENABLED if enabled else EVENT_BIOMETRIC_DISABLED
        )

    # Panic wipe --------------------------------------------------------------

    async def panic_wipe(self, confirmation: str) -> WipeReport:
        if confirmation != WIPE_CONFIRMATION:
            raise WipeNotConfirmed()
        return await self.wiper.perform_panic_wipe()
