"""
Panic wipe: multi-pass overwrite of entries followed by deletion of all
vault state.

The overwrite is best effort. It defeats naive recovery of the stored JSON
but gives no guarantee about what the underlying filesystem or flash
controller retains.
"""

from __future__ import annotations

import asyncio
import secrets
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from .chain.audit_chain import AuditChain
from .core import diagnostics
from .core.errors import PanicWipeIncomplete, StorageUnavailable, VaultError
from .core.serialization import utc_now_iso
from .core.settings import WipeSettings
from .crypto import primitives
from .entries import EntryStore
from .keys import KeyManager
from .storage.base import ALL_KEYS, KEY_META, VaultStore

EVENT_WIPE_COMPLETED = "panic_wipe_completed"
EVENT_WIPE_FAILED = "panic_wipe_failed"


@dataclass
class WipeReport:
    passes: int
    entries_overwritten: int
    residue: list[str] = field(default_factory=list)
    finished_at: str = ""

    @property
    def complete(self) -> bool:
        return not self.residue


class PanicWipeCoordinator:
    """Destroys entries, key material, metadata and the audit log.

    The audit log is destroyed too. The outcome is then appended as the
    first block of a fresh chain, so a completed wipe leaves exactly one
    ``panic_wipe_completed`` block behind.
    """

    def __init__(
        self,
        store: VaultStore,
        keys: KeyManager,
        entries: EntryStore,
        chain: AuditChain,
        settings: WipeSettings | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._keys = keys
        self._entries = entries
        self._chain = chain
        self._settings = settings or WipeSettings()
        self._sleep = sleep

    def _junk_hex(self) -> str:
        low = self._settings.junk_min_bytes
        high = self._settings.junk_max_bytes
        return primitives.random_hex(low + secrets.randbelow(high - low + 1))

    async def _overwrite_passes(self, records: list[dict[str, Any]]) -> None:
        passes = self._settings.passes
        for index in range(passes):
            junk = []
            for record in records:
                junk_hex = self._junk_hex()
                junk.append(
                    {
                        **record,
                        "ciphertext": junk_hex,
                        "hmac": junk_hex,
                        "iv": junk_hex[:32],
                        "timestamp": utc_now_iso(),
                    }
                )
            await self._entries.overwrite_all(junk)
            if index < passes - 1:
                await self._sleep(self._settings.pass_delay_seconds)

    async def _residue(self) -> list[str]:
        remaining = [key for key in ALL_KEYS if await self._store.get(key) is not None]
        if await self._entries.count():
            remaining.append("entries")
        return remaining

    async def perform_panic_wipe(self) -> WipeReport:
        """Run the wipe once. Irreversible; never retried."""
        try:
            records = [entry.to_dict() for entry in await self._entries.load_entries()]
        except StorageUnavailable as exc:
            # Unreadable entries are still overwritten and deleted below.
            diagnostics.warn("wipe", "entry store unreadable", error=str(exc))
            records = []
        await self._overwrite_passes(records)

        await self._entries.clear()
        await self._chain.clear()
        await self._store.delete(KEY_META)
        await self._keys.delete_key_material()

        report = WipeReport(
            passes=self._settings.passes,
            entries_overwritten=len(records),
            residue=await self._residue(),
            finished_at=utc_now_iso(),
        )
        if report.residue:
            diagnostics.warn("wipe", "panic wipe incomplete", residue=report.residue)
            await self._record(EVENT_WIPE_FAILED, "residue: " + ",".join(report.residue))
            raise PanicWipeIncomplete(residue=report.residue)

        await self._record(
            EVENT_WIPE_COMPLETED,
            f"{report.passes} passes, {report.entries_overwritten} entries",
        )
        diagnostics.info("wipe", "panic wipe complete", passes=report.passes)
        return report

    async def _record(self, event: str, detail: str) -> None:
        try:
            await self._chain.append_event(event, detail)
        except VaultError as exc:
            diagnostics.warn("wipe", "could not record wipe outcome", error=str(exc))
