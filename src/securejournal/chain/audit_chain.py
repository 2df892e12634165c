"""
Append-only, hash-chained audit log.

Blocks are stored newest-first under ``vault_tamper_log`` and reasoned about
oldest-first. Appends are serialized by an ``asyncio.Lock`` because each one
reads the current head, builds a block on top of it and writes the log back.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from ..core.serialization import dumps, utc_now_iso
from ..crypto import primitives
from ..storage.base import KEY_TAMPER_LOG, VaultStore
from . import evidence
from .migration import NONCE_BYTES, ensure_migrated, needs_migration, parse_log, rebuild_chain
from .models import AuditBlock, ChainExport, ChainVerification, ExportResult, numeric_seq
from .verify import verify_blocks


class AuditChain:
    """Tamper-evident event log over a :class:`VaultStore`."""

    def __init__(self, store: VaultStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    async def _load_raw(self) -> list[Any]:
        return parse_log(await self._store.get(KEY_TAMPER_LOG))

    async def ensure_migrated(self) -> bool:
        async with self._lock:
            return await ensure_migrated(self._store)

    async def append_event(
        self,
        event: str,
        detail: str = "",
        *,
        entry_id: str | None = None,
        file: str | None = None,
        file_hash: str | None = None,
        custody: str | None = None,
        signature: str | None = None,
    ) -> AuditBlock:
        """Append one block and return it."""
        async with self._lock:
            await ensure_migrated(self._store)
            existing = await self._load_raw()
            last_seq, last_hash = _head_of(existing)

            block = AuditBlock(
                seq=last_seq + 1,
                ts=utc_now_iso(),
                nonce=primitives.random_hex(NONCE_BYTES),
                event=event or "event",
                detail=detail or "",
                id=entry_id,
                file=file,
                hash=file_hash,
                custody=custody,
                signature=signature,
                prev_hash=last_hash,
            )
            block.block_hash = block.compute_hash()

            existing.insert(0, block.to_dict())
            await self._store.set(KEY_TAMPER_LOG, dumps(existing))
            return block

    async def load_chain(self) -> list[AuditBlock]:
        """Migrated chain, oldest-first."""
        async with self._lock:
            await ensure_migrated(self._store)
            raw = await self._load_raw()
        return [AuditBlock.from_dict(item) for item in reversed(raw)]

    async def verify_chain(self) -> ChainVerification:
        return verify_blocks(await self.load_chain())

    async def get_head_fingerprint(self) -> str | None:
        chain = await self.load_chain()
        if not chain:
            return None
        return chain[-1].block_hash or None

    async def snapshot(self) -> list[AuditBlock]:
        """Oldest-first view that never writes; legacy logs are rebuilt in memory."""
        raw = await self._load_raw()
        if raw and needs_migration(raw):
            return rebuild_chain(raw)
        return [AuditBlock.from_dict(item) for item in reversed(raw)]

    async def export_chain(self, *, signed: bool = False) -> ChainExport:
        """Serialize the chain and its manifest without mutating storage."""
        blocks = await self.snapshot()
        verification = verify_blocks(blocks)
        manifest = evidence.build_manifest(
            blocks, verification, utc_now_iso(), signed=signed
        )
        return ChainExport(
            serialized_chain=evidence.serialize_blocks(blocks),
            manifest=manifest,
            blocks=blocks,
        )

    async def export_chain_files(
        self,
        directory: str | Path,
        *,
        base_name: str | None = None,
        signing_seed: bytes | None = None,
    ) -> ExportResult:
        """Write ``<base>.jsonl``, ``<base>.manifest.json`` and optionally a signature."""
        export = await self.export_chain(signed=signing_seed is not None)
        signature_doc = (
            evidence.sign_jsonl(export.serialized_chain, signing_seed)
            if signing_seed is not None
            else None
        )
        name = base_name or evidence.default_base_name(export.manifest["exportedAt"])
        return await evidence.write_export(Path(directory), name, export, signature_doc)

    async def count(self) -> int:
        return len(await self._load_raw())

    async def initialize(self) -> None:
        async with self._lock:
            await self._store.set(KEY_TAMPER_LOG, dumps([]))

    async def clear(self) -> None:
        async with self._lock:
            await self._store.delete(KEY_TAMPER_LOG)


def _head_of(raw_newest_first: list[Any]) -> tuple[int, str | None]:
    """Highest seq and the blockHash of the record holding it."""
    last_seq = 0
    head: Any = None
    for item in raw_newest_first:
        if not isinstance(item, dict):
            continue
        if head is None:
            head = item
        seq = numeric_seq(item.get("seq"))
        if seq is not None and seq > last_seq:
            last_seq = seq
            head = item
    last_hash = head.get("blockHash") if head is not None else None
    return last_seq, (last_hash or None)
