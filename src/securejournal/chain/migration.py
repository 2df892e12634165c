"""
Migration of legacy, unchained log records into canonical blocks.

A record is legacy when it is not an object, has no ``blockHash`` or has no
``prevHash`` key at all (an explicit ``null`` is fine: that is block 1).
Migration rebuilds the whole log oldest-first, re-sequencing from 1 and
re-linking every block, and keeps each source record under ``_raw``.
"""

from __future__ import annotations

from typing import Any

from ..core import diagnostics
from ..core.errors import StorageUnavailable
from ..core.serialization import dumps, loads, normalize_timestamp
from ..crypto import primitives
from ..storage.base import KEY_TAMPER_LOG, VaultStore
from .models import OPTIONAL_FIELDS, RAW_FIELD, AuditBlock

NONCE_BYTES = 8


def is_legacy(item: Any) -> bool:
    return (
        not isinstance(item, dict)
        or not item.get("blockHash")
        or "prevHash" not in item
    )


def needs_migration(raw: list[Any]) -> bool:
    return any(is_legacy(item) for item in raw)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _rebuild_one(item: Any, seq: int, prev_hash: str | None) -> AuditBlock:
    source: dict[str, Any] = item if isinstance(item, dict) else {}
    if isinstance(item, dict):
        raw = item.get(RAW_FIELD) or item
    else:
        raw = item if item else {}

    block = AuditBlock(
        seq=seq,
        ts=normalize_timestamp(source.get("ts") or source.get("timestamp")),
        nonce=_text(source.get("nonce")) or primitives.random_hex(NONCE_BYTES),
        event=_text(source.get("event") or source.get("type")) or "event",
        detail=_text(source.get("detail") or source.get("message")),
        prev_hash=prev_hash,
        raw=raw,
    )
    for name in OPTIONAL_FIELDS:
        value = source.get(name)
        if value is not None:
            setattr(block, name, value)
    block.block_hash = block.compute_hash()
    return block


def rebuild_chain(raw_newest_first: list[Any]) -> list[AuditBlock]:
    """Rebuild a stored log into canonical blocks, returned oldest-first.

    Pure apart from nonce generation; tolerant of malformed records.
    """
    rebuilt: list[AuditBlock] = []
    prev_hash: str | None = None
    for index, item in enumerate(reversed(raw_newest_first)):
        block = _rebuild_one(item, index + 1, prev_hash)
        prev_hash = block.block_hash
        rebuilt.append(block)
    return rebuilt


def parse_log(text: str | None) -> list[Any]:
    """Decode the stored log; storage-level corruption is not tolerated."""
    if text is None:
        return []
    data = loads(text, key=KEY_TAMPER_LOG)
    if not isinstance(data, list):
        raise StorageUnavailable("audit log is not a list", key=KEY_TAMPER_LOG)
    return data


async def ensure_migrated(store: VaultStore) -> bool:
    """Persist a rebuilt log if any legacy record exists.

    Returns True when the stored log was rewritten. Running it again right
    after is a no-op.
    """
    raw = parse_log(await store.get(KEY_TAMPER_LOG))
    if not raw or not needs_migration(raw):
        return False
    rebuilt = rebuild_chain(raw)
    newest_first = [block.to_dict() for block in reversed(rebuilt)]
    await store.set(KEY_TAMPER_LOG, dumps(newest_first))
    diagnostics.warn(
        "chain",
        "migrated legacy audit records",
        records=len(raw),
        legacy=sum(1 for item in raw if is_legacy(item)),
    )
    return True
