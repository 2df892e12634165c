"""
Data types for the audit chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.errors import ChainIntegrityBreak
from .canonical import compute_block_hash

OPTIONAL_FIELDS = ("id", "file", "hash", "custody", "signature")
RAW_FIELD = "_raw"
_KNOWN_FIELDS = frozenset(
    ("seq", "ts", "nonce", "event", "detail", "prevHash", "blockHash", RAW_FIELD)
    + OPTIONAL_FIELDS
)


@dataclass
class AuditBlock:
    """One immutable link of the chain.

    ``nonce`` is stored but not hashed. ``raw`` holds the verbatim record a
    block was migrated from; ``extra`` keeps unrecognised keys of an already
    chained record so rewriting the log never drops them.
    """

    seq: Any
    ts: str
    nonce: str
    event: str
    detail: str = ""
    id: str | None = None
    file: str | None = None
    hash: str | None = None
    custody: str | None = None
    signature: str | None = None
    prev_hash: str | None = None
    block_hash: str = ""
    raw: Any = None
    extra: dict[str, Any] = field(default_factory=dict)

    def canonical_fields(self) -> dict[str, Any]:
        return {
            "seq": self.seq,
            "ts": self.ts,
            "event": self.event,
            "detail": self.detail,
            "id": self.id,
            "file": self.file,
            "hash": self.hash,
            "signature": self.signature,
            "prevHash": self.prev_hash,
        }

    def compute_hash(self) -> str:
        return compute_block_hash(self.canonical_fields())

    def to_dict(self) -> dict[str, Any]:
        """Storage/export form. ``prevHash`` is always present, even as null."""
        data: dict[str, Any] = {
            "seq": self.seq,
            "ts": self.ts,
            "nonce": self.nonce,
            "event": self.event,
            "detail": self.detail,
        }
        for name in OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        data["prevHash"] = self.prev_hash
        data["blockHash"] = self.block_hash
        if self.raw is not None:
            data[RAW_FIELD] = self.raw
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditBlock:
        """Read a stored record as-is, without normalising any value."""
        return cls(
            seq=data.get("seq"),
            ts=data.get("ts") or "",
            nonce=data.get("nonce") or "",
            event=data.get("event") or "",
            detail=data.get("detail") or "",
            id=data.get("id"),
            file=data.get("file"),
            hash=data.get("hash"),
            custody=data.get("custody"),
            signature=data.get("signature"),
            prev_hash=data.get("prevHash"),
            block_hash=data.get("blockHash") or "",
            raw=data.get(RAW_FIELD),
            extra={k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
        )


def numeric_seq(value: Any) -> int | None:
    """Return ``value`` if it is a usable sequence number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    return int(value)


@dataclass
class BlockCheck:
    seq: Any
    computed: str
    stored: str | None
    prev_stored: str | None
    prev_matches: bool
    block_matches: bool

    @property
    def ok(self) -> bool:
        return self.prev_matches and self.block_matches

    def to_dict(self) -> dict[str, Any]:
        return {
            "seq": self.seq,
            "computed": self.computed,
            "stored": self.stored,
            "prevStored": self.prev_stored,
            "prevMatches": self.prev_matches,
            "blockMatches": self.block_matches,
        }


@dataclass
class ChainVerification:
    ok: bool
    breaks: int
    head: str | None
    details: list[BlockCheck] = field(default_factory=list)

    @property
    def broken_seqs(self) -> list[Any]:
        return [d.seq for d in self.details if not d.ok]

    def raise_if_broken(self) -> None:
        if not self.ok:
            raise ChainIntegrityBreak(
                breaks=self.breaks, broken_seqs=self.broken_seqs
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "breaks": self.breaks,
            "head": self.head,
            "details": [d.to_dict() for d in self.details],
        }


@dataclass
class ChainExport:
    """In-memory export: JSONL text (chronological) plus manifest."""

    serialized_chain: str
    manifest: dict[str, Any]
    blocks: list[AuditBlock] = field(default_factory=list)


@dataclass
class ExportResult:
    jsonl_path: Path
    manifest_path: Path
    signature_path: Path | None
    chain_head: str | None
    jsonl_hash: str
