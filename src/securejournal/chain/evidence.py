"""
Evidence export artifacts and offline verification.

An export is a JSONL file (one block per line, oldest first), a manifest
sidecar and, when an Ed25519 seed is available, a detached signature over
the SHA-256 of the JSONL text.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.errors import CryptoPrimitiveUnavailable, StorageUnavailable
from ..core.serialization import dumps, loads
from ..crypto import primitives
from .models import AuditBlock, ChainExport, ChainVerification, ExportResult
from .verify import verify_blocks

ALGORITHMS = {
    "hash": "SHA-256",
    "encryption": "AES-256-CBC",
    "hmac": "HMAC-SHA256",
}
SIGNATURE_ALGO = "Ed25519"
JSONL_SUFFIX = ".jsonl"
MANIFEST_SUFFIX = ".manifest.json"
SIGNATURE_SUFFIX = ".jsonl.sig"


def _nacl() -> Any:
    try:
        from nacl import signing
        from nacl.exceptions import BadSignatureError
    except ImportError as exc:  # pragma: no cover - depends on environment
        raise CryptoPrimitiveUnavailable(
            "pynacl is required for Ed25519 evidence signatures", cause=exc
        ) from exc
    return signing, BadSignatureError


def default_base_name(exported_at: str) -> str:
    return "audit_" + exported_at.replace(":", "-").replace(".", "-")


def serialize_blocks(blocks: list[AuditBlock]) -> str:
    return "\n".join(dumps(block.to_dict()) for block in blocks)


def build_manifest(
    blocks: list[AuditBlock],
    verification: ChainVerification,
    exported_at: str,
    *,
    signed: bool = False,
) -> dict[str, Any]:
    algorithms = dict(ALGORITHMS)
    if signed:
        algorithms["signature"] = SIGNATURE_ALGO
    return {
        "exportedAt": exported_at,
        "timezone": "UTC",
        "algorithms": algorithms,
        "count": len(blocks),
        "chainHead": verification.head,
        "verify": {"ok": verification.ok, "breaks": verification.breaks},
    }


def decode_seed(raw: bytes | str | None) -> bytes | None:
    """Accept a 32-byte seed as base64url (padding optional), hex or raw bytes."""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.strip().encode("utf-8")
    candidates = []
    padding = b"=" * (-len(raw) % 4)
    try:
        candidates.append(base64.urlsafe_b64decode(raw + padding))
    except (binascii.Error, ValueError):
        pass
    try:
        candidates.append(bytes.fromhex(raw.decode("ascii")))
    except (UnicodeDecodeError, ValueError):
        pass
    candidates.append(raw)
    for candidate in candidates:
        if len(candidate) == 32:
            return candidate
    return None


def load_signing_seed(env_var: str) -> bytes | None:
    return decode_seed(os.getenv(env_var))


def sign_jsonl(jsonl_text: str, seed: bytes) -> dict[str, Any]:
    signing, _ = _nacl()
    key = signing.SigningKey(seed)
    jsonl_hash = primitives.sha256_hex(jsonl_text)
    signature = key.sign(jsonl_hash.encode("ascii")).signature
    return {
        "algo": SIGNATURE_ALGO,
        "hashAlgo": "SHA-256",
        "jsonlHash": jsonl_hash,
        "signature": signature.hex(),
        "publicKey": bytes(key.verify_key).hex(),
    }


def verify_signature_doc(
    doc: dict[str, Any], jsonl_text: str, verify_key: bytes | None = None
) -> bool:
    """Check a detached signature; uses the embedded key if none is given."""
    signing, bad_signature = _nacl()
    if doc.get("algo") != SIGNATURE_ALGO:
        return False
    jsonl_hash = primitives.sha256_hex(jsonl_text)
    if doc.get("jsonlHash") != jsonl_hash:
        return False
    try:
        key_bytes = verify_key or bytes.fromhex(str(doc.get("publicKey", "")))
        signature = bytes.fromhex(str(doc.get("signature", "")))
        signing.VerifyKey(key_bytes).verify(jsonl_hash.encode("ascii"), signature)
        return True
    except (bad_signature, ValueError, TypeError):
        return False


async def write_export(
    directory: Path,
    base_name: str,
    export: ChainExport,
    signature_doc: dict[str, Any] | None,
) -> ExportResult:
    jsonl_path = directory / f"{base_name}{JSONL_SUFFIX}"
    manifest_path = directory / f"{base_name}{MANIFEST_SUFFIX}"
    signature_path = (
        directory / f"{base_name}{SIGNATURE_SUFFIX}" if signature_doc else None
    )

    def _write() -> None:
        directory.mkdir(parents=True, exist_ok=True)
        jsonl_path.write_text(export.serialized_chain, encoding="utf-8")
        manifest_path.write_text(dumps(export.manifest, indent=True), encoding="utf-8")
        if signature_path is not None:
            signature_path.write_text(dumps(signature_doc, indent=True), encoding="utf-8")

    await asyncio.to_thread(_write)
    return ExportResult(
        jsonl_path=jsonl_path,
        manifest_path=manifest_path,
        signature_path=signature_path,
        chain_head=export.manifest.get("chainHead"),
        jsonl_hash=primitives.sha256_hex(export.serialized_chain),
    )


# Offline verification --------------------------------------------------------


@dataclass
class EvidenceError:
    error_type: str
    seq: Any = None
    expected: str | None = None
    actual: str | None = None
    message: str = ""


@dataclass
class EvidenceReport:
    valid: bool
    file_path: str
    records_checked: int
    chain_ok: bool
    breaks: int
    broken_seqs: list[Any] = field(default_factory=list)
    chain_head: str | None = None
    manifest_valid: bool | None = None
    signature_valid: bool | None = None
    errors: list[EvidenceError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    duration_ms: float = 0.0


def _parse_jsonl(text: str) -> tuple[list[AuditBlock], list[EvidenceError]]:
    blocks: list[AuditBlock] = []
    errors: list[EvidenceError] = []
    for line_num, line in enumerate(text.split("\n"), start=1):
        if not line.strip():
            continue
        try:
            data = loads(line)
        except StorageUnavailable:
            data = None
        if not isinstance(data, dict):
            errors.append(
                EvidenceError(
                    error_type="malformed_record",
                    message=f"line {line_num} is not a JSON object",
                )
            )
            continue
        blocks.append(AuditBlock.from_dict(data))
    return blocks, errors


def verify_evidence_text(
    jsonl_text: str,
    manifest: dict[str, Any] | None = None,
    signature_doc: dict[str, Any] | None = None,
    *,
    verify_key: bytes | None = None,
    file_path: str = "",
) -> EvidenceReport:
    start = time.monotonic()
    blocks, errors = _parse_jsonl(jsonl_text)
    verification = verify_blocks(blocks)
    for check in verification.details:
        if not check.prev_matches:
            errors.append(
                EvidenceError(
                    error_type="chain_break",
                    seq=check.seq,
                    actual=check.prev_stored,
                    message=f"prevHash mismatch at seq {check.seq}",
                )
            )
        if not check.block_matches:
            errors.append(
                EvidenceError(
                    error_type="hash_mismatch",
                    seq=check.seq,
                    expected=check.computed,
                    actual=check.stored,
                    message=f"blockHash mismatch at seq {check.seq}",
                )
            )

    manifest_valid: bool | None = None
    if manifest is not None:
        count_ok = manifest.get("count") == len(blocks)
        head_ok = manifest.get("chainHead") == verification.head
        manifest_valid = count_ok and head_ok
        if not count_ok:
            errors.append(
                EvidenceError(
                    error_type="manifest_count",
                    expected=str(manifest.get("count")),
                    actual=str(len(blocks)),
                    message="manifest count does not match records",
                )
            )
        if not head_ok:
            errors.append(
                EvidenceError(
                    error_type="manifest_head",
                    expected=manifest.get("chainHead"),
                    actual=verification.head,
                    message="manifest chainHead does not match records",
                )
            )

    signature_valid: bool | None = None
    warnings: list[str] = []
    if signature_doc is not None:
        signature_valid = verify_signature_doc(signature_doc, jsonl_text, verify_key)
        if not signature_valid:
            errors.append(
                EvidenceError(error_type="bad_signature", message="signature invalid")
            )
        elif verify_key is None:
            warnings.append("signature checked against embedded public key only")

    return EvidenceReport(
        valid=not errors,
        file_path=file_path,
        records_checked=len(blocks),
        chain_ok=verification.ok,
        breaks=verification.breaks,
        broken_seqs=verification.broken_seqs,
        chain_head=verification.head,
        manifest_valid=manifest_valid,
        signature_valid=signature_valid,
        errors=errors,
        warnings=warnings,
        duration_ms=(time.monotonic() - start) * 1000,
    )


def sidecar_paths(jsonl_path: Path) -> tuple[Path, Path]:
    """Default manifest and signature paths next to ``jsonl_path``."""
    stem = str(jsonl_path)
    if stem.endswith(JSONL_SUFFIX):
        stem = stem[: -len(JSONL_SUFFIX)]
    return Path(stem + MANIFEST_SUFFIX), Path(stem + SIGNATURE_SUFFIX)


async def verify_evidence(
    jsonl_path: Path,
    manifest_path: Path | None = None,
    signature_path: Path | None = None,
    *,
    verify_key: bytes | None = None,
) -> EvidenceReport:
    """Verify an exported chain from disk; sidecars are found automatically."""
    default_manifest, default_signature = sidecar_paths(jsonl_path)
    manifest_path = manifest_path or default_manifest
    signature_path = signature_path or default_signature

    def _read() -> tuple[str, str | None, str | None]:
        text = jsonl_path.read_text(encoding="utf-8")
        manifest_text = (
            manifest_path.read_text(encoding="utf-8") if manifest_path.exists() else None
        )
        signature_text = (
            signature_path.read_text(encoding="utf-8")
            if signature_path.exists()
            else None
        )
        return text, manifest_text, signature_text

    text, manifest_text, signature_text = await asyncio.to_thread(_read)
    report_warnings: list[str] = []
    manifest = _load_sidecar(manifest_text, "manifest", report_warnings)
    signature_doc = _load_sidecar(signature_text, "signature", report_warnings)
    report = verify_evidence_text(
        text,
        manifest,
        signature_doc,
        verify_key=verify_key,
        file_path=str(jsonl_path),
    )
    report.warnings.extend(report_warnings)
    if manifest_text is not None and manifest is None:
        report.valid = False
        report.manifest_valid = False
    if signature_text is not None and signature_doc is None:
        report.valid = False
        report.signature_valid = False
    return report


def _load_sidecar(
    text: str | None, label: str, warnings: list[str]
) -> dict[str, Any] | None:
    if text is None:
        return None
    try:
        data = loads(text)
    except StorageUnavailable:
        warnings.append(f"{label} is not valid JSON")
        return None
    if not isinstance(data, dict):
        warnings.append(f"{label} is not a JSON object")
        return None
    return data
