"""Tests for evidence export files, signatures and offline verification."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from securejournal.chain import AuditChain, verify_evidence, verify_evidence_text
from securejournal.chain.evidence import (
    decode_seed,
    default_base_name,
    sidecar_paths,
    sign_jsonl,
    verify_signature_doc,
)
from securejournal.core.serialization import loads
from securejournal.crypto import primitives
from securejournal.storage import InMemoryVaultStore

SEED = bytes(range(32))


@pytest.fixture
async def chain() -> AuditChain:
    chain = AuditChain(InMemoryVaultStore())
    for name in ("vault_created", "entry_added", "locked"):
        await chain.append_event(name)
    return chain


def test_default_base_name_is_filesystem_safe() -> None:
    name = default_base_name("2024-05-06T07:08:09.123Z")
    assert name == "audit_2024-05-06T07-08-09-123Z"


def test_decode_seed_formats() -> None:
    assert decode_seed(None) is None
    assert decode_seed(SEED.hex()) == SEED
    assert decode_seed(base64.urlsafe_b64encode(SEED).decode().rstrip("=")) == SEED
    assert decode_seed("too-short") is None


def test_signature_roundtrip_and_tamper() -> None:
    doc = sign_jsonl("line1\nline2", SEED)
    assert doc["algo"] == "Ed25519"
    assert doc["jsonlHash"] == primitives.sha256_hex("line1\nline2")
    assert verify_signature_doc(doc, "line1\nline2")
    assert verify_signature_doc(doc, "line1\nline2", bytes.fromhex(doc["publicKey"]))
    assert not verify_signature_doc(doc, "line1\nline3")
    assert not verify_signature_doc({**doc, "signature": "00" * 64}, "line1\nline2")
    assert not verify_signature_doc(doc, "line1\nline2", b"\x01" * 32)


@pytest.mark.asyncio
async def test_export_files_unsigned(chain: AuditChain, tmp_path: Path) -> None:
    result = await chain.export_chain_files(tmp_path, base_name="case1")
    assert result.jsonl_path == tmp_path / "case1.jsonl"
    assert result.manifest_path == tmp_path / "case1.manifest.json"
    assert result.signature_path is None

    text = result.jsonl_path.read_text(encoding="utf-8")
    assert result.jsonl_hash == primitives.sha256_hex(text)
    manifest = loads(result.manifest_path.read_text(encoding="utf-8"))
    assert manifest["count"] == 3
    assert manifest["chainHead"] == result.chain_head
    assert manifest["timezone"] == "UTC"
    assert manifest["algorithms"]["hash"] == "SHA-256"

    report = await verify_evidence(result.jsonl_path)
    assert report.valid
    assert report.records_checked == 3
    assert report.manifest_valid is True
    assert report.signature_valid is None


@pytest.mark.asyncio
async def test_export_files_signed(chain: AuditChain, tmp_path: Path) -> None:
    result = await chain.export_chain_files(tmp_path, base_name="s", signing_seed=SEED)
    assert result.signature_path == tmp_path / "s.jsonl.sig"
    report = await verify_evidence(result.jsonl_path)
    assert report.valid
    assert report.signature_valid is True
    assert report.warnings == ["signature checked against embedded public key only"]


@pytest.mark.asyncio
@pytest.mark.security
async def test_tampered_export_is_detected(chain: AuditChain, tmp_path: Path) -> None:
    result = await chain.export_chain_files(tmp_path, base_name="t", signing_seed=SEED)
    text = result.jsonl_path.read_text(encoding="utf-8")
    result.jsonl_path.write_text(
        text.replace('"entry_added"', '"entry_viewed"'), encoding="utf-8"
    )

    report = await verify_evidence(result.jsonl_path)
    assert not report.valid
    assert report.broken_seqs == [2]
    kinds = {e.error_type for e in report.errors}
    assert {"hash_mismatch", "bad_signature"} <= kinds
    assert report.signature_valid is False


def test_manifest_mismatch_and_malformed_lines() -> None:
    report = verify_evidence_text("not json\n", {"count": 5, "chainHead": "x"})
    kinds = [e.error_type for e in report.errors]
    assert kinds == ["malformed_record", "manifest_count", "manifest_head"]
    assert report.manifest_valid is False
    assert not report.valid


@pytest.mark.asyncio
async def test_unreadable_sidecar_invalidates(chain: AuditChain, tmp_path: Path) -> None:
    result = await chain.export_chain_files(tmp_path, base_name="m")
    result.manifest_path.write_text("{broken", encoding="utf-8")
    report = await verify_evidence(result.jsonl_path)
    assert not report.valid
    assert report.manifest_valid is False
    assert "manifest is not valid JSON" in report.warnings


def test_sidecar_paths() -> None:
    manifest, signature = sidecar_paths(Path("/x/audit_1.jsonl"))
    assert manifest == Path("/x/audit_1.manifest.json")
    assert signature == Path("/x/audit_1.jsonl.sig")
