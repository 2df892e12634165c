"""End-to-end journal flows over the file-backed store."""

from __future__ import annotations

from pathlib import Path

import pytest

from securejournal import FileVaultStore, InMemoryVaultStore, Settings, Vault
from securejournal.chain import verify_evidence
from securejournal.core.errors import VaultNotInitialized
from securejournal.core.serialization import dumps, loads
from securejournal.entries import verify_entry_hmac

pytestmark = pytest.mark.integration

PASSPHRASE = "correct-horse-battery"


@pytest.mark.asyncio
async def test_journal_scenario(fast_settings: Settings) -> None:
    vault = Vault(InMemoryVaultStore(), fast_settings)
    await vault.create(PASSPHRASE)
    entry = await vault.add_entry("hello vault")
    assert verify_entry_hmac(vault.keys.master_key, entry)

    await vault.lock()
    await vault.unlock(PASSPHRASE)
    assert await vault.view_entry(entry.id) == "hello vault"

    result = await vault.verify_chain()
    assert result.ok
    assert result.breaks == 0
    assert [d.seq for d in result.details] == list(range(1, len(result.details) + 1))
    await vault.close()


@pytest.mark.asyncio
async def test_create_write_reopen_read(tmp_path: Path, fast_settings: Settings) -> None:
    store = FileVaultStore(tmp_path / "vault")
    vault = Vault(store, fast_settings)
    await vault.create(PASSPHRASE)
    entry = await vault.add_entry("hello vault")
    await vault.lock()

    reopened = Vault(FileVaultStore(tmp_path / "vault"), fast_settings)
    await reopened.unlock(PASSPHRASE)
    assert [e.id for e in await reopened.list_entries()] == [entry.id]
    assert await reopened.view_entry(entry.id) == "hello vault"

    result = await reopened.verify_chain()
    assert result.ok
    events = [b.event for b in await reopened.chain.load_chain()]
    assert events == [
        "vault_created",
        "entry_added",
        "locked",
        "integrity_check",
        "unlocked",
        "entry_viewed",
        "chain_verified",
    ]
    await reopened.close()


@pytest.mark.asyncio
async def test_tampering_on_disk_is_detected(
    tmp_path: Path, fast_settings: Settings
) -> None:
    directory = tmp_path / "vault"
    vault = Vault(FileVaultStore(directory), fast_settings)
    await vault.create(PASSPHRASE)
    await vault.add_entry("first")
    await vault.add_entry("second")

    log_path = directory / "vault_tamper_log.json"
    log = loads(log_path.read_text(encoding="utf-8"))
    entry_added = next(item for item in log if item["seq"] == 2)
    entry_added["detail"] = "edited"
    log_path.write_text(dumps(log), encoding="utf-8")

    result = await vault.verify_chain()
    assert not result.ok
    assert result.broken_seqs == [2]
    # The verification is itself recorded on top of the broken chain.
    assert (await vault.chain.load_chain())[-1].event == "chain_verified"


@pytest.mark.asyncio
async def test_legacy_log_is_migrated_on_first_use(
    tmp_path: Path, fast_settings: Settings
) -> None:
    directory = tmp_path / "vault"
    vault = Vault(FileVaultStore(directory), fast_settings)
    await vault.create(PASSPHRASE)
    await vault.lock()

    legacy = [
        {"type": "unlock", "message": "ok", "timestamp": "2023-01-02T00:00:00Z"},
        {"type": "created", "timestamp": 1672531200000},
    ]
    (directory / "vault_tamper_log.json").write_text(dumps(legacy), encoding="utf-8")

    await vault.unlock(PASSPHRASE)
    blocks = await vault.chain.load_chain()
    assert [b.event for b in blocks][:2] == ["created", "unlock"]
    assert blocks[0].ts == "2023-01-01T00:00:00.000Z"
    assert blocks[0].raw == legacy[1]
    assert (await vault.verify_chain()).ok
    await vault.close()


@pytest.mark.asyncio
async def test_export_then_wipe(tmp_path: Path, fast_settings: Settings) -> None:
    directory = tmp_path / "vault"
    vault = Vault(FileVaultStore(directory), fast_settings)
    await vault.create(PASSPHRASE)
    await vault.add_entry("evidence before wipe")

    export = await vault.export_evidence(tmp_path / "exports", base_name="before")
    report = await verify_evidence(export.jsonl_path)
    assert report.valid
    assert report.records_checked == 2

    await vault.panic_wipe("CONFIRM")
    remaining = sorted(p.name for p in directory.iterdir())
    assert remaining == ["vault_tamper_log.json"]
    with pytest.raises(VaultNotInitialized):
        await vault.unlock(PASSPHRASE)

    # A new vault can be created in the same place after a wipe.
    fresh = Vault(FileVaultStore(directory), fast_settings)
    await fresh.create(PASSPHRASE)
    events = [b.event for b in await fresh.chain.load_chain()]
    assert events == ["vault_created"]
    await fresh.close()
