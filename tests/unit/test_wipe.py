"""Tests for the panic wipe coordinator."""

from __future__ import annotations

import pytest

from securejournal import Settings, Vault
from securejournal.core.errors import (
    PanicWipeIncomplete,
    VaultLocked,
    VaultNotInitialized,
    WipeNotConfirmed,
)
from securejournal.core.serialization import dumps, loads
from securejournal.storage import (
    KEY_ENTRIES,
    KEY_MATERIAL_KEYS,
    KEY_META,
    KEY_SALT,
    KEY_TAMPER_LOG,
    InMemoryVaultStore,
)


class RecordingStore(InMemoryVaultStore):
    """Keeps every value ever written to the entry key."""

    def __init__(self) -> None:
        super().__init__()
        self.entry_history: list[str] = []

    async def set(self, key: str, value: str) -> None:
        if key == KEY_ENTRIES:
            self.entry_history.append(value)
        await super().set(key, value)


class StickyStore(InMemoryVaultStore):
    """Refuses to delete the salt, leaving residue behind."""

    async def delete(self, key: str) -> None:
        if key == KEY_SALT:
            return
        await super().delete(key)


async def _vault_with_entries(store, settings: Settings, passphrase: str) -> Vault:
    vault = Vault(store, settings)
    await vault.create(passphrase)
    await vault.add_entry("first")
    await vault.add_entry("second")
    return vault


@pytest.mark.asyncio
@pytest.mark.security
async def test_wipe_removes_everything(fast_settings: Settings, passphrase: str) -> None:
    store = RecordingStore()
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    vault = Vault(store, fast_settings, sleep=fake_sleep)
    await vault.create(passphrase)
    entry = await vault.add_entry("to be destroyed")

    report = await vault.panic_wipe("CONFIRM")
    assert report.complete
    assert report.passes == 3
    assert report.entries_overwritten == 1
    assert len(sleeps) == 2

    data = store.snapshot()
    for key in (*KEY_MATERIAL_KEYS, KEY_ENTRIES, KEY_META):
        assert key not in data
    assert not vault.is_unlocked

    # Each pass replaced the ciphertext with junk under the same id.
    passes = [loads(v) for v in store.entry_history[-3:]]
    ciphertexts = {p[0]["ciphertext"] for p in passes}
    assert len(ciphertexts) == 3
    assert all(p[0]["id"] == entry.id for p in passes)
    assert entry.ciphertext not in ciphertexts
    for p in passes:
        junk = p[0]["ciphertext"]
        assert 64 <= len(junk) <= 320
        assert p[0]["hmac"] == junk
        assert p[0]["iv"] == junk[:32]

    with pytest.raises(VaultNotInitialized):
        await vault.unlock(passphrase)


@pytest.mark.asyncio
async def test_wipe_leaves_single_outcome_block(
    fast_settings: Settings, passphrase: str
) -> None:
    store = InMemoryVaultStore()
    vault = await _vault_with_entries(store, fast_settings, passphrase)
    await vault.panic_wipe("CONFIRM")

    log = loads(store.snapshot()[KEY_TAMPER_LOG])
    assert len(log) == 1
    assert log[0]["event"] == "panic_wipe_completed"
    assert log[0]["detail"] == "3 passes, 2 entries"
    assert log[0]["seq"] == 1
    assert log[0]["prevHash"] is None
    assert (await vault.verify_chain()).ok


@pytest.mark.asyncio
async def test_wipe_works_while_locked(fast_settings: Settings, passphrase: str) -> None:
    store = InMemoryVaultStore()
    vault = await _vault_with_entries(store, fast_settings, passphrase)
    await vault.lock()
    report = await vault.panic_wipe("CONFIRM")
    assert report.entries_overwritten == 2
    assert await vault.list_entries() == []


@pytest.mark.asyncio
async def test_wipe_requires_confirmation(vault: Vault) -> None:
    with pytest.raises(WipeNotConfirmed):
        await vault.panic_wipe("confirm")
    assert vault.is_unlocked
    assert len(await vault.list_entries()) == 0
    assert await vault.is_initialized()


@pytest.mark.asyncio
@pytest.mark.security
async def test_residue_is_reported(fast_settings: Settings, passphrase: str) -> None:
    store = StickyStore()
    vault = await _vault_with_entries(store, fast_settings, passphrase)

    with pytest.raises(PanicWipeIncomplete) as exc_info:
        await vault.panic_wipe("CONFIRM")
    assert exc_info.value.context.extra["residue"] == [KEY_SALT]

    log = loads(store.snapshot()[KEY_TAMPER_LOG])
    assert log[0]["event"] == "panic_wipe_failed"
    assert log[0]["detail"] == "residue: vault_salt"
    with pytest.raises(VaultLocked):
        await vault.add_entry("after wipe")


@pytest.mark.asyncio
async def test_wipe_on_empty_vault(fast_settings: Settings) -> None:
    store = InMemoryVaultStore({KEY_ENTRIES: dumps([])})
    vault = Vault(store, fast_settings)
    report = await vault.panic_wipe("CONFIRM")
    assert report.entries_overwritten == 0
    assert report.complete


@pytest.mark.asyncio
@pytest.mark.security
async def test_wipe_destroys_unreadable_entry_store(
    fast_settings: Settings, passphrase: str
) -> None:
    store = InMemoryVaultStore()
    vault = await _vault_with_entries(store, fast_settings, passphrase)
    await store.set(KEY_ENTRIES, dumps({"not": "a list"}))

    report = await vault.panic_wipe("CONFIRM")
    assert report.complete
    assert report.entries_overwritten == 0
    assert KEY_ENTRIES not in store.snapshot()
