"""Tests for securejournal settings and environment overrides."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from securejournal import FileVaultStore, InMemoryVaultStore, Settings
from securejournal.core.settings import (
    DEFAULT_PBKDF2_ITERATIONS,
    CryptoSettings,
    StorageSettings,
    WipeSettings,
)


def test_defaults() -> None:
    settings = Settings()
    assert settings.crypto.pbkdf2_iterations == DEFAULT_PBKDF2_ITERATIONS == 100_000
    assert settings.crypto.min_passphrase_length == 12
    assert settings.core.verify_on_unlock is True
    assert settings.wipe.passes == 3
    assert settings.storage.backend == "file"


def test_env_overrides_nested_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECUREJOURNAL_WIPE__PASSES", "5")
    monkeypatch.setenv("SECUREJOURNAL_STORAGE__BACKEND", "memory")
    monkeypatch.setenv("SECUREJOURNAL_CRYPTO__PBKDF2_ITERATIONS", "2000")
    settings = Settings()
    assert settings.wipe.passes == 5
    assert settings.storage.backend == "memory"
    assert settings.crypto.pbkdf2_iterations == 2000


def test_rejects_weak_parameters() -> None:
    with pytest.raises(ValidationError):
        CryptoSettings(pbkdf2_iterations=10)
    with pytest.raises(ValidationError):
        CryptoSettings(min_passphrase_length=4)
    with pytest.raises(ValidationError):
        WipeSettings(passes=0)


def test_junk_range_must_be_ordered() -> None:
    with pytest.raises(ValidationError):
        WipeSettings(junk_min_bytes=64, junk_max_bytes=32)


def test_storage_directory_must_not_be_blank() -> None:
    with pytest.raises(ValidationError):
        StorageSettings(directory="   ")


def test_build_store_selects_backend(tmp_path) -> None:
    memory = Settings(storage=StorageSettings(backend="memory")).build_store()
    assert isinstance(memory, InMemoryVaultStore)

    file_store = Settings(
        storage=StorageSettings(backend="file", directory=str(tmp_path))
    ).build_store()
    assert isinstance(file_store, FileVaultStore)
    assert file_store.directory == tmp_path


def test_to_dict_contains_groups() -> None:
    data = Settings().to_dict()
    assert set(data) >= {"core", "crypto", "storage", "wipe", "export"}
