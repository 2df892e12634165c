"""
Configuration models for securejournal using Pydantic v2 Settings.

Settings are grouped by concern and can be overridden from the environment
with the ``SECUREJOURNAL_`` prefix and ``__`` as the nested delimiter, e.g.
``SECUREJOURNAL_WIPE__PASSES=5``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

if TYPE_CHECKING:  # pragma: no cover
    from ..storage.base import VaultStore

LATEST_CONFIG_SCHEMA_VERSION = "1.0"

DEFAULT_PBKDF2_ITERATIONS = 100_000
MAX_PBKDF2_ITERATIONS = 10_000_000
MIN_PASSPHRASE_LENGTH = 12


class CoreSettings(BaseModel):
    """Session behaviour and internal diagnostics."""

    verify_on_unlock: bool = Field(
        default=True,
        description="Run an HMAC sweep over all entries right after unlock",
    )
    # Structured internal diagnostics for non-fatal errors (storage/migration/wipe)
    internal_logging_enabled: bool = Field(
        default=True, description="Emit structured diagnostics via fapilog"
    )


class CryptoSettings(BaseModel):
    """Key derivation parameters used when a vault is created."""

    pbkdf2_iterations: int = Field(
        default=DEFAULT_PBKDF2_ITERATIONS,
        ge=1000,
        le=MAX_PBKDF2_ITERATIONS,
        description="PBKDF2-SHA256 iterations for new vaults",
    )
    min_passphrase_length: int = Field(
        default=MIN_PASSPHRASE_LENGTH,
        ge=MIN_PASSPHRASE_LENGTH,
        description="Minimum passphrase length accepted at creation",
    )


class StorageSettings(BaseModel):
    backend: Literal["file", "memory"] = Field(default="file")
    directory: str = Field(
        default=".securejournal",
        description="Directory holding one JSON file per storage key",
    )

    @field_validator("directory")
    @classmethod
    def _ensure_directory_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("storage directory must not be empty")
        return value


class WipeSettings(BaseModel):
    """Multi-pass overwrite parameters for the panic wipe."""

    passes: int = Field(default=3, ge=1)
    pass_delay_seconds: float = Field(
        default=0.15,
        ge=0.0,
        description="Pause between overwrite passes",
    )
    junk_min_bytes: int = Field(default=32, ge=16)
    junk_max_bytes: int = Field(default=160, ge=16)

    @model_validator(mode="after")
    def _check_junk_range(self) -> WipeSettings:
        if self.junk_min_bytes > self.junk_max_bytes:
            raise ValueError("junk_min_bytes must not exceed junk_max_bytes")
        return self


class ExportSettings(BaseModel):
    directory: str = Field(default="exports")
    signing_key_env: str = Field(
        default="SECUREJOURNAL_AUDIT_SIGNING_KEY",
        description="Environment variable holding an Ed25519 seed (base64url or raw)",
    )


class Settings(BaseSettings):
    """Top-level configuration model."""

    schema_version: str = Field(default=LATEST_CONFIG_SCHEMA_VERSION)

    core: CoreSettings = Field(default_factory=CoreSettings)
    crypto: CryptoSettings = Field(default_factory=CryptoSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    wipe: WipeSettings = Field(default_factory=WipeSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)

    model_config = SettingsConfigDict(
        env_prefix="SECUREJOURNAL_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    def build_store(self) -> VaultStore:
        """Return the storage backend selected by ``storage.backend``."""
        if self.storage.backend == "memory":
            from ..storage.memory import InMemoryVaultStore

            return InMemoryVaultStore()
        from ..storage.file import FileVaultStore

        return FileVaultStore(self.storage.directory)

    def to_dict(self) -> dict[str, object]:
        from typing import cast

        return cast(
            dict[str, object],
            self.model_dump(by_alias=True, exclude_none=True),
        )
