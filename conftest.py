"""
Root pytest configuration.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator

import pytest

from securejournal import InMemoryVaultStore, Settings, Vault
from securejournal.core import diagnostics
from securejournal.core.settings import CoreSettings, CryptoSettings, WipeSettings

PASSPHRASE = "correct-horse-battery"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "security: Security-critical tests (key handling, integrity, wipe)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests touching the filesystem or spanning components",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def quiet_diagnostics() -> Generator[None, None, None]:
    """Keep library diagnostics out of test output and reset the logger."""
    diagnostics.configure(enabled=False)
    diagnostics.set_logger(None)
    yield
    diagnostics.configure(enabled=False)
    diagnostics.set_logger(None)


@pytest.fixture
def passphrase() -> str:
    return PASSPHRASE


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with minimum KDF cost and no wipe delays."""
    return Settings(
        core=CoreSettings(internal_logging_enabled=False),
        crypto=CryptoSettings(pbkdf2_iterations=1000),
        wipe=WipeSettings(passes=3, pass_delay_seconds=0.0),
    )


@pytest.fixture
def memory_store() -> InMemoryVaultStore:
    return InMemoryVaultStore()


@pytest.fixture
async def vault(
    memory_store: InMemoryVaultStore, fast_settings: Settings
) -> AsyncGenerator[Vault, None]:
    """A freshly created, unlocked vault over an in-memory store."""
    v = Vault(memory_store, fast_settings)
    await v.create(PASSPHRASE)
    yield v
    await v.close()
