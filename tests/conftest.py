"""Shared fixtures for the vault test-suite."""
import pytest

from tdvault.store import SecretStore
from tdvault.vault import KdfParams, SecretVault

MASTER = "correct-horse"


@pytest.fixture
def fast_kdf():
    """Cheap Argon2id parameters so tests stay fast."""
    return KdfParams(memory_cost_kib=1024, iterations=1, parallelism=1)


@pytest.fixture
def store():
    """Fresh in-memory record store."""
    with SecretStore() as s:
        yield s


@pytest.fixture
def vault(store, fast_kdf):
    """Vault with no master configured."""
    return SecretVault(store, kdf_params=fast_kdf)


@pytest.fixture
def configured_vault(vault):
    """Vault with the master passphrase set to ``MASTER``."""
    vault.set_master(MASTER)
    return vault
