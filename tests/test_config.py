"""Tests for VaultConfig."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from tdvault.exceptions import InvalidKdfParams
from tdvault.vault import KdfParams, VaultConfig
from tdvault.vault.config import default_db_path

ENV_VARS = (
    "TDVAULT_DB_PATH",
    "TDVAULT_KDF_MEMORY_KIB",
    "TDVAULT_KDF_ITERATIONS",
    "TDVAULT_KDF_PARALLELISM",
    "TDVAULT_REVEAL_SECONDS",
    "TDVAULT_SSH_PATH",
    "TDVAULT_TERATERM_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestVaultConfig:
    """Tests for VaultConfig defaults and validation."""

    def test_defaults(self):
        config = VaultConfig()
        assert config.kdf == KdfParams()
        assert config.mask_token == "********"
        assert config.reveal_display_seconds == 30
        assert config.ssh_path == "ssh"
        assert config.db_path.name == "tdvault.db"

    def test_default_db_path_honours_xdg(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert default_db_path() == tmp_path / "tdvault" / "tdvault.db"

    @pytest.mark.parametrize("mask", ["", "   "])
    def test_blank_mask_rejected(self, mask):
        with pytest.raises(ValidationError):
            VaultConfig(mask_token=mask)

    @pytest.mark.parametrize("seconds", [0, 301])
    def test_reveal_seconds_range(self, seconds):
        with pytest.raises(ValidationError):
            VaultConfig(reveal_display_seconds=seconds)


class TestFromEnv:
    """Tests for VaultConfig.from_env()."""

    def test_empty_env(self):
        assert VaultConfig.from_env() == VaultConfig()

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TDVAULT_DB_PATH", str(tmp_path / "v.db"))
        monkeypatch.setenv("TDVAULT_KDF_MEMORY_KIB", "65536")
        monkeypatch.setenv("TDVAULT_KDF_ITERATIONS", "4")
        monkeypatch.setenv("TDVAULT_REVEAL_SECONDS", "10")
        monkeypatch.setenv("TDVAULT_SSH_PATH", "/usr/bin/ssh")
        monkeypatch.setenv("TDVAULT_TERATERM_PATH", "ttermpro")

        config = VaultConfig.from_env()
        assert config.db_path == Path(tmp_path / "v.db")
        assert config.kdf == KdfParams(memory_cost_kib=65536, iterations=4, parallelism=1)
        assert config.reveal_display_seconds == 10
        assert config.ssh_path == "/usr/bin/ssh"
        assert config.tera_term_path == "ttermpro"

    def test_bad_kdf_params(self, monkeypatch):
        monkeypatch.setenv("TDVAULT_KDF_MEMORY_KIB", "4")
        with pytest.raises(InvalidKdfParams):
            VaultConfig.from_env()

    def test_non_integer(self, monkeypatch):
        monkeypatch.setenv("TDVAULT_KDF_ITERATIONS", "three")
        with pytest.raises(ValueError, match="TDVAULT_KDF_ITERATIONS"):
            VaultConfig.from_env()

    def test_blank_values_ignored(self, monkeypatch):
        monkeypatch.setenv("TDVAULT_REVEAL_SECONDS", " ")
        monkeypatch.setenv("TDVAULT_SSH_PATH", "")
        assert VaultConfig.from_env() == VaultConfig()
