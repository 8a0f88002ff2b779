"""
Vault Configuration — Validated settings for the credential vault.

Reads optional overrides from environment variables:
    TDVAULT_DB_PATH          = <path to sqlite database>
    TDVAULT_KDF_MEMORY_KIB   = <Argon2id memory cost in KiB>
    TDVAULT_KDF_ITERATIONS   = <Argon2id iterations>
    TDVAULT_KDF_PARALLELISM  = <Argon2id lanes>
    TDVAULT_REVEAL_SECONDS   = <seconds a revealed value may stay on screen>
    TDVAULT_SSH_PATH         = <ssh client executable>
    TDVAULT_TERATERM_PATH    = <Tera Term executable>

Security Note:
    Configuration holds no secret material. KDF parameters are only the
    defaults for a new master; an existing master keeps its stored params.
"""
import os
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .crypto import KdfParams

logger = logging.getLogger("tdvault.vault")

DEFAULT_MASK_TOKEN = "********"
DEFAULT_TERA_TERM_PATH = "C:/Program Files (x86)/teraterm/ttermpro.exe"


def default_db_path() -> Path:
    """Default database location under the user's data directory."""
    base = os.environ.get("XDG_DATA_HOME") or os.path.join(
        os.path.expanduser("~"), ".local", "share",
    )
    return Path(base) / "tdvault" / "tdvault.db"


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    db_path: Path = Field(default_factory=default_db_path)
    kdf: KdfParams = Field(default_factory=KdfParams)
    mask_token: str = Field(default=DEFAULT_MASK_TOKEN, min_length=1)
    reveal_display_seconds: int = Field(default=30, ge=1, le=300)
    ssh_path: str = Field(default="ssh")
    tera_term_path: str = Field(default=DEFAULT_TERA_TERM_PATH)

    @field_validator("mask_token")
    @classmethod
    def validate_mask(cls, v: str) -> str:
        """Reject blank masks."""
        if not v.strip():
            raise ValueError("mask_token cannot be blank")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.

        Raises:
            InvalidKdfParams: If the KDF overrides are out of range.
        """
        values: dict = {}
        db_path = os.environ.get("TDVAULT_DB_PATH")
        if db_path:
            values["db_path"] = Path(db_path)

        kdf_overrides = {
            field: value
            for field, value in (
                ("memory_cost_kib", _env_int("TDVAULT_KDF_MEMORY_KIB")),
                ("iterations", _env_int("TDVAULT_KDF_ITERATIONS")),
                ("parallelism", _env_int("TDVAULT_KDF_PARALLELISM")),
            )
            if value is not None
        }
        if kdf_overrides:
            values["kdf"] = KdfParams.build(**kdf_overrides)

        reveal = _env_int("TDVAULT_REVEAL_SECONDS")
        if reveal is not None:
            values["reveal_display_seconds"] = reveal
        if os.environ.get("TDVAULT_SSH_PATH"):
            values["ssh_path"] = os.environ["TDVAULT_SSH_PATH"]
        if os.environ.get("TDVAULT_TERATERM_PATH"):
            values["tera_term_path"] = os.environ["TDVAULT_TERATERM_PATH"]

        config = cls(**values)
        logger.debug(
            "Vault config loaded: db=%s kdf=%s", config.db_path, config.kdf.model_dump(),
        )
        return config


__all__ = [
    "VaultConfig",
    "default_db_path",
]
