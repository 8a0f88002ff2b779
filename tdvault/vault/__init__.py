"""Secret Vault — Passphrase-protected credential storage.

Security Note (Threat Model):
    Secrets are encrypted at rest under a key derived from the operator's
    master passphrase with Argon2id; the key is never persisted. A
    decrypted value exists in process memory while the caller uses it.
    Buffers for passphrases, keys and plaintext are wiped best-effort, but
    the interpreter may hold copies that cannot be scrubbed. This is an
    accepted limitation; HSM/secure-enclave integration is out of scope.
"""

from .secret_vault import SecretVault
from .key_rotation import rotate_master_key
from .master import MasterState
from .crypto import KdfParams, derive_key, seal, open_sealed
from .config import VaultConfig
from .memory import SecretBytes

__all__ = [
    "SecretVault",
    "rotate_master_key",
    "MasterState",
    "KdfParams",
    "derive_key",
    "seal",
    "open_sealed",
    "VaultConfig",
    "SecretBytes",
]
