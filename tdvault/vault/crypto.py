"""
Vault Crypto Core — Key derivation and per-record authenticated encryption.

- Master key: Argon2id(passphrase, salt, KdfParams) → 32-byte key
- Record seal: 24-byte random nonce → HKDF(key, nonce[:16]) subkey →
  ChaCha20-Poly1305(subkey, 0x00000000 | nonce[16:]) with associated data

The seal construction follows XChaCha20-Poly1305: the first 16 nonce bytes
select a per-message subkey and the last 8 bytes become the inner nonce, so
192-bit nonces can be drawn at random on every call.

Security Note:
    Never log passphrases, keys, plaintext, ciphertext or nonces.
    Every integrity failure surfaces as a bare ``AuthFailure``.
"""
import os

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import AuthFailure, InvalidKdfParams
from .memory import SecretBytes

KEY_LENGTH = 32  # 256-bit key
SALT_SIZE = 16  # 128-bit salt
NONCE_SIZE = 24  # 192-bit extended nonce
TAG_SIZE = 16  # Poly1305 tag
_SUBKEY_NONCE_SPLIT = 16
_INNER_NONCE_PREFIX = b"\x00\x00\x00\x00"
_SUBKEY_INFO = b"tdvault-seal-v1"

MASTER_CHECK_AAD = b"master-check"

MAX_MEMORY_COST_KIB = 4 * 1024 * 1024  # 4 GiB


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

class KdfParams(BaseModel):
    """Argon2id cost parameters, persisted alongside the salt."""

    model_config = ConfigDict(frozen=True)

    memory_cost_kib: int = Field(default=19456, ge=8, le=MAX_MEMORY_COST_KIB)
    iterations: int = Field(default=3, ge=1, le=64)
    parallelism: int = Field(default=1, ge=1, le=64)

    @model_validator(mode="after")
    def validate_memory_per_lane(self) -> "KdfParams":
        """Argon2 requires at least 8 KiB of memory per lane."""
        if self.memory_cost_kib < 8 * self.parallelism:
            raise ValueError(
                f"memory_cost_kib must be at least 8 * parallelism "
                f"({8 * self.parallelism}), got {self.memory_cost_kib}"
            )
        return self

    @classmethod
    def build(cls, **values) -> "KdfParams":
        """Validate values, raising ``InvalidKdfParams`` on any problem."""
        try:
            return cls(**values)
        except ValidationError as err:
            raise InvalidKdfParams(
                f"Invalid KDF parameters: {err.error_count()} error(s)"
            ) from err


def generate_salt() -> bytes:
    """Generate a fresh random salt."""
    return os.urandom(SALT_SIZE)


def check_salt(salt: bytes) -> None:
    """Reject salts that are too short to be meaningful."""
    if not isinstance(salt, (bytes, bytearray)) or len(salt) < SALT_SIZE:
        raise InvalidKdfParams(
            f"salt must be at least {SALT_SIZE} bytes"
        )


def derive_key(
    passphrase: "SecretBytes | bytes | str",
    salt: bytes,
    params: KdfParams,
) -> SecretBytes:
    """Derive the 32-byte master key using Argon2id.

    Deterministic: the same passphrase, salt and params always produce the
    same key.

    Args:
        passphrase: Master passphrase.
        salt: Stored salt (at least 16 bytes).
        params: Stored Argon2id cost parameters.

    Returns:
        Derived key in a wipe-on-drop buffer.
    """
    check_salt(salt)
    secret = SecretBytes.coerce(passphrase)
    raw = hash_secret_raw(
        secret=bytes(secret),
        salt=bytes(salt),
        time_cost=params.iterations,
        memory_cost=params.memory_cost_kib,
        parallelism=params.parallelism,
        hash_len=KEY_LENGTH,
        type=Type.ID,
    )
    return SecretBytes(raw)


def _derive_subkey(key: SecretBytes, nonce_prefix: bytes) -> SecretBytes:
    """Derive a per-message subkey using HKDF-SHA256."""
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,
        info=_SUBKEY_INFO + nonce_prefix,
    )
    return SecretBytes(hkdf.derive(bytes(key)))


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def secret_aad(secret_id: str, kind: str) -> bytes:
    """Associated data binding a ciphertext to its record identity."""
    return f"{secret_id}:{kind}".encode("utf-8")


def seal_with_aad(key: SecretBytes, plaintext: bytes, aad: bytes) -> tuple[bytes, bytes]:
    """Encrypt ``plaintext`` under ``key`` with a fresh random nonce.

    Returns:
        Tuple of (ciphertext including tag, nonce).
    """
    if len(key) != KEY_LENGTH:
        raise ValueError(f"key must be {KEY_LENGTH} bytes")
    nonce = os.urandom(NONCE_SIZE)
    with _derive_subkey(key, nonce[:_SUBKEY_NONCE_SPLIT]) as subkey:
        cipher = ChaCha20Poly1305(bytes(subkey))
        ct = cipher.encrypt(
            _INNER_NONCE_PREFIX + nonce[_SUBKEY_NONCE_SPLIT:], bytes(plaintext), aad,
        )
    return ct, nonce


def open_with_aad(key: SecretBytes, ciphertext: bytes, nonce: bytes, aad: bytes) -> SecretBytes:
    """Decrypt and authenticate a sealed value.

    Raises:
        AuthFailure: On any integrity mismatch or malformed input.
    """
    if (
        len(key) != KEY_LENGTH
        or len(nonce) != NONCE_SIZE
        or len(ciphertext) < TAG_SIZE
    ):
        raise AuthFailure()
    nonce = bytes(nonce)
    with _derive_subkey(key, nonce[:_SUBKEY_NONCE_SPLIT]) as subkey:
        cipher = ChaCha20Poly1305(bytes(subkey))
        try:
            pt = cipher.decrypt(
                _INNER_NONCE_PREFIX + nonce[_SUBKEY_NONCE_SPLIT:], bytes(ciphertext), aad,
            )
        except InvalidTag:
            raise AuthFailure() from None
    return SecretBytes(pt)


def seal(
    key: SecretBytes, secret_id: str, kind: str, plaintext: "SecretBytes | bytes | str",
) -> tuple[bytes, bytes]:
    """Seal a secret's plaintext bound to (secret_id, kind).

    Args:
        key: Verified master key.
        secret_id: Record id, used as associated data.
        kind: Record kind, used as associated data.
        plaintext: Secret value.

    Returns:
        Tuple of (ciphertext, nonce).
    """
    buf = SecretBytes.coerce(plaintext)
    return seal_with_aad(key, bytes(buf), secret_aad(secret_id, kind))


def open_sealed(
    key: SecretBytes, secret_id: str, kind: str, ciphertext: bytes, nonce: bytes,
) -> SecretBytes:
    """Open a record sealed by :func:`seal`.

    Raises:
        AuthFailure: wrong key, nonce, associated data, or corrupted bytes.
    """
    return open_with_aad(key, ciphertext, nonce, secret_aad(secret_id, kind))
