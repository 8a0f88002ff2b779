"""
Vault Exceptions — Error taxonomy for the credential vault.

Every error here is local and synchronous; the vault never retries on its own.

Security Note:
    No exception carries passphrases, key material, ciphertext or plaintext.
    Only secret ids, kinds and operation names may appear in messages.
    Wrong-passphrase and tampered-data failures share one message so that a
    caller cannot use the vault as a decryption oracle.
"""

_AUTH_FAILED_MESSAGE = (
    "Unable to unlock: wrong master passphrase or corrupted secret data"
)


class VaultError(Exception):
    """Base class for all vault errors."""

    message: str = "Vault error"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class AlreadyInitialized(VaultError):
    """A master passphrase is already configured for this vault."""

    message = "Master passphrase is already set; use an explicit re-key instead"


class MasterNotConfigured(VaultError):
    """A secret operation was attempted before a master passphrase was set."""

    message = "Master passphrase is not configured"


class AuthenticationFailed(VaultError):
    """Common parent for every integrity/passphrase failure."""

    message = _AUTH_FAILED_MESSAGE

    def __init__(self):
        super().__init__(_AUTH_FAILED_MESSAGE)


class WrongPassphrase(AuthenticationFailed):
    """The supplied master passphrase did not open the verification token."""


class CorruptOrTampered(AuthenticationFailed):
    """A stored record failed authentication under a verified key."""


class AuthFailure(Exception):
    """Cipher-level integrity failure.

    Raised by ``open_sealed`` for any mismatch (key, nonce, associated data,
    or bytes) with no further detail.
    """

    def __init__(self):
        super().__init__("authentication failed")


class NotFound(VaultError, KeyError):
    """Unknown secret id."""

    def __init__(self, secret_id: str):
        self.secret_id = secret_id
        super().__init__(f"Secret not found: {secret_id}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.message


class DuplicateId(VaultError):
    """The record store rejected an insert because the id already exists."""

    def __init__(self, secret_id: str):
        self.secret_id = secret_id
        super().__init__(f"Secret id already exists: {secret_id}")


class InvalidSecretId(VaultError, ValueError):
    """Secret id failed identifier validation."""

    def __init__(self, secret_id: str, reason: str):
        self.secret_id = secret_id
        self.reason = reason
        super().__init__(f"Invalid secret id {secret_id!r}: {reason}")


class InvalidKdfParams(VaultError, ValueError):
    """KDF parameters or salt are outside the accepted range."""


class CommandFailed(VaultError):
    """A spawned client process failed.

    ``command`` holds the masked preview of the argument list, never the raw
    argument list.
    """

    def __init__(self, command: str, reason: str, returncode: int | None = None):
        self.command = command
        self.reason = reason
        self.returncode = returncode
        super().__init__(f"Command failed ({reason}): {command}")
