"""
MasterState — Non-secret bookkeeping to verify a master passphrase.

Holds the salt, the Argon2id cost parameters and a verification token: a
known constant sealed under the derived key with associated data
``b"master-check"``. Opening the token proves the passphrase is right
without decrypting any real secret.

Persisted as three rows of the global settings scope:
    master_salt        = <base64 salt>
    master_kdf_params  = <JSON KdfParams>
    master_check       = <JSON {"nonce": <base64>, "ciphertext": <base64>}>

Security Note:
    Losing the passphrase makes every secret unrecoverable; there is no
    reset path. Only the explicit re-key flow may replace a MasterState.
"""
import base64
import binascii
import hmac
import logging
from typing import Mapping

import orjson
from pydantic import BaseModel, ConfigDict, ValidationError

from ..exceptions import AuthFailure, CorruptOrTampered, WrongPassphrase
from .crypto import (
    MASTER_CHECK_AAD,
    KdfParams,
    check_salt,
    derive_key,
    generate_salt,
    open_with_aad,
    seal_with_aad,
)
from .memory import SecretBytes

logger = logging.getLogger("tdvault.vault")

KEY_SALT = "master_salt"
KEY_KDF_PARAMS = "master_kdf_params"
KEY_CHECK = "master_check"
MASTER_KEYS = (KEY_SALT, KEY_KDF_PARAMS, KEY_CHECK)

_CHECK_CONSTANT = b"tdvault-master-check-v1"


class MasterState(BaseModel):
    """Immutable master bookkeeping for one vault."""

    model_config = ConfigDict(frozen=True)

    salt: bytes
    kdf_params: KdfParams
    check_nonce: bytes
    check_ciphertext: bytes

    def __repr__(self) -> str:
        return f"MasterState(kdf_params={self.kdf_params!r})"

    @classmethod
    def create(
        cls,
        passphrase: "SecretBytes | bytes | str",
        params: KdfParams | None = None,
    ) -> tuple["MasterState", SecretBytes]:
        """Build a new MasterState with a fresh salt.

        Args:
            passphrase: The new master passphrase.
            params: KDF cost parameters; defaults to ``KdfParams()``.

        Returns:
            Tuple of (state, derived key). The caller owns the key and
            should wipe it when done.
        """
        params = params or KdfParams()
        salt = generate_salt()
        check_salt(salt)
        key = derive_key(passphrase, salt, params)
        ciphertext, nonce = seal_with_aad(key, _CHECK_CONSTANT, MASTER_CHECK_AAD)
        state = cls(
            salt=salt,
            kdf_params=params,
            check_nonce=nonce,
            check_ciphertext=ciphertext,
        )
        return state, key

    def verify(self, passphrase: "SecretBytes | bytes | str") -> SecretBytes:
        """Derive the key and check it against the verification token.

        Returns:
            The verified key.

        Raises:
            WrongPassphrase: For any failure to open the token.
        """
        key = derive_key(passphrase, self.salt, self.kdf_params)
        try:
            with open_with_aad(
                key, self.check_ciphertext, self.check_nonce, MASTER_CHECK_AAD,
            ) as opened:
                matches = hmac.compare_digest(bytes(opened), _CHECK_CONSTANT)
        except AuthFailure:
            matches = False
        if not matches:
            key.wipe()
            raise WrongPassphrase()
        return key

    # ------------------------------------------------------------------
    # Settings serialization
    # ------------------------------------------------------------------

    def to_settings(self) -> dict[str, str]:
        """Encode as settings-table rows."""
        check = {
            "nonce": base64.b64encode(self.check_nonce).decode("ascii"),
            "ciphertext": base64.b64encode(self.check_ciphertext).decode("ascii"),
        }
        return {
            KEY_SALT: base64.b64encode(self.salt).decode("ascii"),
            KEY_KDF_PARAMS: orjson.dumps(self.kdf_params.model_dump()).decode("utf-8"),
            KEY_CHECK: orjson.dumps(check).decode("utf-8"),
        }

    @classmethod
    def from_settings(cls, rows: Mapping[str, str]) -> "MasterState | None":
        """Decode settings-table rows.

        Returns:
            The state, or None if any of the master rows is missing.

        Raises:
            CorruptOrTampered: If the rows are present but malformed.
        """
        if any(key not in rows for key in MASTER_KEYS):
            return None
        try:
            salt = base64.b64decode(rows[KEY_SALT], validate=True)
            params = KdfParams(**orjson.loads(rows[KEY_KDF_PARAMS]))
            check = orjson.loads(rows[KEY_CHECK])
            state = cls(
                salt=salt,
                kdf_params=params,
                check_nonce=base64.b64decode(check["nonce"], validate=True),
                check_ciphertext=base64.b64decode(check["ciphertext"], validate=True),
            )
            check_salt(state.salt)
        except (
            binascii.Error, orjson.JSONDecodeError, ValidationError,
            KeyError, TypeError, ValueError,
        ):
            logger.error("Stored master state is malformed")
            raise CorruptOrTampered() from None
        return state
