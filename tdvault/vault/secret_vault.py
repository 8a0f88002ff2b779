"""
SecretVault — Passphrase-gated encrypted secret storage.

Provides the public API of the credential vault:
- ``set_master(passphrase)`` — one-time master configuration
- ``add(passphrase, secret_id, kind, label, plaintext)`` — seal and persist
- ``update(passphrase, secret_id, plaintext, label)`` — re-seal with a new nonce
- ``list()`` / ``get_metadata(secret_id)`` — metadata only, no passphrase
- ``reveal(passphrase, secret_id)`` — the only path that returns plaintext
- ``delete(secret_id)`` — remove a record

The vault never stays unlocked: every plaintext operation re-derives and
re-verifies the master key, uses it, and wipes it before returning.

Security Note:
    Never log plaintext, passphrases, keys, ciphertext or nonces. Only log
    secret ids, kinds and operation names. ``reveal`` hands its result to the
    immediate caller only; treat it as a one-shot value.
"""
import logging
from typing import List

from ..exceptions import (
    AlreadyInitialized,
    AuthFailure,
    CorruptOrTampered,
    MasterNotConfigured,
    NotFound,
    VaultError,
)
from ..ids import generate_id, normalize_id, validate_id
from ..models import SecretMetadata, SecretRecord, now_ms
from ..store import SecretStore
from .config import VaultConfig
from .crypto import KdfParams, open_sealed, seal
from .master import MASTER_KEYS, MasterState
from .memory import BytesLike, SecretBytes

logger = logging.getLogger("tdvault.vault")

SECRET_ID_PREFIX = "s_"


class SecretVault:
    """Credential vault over a :class:`~tdvault.store.SecretStore`.

    States are ``Locked`` and ``Unlocked`` for the duration of one call;
    no key material is kept on the instance between calls.

    Args:
        store: Record store holding master rows and secret records.
        kdf_params: Argon2id parameters for a *new* master. An existing
            master always uses its stored parameters.
    """

    def __init__(self, store: SecretStore, kdf_params: KdfParams | None = None):
        self._store = store
        self._kdf_params = kdf_params or KdfParams()

    @classmethod
    def from_config(cls, config: VaultConfig | None = None) -> "SecretVault":
        """Open the vault described by ``config`` (or the environment)."""
        config = config or VaultConfig.from_env()
        return cls(SecretStore(config.db_path), kdf_params=config.kdf)

    @property
    def store(self) -> SecretStore:
        return self._store

    # ------------------------------------------------------------------
    # Master handling
    # ------------------------------------------------------------------

    def _load_master(self) -> MasterState | None:
        return MasterState.from_settings(self._store.get_settings(list(MASTER_KEYS)))

    def _require_master(self) -> MasterState:
        state = self._load_master()
        if state is None:
            raise MasterNotConfigured()
        return state

    def is_master_set(self) -> bool:
        """Metadata-only check; needs no passphrase."""
        return self._load_master() is not None

    def set_master(self, passphrase: "SecretBytes | BytesLike") -> None:
        """Configure the master passphrase. Allowed exactly once.

        Raises:
            AlreadyInitialized: If a master already exists.
        """
        with self._store.transaction():
            if self.is_master_set():
                raise AlreadyInitialized()
            state, key = MasterState.create(passphrase, self._kdf_params)
            key.wipe()
            self._store.insert_master(state.to_settings())
            self._store.audit("set-master")
        logger.info("Vault master passphrase configured")

    # ------------------------------------------------------------------
    # Secret operations
    # ------------------------------------------------------------------

    def add(
        self,
        passphrase: "SecretBytes | BytesLike",
        secret_id: str | None,
        kind: str,
        label: str,
        plaintext: "SecretBytes | BytesLike",
    ) -> str:
        """Seal and persist a new secret.

        Args:
            passphrase: Master passphrase.
            secret_id: Id for the record, or None to generate one.
            kind: Category tag (password, token, passphrase, ...).
            label: Free-text, non-secret description.
            plaintext: Secret value.

        Returns:
            The secret id.

        Raises:
            MasterNotConfigured, WrongPassphrase, InvalidSecretId, DuplicateId
        """
        state = self._require_master()
        if secret_id is None:
            secret_id = generate_id(SECRET_ID_PREFIX)
        else:
            secret_id = normalize_id(secret_id)
            validate_id(secret_id)
        if not kind or not kind.strip():
            raise ValueError("Secret kind cannot be empty")

        with state.verify(passphrase) as key:
            ciphertext, nonce = seal(key, secret_id, kind, plaintext)
        now = now_ms()
        record = SecretRecord(
            secret_id=secret_id,
            kind=kind,
            label=label,
            ciphertext=ciphertext,
            nonce=nonce,
            created_at=now,
            updated_at=now,
        )
        with self._store.transaction():
            self._store.insert(record)
            self._store.audit("add", secret_id)
        logger.debug("Vault add: secret_id=%s kind=%s", secret_id, kind)
        return secret_id

    def update(
        self,
        passphrase: "SecretBytes | BytesLike",
        secret_id: str,
        plaintext: "SecretBytes | BytesLike",
        label: str | None = None,
    ) -> SecretMetadata:
        """Replace a secret's value (and optionally its label).

        The value is re-sealed under a fresh nonce; ``kind`` and
        ``created_at`` are kept.

        Raises:
            MasterNotConfigured, WrongPassphrase, NotFound
        """
        secret_id = normalize_id(secret_id)
        state = self._require_master()
        current = self._store.get(secret_id)
        if current is None:
            raise NotFound(secret_id)
        with state.verify(passphrase) as key:
            ciphertext, nonce = seal(key, current.secret_id, current.kind, plaintext)
        record = current.model_copy(update={
            "label": current.label if label is None else label,
            "ciphertext": ciphertext,
            "nonce": nonce,
            "updated_at": max(now_ms(), current.updated_at + 1),
        })
        with self._store.transaction():
            if not self._store.update(record):
                raise NotFound(secret_id)
            self._store.audit("update", secret_id)
        logger.debug("Vault update: secret_id=%s", secret_id)
        return record.metadata()

    def get_metadata(self, secret_id: str) -> SecretMetadata:
        """Metadata for one secret; needs no passphrase.

        Raises:
            NotFound: If the id is unknown.
        """
        secret_id = normalize_id(secret_id)
        record = self._store.get(secret_id)
        if record is None:
            raise NotFound(secret_id)
        return record.metadata()

    def reveal(self, passphrase: "SecretBytes | BytesLike", secret_id: str) -> str:
        """Decrypt and return a secret's value.

        This is the only operation that returns plaintext. The result goes to
        the caller only; do not log, retain, or redisplay it.

        Raises:
            MasterNotConfigured: If no master is set (checked first).
            NotFound: If the id is unknown.
            WrongPassphrase: If the passphrase does not verify.
            CorruptOrTampered: If the record fails authentication.
        """
        secret_id = normalize_id(secret_id)
        state = self._require_master()
        record = self._store.get(secret_id)
        if record is None:
            raise NotFound(secret_id)
        try:
            with state.verify(passphrase) as key:
                try:
                    opened = open_sealed(
                        key, record.secret_id, record.kind,
                        record.ciphertext, record.nonce,
                    )
                except AuthFailure:
                    raise CorruptOrTampered() from None
            with opened:
                try:
                    value = opened.decode("utf-8")
                except UnicodeDecodeError:
                    raise CorruptOrTampered() from None
        except VaultError:
            self._store.audit("reveal", secret_id, ok=False)
            logger.warning("Vault reveal rejected: secret_id=%s", secret_id)
            raise
        self._store.audit("reveal", secret_id)
        logger.debug("Vault reveal: secret_id=%s", secret_id)
        return value

    def delete(self, secret_id: str) -> None:
        """Remove a secret.

        A second delete of the same id raises ``NotFound``; callers should
        read that as "already gone".

        Raises:
            NotFound: If no record was removed.
        """
        secret_id = normalize_id(secret_id)
        with self._store.transaction():
            if not self._store.delete(secret_id):
                raise NotFound(secret_id)
            self._store.audit("delete", secret_id)
        logger.debug("Vault delete: secret_id=%s", secret_id)

    def list(self) -> List[SecretMetadata]:
        """Metadata for every secret; never ciphertext or plaintext.

        Safe to call on a locked vault.
        """
        return self._store.list()
