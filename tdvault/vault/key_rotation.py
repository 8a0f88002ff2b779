"""
Vault Key Rotation — Explicit re-key of the master passphrase.

Verifies the old passphrase, derives a new key under a fresh salt (and
optionally new KDF parameters), re-seals every secret under the new key with
a fresh nonce, and swaps the MasterState. Reads and writes run inside a
single store transaction: either every record moves to the new key or
nothing changes.

This is never triggered automatically; an operator has to ask for it.

Security Note:
    Plaintext exists in memory only during re-encryption of each row.
    Never log plaintext or ciphertext values.
"""
import logging

from ..exceptions import AuthFailure, CorruptOrTampered, MasterNotConfigured
from ..models import now_ms
from ..store import SecretStore
from .crypto import KdfParams, open_sealed, seal
from .master import MASTER_KEYS, MasterState
from .memory import BytesLike, SecretBytes

logger = logging.getLogger("tdvault.vault")


def rotate_master_key(
    store: SecretStore,
    old_passphrase: "SecretBytes | BytesLike",
    new_passphrase: "SecretBytes | BytesLike",
    params: KdfParams | None = None,
) -> dict:
    """Re-encrypt all secrets under a new master passphrase.

    Args:
        store: Record store of the vault to re-key.
        old_passphrase: Current master passphrase.
        new_passphrase: Replacement master passphrase.
        params: KDF parameters for the new master; defaults to the current
            master's parameters.

    Returns:
        Stats dict with keys: total, rotated.

    Raises:
        MasterNotConfigured: If the vault has no master.
        WrongPassphrase: If ``old_passphrase`` does not verify.
        CorruptOrTampered: If any record fails to open; nothing is changed.
    """
    stats = {"total": 0, "rotated": 0}

    with store.transaction():
        state = MasterState.from_settings(store.get_settings(list(MASTER_KEYS)))
        if state is None:
            raise MasterNotConfigured()

        with state.verify(old_passphrase) as old_key:
            new_state, new_key = MasterState.create(
                new_passphrase, params or state.kdf_params,
            )
            with new_key:
                records = store.records()
                logger.info(
                    "Starting master key rotation (%d secret(s))", len(records),
                )
                for record in records:
                    stats["total"] += 1
                    try:
                        opened = open_sealed(
                            old_key, record.secret_id, record.kind,
                            record.ciphertext, record.nonce,
                        )
                    except AuthFailure:
                        logger.error(
                            "Rotation aborted: secret_id=%s failed authentication",
                            record.secret_id,
                        )
                        raise CorruptOrTampered() from None
                    with opened:
                        ciphertext, nonce = seal(
                            new_key, record.secret_id, record.kind, opened,
                        )
                    store.update(record.model_copy(update={
                        "ciphertext": ciphertext,
                        "nonce": nonce,
                        "updated_at": max(now_ms(), record.updated_at + 1),
                    }))
                    stats["rotated"] += 1

        store.replace_master(new_state.to_settings())
        store.audit("rotate-master")

    logger.info("Master key rotation complete: %s", stats)
    return stats
