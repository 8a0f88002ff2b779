"""Secret record models shared by the vault and the record store."""
import time

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current UTC time in integer milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class SecretMetadata(BaseModel):
    """Non-secret view of a stored secret; safe to display and serialize."""

    model_config = ConfigDict(frozen=True)

    secret_id: str
    kind: str
    label: str
    created_at: int
    updated_at: int


class SecretRecord(SecretMetadata):
    """A full secret row as persisted by the record store.

    ``ciphertext`` and ``nonce`` are kept out of ``repr`` and out of
    :meth:`metadata`.
    """

    ciphertext: bytes = Field(repr=False)
    nonce: bytes = Field(repr=False)

    def metadata(self) -> SecretMetadata:
        return SecretMetadata(
            secret_id=self.secret_id,
            kind=self.kind,
            label=self.label,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class AuditEntry(BaseModel):
    """One row of the vault audit trail."""

    model_config = ConfigDict(frozen=True)

    id: int
    ts: int
    op: str
    secret_id: str | None = None
    ok: bool
