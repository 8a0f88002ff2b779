"""
SecretStore — sqlite3 row store for secret records and master bookkeeping.

Provides the persistence contract the vault relies on:
- ``insert`` / ``get`` / ``list`` / ``update`` / ``delete`` keyed by secret_id
- the master rows in the ``settings`` table (``insert_master`` is atomic and
  refuses to overwrite)
- an append-only audit trail of vault operations

The store is the only serialization point between concurrent callers: a
duplicate ``secret_id`` insert is rejected by the primary key, and the master
rows are inserted inside one ``BEGIN IMMEDIATE`` transaction.

Security Note:
    The store never sees plaintext. Never log ciphertext or nonce values.
"""
import os
import stat
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Mapping, Union

from .exceptions import AlreadyInitialized, DuplicateId
from .models import AuditEntry, SecretMetadata, SecretRecord, now_ms

logger = logging.getLogger("tdvault.store")

SCHEMA_VERSION = 1
GLOBAL_SCOPE = "global"

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
CREATE TABLE IF NOT EXISTS settings (
    scope TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (scope, key)
);

CREATE TABLE IF NOT EXISTS secrets (
    secret_id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    label TEXT NOT NULL,
    ciphertext BLOB NOT NULL,
    nonce BLOB NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS secret_audit (
    id INTEGER PRIMARY KEY,
    ts INTEGER NOT NULL,
    op TEXT NOT NULL,
    secret_id TEXT,
    ok INTEGER NOT NULL
);
"""

_SELECT_SETTING = """
SELECT value FROM settings WHERE scope = ? AND key = ?
"""

_INSERT_SETTING = """
INSERT INTO settings (scope, key, value) VALUES (?, ?, ?)
"""

_UPSERT_SETTING = """
INSERT INTO settings (scope, key, value) VALUES (?, ?, ?)
ON CONFLICT (scope, key) DO UPDATE SET value = excluded.value
"""

_INSERT_SECRET = """
INSERT INTO secrets (secret_id, kind, label, ciphertext, nonce, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_UPDATE_SECRET = """
UPDATE secrets
SET label = ?, ciphertext = ?, nonce = ?, updated_at = ?
WHERE secret_id = ?
"""

_SELECT_SECRET = """
SELECT secret_id, kind, label, ciphertext, nonce, created_at, updated_at
FROM secrets
WHERE secret_id = ?
"""

_SELECT_ALL_SECRETS = """
SELECT secret_id, kind, label, ciphertext, nonce, created_at, updated_at
FROM secrets
ORDER BY created_at ASC, secret_id ASC
"""

_SELECT_METADATA = """
SELECT secret_id, kind, label, created_at, updated_at
FROM secrets
ORDER BY created_at ASC, secret_id ASC
"""

_DELETE_SECRET = """
DELETE FROM secrets WHERE secret_id = ?
"""

_INSERT_AUDIT = """
INSERT INTO secret_audit (ts, op, secret_id, ok) VALUES (?, ?, ?, ?)
"""

_SELECT_AUDIT = """
SELECT id, ts, op, secret_id, ok FROM secret_audit ORDER BY id ASC
"""


class SecretStore:
    """sqlite3-backed record store.

    Args:
        path: Database file, or ``":memory:"`` for a private in-memory store.
        migrate: Create/upgrade the schema on open.
    """

    def __init__(self, path: Union[str, Path] = ":memory:", migrate: bool = True):
        self._path = str(path)
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        # autocommit mode; transactions are explicit, see transaction()
        self._conn = sqlite3.connect(self._path, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        if migrate:
            self.migrate()
        if self._path != ":memory:":
            self._set_file_permissions()

    def _set_file_permissions(self) -> None:
        """Restrict the database file to its owner (0600) where supported."""
        try:
            os.chmod(self._path, stat.S_IRUSR | stat.S_IWUSR)
        except OSError as err:
            logger.warning(
                "Could not restrict permissions on %s: %s", self._path, err,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def migrate(self) -> None:
        """Apply schema migrations tracked by ``PRAGMA user_version``."""
        current = self._conn.execute("PRAGMA user_version").fetchone()[0]
        if current < 1:
            logger.info("Applying secret store schema v1")
            with self.transaction():
                for statement in _SCHEMA_V1.split(";"):
                    if statement.strip():
                        self._conn.execute(statement)
                self._conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

    @contextmanager
    def transaction(self) -> Iterator["SecretStore"]:
        """Run the enclosed store calls in one ``BEGIN IMMEDIATE`` transaction.

        Nested use joins the outer transaction.
        """
        if self._conn.in_transaction:
            yield self
            return
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self
        except BaseException:
            self._conn.rollback()
            raise
        else:
            self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SecretStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Settings / master rows
    # ------------------------------------------------------------------

    def get_setting(self, key: str, scope: str = GLOBAL_SCOPE) -> str | None:
        row = self._conn.execute(_SELECT_SETTING, (scope, key)).fetchone()
        return row["value"] if row is not None else None

    def get_settings(self, keys: list[str], scope: str = GLOBAL_SCOPE) -> dict[str, str]:
        """Return the subset of ``keys`` that are present."""
        values = {}
        for key in keys:
            value = self.get_setting(key, scope)
            if value is not None:
                values[key] = value
        return values

    def set_setting(self, key: str, value: str, scope: str = GLOBAL_SCOPE) -> None:
        self._conn.execute(_UPSERT_SETTING, (scope, key, value))

    def insert_master(self, rows: Mapping[str, str]) -> None:
        """Insert the master rows, refusing to overwrite any existing one.

        Raises:
            AlreadyInitialized: If any of the rows already exists.
        """
        try:
            with self.transaction():
                for key, value in rows.items():
                    self._conn.execute(_INSERT_SETTING, (GLOBAL_SCOPE, key, value))
        except sqlite3.IntegrityError:
            raise AlreadyInitialized() from None

    def replace_master(self, rows: Mapping[str, str]) -> None:
        """Overwrite the master rows. Only the re-key flow calls this."""
        with self.transaction():
            for key, value in rows.items():
                self.set_setting(key, value)

    # ------------------------------------------------------------------
    # Secret records
    # ------------------------------------------------------------------

    @staticmethod
    def _to_record(row: sqlite3.Row) -> SecretRecord:
        return SecretRecord(
            secret_id=row["secret_id"],
            kind=row["kind"],
            label=row["label"],
            ciphertext=bytes(row["ciphertext"]),
            nonce=bytes(row["nonce"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def insert(self, record: SecretRecord) -> None:
        """Insert a new record.

        Raises:
            DuplicateId: If ``record.secret_id`` already exists.
        """
        try:
            self._conn.execute(
                _INSERT_SECRET,
                (
                    record.secret_id, record.kind, record.label,
                    record.ciphertext, record.nonce,
                    record.created_at, record.updated_at,
                ),
            )
        except sqlite3.IntegrityError:
            raise DuplicateId(record.secret_id) from None
        logger.debug("Store insert: secret_id=%s", record.secret_id)

    def get(self, secret_id: str) -> SecretRecord | None:
        row = self._conn.execute(_SELECT_SECRET, (secret_id,)).fetchone()
        return self._to_record(row) if row is not None else None

    def list(self) -> list[SecretMetadata]:
        """Metadata for every record; never selects ciphertext or nonce."""
        rows = self._conn.execute(_SELECT_METADATA).fetchall()
        return [
            SecretMetadata(
                secret_id=row["secret_id"],
                kind=row["kind"],
                label=row["label"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    def records(self) -> List[SecretRecord]:
        """Full records, for re-encryption."""
        rows = self._conn.execute(_SELECT_ALL_SECRETS).fetchall()
        return [self._to_record(row) for row in rows]

    def update(self, record: SecretRecord) -> bool:
        """Replace label, ciphertext, nonce and updated_at of a record.

        Returns:
            True if a row was updated.
        """
        cursor = self._conn.execute(
            _UPDATE_SECRET,
            (
                record.label, record.ciphertext, record.nonce,
                record.updated_at, record.secret_id,
            ),
        )
        return cursor.rowcount > 0

    def delete(self, secret_id: str) -> bool:
        """Delete a record.

        Returns:
            True if a row was removed, False if it did not exist.
        """
        cursor = self._conn.execute(_DELETE_SECRET, (secret_id,))
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def audit(self, op: str, secret_id: str | None = None, ok: bool = True) -> None:
        """Append an audit entry (operation name and id only)."""
        self._conn.execute(_INSERT_AUDIT, (now_ms(), op, secret_id, int(ok)))

    def audit_log(self) -> List[AuditEntry]:
        rows = self._conn.execute(_SELECT_AUDIT).fetchall()
        return [
            AuditEntry(
                id=row["id"], ts=row["ts"], op=row["op"],
                secret_id=row["secret_id"], ok=bool(row["ok"]),
            )
            for row in rows
        ]
