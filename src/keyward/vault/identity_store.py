# Vault - Local Identity Store
#
# SQLite-backed store of Identity rows (one per vault user).
# Follows the UserPreferences pattern: core.db helper, fresh connection
# per call, CREATE TABLE IF NOT EXISTS on construction.
#
# The {remote_id, cloud_enabled} pair is always written by one UPDATE
# statement, and the table CHECK constraint rejects cloud_enabled=1 with
# a NULL remote_id, so no reader can observe a contradictory pair.

import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.db import transaction
from ..core.exceptions import NotFound, PersistenceFailed, ValidationError
from .models import Identity

logger = logging.getLogger(__name__)

# Fields the cloud subsystem may change; everything else is immutable.
MUTABLE_FIELDS = ("remote_id", "cloud_enabled")


class IdentityStore:
    """Local identity store.

    Args:
        db_path: Path to the vault SQLite file.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self):
        with transaction(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS identities (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL UNIQUE,
                    master_key_hash TEXT NOT NULL,
                    remote_id TEXT,
                    cloud_enabled INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    CHECK (cloud_enabled = 0 OR remote_id IS NOT NULL)
                )
            """)

    @staticmethod
    def _row_to_identity(row: sqlite3.Row) -> Identity:
        return Identity(
            id=row["id"],
            username=row["username"],
            master_key_hash=row["master_key_hash"],
            remote_id=row["remote_id"],
            cloud_enabled=bool(row["cloud_enabled"]),
            created_at=row["created_at"],
        )

    def create(self, username: str, master_key_hash: str) -> Identity:
        """Insert a new identity.

        Raises:
            ValidationError: If the username is already taken.
            PersistenceFailed: On any other database error.
        """
        identity = Identity(
            id=str(uuid.uuid4()),
            username=username,
            master_key_hash=master_key_hash,
            created_at=datetime.utcnow().isoformat(),
        )
        try:
            with transaction(self.db_path) as conn:
                conn.execute(
                    """INSERT INTO identities
                       (id, username, master_key_hash, remote_id, cloud_enabled, created_at)
                       VALUES (?, ?, ?, NULL, 0, ?)""",
                    (identity.id, identity.username, identity.master_key_hash, identity.created_at),
                )
        except sqlite3.IntegrityError as exc:
            raise ValidationError("Username is already taken", cause=exc) from exc
        except sqlite3.Error as exc:
            raise PersistenceFailed("Could not save the account", cause=exc) from exc

        logger.info("Identity created: %s", identity.id)
        return identity

    def get_by_username(self, username: str) -> Optional[Identity]:
        with transaction(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM identities WHERE username = ?", (username,)
            ).fetchone()
        return self._row_to_identity(row) if row else None

    def get_by_id(self, identity_id: str) -> Optional[Identity]:
        with transaction(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM identities WHERE id = ?", (identity_id,)
            ).fetchone()
        return self._row_to_identity(row) if row else None

    def update(self, identity_id: str, fields: Dict[str, Any]) -> None:
        """Apply a partial update to the cloud-link fields as one statement.

        Raises:
            ValidationError: If fields is empty or names an immutable field.
            NotFound: If the identity does not exist.
            PersistenceFailed: If the write fails (including invariant violations).
        """
        if not fields:
            raise ValidationError("No fields to update")
        unknown = set(fields) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        columns = [name for name in MUTABLE_FIELDS if name in fields]
        values = [
            int(bool(fields[name])) if name == "cloud_enabled" else fields[name]
            for name in columns
        ]
        assignments = ", ".join(f"{name} = ?" for name in columns)

        try:
            with transaction(self.db_path) as conn:
                cur = conn.execute(
                    f"UPDATE identities SET {assignments} WHERE id = ?",
                    (*values, identity_id),
                )
                matched = cur.rowcount
        except sqlite3.Error as exc:
            raise PersistenceFailed("Could not update the account", cause=exc) from exc

        if matched == 0:
            raise NotFound("Account not found")

    def delete(self, identity_id: str) -> None:
        """Delete an identity; its local records go with it (ON DELETE CASCADE).

        Raises:
            NotFound: If the identity does not exist.
            PersistenceFailed: If the delete fails.
        """
        try:
            with transaction(self.db_path) as conn:
                cur = conn.execute("DELETE FROM identities WHERE id = ?", (identity_id,))
                matched = cur.rowcount
        except sqlite3.Error as exc:
            raise PersistenceFailed("Could not delete the account", cause=exc) from exc

        if matched == 0:
            raise NotFound("Account not found")
        logger.info("Identity deleted: %s", identity_id)
