# Vault - Credential Record Stores
#
# RecordStore is the shared async contract for both backends:
#   - LocalRecordStore (this module): SQLite, keyed by local identity id
#   - RemoteRecordStore (cloud.records): document store, keyed by remote id
#
# Stores never translate between local and remote owner ids; the caller
# passes whichever id its session route is bound to.

import asyncio
import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..core.db import transaction
from ..core.exceptions import NotFound, PersistenceFailed, ValidationError
from .models import CredentialRecord

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("service", "username", "secret")


def validate_record_fields(fields: Dict[str, Any], require_all: bool = False) -> Dict[str, str]:
    """Check record fields before they reach a store.

    Args:
        fields: Mapping of field name to new value.
        require_all: If True, every updatable field must be present (create).

    Returns:
        The validated fields in canonical order.

    Raises:
        ValidationError: On unknown, missing or empty fields.
    """
    if not fields:
        raise ValidationError("No record fields provided")
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown record fields: {', '.join(sorted(unknown))}")
    if require_all:
        missing = [name for name in UPDATABLE_FIELDS if name not in fields]
        if missing:
            raise ValidationError(f"Missing record fields: {', '.join(missing)}")
    for name, value in fields.items():
        if not isinstance(value, str) or not value:
            raise ValidationError(f"Record field '{name}' must not be empty")
    return {name: fields[name] for name in UPDATABLE_FIELDS if name in fields}


class RecordStore(ABC):
    """CRUD over credential records scoped to an owning identity."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name ("local" or "remote")."""

    @abstractmethod
    async def create(self, owner_id: str, service: str, username: str, secret: str) -> str:
        """Store a new record and return its id."""

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[CredentialRecord]:
        """All records of one owner."""

    @abstractmethod
    async def get(self, record_id: str, owner_id: str) -> CredentialRecord:
        """One record of one owner. Raises NotFound."""

    @abstractmethod
    async def update(
        self, record_id: str, fields: Dict[str, str], owner_id: Optional[str] = None
    ) -> None:
        """Change fields of a record. Raises NotFound on id/owner mismatch."""

    @abstractmethod
    async def delete(self, record_id: str, owner_id: Optional[str] = None) -> None:
        """Remove a record. Raises NotFound if absent."""


class LocalRecordStore(RecordStore):
    """SQLite record store; records are listed in insertion order.

    Args:
        db_path: Path to the vault SQLite file (shared with IdentityStore).
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    @property
    def name(self) -> str:
        return "local"

    def _init_database(self):
        with transaction(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS credentials (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL
                        REFERENCES identities(id) ON DELETE CASCADE,
                    service TEXT NOT NULL,
                    username TEXT NOT NULL,
                    secret TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_credentials_owner ON credentials(owner_id)"
            )

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> CredentialRecord:
        return CredentialRecord(
            id=row["id"],
            owner_id=row["owner_id"],
            service=row["service"],
            username=row["username"],
            secret=row["secret"],
        )

    # ── sync implementations (run in a worker thread) ────────────────

    def _create(self, owner_id: str, fields: Dict[str, str]) -> str:
        record_id = str(uuid.uuid4())
        now = datetime.utcnow().isoformat()
        try:
            with transaction(self.db_path) as conn:
                conn.execute(
                    """INSERT INTO credentials
                       (id, owner_id, service, username, secret, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (record_id, owner_id, fields["service"], fields["username"],
                     fields["secret"], now, now),
                )
        except sqlite3.IntegrityError as exc:
            raise NotFound("Owner account not found", cause=exc) from exc
        except sqlite3.Error as exc:
            raise PersistenceFailed("Could not save the record", cause=exc) from exc
        return record_id

    def _list(self, owner_id: str) -> List[CredentialRecord]:
        with transaction(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM credentials WHERE owner_id = ? ORDER BY rowid",
                (owner_id,),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def _get(self, record_id: str, owner_id: str) -> CredentialRecord:
        with transaction(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM credentials WHERE id = ? AND owner_id = ?",
                (record_id, owner_id),
            ).fetchone()
        if row is None:
            raise NotFound("Record not found")
        return self._row_to_record(row)

    def _update(self, record_id: str, fields: Dict[str, str], owner_id: Optional[str]) -> None:
        assignments = ", ".join(f"{name} = ?" for name in fields)
        query = f"UPDATE credentials SET {assignments}, updated_at = ? WHERE id = ?"
        params: List[Any] = [*fields.values(), datetime.utcnow().isoformat(), record_id]
        if owner_id is not None:
            query += " AND owner_id = ?"
            params.append(owner_id)
        try:
            with transaction(self.db_path) as conn:
                matched = conn.execute(query, params).rowcount
        except sqlite3.Error as exc:
            raise PersistenceFailed("Could not update the record", cause=exc) from exc
        if matched == 0:
            raise NotFound("Record not found")

    def _delete(self, record_id: str, owner_id: Optional[str]) -> None:
        query = "DELETE FROM credentials WHERE id = ?"
        params: List[Any] = [record_id]
        if owner_id is not None:
            query += " AND owner_id = ?"
            params.append(owner_id)
        try:
            with transaction(self.db_path) as conn:
                matched = conn.execute(query, params).rowcount
        except sqlite3.Error as exc:
            raise PersistenceFailed("Could not delete the record", cause=exc) from exc
        if matched == 0:
            raise NotFound("Record not found")

    # ── RecordStore interface ────────────────────────────────────────

    async def create(self, owner_id: str, service: str, username: str, secret: str) -> str:
        fields = validate_record_fields(
            {"service": service, "username": username, "secret": secret}, require_all=True
        )
        record_id = await asyncio.to_thread(self._create, owner_id, fields)
        logger.info("Local record created: %s", record_id)
        return record_id

    async def list_by_owner(self, owner_id: str) -> List[CredentialRecord]:
        return await asyncio.to_thread(self._list, owner_id)

    async def get(self, record_id: str, owner_id: str) -> CredentialRecord:
        return await asyncio.to_thread(self._get, record_id, owner_id)

    async def update(
        self, record_id: str, fields: Dict[str, str], owner_id: Optional[str] = None
    ) -> None:
        fields = validate_record_fields(fields)
        await asyncio.to_thread(self._update, record_id, fields, owner_id)

    async def delete(self, record_id: str, owner_id: Optional[str] = None) -> None:
        await asyncio.to_thread(self._delete, record_id, owner_id)
