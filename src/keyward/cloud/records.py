# Cloud - Remote Credential Record Store
#
# RecordStore over the remote document store's "passwords" collection.
# Owner ids are remote identity ids; translation from the local identity
# id happens in the session route, never here.
#
# Documents: {"_id", "userId", "service", "username", "password"}
# Every call is bounded by op_timeout; a timeout is a ConnectionFailed.

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from ..core.exceptions import ConnectionFailed, NotFound
from ..vault.models import CredentialRecord
from ..vault.records import RecordStore, validate_record_fields
from .connection import ConnectionManager

logger = logging.getLogger(__name__)

PASSWORDS_COLLECTION = "passwords"

# Record field -> document field
_FIELD_MAP = {"service": "service", "username": "username", "secret": "password"}

T = TypeVar("T")


class RemoteRecordStore(RecordStore):
    """Credential records in the remote mirror."""

    def __init__(self, connection: ConnectionManager, op_timeout: float = 10.0):
        self.connection = connection
        self.op_timeout = op_timeout

    @property
    def name(self) -> str:
        return "remote"

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.op_timeout)
        except asyncio.TimeoutError as exc:
            raise ConnectionFailed(
                f"Remote {operation} timed out after {self.op_timeout:g}s", cause=exc
            ) from exc

    async def _transport(self):
        await self.connection.ensure_connected()
        return self.connection.transport

    @staticmethod
    def _document_to_record(document: Dict[str, Any]) -> CredentialRecord:
        return CredentialRecord(
            id=str(document["_id"]),
            owner_id=str(document["userId"]),
            service=document.get("service", ""),
            username=document.get("username", ""),
            secret=document.get("password", ""),
        )

    @staticmethod
    def _filters(record_id: str, owner_id: Optional[str]) -> Dict[str, Any]:
        filters: Dict[str, Any] = {"_id": record_id}
        if owner_id is not None:
            filters["userId"] = owner_id
        return filters

    async def create(self, owner_id: str, service: str, username: str, secret: str) -> str:
        fields = validate_record_fields(
            {"service": service, "username": username, "secret": secret}, require_all=True
        )
        transport = await self._transport()
        document = {"userId": owner_id}
        document.update({_FIELD_MAP[name]: value for name, value in fields.items()})
        record_id = await self._call("create", transport.insert(PASSWORDS_COLLECTION, document))
        logger.info("Remote record created: %s", record_id)
        return record_id

    async def list_by_owner(self, owner_id: str) -> List[CredentialRecord]:
        transport = await self._transport()
        documents = await self._call(
            "list", transport.find(PASSWORDS_COLLECTION, {"userId": owner_id})
        )
        return [self._document_to_record(doc) for doc in documents]

    async def get(self, record_id: str, owner_id: str) -> CredentialRecord:
        transport = await self._transport()
        documents = await self._call(
            "get", transport.find(PASSWORDS_COLLECTION, self._filters(record_id, owner_id))
        )
        if not documents:
            raise NotFound("Record not found")
        return self._document_to_record(documents[0])

    async def update(
        self, record_id: str, fields: Dict[str, str], owner_id: Optional[str] = None
    ) -> None:
        fields = validate_record_fields(fields)
        transport = await self._transport()
        changes = {_FIELD_MAP[name]: value for name, value in fields.items()}
        matched = await self._call(
            "update",
            transport.update(PASSWORDS_COLLECTION, self._filters(record_id, owner_id), changes),
        )
        if matched == 0:
            raise NotFound("Record not found")

    async def delete(self, record_id: str, owner_id: Optional[str] = None) -> None:
        transport = await self._transport()
        deleted = await self._call(
            "delete", transport.delete(PASSWORDS_COLLECTION, self._filters(record_id, owner_id))
        )
        if deleted == 0:
            raise NotFound("Record not found")
