"""
Shared pytest fixtures for the Keyward test suite.

Autouse fixtures below isolate tests from the live application data:
  - Audit logger -> temp directory  (prevents test events in ./audit_logs)
  - Settings     -> temp data dir, cheap PBKDF2, short remote timeouts
  - Singletons   -> reset (connection manager, API vault service)

The remote document store is replaced by FakeDocumentTransport, an
in-memory transport with hooks for connect failures and slow calls.
"""

import asyncio
import itertools
from collections import defaultdict
from typing import Any, Dict, List, Optional

import pytest

from keyward.cloud.connection import ConnectionManager
from keyward.cloud.transport import DocumentTransport
from keyward.config import Settings

TEST_PBKDF2_ITERATIONS = 1000


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path):
    """Point the global AuditLogger at a temp directory for every test."""
    import keyward.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = audit_mod.AuditLogger(log_dir=tmp_path / "audit_logs")

    yield

    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def settings(tmp_path):
    """Process settings for one test: temp vault, fast hashing, short timeouts."""
    import keyward.config as config_mod

    test_settings = Settings(
        data_dir=tmp_path / "data",
        remote_uri="",
        remote_db="",
        connect_timeout=0.5,
        op_timeout=0.5,
        pbkdf2_iterations=TEST_PBKDF2_ITERATIONS,
        audit_dir=tmp_path / "audit_logs",
    )
    old_settings = config_mod._settings
    config_mod.set_settings(test_settings)

    yield test_settings

    config_mod.set_settings(old_settings)


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Drop the connection manager and API service singletons between tests."""
    import keyward.api.vault_routes as routes_mod
    import keyward.cloud.connection as connection_mod

    connection_mod.set_connection_manager(None)
    routes_mod.set_vault_service(None)

    yield

    connection_mod.set_connection_manager(None)
    routes_mod.set_vault_service(None)


class FakeDocumentTransport(DocumentTransport):
    """In-memory document store.

    Attributes:
        connect_error: Raised by connect() when set.
        connect_delay: Seconds connect() sleeps before completing.
        op_delay: Seconds every CRUD call sleeps before completing.
        insert_error: Raised by insert() when set.
    """

    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.connected_db: Optional[str] = None
        self.connect_calls: List[str] = []
        self.disconnect_calls = 0
        self.connect_error: Optional[BaseException] = None
        self.connect_delay = 0.0
        self.op_delay = 0.0
        self.insert_error: Optional[BaseException] = None
        self._ids = itertools.count(1)

    @staticmethod
    def _matches(document: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        return all(document.get(key) == value for key, value in filters.items())

    async def _delay(self):
        if self.op_delay:
            await asyncio.sleep(self.op_delay)

    async def connect(self, db_name: str) -> None:
        self.connect_calls.append(db_name)
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error
        self.connected_db = db_name

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected_db = None

    async def insert(self, collection: str, document: Dict[str, Any]) -> str:
        await self._delay()
        if self.insert_error is not None:
            raise self.insert_error
        doc_id = f"{collection}-{next(self._ids)}"
        self.collections[collection].append(dict(document, _id=doc_id))
        return doc_id

    async def find(self, collection: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        await self._delay()
        return [dict(doc) for doc in self.collections[collection] if self._matches(doc, filters)]

    async def update(
        self, collection: str, filters: Dict[str, Any], fields: Dict[str, Any]
    ) -> int:
        await self._delay()
        matched = [doc for doc in self.collections[collection] if self._matches(doc, filters)]
        for doc in matched:
            doc.update(fields)
        return len(matched)

    async def delete(self, collection: str, filters: Dict[str, Any]) -> int:
        await self._delay()
        kept = [doc for doc in self.collections[collection] if not self._matches(doc, filters)]
        deleted = len(self.collections[collection]) - len(kept)
        self.collections[collection] = kept
        return deleted


@pytest.fixture
def transport():
    return FakeDocumentTransport()


@pytest.fixture
def connection(transport, settings):
    return ConnectionManager(
        transport,
        default_db=settings.remote_db,
        connect_timeout=settings.connect_timeout,
    )
