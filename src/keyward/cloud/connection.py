# Cloud - Connection Manager
#
# Owns the one lazily-established connection to the remote document store.
#
#   DISCONNECTED -> CONNECTING -> CONNECTED
#
# - ensure_connected() is idempotent: while CONNECTED it returns at once,
#   whatever database the caller asks for (no mid-session switching).
# - Database name: explicit argument -> configured default -> "test".
# - The first connect is bounded by connect_timeout; a timeout or
#   transport error returns the manager to DISCONNECTED and raises
#   ConnectionFailed with the underlying cause attached.
# - Single-flight: concurrent first callers share one in-flight attempt
#   and all receive its outcome.

import asyncio
import logging
from enum import Enum
from typing import Optional

from ..config import FALLBACK_REMOTE_DB, get_settings
from ..core.exceptions import ConnectionFailed
from .transport import DocumentTransport, HttpDocumentTransport

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionManager:
    """Single-flight connection holder for the remote store.

    Args:
        transport: Remote transport to connect.
        default_db: Configured default database name ("" = none).
        connect_timeout: Seconds allowed for the connect handshake.
    """

    def __init__(
        self,
        transport: DocumentTransport,
        default_db: str = "",
        connect_timeout: float = 5.0,
    ):
        self.transport = transport
        self.default_db = default_db
        self.connect_timeout = connect_timeout
        self.state = ConnectionState.DISCONNECTED
        self.database: Optional[str] = None
        self._lock = asyncio.Lock()
        self._inflight: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def resolve_database(self, target_db: Optional[str] = None) -> str:
        return target_db or self.default_db or FALLBACK_REMOTE_DB

    async def ensure_connected(self, target_db: Optional[str] = None) -> str:
        """Connect if needed and return the database name in use.

        Raises:
            ConnectionFailed: If the connect attempt fails or times out.
        """
        async with self._lock:
            if self.state is ConnectionState.CONNECTED:
                return self.database
            if self._inflight is None:
                db_name = self.resolve_database(target_db)
                self.state = ConnectionState.CONNECTING
                logger.info("Connecting to remote database: %s", db_name)
                self._inflight = asyncio.get_running_loop().create_task(
                    self._connect(db_name)
                )
            inflight = self._inflight

        # shield: one caller being cancelled must not abort the shared attempt
        return await asyncio.shield(inflight)

    async def _connect(self, db_name: str) -> str:
        try:
            await asyncio.wait_for(
                self.transport.connect(db_name), timeout=self.connect_timeout
            )
        except asyncio.TimeoutError as exc:
            await self._fail()
            raise ConnectionFailed(
                f"Remote connection timed out after {self.connect_timeout:g}s", cause=exc
            ) from exc
        except asyncio.CancelledError:
            self._reset()
            raise
        except ConnectionFailed:
            await self._fail()
            raise
        except Exception as exc:
            await self._fail()
            raise ConnectionFailed(f"Remote connection failed: {exc}", cause=exc) from exc

        async with self._lock:
            self.state = ConnectionState.CONNECTED
            self.database = db_name
            self._inflight = None
        logger.info("Remote database connected: %s", db_name)
        return db_name

    def _reset(self) -> None:
        self.state = ConnectionState.DISCONNECTED
        self.database = None
        self._inflight = None

    async def _fail(self) -> None:
        async with self._lock:
            self._reset()
        try:
            await self.transport.disconnect()
        except Exception as exc:
            logger.warning("Transport cleanup after failed connect raised: %s", exc)

    async def close(self) -> None:
        """Disconnect and return to DISCONNECTED (application shutdown)."""
        async with self._lock:
            inflight = self._inflight
        if inflight is not None:
            try:
                await asyncio.shield(inflight)
            except ConnectionFailed:
                return
        async with self._lock:
            if self.state is ConnectionState.CONNECTED:
                await self.transport.disconnect()
            self.state = ConnectionState.DISCONNECTED
            self.database = None
        logger.info("Remote connection closed")


# ── Singleton ────────────────────────────────────────────────────────

_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Get or create the process-wide ConnectionManager."""
    global _manager
    if _manager is None:
        settings = get_settings()
        transport = HttpDocumentTransport(
            settings.remote_uri,
            token=settings.remote_token,
            timeout=settings.op_timeout,
        )
        _manager = ConnectionManager(
            transport,
            default_db=settings.remote_db,
            connect_timeout=settings.connect_timeout,
        )
    return _manager


def set_connection_manager(manager: Optional[ConnectionManager]) -> None:
    """Replace the singleton (for testing)."""
    global _manager
    _manager = manager
