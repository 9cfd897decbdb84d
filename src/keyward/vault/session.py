# Vault - Session Controller
#
# Turns VerificationGate and CloudLinkCoordinator results into sessions:
#
# - login: verify, then resolve the record route once. A cloud-enabled
#   identity whose remote store cannot be reached is downgraded to
#   local-only (cloud_enabled persisted False) and the login still succeeds.
# - step-up: every reveal/edit must consume a single-use grant obtained by
#   re-verifying the master key for that action. Login alone never grants.
# - logout: results that arrive for an ended session are discarded.
#
# One session at a time; a new login ends the previous session.

import asyncio
import logging
import secrets
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from ..cloud.connection import ConnectionManager
from ..cloud.coordinator import CloudLinkCoordinator, CloudView
from ..core.audit_log import EventSeverity, EventType, get_audit_logger
from ..core.exceptions import AuthFailed, ConnectionFailed, NotFound, SessionEnded
from ..core.results import Result, returns_result
from .gate import VerificationGate
from .identity_store import IdentityStore
from .models import Identity
from .records import RecordStore

logger = logging.getLogger(__name__)

STEP_UP_GRANT_TTL_SECONDS = 60.0

LOGIN_FAILED_MESSAGE = "Invalid username or master key"
STEP_UP_REQUIRED_MESSAGE = "Master key verification required"


class SessionRoute(str, Enum):
    LOCAL_ONLY = "local-only"
    CLOUD_LINKED = "cloud-linked"


@dataclass(frozen=True)
class RecordRoute:
    """Which RecordStore backs a session, and under which owner id."""

    kind: SessionRoute
    store: RecordStore
    owner_id: str


@dataclass
class Session:
    """One logged-in identity."""

    identity: Identity
    route: RecordRoute
    view: CloudView
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    active: bool = True
    _grants: Dict[str, float] = field(default_factory=dict, repr=False)

    def issue_grant(self) -> str:
        token = secrets.token_urlsafe(24)
        self._grants[token] = time.monotonic() + STEP_UP_GRANT_TTL_SECONDS
        return token

    def consume_grant(self, token: Optional[str]) -> bool:
        """Use up a step-up grant; False if missing, reused or expired."""
        if not token:
            return False
        expires_at = self._grants.pop(token, None)
        return expires_at is not None and time.monotonic() < expires_at

    def end(self) -> None:
        self.active = False
        self._grants.clear()


class SessionController:
    """Login, step-up and session-routed record operations."""

    def __init__(
        self,
        gate: VerificationGate,
        coordinator: CloudLinkCoordinator,
        connection: ConnectionManager,
        identities: IdentityStore,
        local_store: RecordStore,
        remote_store: RecordStore,
    ):
        self.gate = gate
        self.coordinator = coordinator
        self.connection = connection
        self.identities = identities
        self.local_store = local_store
        self.remote_store = remote_store
        self._session: Optional[Session] = None
        self.logger = get_audit_logger()

    @property
    def session(self) -> Optional[Session]:
        """The active session, if any."""
        if self._session is not None and self._session.active:
            return self._session
        return None

    def _require_session(self) -> Session:
        session = self.session
        if session is None:
            raise SessionEnded("Not logged in")
        return session

    def _ensure_current(self, session: Session) -> None:
        """Discard results that arrive after their session ended."""
        if not session.active or session is not self._session:
            raise SessionEnded("Session ended before the operation completed")

    def _local_route(self, identity: Identity) -> RecordRoute:
        return RecordRoute(SessionRoute.LOCAL_ONLY, self.local_store, identity.id)

    def _audit(self, event_type, severity, message, identity: Identity, **details):
        self.logger.log_event(
            event_type=event_type,
            severity=severity,
            message=message,
            details=details,
            user_context={"username": identity.username, "identity_id": identity.id},
        )

    # ── Login / logout ───────────────────────────────────────────────

    @returns_result("log in")
    async def login(self, username: str, master_key: str) -> Result:
        verification = await self.gate.verify(username, master_key)
        if not verification.granted:
            self.logger.log_event(
                event_type=EventType.LOGIN_FAILED,
                severity=EventSeverity.INVESTIGATE,
                message="Login rejected",
                details={"username": username},
            )
            raise AuthFailed(LOGIN_FAILED_MESSAGE)

        identity = verification.identity
        warnings = []
        route = self._local_route(identity)
        view = CloudView(enabled=identity.cloud_enabled)

        if identity.cloud_enabled:
            try:
                await self.connection.ensure_connected(identity.remote_id)
                route = RecordRoute(
                    SessionRoute.CLOUD_LINKED, self.remote_store, identity.remote_id
                )
            except ConnectionFailed as exc:
                warnings.extend(await self._downgrade(identity, view, exc))

        if self._session is not None:
            self._session.end()
        session = Session(identity=identity, route=route, view=view)
        self._session = session

        self._audit(
            EventType.LOGIN_SUCCEEDED, EventSeverity.INFO, "Login succeeded", identity,
            route=route.kind.value,
        )
        return Result.ok(
            "User authentication success",
            data={
                "session_id": session.id,
                "identity": identity.to_public_dict(),
                "route": route.kind.value,
            },
            warnings=warnings,
        )

    async def _downgrade(self, identity: Identity, view: CloudView, error: ConnectionFailed):
        """Self-healing: persist cloud_enabled=False after an unreachable remote."""
        logger.warning("Remote store unreachable at login for %s: %s", identity.id, error.message)
        warnings = ["Cloud storage is unreachable; continuing with the local vault only."]
        result = await self.coordinator.disable(identity, view)
        if not result.success:
            warnings.append(f"Cloud integration could not be switched off: {result.message}")
        self._audit(
            EventType.CLOUD_DOWNGRADED, EventSeverity.INVESTIGATE,
            "Session downgraded to local-only", identity,
            cause=error.message, persisted=result.success,
        )
        return warnings

    @returns_result("log out")
    async def logout(self) -> Result:
        session = self._require_session()
        session.end()
        self._session = None
        self._audit(EventType.LOGOUT, EventSeverity.INFO, "Logged out", session.identity)
        return Result.ok("Logged out")

    # ── Step-up verification ─────────────────────────────────────────

    @returns_result("verify master key")
    async def step_up_verify(self, username: str, master_key: str) -> Result:
        """Re-verify the master key and issue a single-use grant for one reveal/edit."""
        session = self._require_session()
        if username != session.identity.username:
            raise AuthFailed(LOGIN_FAILED_MESSAGE)

        verification = await self.gate.verify(username, master_key)
        self._ensure_current(session)

        if not verification.granted:
            self._audit(
                EventType.STEP_UP_DENIED, EventSeverity.INVESTIGATE,
                "Step-up verification rejected", session.identity,
            )
            raise AuthFailed(LOGIN_FAILED_MESSAGE)

        self._audit(
            EventType.STEP_UP_GRANTED, EventSeverity.INFO,
            "Step-up verification granted", session.identity,
        )
        return Result.ok("Master key verified", data={"grant": session.issue_grant()})

    # ── Records ──────────────────────────────────────────────────────

    @returns_result("create the record")
    async def create_record(self, service: str, username: str, secret: str) -> Result:
        session = self._require_session()
        route = session.route
        record_id = await route.store.create(route.owner_id, service, username, secret)
        self._ensure_current(session)
        self._audit(
            EventType.RECORD_CREATED, EventSeverity.INFO, "Record created", session.identity,
            record_id=record_id, store=route.store.name,
        )
        return Result.ok("Password saved", data={"id": record_id})

    @returns_result("fetch the records")
    async def list_records(self, owner_id: Optional[str] = None) -> Result:
        """List the session's records (secrets omitted)."""
        session = self._require_session()
        route = session.route
        if owner_id is not None and owner_id not in (session.identity.id, route.owner_id):
            raise NotFound("Account not found")
        records = await route.store.list_by_owner(route.owner_id)
        self._ensure_current(session)
        return Result.ok(
            "Passwords fetched successfully",
            data={
                "route": route.kind.value,
                "records": [record.to_dict() for record in records],
            },
        )

    @returns_result("reveal the record")
    async def reveal_record(self, record_id: str, grant: Optional[str]) -> Result:
        session = self._require_session()
        if not session.consume_grant(grant):
            raise AuthFailed(STEP_UP_REQUIRED_MESSAGE)
        route = session.route
        record = await route.store.get(record_id, route.owner_id)
        self._ensure_current(session)
        self._audit(
            EventType.RECORD_REVEALED, EventSeverity.INFO, "Record revealed", session.identity,
            record_id=record_id, store=route.store.name,
        )
        return Result.ok("Password revealed", data=record.to_dict(include_secret=True))

    @returns_result("update the record")
    async def update_record(self, record_id: str, fields: Dict[str, str], grant: Optional[str]) -> Result:
        session = self._require_session()
        if not session.consume_grant(grant):
            raise AuthFailed(STEP_UP_REQUIRED_MESSAGE)
        route = session.route
        await route.store.update(record_id, fields, owner_id=route.owner_id)
        self._ensure_current(session)
        self._audit(
            EventType.RECORD_UPDATED, EventSeverity.INFO, "Record updated", session.identity,
            record_id=record_id, store=route.store.name, fields=sorted(fields),
        )
        return Result.ok("Password updated", data={"id": record_id})

    @returns_result("delete the record")
    async def delete_record(self, record_id: str) -> Result:
        session = self._require_session()
        route = session.route
        await route.store.delete(record_id, owner_id=route.owner_id)
        self._ensure_current(session)
        self._audit(
            EventType.RECORD_DELETED, EventSeverity.INFO, "Record deleted", session.identity,
            record_id=record_id, store=route.store.name,
        )
        return Result.ok("Password deleted successfully", data={"id": record_id})

    # ── Cloud integration ────────────────────────────────────────────

    @returns_result("update cloud integration")
    async def set_cloud_enabled(self, identity_id: str, enabled: bool) -> Result:
        """Toggle the remote mirror for the logged-in identity.

        The session's record route is not rebound; it was resolved at login
        and the new setting applies from the next login.
        """
        session = self._require_session()
        if identity_id != session.identity.id:
            raise AuthFailed("User not logged in")

        identity = await asyncio.to_thread(self.identities.get_by_id, identity_id)
        if identity is None:
            raise NotFound("Account not found")

        if enabled:
            result = await self.coordinator.enable(identity, session.view)
        else:
            result = await self.coordinator.disable(identity, session.view)

        if session.active:
            session.identity = identity.snapshot()
        return result

    def end_session(self) -> None:
        """Drop the active session without auditing (account deletion)."""
        if self._session is not None:
            self._session.end()
            self._session = None
