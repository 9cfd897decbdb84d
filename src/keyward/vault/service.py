# Vault - Service Facade
#
# Wires the vault components together from Settings and exposes every
# caller-facing operation. Each operation returns a Result envelope;
# nothing raises past this class.

import asyncio
import logging
from dataclasses import asdict
from typing import Dict, Optional

from ..breach import BreachChecker, BreachCheckError
from ..cloud.connection import ConnectionManager, get_connection_manager
from ..cloud.coordinator import CloudLinkCoordinator
from ..cloud.provisioning import RemoteIdentityProvisioner
from ..cloud.records import RemoteRecordStore
from ..config import Settings, get_settings
from ..core.audit_log import EventSeverity, EventType, get_audit_logger
from ..core.exceptions import AuthFailed, ValidationError
from ..core.results import Result, returns_result
from .gate import VerificationGate
from .generator import DEFAULT_LENGTH, generate_password
from .identity_store import IdentityStore
from .master_key import MasterKeyHasher, validate_master_key, validate_username
from .records import LocalRecordStore
from .session import SessionController

logger = logging.getLogger(__name__)


class VaultService:
    """
    Keyward vault operations.

    Args:
        settings: Runtime settings (default: process settings)
        connection: Remote connection manager (default: process singleton)
        breach_checker: Breach lookup client (default: HIBP with settings key)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        connection: Optional[ConnectionManager] = None,
        breach_checker: Optional[BreachChecker] = None,
    ):
        self.settings = settings or get_settings()
        self.hasher = MasterKeyHasher(self.settings.pbkdf2_iterations)
        self.identities = IdentityStore(self.settings.vault_path)
        self.local_store = LocalRecordStore(self.settings.vault_path)

        self.connection = connection or get_connection_manager()
        self.remote_store = RemoteRecordStore(self.connection, self.settings.op_timeout)
        self.provisioner = RemoteIdentityProvisioner(self.connection, self.settings.op_timeout)

        self.gate = VerificationGate(self.identities, self.hasher)
        self.coordinator = CloudLinkCoordinator(self.identities, self.provisioner)
        self.sessions = SessionController(
            gate=self.gate,
            coordinator=self.coordinator,
            connection=self.connection,
            identities=self.identities,
            local_store=self.local_store,
            remote_store=self.remote_store,
        )
        self.breach_checker = breach_checker or BreachChecker(api_key=self.settings.hibp_api_key)
        self.logger = get_audit_logger()

    # ── Accounts ─────────────────────────────────────────────────────

    @returns_result("register the account")
    async def register(self, username: str, master_key: str) -> Result:
        for is_valid, error in (validate_username(username), validate_master_key(master_key)):
            if not is_valid:
                raise ValidationError(error)

        master_key_hash = await asyncio.to_thread(self.hasher.hash, master_key)
        identity = await asyncio.to_thread(self.identities.create, username, master_key_hash)

        self.logger.log_event(
            event_type=EventType.ACCOUNT_CREATED,
            severity=EventSeverity.INFO,
            message="Account registered",
            details={"identity_id": identity.id},
            user_context={"username": username, "identity_id": identity.id},
        )
        return Result.ok("Account registration success", data=identity.to_public_dict())

    @returns_result("delete the account")
    async def delete_account(self, identity_id: str) -> Result:
        """Delete the logged-in identity and its local records, then end the session."""
        session = self.sessions.session
        if session is None or session.identity.id != identity_id:
            raise AuthFailed("User not logged in")

        await asyncio.to_thread(self.identities.delete, identity_id)
        self.sessions.end_session()

        self.logger.log_event(
            event_type=EventType.ACCOUNT_DELETED,
            severity=EventSeverity.ALERT,
            message="Account deleted",
            details={"identity_id": identity_id},
            user_context={"username": session.identity.username, "identity_id": identity_id},
        )
        return Result.ok("User deleted successfully")

    # ── Sessions and records (SessionController) ─────────────────────

    async def login(self, username: str, master_key: str) -> Result:
        return await self.sessions.login(username, master_key)

    async def logout(self) -> Result:
        return await self.sessions.logout()

    async def step_up_verify(self, username: str, master_key: str) -> Result:
        return await self.sessions.step_up_verify(username, master_key)

    async def set_cloud_enabled(self, identity_id: str, enabled: bool) -> Result:
        return await self.sessions.set_cloud_enabled(identity_id, enabled)

    async def create_record(self, service: str, username: str, secret: str) -> Result:
        return await self.sessions.create_record(service, username, secret)

    async def list_records(self, owner_id: Optional[str] = None) -> Result:
        return await self.sessions.list_records(owner_id)

    async def reveal_record(self, record_id: str, grant: Optional[str]) -> Result:
        return await self.sessions.reveal_record(record_id, grant)

    async def update_record(self, record_id: str, fields: Dict[str, str], grant: Optional[str]) -> Result:
        return await self.sessions.update_record(record_id, fields, grant)

    async def delete_record(self, record_id: str) -> Result:
        return await self.sessions.delete_record(record_id)

    # ── Utilities ────────────────────────────────────────────────────

    @returns_result("generate a password")
    async def generate_password(self, length: int = DEFAULT_LENGTH) -> Result:
        try:
            password = generate_password(length)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return Result.ok("Password generated", data={"password": password})

    @returns_result("check for breaches")
    async def check_breaches(self, account: str) -> Result:
        if not account or not account.strip():
            raise ValidationError("Account must not be empty")
        try:
            breaches = await asyncio.to_thread(self.breach_checker.check, account)
        except BreachCheckError as exc:
            logger.warning("Breach lookup failed: %s", exc)
            return Result.fail("Unable to connect to the breach database.", kind="connection-failed")
        message = f"Found in {len(breaches)} breach(es)" if breaches else "No breaches found"
        return Result.ok(message, data={"breaches": [asdict(b) for b in breaches]})

    async def close(self) -> None:
        """End the session and release the remote connection."""
        self.sessions.end_session()
        await self.connection.close()
