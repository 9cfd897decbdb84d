# Cloud - Cloud Link Coordinator
#
# Enables and disables the remote mirror for one identity.
#
#   DISABLED -> PROVISIONING -> LINKED
#   LINKED   -> DISABLING    -> DISABLED
#
# enable():
#   1. optimistic flip of the session view (CloudView, PENDING)
#   2. provision a remote identity if the identity has none
#   3. persist {remote_id, cloud_enabled=True} as one composite update
#   4. on failure revert the view; a remote id that was provisioned but not
#      recorded is kept as an orphan and reported as InconsistentLink, and
#      the next enable() reuses it instead of provisioning again
#
# disable() persists cloud_enabled=False only; remote_id is retained so a
# later enable() never re-provisions.
#
# This is the only writer of the {remote_id, cloud_enabled} pair. Nothing
# raises past it: every outcome is a Result.

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from ..core.audit_log import EventSeverity, EventType, get_audit_logger
from ..core.exceptions import (
    InconsistentLink,
    KeywardError,
    NotFound,
    PersistenceFailed,
    ProvisioningFailed,
)
from ..core.results import Result
from ..vault.identity_store import IdentityStore
from ..vault.models import Identity
from .provisioning import RemoteIdentityProvisioner

logger = logging.getLogger(__name__)


class LinkState(str, Enum):
    DISABLED = "disabled"
    PROVISIONING = "provisioning"
    LINKED = "linked"
    DISABLING = "disabling"


class Transition(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    REVERTED = "reverted"


@dataclass
class CloudView:
    """Session-local, optimistic view of the cloud flag.

    A toggle is one transition: begin() moves to PENDING with the target
    value visible, then commit() or revert() settles it.
    """

    enabled: bool = False
    transition: Transition = Transition.COMMITTED
    _previous: bool = field(default=False, repr=False)

    def begin(self, target: bool) -> None:
        self._previous = self.enabled
        self.enabled = target
        self.transition = Transition.PENDING

    def commit(self) -> None:
        self.transition = Transition.COMMITTED

    def revert(self) -> None:
        self.enabled = self._previous
        self.transition = Transition.REVERTED


class CloudLinkCoordinator:
    """Owns the cloud-link state machine for every identity."""

    def __init__(self, identities: IdentityStore, provisioner: RemoteIdentityProvisioner):
        self.identities = identities
        self.provisioner = provisioner
        self._locks: Dict[str, asyncio.Lock] = {}
        self._transient: Dict[str, LinkState] = {}
        # identity id -> remote id provisioned but not yet recorded locally
        self._orphans: Dict[str, str] = {}
        self.logger = get_audit_logger()

    def _lock_for(self, identity_id: str) -> asyncio.Lock:
        lock = self._locks.get(identity_id)
        if lock is None:
            lock = self._locks[identity_id] = asyncio.Lock()
        return lock

    def state_of(self, identity: Identity) -> LinkState:
        """Current state: transient while a toggle runs, else from the identity."""
        transient = self._transient.get(identity.id)
        if transient is not None:
            return transient
        return LinkState.LINKED if identity.cloud_enabled else LinkState.DISABLED

    def orphaned_remote_id(self, identity_id: str) -> Optional[str]:
        """Remote id provisioned for this identity but not yet linked, if any."""
        return self._orphans.get(identity_id)

    async def _refresh(self, identity: Identity) -> None:
        """Reload the link fields from the store.

        Callers hold the identity lock, so a toggle that waited on it sees
        what the previous toggle persisted.

        Raises:
            NotFound: If the identity no longer exists.
            PersistenceFailed: If the store cannot be read.
        """
        try:
            stored = await asyncio.to_thread(self.identities.get_by_id, identity.id)
        except Exception as exc:
            raise PersistenceFailed("Could not read the account", cause=exc) from exc
        if stored is None:
            raise NotFound("Account not found")
        identity.remote_id = stored.remote_id
        identity.cloud_enabled = stored.cloud_enabled

    async def enable(self, identity: Identity, view: Optional[CloudView] = None) -> Result:
        """Link the identity to the remote mirror."""
        view = view if view is not None else CloudView(enabled=identity.cloud_enabled)
        async with self._lock_for(identity.id):
            try:
                await self._refresh(identity)
            except KeywardError as exc:
                return Result.from_error(exc)
            if identity.cloud_enabled and identity.remote_id:
                view.enabled = True
                view.commit()
                return Result.ok("Cloud integration already enabled", data=identity.to_public_dict())

            view.begin(True)
            self._transient[identity.id] = LinkState.PROVISIONING
            try:
                return await self._enable(identity, view)
            except Exception:
                view.revert()
                self._log_unexpected(identity, "enabling")
                return Result.fail("Could not enable cloud integration", kind="internal")
            finally:
                self._transient.pop(identity.id, None)

    async def _enable(self, identity: Identity, view: CloudView) -> Result:
        remote_id = identity.remote_id or self._orphans.get(identity.id)
        if remote_id is None:
            try:
                remote_id = await self.provisioner.create_remote_identity(identity.username)
            except ProvisioningFailed as exc:
                view.revert()
                self._log_failure(identity, exc)
                return Result.from_error(exc)
            self._orphans[identity.id] = remote_id
            self.logger.log_event(
                event_type=EventType.CLOUD_PROVISIONED,
                severity=EventSeverity.INFO,
                message="Remote identity provisioned",
                details={"identity_id": identity.id, "remote_id": remote_id},
            )
        identity.remote_id = remote_id

        try:
            await asyncio.to_thread(
                self.identities.update,
                identity.id,
                {"remote_id": remote_id, "cloud_enabled": True},
            )
        except KeywardError as exc:
            view.revert()
            if identity.id in self._orphans:
                error = InconsistentLink(
                    "Cloud account was created but could not be linked to this vault. "
                    "Retry to finish linking.",
                    remote_id=remote_id,
                    cause=exc,
                )
            elif isinstance(exc, PersistenceFailed):
                error = exc
            else:
                error = PersistenceFailed("Could not save cloud preference", cause=exc)
            self._log_failure(identity, error)
            return Result.from_error(error, data={"remote_id": remote_id})

        self._orphans.pop(identity.id, None)
        identity.cloud_enabled = True
        view.commit()
        self.logger.log_event(
            event_type=EventType.CLOUD_ENABLED,
            severity=EventSeverity.INFO,
            message="Cloud integration enabled",
            details={"identity_id": identity.id, "remote_id": remote_id},
        )
        return Result.ok("Cloud integration enabled", data=identity.to_public_dict())

    async def disable(self, identity: Identity, view: Optional[CloudView] = None) -> Result:
        """Turn the remote mirror off; the remote id is kept."""
        view = view if view is not None else CloudView(enabled=identity.cloud_enabled)
        async with self._lock_for(identity.id):
            try:
                await self._refresh(identity)
            except KeywardError as exc:
                return Result.from_error(exc)
            if not identity.cloud_enabled:
                view.enabled = False
                view.commit()
                return Result.ok("Cloud integration already disabled", data=identity.to_public_dict())

            view.begin(False)
            self._transient[identity.id] = LinkState.DISABLING
            try:
                await asyncio.to_thread(
                    self.identities.update, identity.id, {"cloud_enabled": False}
                )
            except KeywardError as exc:
                view.revert()
                error = exc if isinstance(exc, PersistenceFailed) else PersistenceFailed(
                    "Could not save cloud preference", cause=exc
                )
                self._log_failure(identity, error)
                return Result.from_error(error)
            except Exception:
                view.revert()
                self._log_unexpected(identity, "disabling")
                return Result.fail("Could not disable cloud integration", kind="internal")
            finally:
                self._transient.pop(identity.id, None)

            identity.cloud_enabled = False
            view.commit()
            self.logger.log_event(
                event_type=EventType.CLOUD_DISABLED,
                severity=EventSeverity.INFO,
                message="Cloud integration disabled",
                details={"identity_id": identity.id},
            )
            return Result.ok("Cloud integration disabled", data=identity.to_public_dict())

    def _log_failure(self, identity: Identity, error: KeywardError) -> None:
        logger.warning("Cloud link for %s failed (%s): %s", identity.id, error.kind, error.message)
        self.logger.log_event(
            event_type=EventType.CLOUD_LINK_FAILED,
            severity=EventSeverity.ALERT,
            message=f"Cloud link change failed: {error.message}",
            details={"identity_id": identity.id, "kind": error.kind},
        )

    def _log_unexpected(self, identity: Identity, action: str) -> None:
        logger.exception("Unexpected error %s cloud for %s", action, identity.id)
        self.logger.log_event(
            event_type=EventType.VAULT_ERROR,
            severity=EventSeverity.CRITICAL,
            message=f"Unexpected error {action} cloud integration",
            details={"identity_id": identity.id},
        )
