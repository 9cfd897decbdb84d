"""
Remote identity provisioning.

Creates the counterpart of a local identity in the remote mirror's
``users`` collection and returns its id (the identity's ``remote_id``).
"""

import asyncio
import logging
from datetime import datetime

from ..core.exceptions import ProvisioningFailed
from .connection import ConnectionManager

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class RemoteIdentityProvisioner:
    """Creates remote identities through the shared connection."""

    def __init__(self, connection: ConnectionManager, op_timeout: float = 10.0):
        self.connection = connection
        self.op_timeout = op_timeout

    async def create_remote_identity(self, display_name: str) -> str:
        """Create a remote identity and return its id.

        Raises:
            ProvisioningFailed: On connect failure, timeout or store error.
        """
        try:
            await self.connection.ensure_connected()
            remote_id = await asyncio.wait_for(
                self.connection.transport.insert(
                    USERS_COLLECTION,
                    {"username": display_name, "created_at": datetime.utcnow().isoformat()},
                ),
                timeout=self.op_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProvisioningFailed("Creating the cloud account timed out", cause=exc) from exc
        except Exception as exc:
            raise ProvisioningFailed(f"Error creating cloud account: {exc}", cause=exc) from exc

        if not remote_id:
            raise ProvisioningFailed("Cloud store returned no account id")

        logger.info("Remote identity created: %s", remote_id)
        return remote_id
