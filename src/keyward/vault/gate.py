# Vault - Verification Gate
#
# Re-authenticates a principal (username + master key) against the local
# identity store before a sensitive operation. Used for login and for
# step-up before every reveal/edit; the gate does not know which.
#
# The gate keeps no state between calls and returns a capability result,
# never the master key or its hash comparison details.

import asyncio
import logging

from .identity_store import IdentityStore
from .master_key import MasterKeyHasher
from .models import VerificationResult

logger = logging.getLogger(__name__)


class VerificationGate:
    """Stateless master-key verification against the identity store."""

    def __init__(self, identities: IdentityStore, hasher: MasterKeyHasher):
        self.identities = identities
        self.hasher = hasher

    def verify_sync(self, username: str, master_key: str) -> VerificationResult:
        """
        Verify a username / master key pair.

        Fails closed: empty input is denied without a store lookup.
        Unknown usernames and wrong keys produce the same denial, and an
        unknown username still costs one key derivation (decoy hash).
        """
        if not username or not master_key:
            return VerificationResult.denied()

        identity = self.identities.get_by_username(username)
        if identity is None:
            self.hasher.verify_decoy(master_key)
            return VerificationResult.denied()

        if not self.hasher.verify(master_key, identity.master_key_hash):
            return VerificationResult.denied()

        return VerificationResult(granted=True, identity=identity.snapshot())

    async def verify(self, username: str, master_key: str) -> VerificationResult:
        """Async wrapper; key derivation runs in a worker thread."""
        return await asyncio.to_thread(self.verify_sync, username, master_key)
