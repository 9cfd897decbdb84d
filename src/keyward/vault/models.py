"""
Vault data model.

Identity and CredentialRecord are plain dataclasses shared by the local
and remote stores. VerificationResult is ephemeral: created per
verification attempt, consumed by the caller, never persisted.
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional


@dataclass
class Identity:
    """
    Account record for one user (local store only).

    Attributes:
        id: Local identity id (UUID)
        username: Unique, immutable login name
        master_key_hash: Stored PBKDF2 hash of the master key
        remote_id: Remote identity id, once provisioned
        cloud_enabled: Whether sessions should use the remote mirror

    Invariant: cloud_enabled implies remote_id is set.
    """

    id: str
    username: str
    master_key_hash: str
    remote_id: Optional[str] = None
    cloud_enabled: bool = False
    created_at: Optional[str] = None

    def snapshot(self) -> "Identity":
        """Independent copy for handing to callers."""
        return replace(self)

    def to_public_dict(self) -> Dict[str, Any]:
        """Identity fields safe to return to callers (no hash)."""
        return {
            "id": self.id,
            "username": self.username,
            "remote_id": self.remote_id,
            "cloud_enabled": self.cloud_enabled,
        }


@dataclass
class CredentialRecord:
    """One stored service credential."""

    id: str
    owner_id: str
    service: str
    username: str
    secret: str

    def to_dict(self, include_secret: bool = False) -> Dict[str, Any]:
        data = asdict(self)
        if not include_secret:
            data.pop("secret")
        return data


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one master-key verification.

    Denials never carry an identity, whatever the reason.
    """

    granted: bool
    identity: Optional[Identity] = None

    @classmethod
    def denied(cls) -> "VerificationResult":
        return cls(granted=False, identity=None)
