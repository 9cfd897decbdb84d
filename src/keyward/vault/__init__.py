# Vault Module - Credential Records and Master Key Gate
#
# Local identities and credential records in SQLite
# Master key hashing (PBKDF2) and the stateless verification gate
#
# SessionController (vault.session) and VaultService (vault.service) are
# imported from their modules; they depend on the cloud package.

from .gate import VerificationGate
from .identity_store import IdentityStore
from .master_key import MasterKeyHasher
from .models import CredentialRecord, Identity, VerificationResult
from .records import LocalRecordStore, RecordStore

__all__ = [
    "VerificationGate",
    "IdentityStore",
    "MasterKeyHasher",
    "CredentialRecord",
    "Identity",
    "VerificationResult",
    "LocalRecordStore",
    "RecordStore",
]
