# Vault - Master Key Hashing
#
# Master key -> stored hash (PBKDF2-SHA256)
# Constant-time verification against the stored hash
# Registration rules for usernames and master keys
#
# The stored hash is self-describing so the iteration count can be raised
# for new accounts without invalidating existing ones:
#
#     pbkdf2_sha256$<iterations>$<salt b64>$<derived key b64>

import base64
import os
import secrets
from typing import Tuple

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..config import DEFAULT_PBKDF2_ITERATIONS

HASH_SCHEME = "pbkdf2_sha256"
MIN_MASTER_KEY_LENGTH = 8


class MasterKeyHasher:
    """
    Hashes and verifies master keys.

    Flow:
    1. User registers with a master key
    2. PBKDF2 derives a 256-bit key from master key + random salt
    3. Salt, iteration count and derived key are stored (never the master key)
    4. Verification re-derives with the stored salt and compares in constant time
    """

    KEY_LENGTH = 32  # 256 bits
    SALT_LENGTH = 32  # 256-bit salt

    def __init__(self, iterations: int = DEFAULT_PBKDF2_ITERATIONS):
        self.iterations = iterations
        # Compared against when the username is unknown, so a miss costs one derivation too.
        self._decoy_hash = self.hash("keyward-decoy-master-key")

    @staticmethod
    def derive_key(master_key: str, salt: bytes, iterations: int) -> bytes:
        """
        Derive a key from the master key using PBKDF2.

        Args:
            master_key: User's master key
            salt: Random salt (stored with the hash)
            iterations: PBKDF2 iteration count

        Returns:
            256-bit derived key
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=MasterKeyHasher.KEY_LENGTH,
            salt=salt,
            iterations=iterations,
            backend=default_backend()
        )
        return kdf.derive(master_key.encode('utf-8'))

    @staticmethod
    def generate_salt() -> bytes:
        """Generate cryptographically random salt."""
        return os.urandom(MasterKeyHasher.SALT_LENGTH)

    def hash(self, master_key: str) -> str:
        """Hash a master key into its storage form."""
        salt = self.generate_salt()
        derived = self.derive_key(master_key, salt, self.iterations)
        return "$".join([
            HASH_SCHEME,
            str(self.iterations),
            encode_for_storage(salt),
            encode_for_storage(derived),
        ])

    def verify(self, master_key: str, stored_hash: str) -> bool:
        """Check a master key against a stored hash in constant time.

        Malformed stored hashes never match.
        """
        try:
            scheme, iterations, salt_b64, derived_b64 = stored_hash.split("$")
            if scheme != HASH_SCHEME:
                return False
            salt = decode_from_storage(salt_b64)
            expected = decode_from_storage(derived_b64)
            candidate = self.derive_key(master_key, salt, int(iterations))
        except ValueError:
            return False
        return secrets.compare_digest(candidate, expected)

    def verify_decoy(self, master_key: str) -> bool:
        """Spend one verification on the decoy hash; always False."""
        self.verify(master_key, self._decoy_hash)
        return False


def encode_for_storage(data: bytes) -> str:
    """Encode binary data for database storage (base64)."""
    return base64.b64encode(data).decode('utf-8')


def decode_from_storage(data: str) -> bytes:
    """Decode base64-encoded data from the database."""
    return base64.b64decode(data.encode('utf-8'), validate=True)


def validate_username(username: str) -> Tuple[bool, str]:
    """Usernames must be non-empty and alphanumeric."""
    if not username:
        return False, "Username must not be empty"
    if not username.isalnum() or not username.isascii():
        return False, "Username must not contain special characters"
    return True, ""


def validate_master_key(master_key: str) -> Tuple[bool, str]:
    """
    Verify a new master key meets the registration rules.

    Returns:
        (is_valid, error_message)
    """
    if not master_key:
        return False, "Master key must not be empty"
    if len(master_key) < MIN_MASTER_KEY_LENGTH:
        return False, f"The master key must be at least {MIN_MASTER_KEY_LENGTH} characters long"
    return True, ""
