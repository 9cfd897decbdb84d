"""
Keyward Exception Classes

Every exception carries a stable ``kind`` string. The service boundary
copies it into the result envelope so callers can branch on it.
"""

from typing import Optional


class KeywardError(Exception):
    """Base exception for vault operations"""

    kind = "internal"

    def __init__(self, message: str = "", *, cause: Optional[BaseException] = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__
        self.cause = cause


class ValidationError(KeywardError):
    """Input is empty or malformed"""

    kind = "validation"


class AuthFailed(KeywardError):
    """Verification failed"""

    kind = "auth-failed"


class ConnectionFailed(KeywardError):
    """Remote store is unreachable"""

    kind = "connection-failed"


class ProvisioningFailed(KeywardError):
    """Remote identity could not be created"""

    kind = "provisioning-failed"


class PersistenceFailed(KeywardError):
    """Local store write failed"""

    kind = "persistence-failed"


class InconsistentLink(PersistenceFailed):
    """Remote identity exists but the link was not recorded locally"""

    kind = "inconsistent-link"

    def __init__(self, message: str = "", *, remote_id: str, cause: Optional[BaseException] = None):
        super().__init__(message, cause=cause)
        self.remote_id = remote_id


class NotFound(KeywardError):
    """Record or identity not found"""

    kind = "not-found"


class SessionEnded(KeywardError):
    """No active session"""

    kind = "session-ended"
