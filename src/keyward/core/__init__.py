# Core Module - Shared Utilities
#
# Core module provides shared functionality across all Keyward modules:
# - Audit logging
# - Error taxonomy and result envelope
# - SQLite connection helper

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
)
from .exceptions import (
    AuthFailed,
    ConnectionFailed,
    InconsistentLink,
    KeywardError,
    NotFound,
    PersistenceFailed,
    ProvisioningFailed,
    SessionEnded,
    ValidationError,
)
from .results import Result

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    # Errors
    "KeywardError",
    "ValidationError",
    "AuthFailed",
    "ConnectionFailed",
    "ProvisioningFailed",
    "PersistenceFailed",
    "InconsistentLink",
    "NotFound",
    "SessionEnded",
    # Envelope
    "Result",
]
