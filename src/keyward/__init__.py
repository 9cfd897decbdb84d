# Keyward - Main Package
#
# Personal credential vault: a local SQLite store with an optional remote
# mirror. Every reveal or edit of a stored secret is gated on re-entering
# the master key.

__version__ = "0.3.0"
__author__ = "Keyward Team"
__description__ = "Personal credential vault with optional cloud mirror"

from .core import (
    EventSeverity,
    EventType,
    Result,
    get_audit_logger,
)

__all__ = [
    "__version__",
    "EventType",
    "EventSeverity",
    "Result",
    "get_audit_logger",
]
