# Cloud Module - Optional Remote Mirror
#
# One lazily-established connection to the remote document store,
# remote identity provisioning, remote credential records and the
# coordinator that links a local identity to its remote counterpart.

from .connection import (
    ConnectionManager,
    ConnectionState,
    get_connection_manager,
    set_connection_manager,
)
from .coordinator import CloudLinkCoordinator, CloudView, LinkState, Transition
from .provisioning import RemoteIdentityProvisioner
from .records import RemoteRecordStore
from .transport import DocumentTransport, HttpDocumentTransport

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "get_connection_manager",
    "set_connection_manager",
    "CloudLinkCoordinator",
    "CloudView",
    "LinkState",
    "Transition",
    "RemoteIdentityProvisioner",
    "RemoteRecordStore",
    "DocumentTransport",
    "HttpDocumentTransport",
]
