# Main Entry Point - Keyward backend
#
# Runs the local vault API that the desktop frontend talks to.

import argparse
import logging

from . import __version__
from .core import EventSeverity, EventType, get_audit_logger


def main():
    """Main entry point for Keyward."""
    parser = argparse.ArgumentParser(
        description="Keyward - personal credential vault backend",
    )

    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Backend host (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Backend port (default: 8000)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Keyward v{__version__}"
    )

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    audit = get_audit_logger()
    audit.log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="Keyward starting",
        details={"version": __version__, "host": args.host, "port": args.port}
    )

    from .api.main import start_api_server

    try:
        start_api_server(host=args.host, port=args.port)
    finally:
        audit.log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.INFO,
            message="Keyward stopped"
        )


if __name__ == "__main__":
    main()
