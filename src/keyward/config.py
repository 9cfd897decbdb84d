"""
Runtime configuration for Keyward.

Settings come from environment variables. A ``.env`` file in the working
directory is loaded first (python-dotenv) so desktop installs can keep the
remote store URI out of the shell profile.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

# Database used when neither the caller nor KEYWARD_REMOTE_DB names one.
FALLBACK_REMOTE_DB = "test"

DEFAULT_PBKDF2_ITERATIONS = 600_000  # OWASP 2023: 600k iterations for PBKDF2-SHA256


@dataclass
class Settings:
    """Keyward settings.

    Attributes:
        data_dir: Directory holding the local vault database.
        remote_uri: Base URL of the remote document API ("" = cloud unavailable).
        remote_db: Default remote database name.
        remote_token: Bearer token sent to the remote document API.
        connect_timeout: Seconds allowed for the first remote connect.
        op_timeout: Seconds allowed for each remote CRUD call.
        pbkdf2_iterations: Cost of master-key hashing for new accounts.
        audit_dir: Directory for the JSON audit log.
        hibp_api_key: Have I Been Pwned API key for breach reports.
    """

    data_dir: Path = Path("data")
    remote_uri: str = ""
    remote_db: str = ""
    remote_token: str = ""
    connect_timeout: float = 5.0
    op_timeout: float = 10.0
    pbkdf2_iterations: int = DEFAULT_PBKDF2_ITERATIONS
    audit_dir: Path = Path("audit_logs")
    hibp_api_key: str = ""

    @property
    def vault_path(self) -> Path:
        return self.data_dir / "vault.db"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment (after loading .env)."""
        load_dotenv(find_dotenv(usecwd=True))
        return cls(
            data_dir=Path(os.getenv("KEYWARD_DATA_DIR", "data")),
            remote_uri=os.getenv("KEYWARD_REMOTE_URI", "").rstrip("/"),
            remote_db=os.getenv("KEYWARD_REMOTE_DB", ""),
            remote_token=os.getenv("KEYWARD_REMOTE_TOKEN", ""),
            connect_timeout=float(os.getenv("KEYWARD_REMOTE_CONNECT_TIMEOUT", "5")),
            op_timeout=float(os.getenv("KEYWARD_REMOTE_OP_TIMEOUT", "10")),
            pbkdf2_iterations=int(
                os.getenv("KEYWARD_PBKDF2_ITERATIONS", str(DEFAULT_PBKDF2_ITERATIONS))
            ),
            audit_dir=Path(os.getenv("KEYWARD_AUDIT_DIR", "audit_logs")),
            hibp_api_key=os.getenv("HIBP_API_KEY", ""),
        )


# ── Singleton ────────────────────────────────────────────────────────

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the singleton (for testing)."""
    global _settings
    _settings = settings
