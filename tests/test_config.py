"""Tests for Settings (environment + .env loading)."""

import os
from pathlib import Path

from keyward.config import DEFAULT_PBKDF2_ITERATIONS, Settings, get_settings, set_settings


class TestSettings:

    def test_from_env_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        for name in (
            "KEYWARD_DATA_DIR", "KEYWARD_REMOTE_URI", "KEYWARD_REMOTE_DB",
            "KEYWARD_REMOTE_TOKEN", "KEYWARD_REMOTE_CONNECT_TIMEOUT",
            "KEYWARD_REMOTE_OP_TIMEOUT", "KEYWARD_PBKDF2_ITERATIONS",
            "KEYWARD_AUDIT_DIR", "HIBP_API_KEY",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.data_dir == Path("data")
        assert settings.remote_uri == ""
        assert settings.connect_timeout == 5.0
        assert settings.op_timeout == 10.0
        assert settings.pbkdf2_iterations == DEFAULT_PBKDF2_ITERATIONS
        assert settings.vault_path == Path("data") / "vault.db"

    def test_from_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("KEYWARD_DATA_DIR", str(tmp_path / "vault"))
        monkeypatch.setenv("KEYWARD_REMOTE_URI", "https://docs.example.com/")
        monkeypatch.setenv("KEYWARD_REMOTE_DB", "prod")
        monkeypatch.setenv("KEYWARD_REMOTE_CONNECT_TIMEOUT", "2.5")
        monkeypatch.setenv("KEYWARD_PBKDF2_ITERATIONS", "1000")

        settings = Settings.from_env()

        assert settings.vault_path == tmp_path / "vault" / "vault.db"
        assert settings.remote_uri == "https://docs.example.com"
        assert settings.remote_db == "prod"
        assert settings.connect_timeout == 2.5
        assert settings.pbkdf2_iterations == 1000

    def test_dotenv_file_is_loaded(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("KEYWARD_REMOTE_DB", raising=False)
        (tmp_path / ".env").write_text("KEYWARD_REMOTE_DB=fromdotenv\n")

        try:
            assert Settings.from_env().remote_db == "fromdotenv"
        finally:
            os.environ.pop("KEYWARD_REMOTE_DB", None)

    def test_singleton(self, settings):
        assert get_settings() is settings
        replacement = Settings()
        set_settings(replacement)
        assert get_settings() is replacement
