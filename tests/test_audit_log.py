"""Tests for the structlog-backed audit logger."""

import json

from keyward.core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger


def read_events(logger):
    with open(logger.log_file, encoding="utf-8") as fh:
        return [json.loads(line) for line in fh if line.strip()]


class TestAuditLogger:

    def test_writes_json_line(self, tmp_path):
        logger = AuditLogger(log_dir=tmp_path / "audit")

        event_id = logger.log_event(
            EventType.LOGIN_FAILED,
            EventSeverity.INVESTIGATE,
            "Login rejected",
            details={"username": "alice"},
        )

        events = read_events(logger)
        assert events[-1]["event_id"] == event_id
        assert events[-1]["event_type"] == "login.failed"
        assert events[-1]["severity"] == "investigate"
        assert events[-1]["details"] == {"username": "alice"}
        assert "hostname" in events[-1]["user_context"]

    def test_critical_event_severity(self, tmp_path):
        logger = AuditLogger(log_dir=tmp_path / "audit")

        logger.log_event(
            EventType.VAULT_ERROR,
            EventSeverity.CRITICAL,
            "Unexpected error enabling cloud integration",
        )

        event = read_events(logger)[-1]
        assert event["event_type"] == "vault.error"
        assert event["severity"] == "critical"

    def test_singleton_points_at_temp_dir(self, tmp_path):
        assert get_audit_logger().log_dir == tmp_path / "audit_logs"

    def test_master_key_never_logged(self, tmp_path):
        import asyncio
        from keyward.vault.service import VaultService

        service = VaultService()
        asyncio.run(service.register("alice", "correct horse"))
        asyncio.run(service.login("alice", "correct horse"))

        text = get_audit_logger().log_file.read_text(encoding="utf-8")
        assert "login.succeeded" in text
        assert "correct horse" not in text
