"""Tests for the structured audit trail of vault activity."""

import json

import pytest

import dbclient_vault.core.audit_log as audit_mod
from dbclient_vault.core import EventSeverity, EventType, get_audit_logger, log_vault_event


def _events(log_file):
    return [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines() if line]


class TestAuditLogger:

    def test_log_event_writes_json_line(self):
        logger = get_audit_logger()
        event_id = logger.log_event(
            EventType.PROFILE_SAVED,
            EventSeverity.INFO,
            "Connection profile saved: Prod",
            details={"profile_id": "c1"},
        )
        [event] = [e for e in _events(logger.log_file) if e["event_id"] == event_id]
        assert event["event_type"] == "profile.saved"
        assert event["severity"] == "info"
        assert event["details"] == {"profile_id": "c1"}
        assert event["event"] == "vault_event"
        assert "hostname" in event["user_context"]

    def test_severity_maps_to_level(self):
        logger = get_audit_logger()
        log_vault_event(EventType.STORE_ERROR, EventSeverity.CRITICAL, "boom")
        log_vault_event(EventType.KEY_PLACEHOLDER_USED, EventSeverity.WARNING, "weak")
        levels = {e["event_type"]: e["level"] for e in _events(logger.log_file)}
        assert levels["store.error"] == "critical"
        assert levels["key.placeholder_used"] == "warning"

    def test_credential_details_are_scrubbed(self):
        logger = get_audit_logger()
        event_id = logger.log_event(
            EventType.KEY_DERIVED,
            EventSeverity.INFO,
            "derived",
            details={"password": "hunter2", "Passphrase": "x", "db_path": "/tmp/c.db"},
        )
        [event] = [e for e in _events(logger.log_file) if e["event_id"] == event_id]
        assert event["details"] == {
            "password": "[scrubbed]", "Passphrase": "[scrubbed]", "db_path": "/tmp/c.db",
        }
        assert "hunter2" not in logger.log_file.read_text(encoding="utf-8")

    def test_configure_replaces_logger(self, tmp_path):
        old = get_audit_logger()
        new = audit_mod.configure_audit_logger(tmp_path / "other")
        assert get_audit_logger() is new
        assert new is not old
        assert new.log_file.parent == tmp_path / "other"


class TestStoreAuditTrail:

    def test_secrets_never_logged(self, store, profile_factory):
        store.save(profile_factory(secret="do-not-log-me"))
        store.load("test-id")
        store.delete("test-id")
        text = get_audit_logger().log_file.read_text(encoding="utf-8")
        assert "do-not-log-me" not in text

    def test_operations_are_recorded(self, store, profile_factory):
        store.save(profile_factory())
        store.load("test-id")
        store.list_profiles()
        store.delete("test-id")
        types = [e["event_type"] for e in _events(get_audit_logger().log_file)]
        for expected in ("store.opened", "store.schema.created", "profile.saved",
                         "profile.loaded", "profile.listed", "profile.deleted"):
            assert expected in types

    def test_unknown_delete_not_recorded(self, store):
        store.delete("missing")
        types = [e["event_type"] for e in _events(get_audit_logger().log_file)]
        assert "profile.deleted" not in types

    def test_failed_verification_is_alert(self, db_path):
        from dbclient_vault.vault import ConnectionStore
        from dbclient_vault.vault.exceptions import DecryptionError
        from dbclient_vault.vault.keys import generate_key

        with ConnectionStore(db_path, generate_key()) as s:
            s.verify_key()
        with ConnectionStore(db_path, generate_key()) as s:
            with pytest.raises(DecryptionError):
                s.verify_key()
        [event] = [e for e in _events(get_audit_logger().log_file)
                   if e["event_type"] == "key.verify.failed"]
        assert event["severity"] == "alert"
        assert event["level"] == "error"
