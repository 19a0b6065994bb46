"""
Shared pytest fixtures for the dbclient-vault test suite.

The autouse fixture isolates tests from the live audit trail: the global
AuditLogger is redirected to a temp directory for every test.
"""

import pytest

from dbclient_vault.vault import ConnectionProfile, ConnectionStore, DatabaseType, generate_key


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test.

    Without this, any test that (directly or indirectly) calls
    ``get_audit_logger().log_event(...)`` writes into the real
    ``./audit_logs/`` directory.
    """
    import dbclient_vault.core.audit_log as audit_mod

    monkeypatch.delenv("DBCLIENT_VAULT_AUDIT_DIR", raising=False)

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = audit_mod.AuditLogger(tmp_path / "audit_logs")

    yield

    audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


@pytest.fixture
def key():
    """Fresh random 256-bit key."""
    return generate_key()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "connections.db"


@pytest.fixture
def store(db_path, key):
    """ConnectionStore backed by a temp database."""
    s = ConnectionStore(db_path, key)
    yield s
    s.close()


def make_profile(**overrides) -> ConnectionProfile:
    """Build a MySQL profile with sensible defaults."""
    fields = dict(
        id="test-id",
        name="Test Connection",
        color="#ef4444",
        kind=DatabaseType.MYSQL,
        host="localhost",
        port=3306,
        username="root",
        secret="secret_password",
        database="test_db",
    )
    fields.update(overrides)
    return ConnectionProfile(**fields)


@pytest.fixture
def profile_factory():
    return make_profile
