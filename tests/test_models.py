"""Tests for the connection profile model and DatabaseType enum."""

import uuid

import pytest

from dbclient_vault.vault.exceptions import SerializationError
from dbclient_vault.vault.models import (
    REDACTED,
    AgentAuth,
    ConnectionProfile,
    DatabaseType,
    PasswordAuth,
    PrivateKeyAuth,
    SSHConfig,
    TLSConfig,
)


class TestDatabaseType:

    @pytest.mark.parametrize("kind", list(DatabaseType))
    def test_round_trip(self, kind):
        assert DatabaseType.parse(kind.value) is kind

    def test_canonical_spellings(self):
        assert DatabaseType.MYSQL.value == "MySQL"
        assert DatabaseType.POSTGRESQL.value == "PostgreSQL"
        assert str(DatabaseType.POSTGRESQL) == "PostgreSQL"

    @pytest.mark.parametrize("spelling", ["mysql", "MYSQL", "Postgres", "", "SQLite"])
    def test_unknown_spelling_fails(self, spelling):
        with pytest.raises(SerializationError, match="Invalid database type"):
            DatabaseType.parse(spelling)

    def test_default_ports(self):
        assert DatabaseType.MYSQL.default_port == 3306
        assert DatabaseType.POSTGRESQL.default_port == 5432


class TestConnectionProfile:

    def test_port_bounds(self, profile_factory):
        assert profile_factory(port=0).port == 0
        assert profile_factory(port=65535).port == 65535
        with pytest.raises(ValueError):
            profile_factory(port=65536)
        with pytest.raises(ValueError):
            profile_factory(port=-1)

    def test_port_must_be_int(self, profile_factory):
        with pytest.raises(ValueError):
            profile_factory(port="3306")
        with pytest.raises(ValueError):
            profile_factory(port=True)

    def test_kind_string_is_parsed(self, profile_factory):
        assert profile_factory(kind="PostgreSQL").kind is DatabaseType.POSTGRESQL
        with pytest.raises(SerializationError):
            profile_factory(kind="Oracle")

    def test_new_assigns_uuid(self):
        p = ConnectionProfile.new(
            name="DB", color="#fff", kind=DatabaseType.MYSQL,
            host="localhost", port=3306, username="root", secret="pw",
        )
        assert uuid.UUID(p.id)
        assert p.database is None
        assert p.ssh_config is None
        assert p.tls_config is None

    def test_new_ids_are_unique(self):
        args = dict(name="DB", color="#fff", kind=DatabaseType.MYSQL,
                    host="h", port=1, username="u", secret="s")
        assert ConnectionProfile.new(**args).id != ConnectionProfile.new(**args).id

    def test_with_changes(self, profile_factory):
        p = profile_factory()
        q = p.with_changes(name="Renamed")
        assert q.name == "Renamed"
        assert p.name == "Test Connection"
        assert q.id == p.id

    def test_to_dict_redacts_secrets(self, profile_factory):
        p = profile_factory(
            ssh_config=SSHConfig("bastion", 22, "ops", PasswordAuth("ssh-pw")),
        )
        d = p.to_dict()
        assert d["password"] == REDACTED
        assert d["ssh_config"]["auth"] == {"Password": REDACTED}
        assert d["db_type"] == "MySQL"
        assert "secret_password" not in str(d)
        assert "ssh-pw" not in str(d)

    def test_to_dict_reveal(self, profile_factory):
        p = profile_factory(tls_config=TLSConfig(ca_cert="/ca.pem", verify=False))
        d = p.to_dict(redact=False)
        assert d["password"] == "secret_password"
        assert d["ssl_config"] == {
            "ca_cert": "/ca.pem", "client_cert": None, "client_key": None, "verify": False,
        }

    def test_to_dict_private_key_and_agent(self, profile_factory):
        with_key = profile_factory(
            ssh_config=SSHConfig("b", 22, "u", PrivateKeyAuth("/k", None)),
        ).to_dict()
        assert with_key["ssh_config"]["auth"] == {"PrivateKey": {"key_path": "/k", "passphrase": None}}
        agent = profile_factory(ssh_config=SSHConfig("b", 22, "u", AgentAuth())).to_dict()
        assert agent["ssh_config"]["auth"] == "Agent"


class TestNestedConfigs:

    def test_ssh_port_bounds(self):
        with pytest.raises(ValueError):
            SSHConfig("bastion", 70000, "ops", AgentAuth())

    def test_ssh_default_auth_is_agent(self):
        assert SSHConfig("bastion", 22, "ops").auth == AgentAuth()

    def test_ssh_rejects_unknown_auth(self):
        with pytest.raises(ValueError):
            SSHConfig("bastion", 22, "ops", auth="password")

    def test_tls_defaults(self):
        tls = TLSConfig()
        assert tls.verify is True
        assert tls.ca_cert is None
