# Vault - Connection Profile Model
#
# Defines the ConnectionProfile dataclass, the DatabaseType enum and the
# optional nested SSH tunnel / TLS configurations. These are plain values:
# persistence shapes live in codec.py.

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import uuid4

from .exceptions import SerializationError

PORT_MIN = 0
PORT_MAX = 65535

REDACTED = "********"


def check_port(port: int, what: str = "port") -> None:
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValueError(f"{what} must be an integer, got {type(port).__name__}")
    if not PORT_MIN <= port <= PORT_MAX:
        raise ValueError(f"{what} must be between {PORT_MIN} and {PORT_MAX}, got {port}")


class DatabaseType(str, Enum):
    """Supported database engines. The value is the exact persisted spelling."""

    MYSQL = "MySQL"
    POSTGRESQL = "PostgreSQL"

    @classmethod
    def parse(cls, value: str) -> "DatabaseType":
        """Parse the canonical spelling; anything else is a serialization error."""
        for member in cls:
            if member.value == value:
                return member
        raise SerializationError(f"Invalid database type: {value}")

    @property
    def default_port(self) -> int:
        return _DEFAULT_PORTS[self]

    def __str__(self) -> str:
        return self.value


_DEFAULT_PORTS = {
    DatabaseType.MYSQL: 3306,
    DatabaseType.POSTGRESQL: 5432,
}


# ── SSH tunnel ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class PasswordAuth:
    """SSH password authentication."""

    password: str


@dataclass(frozen=True)
class PrivateKeyAuth:
    """SSH private key authentication, optionally passphrase-protected."""

    key_path: str
    passphrase: Optional[str] = None


@dataclass(frozen=True)
class AgentAuth:
    """SSH agent authentication (no stored credential)."""


SSHAuth = Union[PasswordAuth, PrivateKeyAuth, AgentAuth]


@dataclass
class SSHConfig:
    """SSH tunnel settings for a connection profile."""

    host: str
    port: int
    username: str
    auth: SSHAuth = field(default_factory=AgentAuth)

    def __post_init__(self):
        check_port(self.port, "SSH port")
        if not isinstance(self.auth, (PasswordAuth, PrivateKeyAuth, AgentAuth)):
            raise ValueError(f"Unsupported SSH auth: {self.auth!r}")


# ── TLS ─────────────────────────────────────────────────────────────


@dataclass
class TLSConfig:
    """TLS settings: optional certificate paths plus a verify flag."""

    ca_cert: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    verify: bool = True


# ── Profile ─────────────────────────────────────────────────────────


@dataclass
class ConnectionProfile:
    """A named connection configuration, the unit of storage in the vault.

    ``id`` is chosen by the caller and is the primary key. ``secret`` is the
    database password; it is encrypted before it reaches disk.
    """

    id: str
    name: str
    color: str
    kind: DatabaseType
    host: str
    port: int
    username: str
    secret: str
    database: Optional[str] = None
    ssh_config: Optional[SSHConfig] = None
    tls_config: Optional[TLSConfig] = None

    def __post_init__(self):
        if not isinstance(self.kind, DatabaseType):
            self.kind = DatabaseType.parse(self.kind)
        check_port(self.port)

    @classmethod
    def new(
        cls,
        name: str,
        color: str,
        kind: DatabaseType,
        host: str,
        port: int,
        username: str,
        secret: str,
        **optional: Any,
    ) -> "ConnectionProfile":
        """Create a profile with a freshly generated UUID4 id."""
        return cls(
            id=str(uuid4()),
            name=name,
            color=color,
            kind=kind,
            host=host,
            port=port,
            username=username,
            secret=secret,
            **optional,
        )

    def with_changes(self, **changes: Any) -> "ConnectionProfile":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self, *, redact: bool = True) -> Dict[str, Any]:
        """Plain dictionary view for display; secrets are masked unless redact=False."""
        d: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "db_type": self.kind.value,
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "password": REDACTED if redact else self.secret,
            "database": self.database,
            "ssh_config": None,
            "ssl_config": None,
        }
        if self.ssh_config is not None:
            auth = self.ssh_config.auth
            if isinstance(auth, PasswordAuth):
                auth_view: Any = {"Password": REDACTED if redact else auth.password}
            elif isinstance(auth, PrivateKeyAuth):
                passphrase = auth.passphrase
                if redact and passphrase is not None:
                    passphrase = REDACTED
                auth_view = {"PrivateKey": {"key_path": auth.key_path, "passphrase": passphrase}}
            else:
                auth_view = "Agent"
            d["ssh_config"] = {
                "host": self.ssh_config.host,
                "port": self.ssh_config.port,
                "username": self.ssh_config.username,
                "auth": auth_view,
            }
        if self.tls_config is not None:
            d["ssl_config"] = {
                "ca_cert": self.tls_config.ca_cert,
                "client_cert": self.tls_config.client_cert,
                "client_key": self.tls_config.client_key,
                "verify": self.tls_config.verify,
            }
        return d
