"""Mapping between ConnectionProfile values and flat ``connections`` rows.

Encode direction:
- scalar fields are copied verbatim
- ``secret`` is sealed with CipherBox (AES-256-GCM + base64)
- ``kind`` is written with its canonical spelling
- each present nested config becomes canonical JSON with a ``version`` field;
  absent configs become NULL

Decode reverses every step. Any failing field fails the whole profile:
base64/tag problems raise DecryptionError, unknown database types and
malformed nested JSON raise SerializationError.

Nested JSON shapes::

    ssh_config: {"version": 1, "host": ..., "port": ..., "username": ...,
                 "auth": {"Password": <sealed>}
                       | {"PrivateKey": {"key_path": ..., "passphrase": <sealed>|null}}
                       | "Agent"}
    ssl_config: {"version": 1, "ca_cert": ..., "client_cert": ...,
                 "client_key": ..., "verify": true|false}

SSH passwords and key passphrases are sealed inside the JSON as well.
"""

import json
from dataclasses import astuple, dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .encryption import CipherBox
from .exceptions import SerializationError
from .models import (
    AgentAuth,
    ConnectionProfile,
    DatabaseType,
    PasswordAuth,
    PrivateKeyAuth,
    SSHAuth,
    SSHConfig,
    TLSConfig,
    check_port,
)

NESTED_FORMAT_VERSION = 1

# Column order shared by INSERT and SELECT statements
COLUMNS: Tuple[str, ...] = (
    "id",
    "name",
    "color",
    "db_type",
    "host",
    "port",
    "username",
    "password",
    "database",
    "ssh_config",
    "ssl_config",
)


@dataclass(frozen=True)
class ConnectionRow:
    """Raw column values of one ``connections`` row, before decryption/parsing."""

    id: str
    name: str
    color: str
    db_type: str
    host: str
    port: int
    username: str
    password: str
    database: Optional[str]
    ssh_config: Optional[str]
    ssl_config: Optional[str]

    @classmethod
    def from_db_row(cls, row: Sequence[Any]) -> "ConnectionRow":
        """Build from a SELECT result whose columns follow COLUMNS."""
        return cls(*row[: len(COLUMNS)])

    def as_params(self) -> Tuple[Any, ...]:
        return astuple(self)


def _dumps(data: Mapping[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _loads(text: str, column: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Malformed {column}: {e}") from e
    if not isinstance(data, dict):
        raise SerializationError(f"Malformed {column}: expected a JSON object")
    version = data.get("version", NESTED_FORMAT_VERSION)
    if version != NESTED_FORMAT_VERSION:
        raise SerializationError(f"Unsupported {column} version: {version!r}")
    return data


def _require(data: Mapping[str, Any], key: str, kind: type, column: str) -> Any:
    if key not in data:
        raise SerializationError(f"Malformed {column}: missing '{key}'")
    value = data[key]
    if kind is int and isinstance(value, bool):
        raise SerializationError(f"Malformed {column}: '{key}' must be int")
    if not isinstance(value, kind):
        raise SerializationError(f"Malformed {column}: '{key}' must be {kind.__name__}")
    return value


def _optional_str(data: Mapping[str, Any], key: str, column: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise SerializationError(f"Malformed {column}: '{key}' must be a string or null")
    return value


class RecordCodec:
    """Encode/decode connection profiles with one active 256-bit key.

    Args:
        key: The store's active key (exactly 32 bytes).
    """

    def __init__(self, key: bytes):
        self._key = key

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    def encode(self, profile: ConnectionProfile) -> ConnectionRow:
        """Turn a profile into a row; the secret is re-encrypted with a fresh nonce.

        Profiles are mutable, so the fields checked at construction are
        checked again here; a row that decode() would reject is never built.
        """
        kind = self._check_profile(profile)
        return ConnectionRow(
            id=profile.id,
            name=profile.name,
            color=profile.color,
            db_type=kind.value,
            host=profile.host,
            port=profile.port,
            username=profile.username,
            password=CipherBox.seal(profile.secret, self._key),
            database=profile.database,
            ssh_config=self.encode_ssh(profile.ssh_config),
            ssl_config=self.encode_tls(profile.tls_config),
        )

    @staticmethod
    def _check_profile(profile: ConnectionProfile) -> DatabaseType:
        kind = profile.kind
        if not isinstance(kind, DatabaseType):
            kind = DatabaseType.parse(kind)
        try:
            check_port(profile.port)
            if profile.ssh_config is not None:
                if not isinstance(profile.ssh_config, SSHConfig):
                    raise ValueError(f"ssh_config must be SSHConfig, got {profile.ssh_config!r}")
                check_port(profile.ssh_config.port, "SSH port")
            if profile.tls_config is not None and not isinstance(profile.tls_config, TLSConfig):
                raise ValueError(f"tls_config must be TLSConfig, got {profile.tls_config!r}")
        except ValueError as e:
            raise SerializationError(f"Invalid profile '{profile.id}': {e}") from e
        return kind

    def encode_ssh(self, config: Optional[SSHConfig]) -> Optional[str]:
        if config is None:
            return None
        return _dumps({
            "version": NESTED_FORMAT_VERSION,
            "host": config.host,
            "port": config.port,
            "username": config.username,
            "auth": self._encode_auth(config.auth),
        })

    def _encode_auth(self, auth: SSHAuth) -> Any:
        if isinstance(auth, PasswordAuth):
            return {"Password": CipherBox.seal(auth.password, self._key)}
        if isinstance(auth, PrivateKeyAuth):
            passphrase = None
            if auth.passphrase is not None:
                passphrase = CipherBox.seal(auth.passphrase, self._key)
            return {"PrivateKey": {"key_path": auth.key_path, "passphrase": passphrase}}
        if isinstance(auth, AgentAuth):
            return "Agent"
        raise SerializationError(f"Unsupported SSH auth: {auth!r}")

    @staticmethod
    def encode_tls(config: Optional[TLSConfig]) -> Optional[str]:
        if config is None:
            return None
        return _dumps({
            "version": NESTED_FORMAT_VERSION,
            "ca_cert": config.ca_cert,
            "client_cert": config.client_cert,
            "client_key": config.client_key,
            "verify": config.verify,
        })

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    def decode(self, row: ConnectionRow) -> ConnectionProfile:
        """Turn a row back into a profile, or raise; never returns a partial profile."""
        secret = CipherBox.open(row.password, self._key)
        kind = DatabaseType.parse(row.db_type)
        ssh_config = self.decode_ssh(row.ssh_config)
        tls_config = self.decode_tls(row.ssl_config)

        try:
            return ConnectionProfile(
                id=row.id,
                name=row.name,
                color=row.color,
                kind=kind,
                host=row.host,
                port=row.port,
                username=row.username,
                secret=secret,
                database=row.database,
                ssh_config=ssh_config,
                tls_config=tls_config,
            )
        except ValueError as e:
            raise SerializationError(f"Invalid stored profile '{row.id}': {e}") from e

    def decode_ssh(self, text: Optional[str]) -> Optional[SSHConfig]:
        if text is None:
            return None
        data = _loads(text, "ssh_config")
        host = _require(data, "host", str, "ssh_config")
        port = _require(data, "port", int, "ssh_config")
        username = _require(data, "username", str, "ssh_config")
        if "auth" not in data:
            raise SerializationError("Malformed ssh_config: missing 'auth'")
        auth = self._decode_auth(data["auth"])
        try:
            return SSHConfig(host=host, port=port, username=username, auth=auth)
        except ValueError as e:
            raise SerializationError(f"Malformed ssh_config: {e}") from e

    def _decode_auth(self, raw: Any) -> SSHAuth:
        if raw == "Agent":
            return AgentAuth()
        if isinstance(raw, dict) and len(raw) == 1:
            if "Password" in raw:
                sealed = raw["Password"]
                if not isinstance(sealed, str):
                    raise SerializationError("Malformed ssh_config: 'Password' must be a string")
                return PasswordAuth(password=CipherBox.open(sealed, self._key))
            if "PrivateKey" in raw and isinstance(raw["PrivateKey"], dict):
                body = raw["PrivateKey"]
                key_path = _require(body, "key_path", str, "ssh_config")
                sealed = _optional_str(body, "passphrase", "ssh_config")
                passphrase = None
                if sealed is not None:
                    passphrase = CipherBox.open(sealed, self._key)
                return PrivateKeyAuth(key_path=key_path, passphrase=passphrase)
        raise SerializationError(f"Malformed ssh_config: unknown auth {raw!r}")

    @staticmethod
    def decode_tls(text: Optional[str]) -> Optional[TLSConfig]:
        if text is None:
            return None
        data = _loads(text, "ssl_config")
        return TLSConfig(
            ca_cert=_optional_str(data, "ca_cert", "ssl_config"),
            client_cert=_optional_str(data, "client_cert", "ssl_config"),
            client_key=_optional_str(data, "client_key", "ssl_config"),
            verify=_require(data, "verify", bool, "ssl_config"),
        )
