# Vault Module - Encrypted Connection Profile Store
#
# Connection profiles persisted in SQLite with AES-256-GCM encrypted secrets.
# Keys come from a password (Argon2id), a random key file, or a placeholder passphrase.

from .codec import ConnectionRow, RecordCodec
from .connection_store import ConnectionStore
from .encryption import CipherBox
from .exceptions import (
    DecryptionError,
    EncryptionError,
    KeyDerivationError,
    SerializationError,
    StorageError,
    VaultError,
    describe_error,
)
from .keys import (
    KeyStrategy,
    derive_key_from_password,
    generate_key,
    generate_salt,
    placeholder_key,
)
from .models import (
    AgentAuth,
    ConnectionProfile,
    DatabaseType,
    PasswordAuth,
    PrivateKeyAuth,
    SSHConfig,
    TLSConfig,
)

__all__ = [
    "AgentAuth",
    "CipherBox",
    "ConnectionProfile",
    "ConnectionRow",
    "ConnectionStore",
    "DatabaseType",
    "DecryptionError",
    "EncryptionError",
    "KeyDerivationError",
    "KeyStrategy",
    "PasswordAuth",
    "PrivateKeyAuth",
    "RecordCodec",
    "SSHConfig",
    "SerializationError",
    "StorageError",
    "TLSConfig",
    "VaultError",
    "derive_key_from_password",
    "describe_error",
    "generate_key",
    "generate_salt",
    "placeholder_key",
]
