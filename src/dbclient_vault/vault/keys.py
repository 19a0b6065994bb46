# Vault - Key Material
#
# Three ways to obtain the 256-bit key used by CipherBox:
#   random       fresh key for a brand-new store (persisted to a key file)
#   password     Argon2id(password, salt) -> 32 bytes, deterministic
#   placeholder  static passphrase padded/truncated to 32 bytes (known-weak)

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw

from ..core import EventSeverity, EventType, get_audit_logger
from .exceptions import KeyDerivationError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32  # 256 bits for AES-256
MIN_SALT_LENGTH = 16
SALT_LENGTH = 16

# Argon2id parameters (argon2 reference defaults: 19 MiB, 2 passes, 1 lane)
ARGON2_TIME_COST = 2
ARGON2_MEMORY_COST = 19_456  # KiB
ARGON2_PARALLELISM = 1

# Placeholder passphrase shipped with the desktop client.
# Not per-user and not derived: replace with the password strategy before production use.
DEFAULT_PASSPHRASE = "dbclient_default_key_32bytes!"


class KeyStrategy(str, Enum):
    """Key acquisition strategy selected by the host application."""

    PLACEHOLDER = "placeholder"
    PASSWORD = "password"
    RANDOM = "random"

    @classmethod
    def parse(cls, value: str) -> "KeyStrategy":
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown key strategy '{value}' (expected one of: {valid})")


def generate_key() -> bytes:
    """Generate a random 256-bit key from the OS CSPRNG."""
    return os.urandom(KEY_LENGTH)


def generate_salt() -> bytes:
    """Generate a random salt for password-based derivation."""
    return os.urandom(SALT_LENGTH)


def derive_key_from_password(
    password: str,
    salt: bytes,
    *,
    time_cost: int = ARGON2_TIME_COST,
    memory_cost: int = ARGON2_MEMORY_COST,
    parallelism: int = ARGON2_PARALLELISM,
) -> bytes:
    """
    Derive a 256-bit key from a password using Argon2id.

    Same password + salt always yields the same key; a different salt
    yields a different key.

    Args:
        password: User's password
        salt: Random salt, at least 16 bytes (stored with the vault)

    Returns:
        32-byte key

    Raises:
        KeyDerivationError: Salt shorter than 16 bytes, Argon2 failure,
            or output shorter than 32 bytes
    """
    if len(salt) < MIN_SALT_LENGTH:
        raise KeyDerivationError(f"Salt must be at least {MIN_SALT_LENGTH} bytes")

    try:
        key = hash_secret_raw(
            password.encode("utf-8"),
            salt,
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=KEY_LENGTH,
            type=Type.ID,
        )
    except HashingError as e:
        raise KeyDerivationError(f"Argon2id derivation failed: {e}") from e

    if len(key) < KEY_LENGTH:
        raise KeyDerivationError("Invalid key length")

    return key[:KEY_LENGTH]


def placeholder_key(passphrase: str = DEFAULT_PASSPHRASE) -> bytes:
    """
    Build a key from a static passphrase: UTF-8 bytes, zero-padded or truncated to 32.

    Known-weak: every installation using the same passphrase shares the same key.
    """
    get_audit_logger().log_event(
        event_type=EventType.KEY_PLACEHOLDER_USED,
        severity=EventSeverity.WARNING,
        message="Using fixed-passphrase placeholder key; stored secrets are not protected per user",
    )
    raw = passphrase.encode("utf-8")[:KEY_LENGTH]
    return raw.ljust(KEY_LENGTH, b"\x00")


def load_or_create_key_file(key_path: Union[str, Path]) -> bytes:
    """
    Read a random key from key_path, generating it on first use.

    The key file is created with owner read/write permissions only.
    A key file of the wrong size is refused rather than regenerated, since
    replacing it would make every stored secret undecryptable.
    """
    key_path = Path(key_path)
    if key_path.exists():
        key = key_path.read_bytes()
        if len(key) != KEY_LENGTH:
            raise KeyDerivationError(
                f"Key file {key_path} holds {len(key)} bytes, expected {KEY_LENGTH}"
            )
        return key

    key_path.parent.mkdir(parents=True, exist_ok=True)
    key = generate_key()
    fd = os.open(str(key_path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(key)

    logger.info("Generated new random vault key at %s", key_path)
    get_audit_logger().log_event(
        event_type=EventType.KEY_GENERATED,
        severity=EventSeverity.INFO,
        message="Random vault key generated",
        details={"key_file": str(key_path)},
    )
    return key


def resolve_key(
    strategy: KeyStrategy,
    *,
    passphrase: Optional[str] = None,
    key_file: Optional[Union[str, Path]] = None,
) -> bytes:
    """
    Produce the active key for the non-password strategies.

    The password strategy needs the per-vault salt, so it is resolved by
    ConnectionStore.open_with_password() instead.
    """
    if strategy == KeyStrategy.PLACEHOLDER:
        return placeholder_key(passphrase or DEFAULT_PASSPHRASE)
    if strategy == KeyStrategy.RANDOM:
        if key_file is None:
            raise KeyDerivationError("The random key strategy requires a key file")
        return load_or_create_key_file(key_file)
    raise KeyDerivationError(
        "The password strategy needs the vault salt; use ConnectionStore.open_with_password()"
    )
