"""
Connection Vault Exception Classes
"""


class VaultError(Exception):
    """Base exception for connection vault operations"""
    pass


class StorageError(VaultError):
    """Raised when the underlying SQLite database fails (I/O, corruption, constraint)"""
    pass


class EncryptionError(VaultError):
    """Raised when AES-GCM encryption fails"""
    pass


class DecryptionError(EncryptionError):
    """Raised when an envelope cannot be decoded, authenticated or decrypted"""
    pass


class SerializationError(VaultError):
    """Raised when a database type or nested configuration cannot be (de)serialized"""
    pass


class KeyDerivationError(VaultError):
    """Raised when a key cannot be derived (salt too short, output too short)"""
    pass


def describe_error(exc: BaseException) -> str:
    """Return the single human-readable message shown for a failure kind."""
    if isinstance(exc, StorageError):
        return f"Storage error: {exc}"
    if isinstance(exc, DecryptionError):
        return f"Decryption failed: {exc}"
    if isinstance(exc, EncryptionError):
        return f"Encryption error: {exc}"
    if isinstance(exc, SerializationError):
        return f"Serialization error: {exc}"
    if isinstance(exc, KeyDerivationError):
        return f"Key derivation failed: {exc}"
    return f"Unexpected error: {exc}"
