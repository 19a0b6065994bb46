# Vault - Encryption Envelope
#
# Secret string + 256-bit key -> AES-256-GCM envelope (nonce || ciphertext || tag)
# Base64 transport encoding for TEXT columns

import os
import base64
import binascii

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import DecryptionError, EncryptionError


class CipherBox:
    """
    Authenticated encryption for connection secrets.

    Flow:
    1. A fresh 96-bit nonce is drawn for every call to encrypt()
    2. AES-256-GCM encrypts and authenticates the UTF-8 plaintext
    3. The envelope is nonce || ciphertext || tag
    4. encode_for_storage() turns the envelope into base64 text for SQLite

    Encrypting the same plaintext twice yields two different envelopes.
    """

    KEY_LENGTH = 32  # 256 bits for AES-256
    NONCE_LENGTH = 12  # 96-bit nonce for GCM (recommended)
    TAG_LENGTH = 16  # GCM authentication tag appended by AESGCM

    @staticmethod
    def _cipher(key: bytes) -> AESGCM:
        if len(key) != CipherBox.KEY_LENGTH:
            raise EncryptionError(
                f"Invalid key length: expected {CipherBox.KEY_LENGTH} bytes, got {len(key)}"
            )
        return AESGCM(key)

    @staticmethod
    def encrypt(plaintext: str, key: bytes) -> bytes:
        """
        Encrypt plaintext using AES-256-GCM.

        Args:
            plaintext: Password or secret to encrypt
            key: 256-bit encryption key

        Returns:
            Envelope bytes: nonce(12) + ciphertext + tag(16)

        Raises:
            EncryptionError: If the plaintext is not a str, the key is not
                32 bytes, or the cipher fails
        """
        if not isinstance(plaintext, str):
            raise EncryptionError(f"Plaintext must be str, got {type(plaintext).__name__}")
        cipher = CipherBox._cipher(key)

        # Must be unique per encryption under one key
        nonce = os.urandom(CipherBox.NONCE_LENGTH)

        try:
            ciphertext = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
        except (ValueError, OverflowError, UnicodeEncodeError) as e:
            raise EncryptionError(f"Encryption failed: {e}") from e

        return nonce + ciphertext

    @staticmethod
    def decrypt(envelope: bytes, key: bytes) -> str:
        """
        Decrypt an envelope produced by encrypt().

        Raises:
            DecryptionError: Envelope too short, authentication failed
                (wrong key or tampered bytes), or plaintext is not UTF-8
        """
        if len(envelope) < CipherBox.NONCE_LENGTH:
            raise DecryptionError("Encrypted data too short")

        try:
            cipher = CipherBox._cipher(key)
        except EncryptionError as e:
            raise DecryptionError(str(e)) from e

        nonce = envelope[: CipherBox.NONCE_LENGTH]
        ciphertext = envelope[CipherBox.NONCE_LENGTH :]

        try:
            plaintext_bytes = cipher.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionError("Authentication failed (wrong key or corrupted data)") from e

        try:
            return plaintext_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(f"Invalid UTF-8: {e}") from e

    @staticmethod
    def encode_for_storage(data: bytes) -> str:
        """Encode binary data for database storage (base64)."""
        return base64.b64encode(data).decode("ascii")

    @staticmethod
    def decode_from_storage(data: str) -> bytes:
        """Decode base64-encoded data from database."""
        try:
            return base64.b64decode(data.encode("ascii"), validate=True)
        except (binascii.Error, ValueError, UnicodeEncodeError) as e:
            raise DecryptionError(f"Invalid base64: {e}") from e

    @staticmethod
    def seal(plaintext: str, key: bytes) -> str:
        """Encrypt and encode in one step (value ready for a TEXT column)."""
        return CipherBox.encode_for_storage(CipherBox.encrypt(plaintext, key))

    @staticmethod
    def open(stored: str, key: bytes) -> str:
        """Decode and decrypt a value written by seal()."""
        return CipherBox.decrypt(CipherBox.decode_from_storage(stored), key)
