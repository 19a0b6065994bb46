"""Tests for CipherBox: AES-256-GCM envelopes and base64 storage encoding."""

import base64

import pytest

from dbclient_vault.vault.encryption import CipherBox
from dbclient_vault.vault.exceptions import DecryptionError, EncryptionError
from dbclient_vault.vault.keys import generate_key


class TestEncryptDecrypt:
    """Envelope round trip and nonce behaviour."""

    def test_encrypt_decrypt_roundtrip(self, key):
        plaintext = "sensitive_password_123"
        envelope = CipherBox.encrypt(plaintext, key)
        assert envelope != plaintext.encode("utf-8")
        assert CipherBox.decrypt(envelope, key) == plaintext

    def test_envelope_layout(self, key):
        plaintext = "abc"
        envelope = CipherBox.encrypt(plaintext, key)
        # nonce(12) + ciphertext(len) + tag(16)
        assert len(envelope) == CipherBox.NONCE_LENGTH + len(plaintext) + CipherBox.TAG_LENGTH

    def test_same_plaintext_gives_different_envelopes(self, key):
        enc1 = CipherBox.encrypt("password", key)
        enc2 = CipherBox.encrypt("password", key)
        # Different nonces -> different envelopes
        assert enc1 != enc2
        assert enc1[:12] != enc2[:12]
        assert CipherBox.decrypt(enc1, key) == "password"
        assert CipherBox.decrypt(enc2, key) == "password"

    def test_empty_plaintext(self, key):
        envelope = CipherBox.encrypt("", key)
        assert CipherBox.decrypt(envelope, key) == ""

    def test_unicode_plaintext(self, key):
        secret = "pässwörd-密码-🔑"
        assert CipherBox.decrypt(CipherBox.encrypt(secret, key), key) == secret

    def test_wrong_key_fails(self, key):
        envelope = CipherBox.encrypt("password", key)
        with pytest.raises(DecryptionError):
            CipherBox.decrypt(envelope, generate_key())

    def test_tampered_ciphertext_fails(self, key):
        envelope = bytearray(CipherBox.encrypt("password", key))
        envelope[-1] ^= 0x01
        with pytest.raises(DecryptionError):
            CipherBox.decrypt(bytes(envelope), key)

    def test_tampered_nonce_fails(self, key):
        envelope = bytearray(CipherBox.encrypt("password", key))
        envelope[0] ^= 0xFF
        with pytest.raises(DecryptionError):
            CipherBox.decrypt(bytes(envelope), key)

    def test_too_short_envelope_fails(self, key):
        with pytest.raises(DecryptionError, match="too short"):
            CipherBox.decrypt(b"\x00" * 11, key)

    def test_nonce_only_envelope_fails(self, key):
        with pytest.raises(DecryptionError):
            CipherBox.decrypt(b"\x00" * 12, key)

    def test_invalid_utf8_plaintext_fails(self, key):
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM

        nonce = b"\x01" * 12
        envelope = nonce + AESGCM(key).encrypt(nonce, b"\xff\xfe\xfd", None)
        with pytest.raises(DecryptionError, match="UTF-8"):
            CipherBox.decrypt(envelope, key)

    @pytest.mark.parametrize("plaintext", [None, b"bytes", 1234])
    def test_non_string_plaintext_rejected(self, key, plaintext):
        with pytest.raises(EncryptionError, match="must be str"):
            CipherBox.encrypt(plaintext, key)

    def test_wrong_key_length_rejected(self):
        with pytest.raises(EncryptionError):
            CipherBox.encrypt("password", b"short")

    def test_decrypt_error_is_encryption_class(self, key):
        envelope = CipherBox.encrypt("password", key)
        with pytest.raises(EncryptionError):
            CipherBox.decrypt(envelope, generate_key())


class TestStorageEncoding:
    """Base64 transport for TEXT columns."""

    def test_encode_is_standard_base64(self, key):
        envelope = CipherBox.encrypt("password", key)
        text = CipherBox.encode_for_storage(envelope)
        assert text == base64.b64encode(envelope).decode("ascii")
        assert CipherBox.decode_from_storage(text) == envelope

    def test_decode_malformed_fails(self):
        with pytest.raises(DecryptionError, match="base64"):
            CipherBox.decode_from_storage("not base64 !!!")

    def test_decode_non_ascii_fails(self):
        with pytest.raises(DecryptionError):
            CipherBox.decode_from_storage("clé")

    def test_seal_and_open(self, key):
        stored = CipherBox.seal("s3cr3t", key)
        assert stored != "s3cr3t"
        assert CipherBox.open(stored, key) == "s3cr3t"

    def test_sealed_value_is_longer_than_plaintext(self, key):
        stored = CipherBox.seal("my_secret_password", key)
        assert len(stored) > len("my_secret_password")
