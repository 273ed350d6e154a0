"""
Credential cipher: AES-256-GCM encryption of API keys held in memory.

Format of a serialized credential:
    <nonce hex>:<ciphertext+tag hex>

Hex output only uses [0-9a-f], so the ':' delimiter can never appear inside
either part and a single split is unambiguous.

Security Note:
    Never log plaintext, ciphertext or key material. Only log failure classes.
    Nonces are random 96-bit; a fresh one is drawn for every encryption.
"""
from __future__ import annotations

import binascii
import os
import secrets
from dataclasses import dataclass

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from chat_key_proxy.errors import (
    CiphertextFormatError,
    CryptoError,
    KeyMaterialError,
)

logger = structlog.get_logger()

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM tag appended by AESGCM.encrypt
KEY_LENGTH = 32  # AES-256
SEPARATOR = ":"


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------

def load_key(hex_key: str | None) -> bytes:
    """Decode the process-wide encryption key.

    Args:
        hex_key: Key as 64 hexadecimal characters (32 bytes).

    Returns:
        Raw 32-byte key.

    Raises:
        KeyMaterialError: If the key is absent, has the wrong length or is not hex.
    """
    if not hex_key:
        raise KeyMaterialError("ENCRYPTION_KEY is not set")
    hex_key = hex_key.strip()
    if len(hex_key) != KEY_LENGTH * 2:
        raise KeyMaterialError(
            f"ENCRYPTION_KEY must be {KEY_LENGTH * 2} hex characters "
            f"({KEY_LENGTH} bytes)"
        )
    try:
        key = binascii.unhexlify(hex_key)
    except (binascii.Error, ValueError):
        raise KeyMaterialError("ENCRYPTION_KEY must be hexadecimal") from None
    return key


def generate_key() -> str:
    """Generate a random 32-byte key and return it as 64 hex characters.

    This is a utility for operators to generate ENCRYPTION_KEY values.
    """
    return secrets.token_hex(KEY_LENGTH)


# ---------------------------------------------------------------------------
# Encrypted record
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EncryptedCredential:
    """A nonce and the ciphertext (with GCM tag) it was produced with."""

    iv: bytes
    ciphertext: bytes

    def __repr__(self) -> str:
        return f"EncryptedCredential(iv=<{len(self.iv)} bytes>, ciphertext=<{len(self.ciphertext)} bytes>)"

    def serialize(self) -> str:
        return self.iv.hex() + SEPARATOR + self.ciphertext.hex()

    @classmethod
    def parse(cls, text: str) -> "EncryptedCredential":
        """Parse the ``<iv hex>:<ciphertext hex>`` form.

        Raises:
            CiphertextFormatError: On wrong part count, non-hex data, a nonce
                of the wrong length or a ciphertext shorter than the tag.
        """
        if not isinstance(text, str):
            raise CiphertextFormatError()
        parts = text.split(SEPARATOR)
        if len(parts) != 2:
            raise CiphertextFormatError()
        try:
            iv = binascii.unhexlify(parts[0])
            ciphertext = binascii.unhexlify(parts[1])
        except (binascii.Error, ValueError):
            raise CiphertextFormatError() from None
        record = cls(iv=iv, ciphertext=ciphertext)
        record.validate()
        return record

    def validate(self) -> None:
        if len(self.iv) != NONCE_SIZE:
            raise CiphertextFormatError()
        if len(self.ciphertext) < TAG_SIZE:
            raise CiphertextFormatError()


# ---------------------------------------------------------------------------
# Cipher
# ---------------------------------------------------------------------------

class Cipher:
    """Symmetric encrypt/decrypt under one process-wide key.

    The key is fixed at construction and never changes. Every failure is
    surfaced as a CryptoError subclass with a generic message.
    """

    def __init__(self, key: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise KeyMaterialError(
                f"Encryption key must be exactly {KEY_LENGTH} bytes"
            )
        self._aead = AESGCM(bytes(key))

    def __repr__(self) -> str:
        return "Cipher(algorithm='AES-256-GCM')"

    @classmethod
    def from_hex(cls, hex_key: str | None) -> "Cipher":
        return cls(load_key(hex_key))

    def encrypt(self, plaintext: bytes | str) -> EncryptedCredential:
        """Encrypt plaintext under a fresh random nonce."""
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        nonce = os.urandom(NONCE_SIZE)
        try:
            ciphertext = self._aead.encrypt(nonce, plaintext, None)
        except Exception as err:
            logger.error("encrypt_failed", error_type=type(err).__name__)
            raise CryptoError() from None
        return EncryptedCredential(iv=nonce, ciphertext=ciphertext)

    def decrypt(self, record: EncryptedCredential | str) -> bytes:
        """Decrypt a record or its serialized form.

        Raises:
            CiphertextFormatError: If the record is malformed.
            CryptoError: If authentication fails (wrong key or tampered data).
        """
        if isinstance(record, EncryptedCredential):
            record.validate()
        else:
            record = EncryptedCredential.parse(record)
        try:
            return self._aead.decrypt(record.iv, record.ciphertext, None)
        except InvalidTag:
            logger.warning("decrypt_failed", error_type="InvalidTag")
            raise CryptoError() from None
        except Exception as err:
            logger.error("decrypt_failed", error_type=type(err).__name__)
            raise CryptoError() from None

    def decrypt_text(self, record: EncryptedCredential | str) -> str:
        try:
            return self.decrypt(record).decode("utf-8")
        except UnicodeDecodeError:
            raise CryptoError() from None
