"""Credential encryption."""

from chat_key_proxy.crypto.cipher import (
    Cipher,
    EncryptedCredential,
    generate_key,
    load_key,
)

__all__ = ["Cipher", "EncryptedCredential", "generate_key", "load_key"]
