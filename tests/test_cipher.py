"""Tests for the credential cipher."""

import pytest

from chat_key_proxy.crypto import Cipher, EncryptedCredential, generate_key, load_key
from chat_key_proxy.errors import CiphertextFormatError, CryptoError, KeyMaterialError

from conftest import TEST_ENCRYPTION_KEY


class TestLoadKey:
    def test_decodes_hex_key(self):
        key = load_key(TEST_ENCRYPTION_KEY)
        assert len(key) == 32
        assert key.hex() == TEST_ENCRYPTION_KEY

    def test_strips_surrounding_whitespace(self):
        assert load_key(f"  {TEST_ENCRYPTION_KEY}\n") == bytes.fromhex(TEST_ENCRYPTION_KEY)

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_key(self, value):
        with pytest.raises(KeyMaterialError, match="not set"):
            load_key(value)

    @pytest.mark.parametrize("value", ["abcd", TEST_ENCRYPTION_KEY + "00"])
    def test_wrong_length(self, value):
        with pytest.raises(KeyMaterialError, match="64 hex characters"):
            load_key(value)

    def test_not_hex(self):
        with pytest.raises(KeyMaterialError, match="hexadecimal"):
            load_key("zz" * 32)

    def test_error_never_echoes_key(self):
        bad = "q" * 64
        with pytest.raises(KeyMaterialError) as exc_info:
            load_key(bad)
        assert bad not in str(exc_info.value)

    def test_generate_key_is_loadable(self):
        generated = generate_key()
        assert len(generated) == 64
        assert len(load_key(generated)) == 32
        assert generate_key() != generated


class TestCipherConstruction:
    def test_rejects_short_key(self):
        with pytest.raises(KeyMaterialError):
            Cipher(b"too-short")

    def test_rejects_non_bytes(self):
        with pytest.raises(KeyMaterialError):
            Cipher(TEST_ENCRYPTION_KEY)

    def test_from_hex_missing_key(self):
        with pytest.raises(KeyMaterialError):
            Cipher.from_hex(None)

    def test_repr_hides_key(self, cipher):
        assert TEST_ENCRYPTION_KEY not in repr(cipher)


class TestRoundTrip:
    @pytest.mark.parametrize("plaintext", [
        b"abc123",
        b"",
        b"sk-" + b"x" * 200,
        "clé-secrète-ключ".encode("utf-8"),
        bytes(range(256)),
    ])
    def test_decrypt_inverts_encrypt(self, cipher, plaintext):
        assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext

    def test_accepts_str_plaintext(self, cipher):
        assert cipher.decrypt_text(cipher.encrypt("abc123")) == "abc123"

    def test_decrypt_serialized_form(self, cipher):
        serialized = cipher.encrypt(b"abc123").serialize()
        assert cipher.decrypt(serialized) == b"abc123"

    def test_fresh_iv_per_encryption(self, cipher):
        first = cipher.encrypt(b"abc123")
        second = cipher.encrypt(b"abc123")

        assert first.iv != second.iv
        assert first.ciphertext != second.ciphertext
        assert first.serialize() != second.serialize()

    def test_iv_is_twelve_bytes(self, cipher):
        assert len(cipher.encrypt(b"abc123").iv) == 12

    def test_ciphertext_does_not_contain_plaintext(self, cipher):
        record = cipher.encrypt(b"abc123abc123")
        assert b"abc123" not in record.ciphertext


class TestSerialization:
    def test_single_delimiter(self, cipher):
        serialized = cipher.encrypt(b"abc123").serialize()
        iv_hex, ct_hex = serialized.split(":")
        assert len(iv_hex) == 24
        assert all(c in "0123456789abcdef" for c in iv_hex + ct_hex)

    def test_parse_round_trip(self, cipher):
        record = cipher.encrypt(b"abc123")
        assert EncryptedCredential.parse(record.serialize()) == record

    def test_repr_hides_bytes(self, cipher):
        record = cipher.encrypt(b"abc123")
        assert record.ciphertext.hex() not in repr(record)


class TestRejection:
    @pytest.mark.parametrize("text", [
        "",
        "deadbeef",
        "aa:bb:cc",
        "zz" * 12 + ":" + "00" * 20,
        "00" * 12 + ":" + "not-hex",
        "abc:" + "00" * 20,
        "00" * 16 + ":" + "00" * 20,
        "00" * 12 + ":" + "00" * 4,
    ])
    def test_malformed_record(self, cipher, text):
        with pytest.raises(CiphertextFormatError):
            cipher.decrypt(text)

    def test_non_string_record(self, cipher):
        with pytest.raises(CiphertextFormatError):
            cipher.decrypt(12345)

    def test_format_error_is_crypto_error(self):
        assert issubclass(CiphertextFormatError, CryptoError)

    def test_tampered_ciphertext(self, cipher):
        record = cipher.encrypt(b"abc123")
        flipped = bytes([record.ciphertext[0] ^ 0x01]) + record.ciphertext[1:]
        tampered = EncryptedCredential(iv=record.iv, ciphertext=flipped)

        with pytest.raises(CryptoError) as exc_info:
            cipher.decrypt(tampered)
        assert not isinstance(exc_info.value, CiphertextFormatError)

    def test_swapped_iv(self, cipher):
        first = cipher.encrypt(b"abc123")
        second = cipher.encrypt(b"abc123")

        with pytest.raises(CryptoError):
            cipher.decrypt(EncryptedCredential(iv=second.iv, ciphertext=first.ciphertext))

    def test_wrong_key(self, cipher):
        other = Cipher.from_hex(generate_key())
        record = cipher.encrypt(b"abc123")

        with pytest.raises(CryptoError) as exc_info:
            other.decrypt(record)
        assert not isinstance(exc_info.value, CiphertextFormatError)
        assert exc_info.value.message == "Cryptographic operation failed"

    def test_invalid_utf8_plaintext(self, cipher):
        record = cipher.encrypt(b"\xff\xfe")
        with pytest.raises(CryptoError):
            cipher.decrypt_text(record)
