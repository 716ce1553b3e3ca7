"""
Tests for the field cipher.

These tests verify:
  - Values round-trip and use the "ivhex:cipherhex" layout
  - Equal plaintexts encrypt to different values (fresh IV each time)
  - encrypt_with_iv is deterministic and rejects bad IV lengths
  - Fallback keys decrypt older values and are reported as stale
  - Malformed values raise DecryptionError
  - Key material resolution: explicit key > key file > generated key, with an
    in-memory key when the key file cannot be read or written
"""

import os
import stat

import pytest

from manavault.crypto import (
    FieldCipher,
    is_encrypted,
    normalize_key,
    resolve_key_material,
)
from manavault.exceptions import DecryptionError

from conftest import OLD_KEY, TEST_KEY


class TestRoundTrip:

    def test_encrypt_decrypt(self, cipher):
        stored = cipher.encrypt("alice@example.com")
        assert cipher.decrypt(stored) == "alice@example.com"

    def test_stored_format(self, cipher):
        iv_hex, ciphertext_hex = cipher.encrypt("hello").split(":")
        assert len(iv_hex) == 32
        bytes.fromhex(iv_hex)
        # One AES block for a short value
        assert len(bytes.fromhex(ciphertext_hex)) == 16

    def test_unicode_and_empty(self, cipher):
        for value in ("", "Zoë 🌙", "x" * 500):
            assert cipher.decrypt(cipher.encrypt(value)) == value

    def test_fresh_iv_per_encryption(self, cipher):
        first = cipher.encrypt("same")
        second = cipher.encrypt("same")
        assert first != second
        assert cipher.decrypt(first) == cipher.decrypt(second) == "same"

    def test_is_encrypted(self, cipher):
        assert is_encrypted(cipher.encrypt("x"))
        assert not is_encrypted("plain@example.com")
        assert not is_encrypted(None)


class TestDeterministicIv:

    def test_same_iv_same_output(self, cipher):
        iv = bytes(range(16))
        assert cipher.encrypt_with_iv("a@b.co", iv) == cipher.encrypt_with_iv("a@b.co", iv)
        assert cipher.encrypt_with_iv("a@b.co", iv).startswith(iv.hex() + ":")

    def test_bad_iv_length(self, cipher):
        with pytest.raises(ValueError):
            cipher.encrypt_with_iv("x", b"short")

    def test_matches_same_iv(self, cipher):
        stored = cipher.encrypt("bob@example.com")
        assert cipher.matches("bob@example.com", stored)
        assert not cipher.matches("eve@example.com", stored)
        assert not cipher.matches("bob@example.com", "not-encrypted")


class TestKeyRotation:

    def test_fallback_key_decrypts_and_reports_stale(self):
        old = FieldCipher(OLD_KEY)
        stored = old.encrypt("legacy value")

        rotated = FieldCipher(TEST_KEY, fallback_keys=[OLD_KEY])
        result = rotated.decrypt_detailed(stored)
        assert result.plaintext == "legacy value"
        assert result.stale is True

    def test_active_key_not_stale(self):
        rotated = FieldCipher(TEST_KEY, fallback_keys=[OLD_KEY])
        assert rotated.decrypt_detailed(rotated.encrypt("v")).stale is False

    def test_unknown_key_fails(self, cipher):
        stored = FieldCipher(OLD_KEY).encrypt("secret")
        with pytest.raises(DecryptionError):
            cipher.decrypt(stored)

    def test_iv_match_under_fallback_key(self):
        stored = FieldCipher(OLD_KEY).encrypt("carol@example.com")
        rotated = FieldCipher(TEST_KEY, fallback_keys=[OLD_KEY])
        assert rotated.matches("carol@example.com", stored)


class TestMalformedInput:

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "no-colon",
            "a:b:c",
            "zz:00",
            "00ff:00",  # IV too short
            "00" * 16 + ":abc",  # odd-length hex
        ],
    )
    def test_rejected(self, cipher, value):
        with pytest.raises(DecryptionError):
            cipher.decrypt(value)

    def test_truncated_ciphertext(self, cipher):
        stored = cipher.encrypt("some longer value that spans blocks")
        with pytest.raises(DecryptionError):
            cipher.decrypt(stored[:-2])


class TestKeyMaterial:

    def test_hex_key_used_as_raw_bytes(self):
        assert normalize_key(TEST_KEY) == bytes.fromhex(TEST_KEY)

    def test_passphrase_is_hashed(self):
        key = normalize_key("correct horse battery staple")
        assert len(key) == 32
        assert key == normalize_key("correct horse battery staple")

    def test_explicit_key_wins(self, tmp_path):
        key_file = tmp_path / ".encryption_key"
        key_file.write_text("from-file")
        assert resolve_key_material("from-config", key_file) == "from-config"

    def test_key_file_used(self, tmp_path):
        key_file = tmp_path / ".encryption_key"
        key_file.write_text("from-file\n")
        assert resolve_key_material(None, key_file) == "from-file"

    def test_generated_key_persisted(self, tmp_path):
        key_file = tmp_path / "nested" / ".encryption_key"
        generated = resolve_key_material(None, key_file)

        assert len(bytes.fromhex(generated)) == 32
        assert key_file.read_text() == generated
        if os.name == "posix":
            assert stat.S_IMODE(key_file.stat().st_mode) == 0o600

        # The next start reuses it
        assert resolve_key_material(None, key_file) == generated

    def test_empty_key_file_regenerates(self, tmp_path):
        key_file = tmp_path / ".encryption_key"
        key_file.write_text("")
        generated = resolve_key_material(None, key_file)
        assert generated
        assert key_file.read_text() == generated

    def test_unwritable_key_file_falls_back_to_memory(self, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        key_file = blocker / ".encryption_key"

        generated = resolve_key_material(None, key_file)

        assert len(bytes.fromhex(generated)) == 32
        assert blocker.read_text() == "not a directory"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["blocker"]
        assert "in-memory key" in caplog.text

    def test_unreadable_key_file_falls_back_to_memory(self, tmp_path, caplog):
        key_file = tmp_path / ".encryption_key"
        key_file.mkdir()

        generated = resolve_key_material(None, key_file)

        assert len(bytes.fromhex(generated)) == 32
        assert key_file.is_dir()
        assert list(key_file.iterdir()) == []
        assert "Could not read encryption key file" in caplog.text
