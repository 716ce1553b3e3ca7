"""
Field-level encryption for user PII (AES-256-CBC).

Every encrypted value is stored as "<iv hex>:<ciphertext hex>": a random
16-byte initialization vector and the PKCS7-padded ciphertext, both hex
encoded and joined by a single colon. A value without a colon is legacy
plaintext written before encryption was introduced; callers decide how to
treat it (see identity_service.reveal).

Key material:
  The active key is resolved once, when the cipher is built at startup:
    1. ENCRYPTION_KEY from configuration, used as-is
    2. the persisted key file, when present and non-empty
    3. a freshly generated 32-byte key, written to the key file with 0o600
       permissions (if the write fails the key lives in memory only)

  A key string that is 64 hex characters is used directly as the 32 raw key
  bytes; any other string is hashed with SHA-256.

Key rotation:
  PREVIOUS_ENCRYPTION_KEYS lists keys that encrypted existing data. decrypt()
  tries them in order after the active key, and reports which one worked so
  the identity codec can re-encrypt stale values under the active key.

The cipher is an explicitly constructed object (no module-level key), built
once in the application lifespan and injected where it is needed.
"""

import hashlib
import logging
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from manavault.config import Settings
from manavault.exceptions import DecryptionError

logger = logging.getLogger(__name__)

IV_LENGTH = 16
KEY_LENGTH = 32


def normalize_key(raw_key: str) -> bytes:
    """Turn a configured key string into 32 bytes of AES-256 key material."""
    try:
        key = bytes.fromhex(raw_key)
    except ValueError:
        key = b""
    if len(key) == KEY_LENGTH:
        return key
    return hashlib.sha256(raw_key.encode("utf-8")).digest()


def resolve_key_material(explicit_key: str | None, key_file: str | os.PathLike) -> str:
    """
    Return the active key string following the configured > file > generated order.

    Never raises for I/O problems: an unreadable or unwritable key file is
    logged and the next source is used.
    """
    if explicit_key:
        logger.info("Using encryption key from configuration")
        return explicit_key

    path = Path(key_file)
    try:
        if path.exists():
            stored = path.read_text(encoding="utf-8").strip()
            if stored:
                logger.info("Using encryption key from key file %s", path)
                return stored
    except OSError as exc:
        logger.error("Could not read encryption key file %s: %s", path, exc)

    new_key = secrets.token_hex(KEY_LENGTH)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(new_key)
        logger.warning(
            "Generated new encryption key at %s; values encrypted under any "
            "earlier key need that key in PREVIOUS_ENCRYPTION_KEYS",
            path,
        )
    except OSError as exc:
        logger.error(
            "Could not persist encryption key to %s (%s); using an in-memory "
            "key that will be lost on restart",
            path,
            exc,
        )
    return new_key


def is_encrypted(value: str | None) -> bool:
    """True when a stored value has the "iv:ciphertext" shape."""
    return isinstance(value, str) and ":" in value


@dataclass(frozen=True)
class DecryptedValue:
    plaintext: str
    # True when a fallback key (not the active one) opened the value
    stale: bool


def _split(value: str) -> tuple[bytes, bytes]:
    parts = value.split(":")
    if len(parts) != 2:
        raise DecryptionError("Invalid encrypted value format, expected 'iv:ciphertext'")
    try:
        iv = bytes.fromhex(parts[0])
        ciphertext = bytes.fromhex(parts[1])
    except ValueError:
        raise DecryptionError("Encrypted value is not hex encoded") from None
    if len(iv) != IV_LENGTH:
        raise DecryptionError(f"Invalid IV length: {len(iv)}, expected {IV_LENGTH}")
    return iv, ciphertext


def _encrypt_with_key(key: bytes, plaintext: str, iv: bytes) -> str:
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    data = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(data) + encryptor.finalize()
    return f"{iv.hex()}:{ciphertext.hex()}"


def _decrypt_with_key(key: bytes, iv: bytes, ciphertext: bytes) -> str:
    # Any mismatch surfaces as ValueError: bad block length, bad padding or
    # non UTF-8 output (UnicodeDecodeError is a ValueError).
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    data = unpadder.update(padded) + unpadder.finalize()
    return data.decode("utf-8")


class FieldCipher:
    """
    Symmetric encrypt/decrypt of short strings with one active key.

    Args:
        key: The active key string (hex or passphrase, see normalize_key).
        fallback_keys: Earlier keys, tried in order when the active key fails.
            Keys identical to the active key are ignored.
    """

    def __init__(self, key: str, fallback_keys: Sequence[str] = ()):
        self._key = normalize_key(key)
        self._fallback_keys: list[bytes] = []
        for candidate in fallback_keys:
            normalized = normalize_key(candidate)
            if normalized != self._key and normalized not in self._fallback_keys:
                self._fallback_keys.append(normalized)

    @classmethod
    def from_settings(cls, config: Settings) -> "FieldCipher":
        key = resolve_key_material(config.ENCRYPTION_KEY, config.ENCRYPTION_KEY_FILE)
        cipher = cls(key, config.PREVIOUS_ENCRYPTION_KEYS)
        logger.info(
            "Field cipher ready (%d fallback key(s))", len(cipher._fallback_keys)
        )
        return cipher

    @property
    def _keys(self) -> list[bytes]:
        return [self._key, *self._fallback_keys]

    def encrypt(self, plaintext: str) -> str:
        """Encrypt with a fresh random IV; equal inputs give different outputs."""
        return _encrypt_with_key(self._key, plaintext, os.urandom(IV_LENGTH))

    def encrypt_with_iv(self, plaintext: str, iv: bytes) -> str:
        """
        Deterministic encryption under the active key with a caller-chosen IV.

        Only for equality checks against a stored value (see matches()); never
        use it to store new data.
        """
        if len(iv) != IV_LENGTH:
            raise ValueError(f"IV must be {IV_LENGTH} bytes, got {len(iv)}")
        return _encrypt_with_key(self._key, plaintext, iv)

    def decrypt(self, value: str) -> str:
        """
        Decrypt an "iv:ciphertext" value.

        Raises:
            DecryptionError: If the value is malformed or no configured key opens it.
        """
        return self.decrypt_detailed(value).plaintext

    def decrypt_detailed(self, value: str) -> DecryptedValue:
        """Like decrypt(), but also reports whether a fallback key was needed."""
        if not isinstance(value, str) or not value:
            raise DecryptionError("Invalid encrypted value: empty or not a string")

        iv, ciphertext = _split(value)
        for index, key in enumerate(self._keys):
            try:
                plaintext = _decrypt_with_key(key, iv, ciphertext)
            except ValueError:
                continue
            return DecryptedValue(plaintext=plaintext, stale=index > 0)

        raise DecryptionError("No configured key decrypts this value")

    def matches(self, plaintext: str, stored: str) -> bool:
        """
        IV-equality match: does `plaintext`, encrypted with the stored value's
        own IV, reproduce `stored` exactly under any configured key?

        Finds a record by its encrypted value without decrypting it.
        """
        try:
            iv, _ = _split(stored)
        except DecryptionError:
            return False
        return any(_encrypt_with_key(key, plaintext, iv) == stored for key in self._keys)
