"""
Tests for password hashing and session tokens.

These tests verify:
  - Argon2 hashes verify and unknown hash formats are rejected quietly
  - Tokens carry the user id and the encrypted email
  - Tokens are opaque (encrypted) and fail closed on any tampering
  - Expired tokens and tokens under another secret are rejected
"""

from datetime import timedelta

from jose import jwt

from manavault.crypto import FieldCipher
from manavault.security import TokenIssuer, hash_password, verify_password

from conftest import OLD_KEY


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("SecurePass123")
        assert hashed.startswith("$argon2")
        assert verify_password("SecurePass123", hashed)
        assert not verify_password("WrongPass123", hashed)

    def test_missing_or_unknown_hash(self):
        assert not verify_password("anything", "")
        assert not verify_password("anything", "not-a-hash")


class TestTokens:

    def test_issue_and_verify(self, cipher):
        issuer = TokenIssuer(cipher, "secret")
        encrypted_email = cipher.encrypt("a@example.com")

        token = issuer.issue("user-1", encrypted_email)
        claims = issuer.verify(token)

        assert claims.user_id == "user-1"
        assert claims.encrypted_email == encrypted_email

    def test_token_is_encrypted(self, cipher):
        token = TokenIssuer(cipher, "secret").issue("user-1", "x")
        signed = cipher.decrypt(token)
        assert jwt.decode(signed, "secret", algorithms=["HS256"])["sub"] == "user-1"
        assert "user-1" not in token

    def test_expired(self, cipher):
        issuer = TokenIssuer(cipher, "secret")
        token = issuer.issue("user-1", "x", expires_delta=timedelta(seconds=-1))
        assert issuer.verify(token) is None

    def test_tampered(self, cipher):
        issuer = TokenIssuer(cipher, "secret")
        token = issuer.issue("user-1", "x")
        flipped = token[:-1] + ("0" if token[-1] != "0" else "1")
        assert issuer.verify(flipped) is None
        assert issuer.verify("garbage") is None
        assert issuer.verify("") is None

    def test_other_secret(self, cipher):
        token = TokenIssuer(cipher, "secret").issue("user-1", "x")
        assert TokenIssuer(cipher, "another-secret").verify(token) is None

    def test_other_encryption_key(self, cipher):
        token = TokenIssuer(FieldCipher(OLD_KEY), "secret").issue("user-1", "x")
        assert TokenIssuer(cipher, "secret").verify(token) is None

    def test_missing_subject(self, cipher):
        signed = jwt.encode({"email": "x"}, "secret", algorithm="HS256")
        assert TokenIssuer(cipher, "secret").verify(cipher.encrypt(signed)) is None
