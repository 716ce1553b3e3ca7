"""
Security utilities: password hashing and session tokens.

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext handles Argon2id hashing and verification, and
     transparently accepts older schemes if the context is ever migrated

2. SESSION TOKENS (JWT wrapped in field encryption)
   - A signed JWT binds the user id ("sub") to the user's *encrypted* email
   - Tokens expire after ACCESS_TOKEN_EXPIRE_MINUTES (default: 24 hours)
   - The signed token is then encrypted with the field cipher, so a client
     cannot read even the claims without the server's key
   - Verification reverses both layers. Every failure (expired, malformed,
     bad signature, undecryptable) yields the same "invalid" result

The field cipher itself lives in manavault.crypto.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from manavault.crypto import FieldCipher
from manavault.exceptions import DecryptionError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password using Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored hash.

    Returns False (instead of raising) for hashes passlib cannot identify,
    such as records migrated without a password.
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Unrecognised password hash format")
        return False


# ---------------------------------------------------------------------------
# 2. Session Tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    encrypted_email: str


class TokenIssuer:
    """
    Issues and verifies sign-then-encrypt bearer credentials.

    Args:
        cipher: Field cipher used for the outer encryption layer.
        secret_key: JWT signing secret.
        algorithm: JWT algorithm (HS256 by default).
        expires_minutes: Token lifetime.
    """

    def __init__(
        self,
        cipher: FieldCipher,
        secret_key: str,
        algorithm: str = "HS256",
        expires_minutes: int = 24 * 60,
    ):
        self.cipher = cipher
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_minutes = expires_minutes

    def issue(
        self,
        user_id: str,
        encrypted_email: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        """
        Create an encrypted, signed token for a user.

        Args:
            user_id: The user's id, stored as the "sub" claim.
            encrypted_email: The email exactly as stored (already encrypted).
            expires_delta: Optional custom lifetime (tests use negative values).

        Returns:
            An "iv:ciphertext" string wrapping the JWT.
        """
        lifetime = expires_delta or timedelta(minutes=self.expires_minutes)
        payload = {
            "sub": user_id,
            "email": encrypted_email,
            "exp": datetime.now(timezone.utc) + lifetime,
        }
        signed = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return self.cipher.encrypt(signed)

    def verify(self, token: str) -> TokenClaims | None:
        """
        Decrypt and verify a token.

        Returns:
            The claims, or None for any kind of invalid token.
        """
        try:
            signed = self.cipher.decrypt(token)
            payload = jwt.decode(signed, self.secret_key, algorithms=[self.algorithm])
        except (DecryptionError, JWTError) as exc:
            logger.info("Rejected session token: %s", type(exc).__name__)
            return None

        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            return None
        return TokenClaims(user_id=user_id, encrypted_email=payload.get("email") or "")
