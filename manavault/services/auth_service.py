"""
Authentication service — registration, login and token authentication.

Register flow:
  1. Normalize the email and make sure no user already has it (encrypted
     emails cannot be queried, so this is a scan via find_user_by_email)
  2. Hash the password with Argon2id
  3. Encrypt email and username, create the user with one reload token
  4. Issue a session token bound to the encrypted email

Login flow:
  1. Find the user by email, verify the password
  2. Re-encrypt any stale PII under the active key (best effort)
  3. Grant the daily reload token (best effort)
  4. Issue a session token

Refresh flow:
  An authenticated user gets a new token with a full lifetime, bound to the
  email as currently stored (re-encrypted, if authentication refreshed it).

Security notes:
  - Login returns the same error for "wrong password" and "email not found"
    to prevent user enumeration
  - Plaintext emails are never logged
"""

import logging
from datetime import date

from manavault.crypto import FieldCipher
from manavault.exceptions import DuplicateEmailError, InvalidCredentialsError
from manavault.repository.base import Repository
from manavault.schemas.user import MAX_RELOAD_TOKENS, UserRecord
from manavault.security import TokenIssuer, hash_password, verify_password
from manavault.services import identity_service, mana_service
from manavault.services.mana_service import Clock

logger = logging.getLogger(__name__)

INITIAL_RELOAD_TOKENS = 1
AVATAR_URL = "https://i.pravatar.cc/150?u={user_id}"


async def register(
    repo: Repository,
    cipher: FieldCipher,
    issuer: TokenIssuer,
    email: str,
    password: str,
    username: str | None = None,
    today: Clock = date.today,
) -> tuple[UserRecord, str]:
    """
    Register a new user.

    Returns:
        Tuple of (stored UserRecord, session token).

    Raises:
        DuplicateEmailError: If another user already has this email.
    """
    normalized = identity_service.normalize_email(email)
    if await identity_service.find_user_by_email(repo, cipher, normalized) is not None:
        raise DuplicateEmailError(normalized)

    user = UserRecord(
        email=cipher.encrypt(normalized),
        username=identity_service.encrypt_optional(cipher, username),
        password_hash=hash_password(password),
        mana_reload_tokens=min(MAX_RELOAD_TOKENS, INITIAL_RELOAD_TOKENS),
        mana_increase_tokens=0,
        last_login_date=today().isoformat(),
    )
    user.profile_image_url = AVATAR_URL.format(user_id=user.id)
    user = await repo.users.create(user)
    logger.info("Registered user %s", user.id)

    token = issuer.issue(user.id, user.email)
    return user, token


async def login(
    repo: Repository,
    cipher: FieldCipher,
    issuer: TokenIssuer,
    email: str,
    password: str,
    today: Clock = date.today,
) -> tuple[UserRecord, str]:
    """
    Authenticate a user and return a fresh session token.

    Raises:
        InvalidCredentialsError: If the email is unknown, the user has no
            password on record, or the password is wrong.
    """
    user = await identity_service.find_user_by_email(repo, cipher, email)
    if user is None:
        logger.info("Login failed: no user with that email")
        raise InvalidCredentialsError()

    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError()

    user = await identity_service.refresh_encryption(repo, cipher, user)
    token = issuer.issue(user.id, user.email)

    try:
        user = await mana_service.grant_daily_reload(repo, user, today)
    except Exception:
        logger.warning("Daily mana reload grant failed for user %s (non-fatal)", user.id, exc_info=True)

    return user, token


async def authenticate(
    repo: Repository,
    cipher: FieldCipher,
    issuer: TokenIssuer,
    token: str,
) -> UserRecord | None:
    """
    Resolve a session token to its user.

    Returns None for an invalid token or a user that no longer exists. Stale
    PII found on the way is re-encrypted under the active key.
    """
    claims = issuer.verify(token)
    if claims is None:
        return None

    user = await repo.users.get(claims.user_id)
    if user is None:
        return None

    return await identity_service.refresh_encryption(repo, cipher, user)


def refresh_token(issuer: TokenIssuer, user: UserRecord) -> str:
    """Issue a new session token for an already authenticated user."""
    return issuer.issue(user.id, user.email)
