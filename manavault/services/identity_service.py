"""
Identity codec — bridge between encrypted-at-rest PII and usable plaintext.

Stored user PII (email, username, bio, interests, location) and the admin
flag are "iv:ciphertext" strings, or plaintext on legacy records. This
module is the only place that turns them back into plaintext, and it never
lets a decryption failure escape to a read path:

  - email falls back to the raw stored string (email is the mandatory
    identifier, so it is never dropped)
  - username, bio, interests and location that cannot be decrypted are
    reported as absent, so the user can simply enter them again
  - is_admin falls back to the legacy "raw value is True or 'true'" check

Every fallback is logged.

Key rotation:
  Values encrypted under an older key still decrypt through the cipher's
  fallback keys. refresh_encryption() re-encrypts such values (and legacy
  plaintext) under the active key whenever a user logs in or presents a
  token, healing records one at a time without a bulk migration.

Email lookup:
  Because each encryption uses a random IV, email cannot be queried or
  indexed. find_user_by_email() scans every user: decrypt and compare, or
  when decryption fails, re-encrypt the candidate with the stored value's IV
  and compare the raw strings. O(n) per lookup, which is acceptable for the
  user counts this app serves. Storing a keyed hash of the normalized email
  next to the encrypted value would give O(1) lookups if that ever changes.
"""

import logging

from manavault.crypto import FieldCipher, is_encrypted
from manavault.exceptions import DecryptionError
from manavault.repository.base import Repository
from manavault.schemas.user import PublicUserView, UserRecord

logger = logging.getLogger(__name__)

MISSING_EMAIL_PLACEHOLDER = "email@missing.com"

# Optional PII fields that are hidden (not shown) when they cannot be decrypted
OPTIONAL_PII_FIELDS = ("username", "bio", "interests", "location")
PII_FIELDS = ("email", *OPTIONAL_PII_FIELDS)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def reveal(cipher: FieldCipher, value: str | None) -> str | None:
    """
    Best-effort plaintext of a stored field.

    Returns the decrypted text for "iv:ciphertext" values, the value itself
    for legacy plaintext (no colon), and None when the value is empty or
    cannot be decrypted with any configured key.
    """
    if not value:
        return None
    if not is_encrypted(value):
        return value
    try:
        return cipher.decrypt(value)
    except DecryptionError:
        return None


def encrypt_optional(cipher: FieldCipher, value: str | None) -> str | None:
    """Encrypt a trimmed optional field; empty input clears it."""
    if value is None or not value.strip():
        return None
    return cipher.encrypt(value.strip())


# ---------------------------------------------------------------------------
# Admin flag
# ---------------------------------------------------------------------------


def encrypt_is_admin(cipher: FieldCipher, is_admin: bool) -> str:
    return cipher.encrypt("true" if is_admin else "false")


def is_user_admin(cipher: FieldCipher, user: UserRecord) -> bool:
    return bool(_decrypt_admin_flag(cipher, user))


def _decrypt_admin_flag(cipher: FieldCipher, user: UserRecord) -> bool | None:
    raw = user.is_admin
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        try:
            return cipher.decrypt(raw) == "true"
        except DecryptionError:
            pass
    # Records from before the flag was encrypted hold a bare boolean or "true"
    return raw is True or raw == "true"


# ---------------------------------------------------------------------------
# Response view
# ---------------------------------------------------------------------------


def _decrypt_email(cipher: FieldCipher, user: UserRecord) -> str:
    if not user.email:
        logger.error("User %s has no email on record", user.id)
        return MISSING_EMAIL_PLACEHOLDER
    if not is_encrypted(user.email):
        return user.email

    try:
        email = cipher.decrypt(user.email)
    except DecryptionError as exc:
        logger.error("Could not decrypt email for user %s: %s", user.id, exc)
        return user.email

    if "@" not in email:
        logger.error("Decrypted email for user %s does not look like an email", user.id)
        return user.email
    return email


def decrypt_user_for_response(cipher: FieldCipher, user: UserRecord) -> PublicUserView:
    """
    Build the public view of a user: decrypted PII, boolean admin flag and no
    password hash. Never raises for undecryptable fields.
    """
    optional = {}
    for name in OPTIONAL_PII_FIELDS:
        stored = getattr(user, name)
        plaintext = reveal(cipher, stored)
        if stored and plaintext is None:
            logger.warning(
                "Could not decrypt %s for user %s; hiding it until it is set again",
                name,
                user.id,
            )
        optional[name] = plaintext or None

    return PublicUserView(
        id=user.id,
        email=_decrypt_email(cipher, user),
        is_admin=_decrypt_admin_flag(cipher, user),
        website=user.website,
        profile_image_url=user.profile_image_url,
        age_verified_at=user.age_verified_at,
        mana_reload_tokens=user.mana_reload_tokens,
        mana_increase_tokens=user.mana_increase_tokens,
        last_login_date=user.last_login_date,
        collection_card_ids=list(user.collection_card_ids),
        collection_set_ids=list(user.collection_set_ids),
        friend_ids=list(user.friend_ids),
        friend_request_ids=list(user.friend_request_ids),
        **optional,
    )


# ---------------------------------------------------------------------------
# Lookup and re-encryption
# ---------------------------------------------------------------------------


def email_matches(cipher: FieldCipher, stored: str, normalized_email: str) -> bool:
    """
    Does a stored (encrypted or legacy) email equal the normalized candidate?

    Tries decrypt-then-compare first and falls back to the IV-equality match
    for values no key can decrypt.
    """
    if not stored:
        return False
    if not is_encrypted(stored):
        return normalize_email(stored) == normalized_email
    try:
        return cipher.decrypt(stored).lower() == normalized_email
    except DecryptionError:
        return cipher.matches(normalized_email, stored)


async def find_user_by_email(
    repo: Repository,
    cipher: FieldCipher,
    email: str,
) -> UserRecord | None:
    """Return the user whose email equals `email` (case-insensitive), if any."""
    normalized = normalize_email(email)
    for user in await repo.users.get_all():
        if email_matches(cipher, user.email, normalized):
            return user
    return None


def _stale_fields(cipher: FieldCipher, user: UserRecord) -> dict[str, str]:
    """PII fields that decrypt only with a fallback key, or are still plaintext."""
    updates: dict[str, str] = {}
    for name in PII_FIELDS:
        stored = getattr(user, name)
        if not stored:
            continue
        if not is_encrypted(stored):
            plaintext = normalize_email(stored) if name == "email" else stored.strip()
            updates[name] = cipher.encrypt(plaintext)
            continue
        try:
            decrypted = cipher.decrypt_detailed(stored)
        except DecryptionError:
            # Left as-is: hidden from responses until the user sets it again
            continue
        if decrypted.stale:
            updates[name] = cipher.encrypt(decrypted.plaintext)

    flag = user.is_admin
    if isinstance(flag, bool) or flag in ("true", "false"):
        updates["is_admin"] = encrypt_is_admin(cipher, flag is True or flag == "true")
    elif isinstance(flag, str) and flag:
        try:
            decrypted = cipher.decrypt_detailed(flag)
        except DecryptionError:
            decrypted = None
        if decrypted is not None and decrypted.stale:
            updates["is_admin"] = cipher.encrypt(decrypted.plaintext)
    return updates


async def refresh_encryption(
    repo: Repository,
    cipher: FieldCipher,
    user: UserRecord,
) -> UserRecord:
    """
    Opportunistically re-encrypt stale PII under the active key.

    The write is best effort: if it fails the failure is logged and the
    original record is returned, so the calling read path carries on.

    Returns:
        The updated record, or `user` unchanged when nothing was stale or the
        write failed.
    """
    updates = _stale_fields(cipher, user)
    if not updates:
        return user

    try:
        refreshed = await repo.users.update(user.id, updates)
    except Exception:
        logger.exception("Re-encrypting %s for user %s failed", sorted(updates), user.id)
        return user

    logger.info("Re-encrypted %s for user %s under the active key", sorted(updates), user.id)
    return refreshed
