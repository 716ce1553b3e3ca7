"""
Profile service — public profile reads, self-service updates and admin
user management.

Every PII value written here is encrypted under the active key. Reads go
through identity_service.decrypt_user_for_response, so a profile whose
fields were encrypted under a lost key still loads (with those fields
hidden, or the raw email) instead of failing.
"""

import logging

from manavault.crypto import FieldCipher
from manavault.exceptions import DuplicateEmailError, NotFoundError
from manavault.repository.base import Repository
from manavault.schemas.user import ProfileUpdateRequest, PublicUserView, UserRecord
from manavault.services import identity_service

logger = logging.getLogger(__name__)


async def get_profile(
    repo: Repository,
    cipher: FieldCipher,
    user_id: str,
) -> PublicUserView:
    user = await repo.users.get(user_id)
    if user is None:
        raise NotFoundError("user", user_id)
    return identity_service.decrypt_user_for_response(cipher, user)


async def update_profile(
    repo: Repository,
    cipher: FieldCipher,
    user: UserRecord,
    request: ProfileUpdateRequest,
) -> PublicUserView:
    """
    Apply a partial profile update for the authenticated user.

    Only fields present in the request body are touched; an empty string
    clears an optional field.

    Raises:
        DuplicateEmailError: If the new email belongs to another user.
    """
    provided = request.model_fields_set
    updates: dict = {}

    if "email" in provided and request.email:
        new_email = identity_service.normalize_email(request.email)
        current_email = identity_service.reveal(cipher, user.email)
        if current_email is None or new_email != current_email.lower():
            existing = await identity_service.find_user_by_email(repo, cipher, new_email)
            if existing is not None and existing.id != user.id:
                raise DuplicateEmailError(new_email)
            updates["email"] = cipher.encrypt(new_email)

    for name in identity_service.OPTIONAL_PII_FIELDS:
        if name in provided:
            updates[name] = identity_service.encrypt_optional(cipher, getattr(request, name))

    if "website" in provided:
        website = (request.website or "").strip()
        updates["website"] = website or None
    if "profile_image_url" in provided:
        updates["profile_image_url"] = request.profile_image_url
    if "age_verified_at" in provided:
        updates["age_verified_at"] = request.age_verified_at

    updated = await repo.users.update(user.id, updates) if updates else user
    return identity_service.decrypt_user_for_response(cipher, updated)


# ---------------------------------------------------------------------------
# Admin functions
# ---------------------------------------------------------------------------

async def admin_list_users(repo: Repository, cipher: FieldCipher) -> list[PublicUserView]:
    """[ADMIN ONLY] Every user, decrypted for display."""
    return [
        identity_service.decrypt_user_for_response(cipher, user)
        for user in await repo.users.get_all()
    ]


async def admin_set_admin_flag(
    repo: Repository,
    cipher: FieldCipher,
    user_id: str,
    is_admin: bool,
) -> PublicUserView:
    """[ADMIN ONLY] Grant or revoke admin rights (stored encrypted)."""
    updated = await repo.users.update(
        user_id, {"is_admin": identity_service.encrypt_is_admin(cipher, is_admin)}
    )
    logger.info("Admin flag for user %s set to %s", user_id, is_admin)
    return identity_service.decrypt_user_for_response(cipher, updated)
