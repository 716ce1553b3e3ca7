"""
Profile router.

Endpoints:
  GET /profile/{user_id}  — Public profile of any user (decrypted)
  PUT /profile/{user_id}  — Update your own profile

A profile always loads, even when some of its fields were encrypted under a
key the server no longer has: those fields are hidden (or, for email, shown
in their stored form) instead of failing the request.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from manavault.crypto import FieldCipher
from manavault.dependencies import get_cipher, get_current_user, get_repository
from manavault.repository.base import Repository
from manavault.schemas.user import ProfileUpdateRequest, PublicUserView, UserRecord
from manavault.services import profile_service

router = APIRouter()


@router.get(
    "/{user_id}",
    response_model=PublicUserView,
    summary="Get a user's profile",
)
async def get_profile(
    user_id: str,
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
):
    return await profile_service.get_profile(repo, cipher, user_id)


@router.put(
    "/{user_id}",
    response_model=PublicUserView,
    summary="Update your profile",
)
async def update_profile(
    user_id: str,
    request: ProfileUpdateRequest,
    user: UserRecord = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
):
    """
    Update your own profile. Only fields present in the body change; send an
    empty string to clear an optional field. PII is stored encrypted.
    """
    if user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return await profile_service.update_profile(repo, cipher, user, request)
