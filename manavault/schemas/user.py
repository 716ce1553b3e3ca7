"""
Pydantic schemas for users.

UserRecord is the stored shape. PII fields (email, username, bio, interests,
location) and the admin flag only ever hold encrypted "iv:ciphertext" values,
except for legacy records written before encryption, which hold plaintext.
is_admin may also be a bare boolean on such legacy records.

PublicUserView is what the API returns: decrypted PII, a boolean admin flag
and never the password hash.
"""

import uuid

from pydantic import BaseModel, EmailStr, Field

from manavault.schemas.base import Record

MAX_RELOAD_TOKENS = 10


class UserRecord(Record):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: str
    username: str | None = None
    bio: str | None = None
    interests: str | None = None
    location: str | None = None
    password_hash: str = ""
    mana_reload_tokens: int = 0
    mana_increase_tokens: int = 0
    last_login_date: str | None = None
    is_admin: str | bool | None = None
    profile_image_url: str | None = None
    website: str | None = None
    age_verified_at: str | None = None
    collection_card_ids: list[str] = Field(default_factory=list)
    collection_set_ids: list[str] = Field(default_factory=list)
    friend_ids: list[str] = Field(default_factory=list)
    friend_request_ids: list[str] = Field(default_factory=list)


class PublicUserView(BaseModel):
    """Public representation of a user (decrypted PII, never the password hash)."""
    id: str
    email: str  # raw stored value when it cannot be decrypted
    username: str | None = None
    bio: str | None = None
    interests: str | None = None
    location: str | None = None
    website: str | None = None
    profile_image_url: str | None = None
    age_verified_at: str | None = None
    is_admin: bool | None = None
    mana_reload_tokens: int = 0
    mana_increase_tokens: int = 0
    last_login_date: str | None = None
    collection_card_ids: list[str] = Field(default_factory=list)
    collection_set_ids: list[str] = Field(default_factory=list)
    friend_ids: list[str] = Field(default_factory=list)
    friend_request_ids: list[str] = Field(default_factory=list)


class ProfileUpdateRequest(BaseModel):
    """
    Request body for PUT /profile/{user_id}.

    Omitted fields are left alone; an empty string clears an optional field.
    """
    email: EmailStr | None = None
    username: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None, max_length=2000)
    interests: str | None = Field(default=None, max_length=1000)
    location: str | None = Field(default=None, max_length=200)
    website: str | None = Field(default=None, max_length=500)
    profile_image_url: str | None = None
    age_verified_at: str | None = None


class AdminFlagRequest(BaseModel):
    """Request body for PUT /admin/users/{user_id}/admin."""
    is_admin: bool
