"""
User model — authentication identity, encrypted profile and mana tokens.

PII columns (email, username, bio, interests, location) and is_admin hold
"iv:ciphertext" strings. Because every encryption uses a fresh IV, email
cannot be unique-indexed or queried; lookups go through
identity_service.find_user_by_email, which scans all users.

The password is stored as an Argon2id hash, never in plaintext.

Token counters:
  - mana_reload_tokens: restore one card to full base mana (cap 10 when
    bought, the daily login grant caps the balance at 5)
  - mana_increase_tokens: +1 current mana on one card (uncapped)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from manavault.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Encrypted PII
    email: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    interests: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_admin: Mapped[str | None] = mapped_column(Text, nullable=True)

    password_hash: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    mana_reload_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    mana_increase_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_login_date: Mapped[str | None] = mapped_column(String(10), nullable=True)

    profile_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)
    age_verified_at: Mapped[str | None] = mapped_column(String(40), nullable=True)

    collection_card_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    collection_set_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    friend_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    friend_request_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
