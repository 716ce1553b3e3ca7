"""
SavedChat model — one user's conversation with one card.

`encrypted_messages` is the field cipher's "iv:ciphertext" of the JSON
message list. Timestamps are ISO 8601 strings, as in savedChats.json.
"""

import uuid

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from manavault.database import Base


class SavedChat(Base):
    __tablename__ = "saved_chats"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    card_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    character_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    card_title: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    encrypted_messages: Mapped[str] = mapped_column(Text, default="", nullable=False)

    created_at: Mapped[str] = mapped_column(String(40), nullable=False)
    updated_at: Mapped[str] = mapped_column(String(40), nullable=False)
