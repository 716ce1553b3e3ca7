"""
Pydantic schemas for chats with a card.

A SavedChatRecord holds one user's conversation with one card. The message
list is stored as a single encrypted JSON string, persisted as
{"id", "userId", "cardId", "characterName", "cardTitle",
"encryptedMessages", "createdAt", "updatedAt"}.
"""

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from manavault.schemas.base import Record


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"] = "user"
    content: str = ""


class SavedChatRecord(Record):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    card_id: str
    character_name: str = ""
    card_title: str = ""
    encrypted_messages: str = ""
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


class InteractionRequest(BaseModel):
    """Request body for POST /cards/{card_id}/interactions: the whole conversation so far."""
    messages: list[ChatMessage] = Field(default_factory=list)


class InteractionResponse(BaseModel):
    card_id: str
    chat_id: str
    completed: bool
    devotion: int
    new_messages: int = 0
    current_mana: int | None = None


class SavedChatSummary(BaseModel):
    id: str
    card_id: str
    character_name: str
    card_title: str
    card_image_url: str = ""
    created_at: str
    updated_at: str


class SavedChatResponse(SavedChatSummary):
    # False when the stored history could not be decrypted; messages is then empty
    readable: bool = True
    messages: list[ChatMessage] = Field(default_factory=list)
