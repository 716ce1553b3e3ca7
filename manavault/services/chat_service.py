"""
Chat service — saved conversations and completed intimate interactions.

Each user has at most one saved chat per card. The client sends the whole
conversation every time; the stored copy is encrypted with the field cipher
as one JSON list, so only the owner's requests ever see it in plaintext.

Whether a conversation just completed an interaction is decided by an
InteractionDetector, a predicate over chat messages. Only the messages
beyond the stored history are checked, so resending a conversation never
counts the same interaction twice. When the stored history cannot be
decrypted, every message is checked.

The service trusts the detector: on a completed interaction the card's
devotion goes up by one and one mana is spent. Running out of mana does not
block the devotion increase, and a failed depletion is logged rather than
failing the chat request.

KeywordInteractionDetector is the default detector; deployments can
inject another one through dependencies.get_interaction_detector.
"""

import json
import logging
from typing import Protocol, Sequence

from pydantic import TypeAdapter, ValidationError

from manavault.crypto import FieldCipher
from manavault.exceptions import DecryptionError, NotFoundError, OwnershipError
from manavault.repository.base import Repository
from manavault.schemas.card import CardRecord
from manavault.schemas.chat import (
    ChatMessage,
    InteractionResponse,
    SavedChatRecord,
    SavedChatResponse,
    SavedChatSummary,
    utc_now_iso,
)
from manavault.schemas.user import UserRecord
from manavault.services.mana_service import ManaLedger, get_owned_card, user_base_mana

logger = logging.getLogger(__name__)

_messages_adapter = TypeAdapter(list[ChatMessage])


class InteractionDetector(Protocol):
    def __call__(self, messages: Sequence[ChatMessage]) -> bool:
        ...


class KeywordInteractionDetector:
    """
    Phrase-based detector over the last few messages.

    A conversation counts as a completed interaction when the recent text
    contains a completion phrase, or at least `min_keywords` distinct
    intensity keywords.
    """

    COMPLETION_PHRASES = (
        "when we finished",
        "when we were done",
        "after we were done",
        "once we finished",
        "when it was over",
        "after it was over",
        "we both finished",
        "lay together",
        "lying together",
        "collapsed together",
        "catching our breath",
        "afterwards",
    )
    KEYWORDS = ("intimate", "passionate", "intense", "overwhelming", "release", "climax")

    def __init__(self, window: int = 8, min_keywords: int = 2):
        self.window = window
        self.min_keywords = min_keywords

    def __call__(self, messages: Sequence[ChatMessage]) -> bool:
        if len(messages) < 2:
            return False
        text = " ".join(m.content.lower() for m in messages[-self.window:])
        if any(phrase in text for phrase in self.COMPLETION_PHRASES):
            return True
        return sum(1 for keyword in self.KEYWORDS if keyword in text) >= self.min_keywords


# ---------------------------------------------------------------------------
# Encrypted history
# ---------------------------------------------------------------------------


def encrypt_messages(cipher: FieldCipher, messages: Sequence[ChatMessage]) -> str:
    return cipher.encrypt(json.dumps([m.model_dump() for m in messages]))


def decrypt_messages(cipher: FieldCipher, value: str) -> list[ChatMessage]:
    """
    Raises:
        DecryptionError: If no configured key opens the value, or the
            plaintext is not a list of chat messages.
    """
    plaintext = cipher.decrypt(value)
    try:
        return _messages_adapter.validate_json(plaintext)
    except ValidationError as exc:
        raise DecryptionError("Saved chat does not hold a message list") from exc


async def find_saved_chat(repo: Repository, user_id: str, card_id: str) -> SavedChatRecord | None:
    for chat in await repo.saved_chats.get_all():
        if chat.user_id == user_id and chat.card_id == card_id:
            return chat
    return None


def _unseen_messages(
    cipher: FieldCipher,
    existing: SavedChatRecord | None,
    messages: Sequence[ChatMessage],
) -> Sequence[ChatMessage]:
    if existing is None:
        return messages
    try:
        previous = decrypt_messages(cipher, existing.encrypted_messages)
    except DecryptionError:
        logger.warning("Could not read saved chat %s; checking every message", existing.id)
        return messages
    return messages[len(previous):]


async def save_chat(
    repo: Repository,
    cipher: FieldCipher,
    user: UserRecord,
    card: CardRecord,
    messages: Sequence[ChatMessage],
    existing: SavedChatRecord | None = None,
) -> SavedChatRecord:
    """Create the user's chat for this card, or replace its stored history."""
    encrypted = encrypt_messages(cipher, messages)
    if existing is not None:
        return await repo.saved_chats.update(
            existing.id,
            {
                "encrypted_messages": encrypted,
                "updated_at": utc_now_iso(),
            },
        )
    return await repo.saved_chats.create(
        SavedChatRecord(
            user_id=user.id,
            card_id=card.id,
            character_name=card.character or "",
            card_title=card.title,
            encrypted_messages=encrypted,
        )
    )


# ---------------------------------------------------------------------------
# Interactions
# ---------------------------------------------------------------------------


async def record_interaction(
    repo: Repository,
    cipher: FieldCipher,
    ledger: ManaLedger,
    user: UserRecord,
    card_id: str,
    messages: Sequence[ChatMessage],
    detector: InteractionDetector,
) -> InteractionResponse:
    """
    Save the conversation and apply the effects of a newly completed interaction.

    Args:
        messages: The whole conversation so far, oldest first.

    Raises:
        NotFoundError: If the card does not exist.
        OwnershipError: If the user does not own the card.
    """
    card = await get_owned_card(repo, user, card_id)

    existing = await find_saved_chat(repo, user.id, card_id)
    unseen = _unseen_messages(cipher, existing, messages)
    chat = await save_chat(repo, cipher, user, card, messages, existing)

    if not unseen or not detector(unseen):
        return InteractionResponse(
            card_id=card_id,
            chat_id=chat.id,
            completed=False,
            devotion=card.attributes.devotion,
            new_messages=len(unseen),
        )

    devotion = card.attributes.devotion + 1
    await repo.cards.update(
        card_id, {"attributes": card.attributes.model_copy(update={"devotion": devotion})}
    )
    logger.info("Incremented devotion for card %s to %d", card_id, devotion)

    current_mana = None
    try:
        base = await user_base_mana(repo, card, user)
        current_mana = await ledger.deplete(card_id, base)
        logger.info("Depleted mana for card %s, current mana: %d", card_id, current_mana)
    except Exception:
        logger.exception("Failed to deplete mana for card %s", card_id)

    return InteractionResponse(
        card_id=card_id,
        chat_id=chat.id,
        completed=True,
        devotion=devotion,
        new_messages=len(unseen),
        current_mana=current_mana,
    )


# ---------------------------------------------------------------------------
# Saved chats
# ---------------------------------------------------------------------------


def _summary(chat: SavedChatRecord, card: CardRecord | None) -> dict:
    return {
        "id": chat.id,
        "card_id": chat.card_id,
        "character_name": chat.character_name,
        "card_title": chat.card_title,
        "card_image_url": card.image_url if card else "",
        "created_at": chat.created_at,
        "updated_at": chat.updated_at,
    }


async def list_saved_chats(repo: Repository, user: UserRecord) -> list[SavedChatSummary]:
    """The user's saved chats, most recently updated first, without messages."""
    chats = [c for c in await repo.saved_chats.get_all() if c.user_id == user.id]
    chats.sort(key=lambda c: c.updated_at, reverse=True)
    return [
        SavedChatSummary(**_summary(chat, await repo.cards.get(chat.card_id)))
        for chat in chats
    ]


async def get_own_chat(repo: Repository, user: UserRecord, chat_id: str) -> SavedChatRecord:
    """
    Raises:
        NotFoundError: If the chat does not exist.
        OwnershipError: If the chat belongs to another user.
    """
    chat = await repo.saved_chats.get(chat_id)
    if chat is None:
        raise NotFoundError("saved_chat", chat_id)
    if chat.user_id != user.id:
        raise OwnershipError(chat_id, "You do not have access to this chat")
    return chat


async def get_saved_chat(
    repo: Repository,
    cipher: FieldCipher,
    user: UserRecord,
    chat_id: str,
) -> SavedChatResponse:
    """
    One of the user's chats with its decrypted messages.

    A history that cannot be decrypted is reported with readable=False and
    no messages rather than failing the request.
    """
    chat = await get_own_chat(repo, user, chat_id)
    summary = _summary(chat, await repo.cards.get(chat.card_id))
    try:
        messages = decrypt_messages(cipher, chat.encrypted_messages)
    except DecryptionError:
        logger.warning("Could not decrypt saved chat %s", chat_id)
        return SavedChatResponse(**summary, readable=False)
    return SavedChatResponse(**summary, messages=messages)


async def delete_saved_chat(repo: Repository, user: UserRecord, chat_id: str) -> None:
    await get_own_chat(repo, user, chat_id)
    await repo.saved_chats.delete(chat_id)
    logger.info("Deleted saved chat %s", chat_id)
