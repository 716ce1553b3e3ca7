"""
Saved chats router — the caller's stored conversations.

Endpoints:
  GET    /chats            — List own chats, most recent first (no messages)
  GET    /chats/{chat_id}  — Get one chat with its decrypted messages
  DELETE /chats/{chat_id}  — Delete one chat

Chats are written through POST /cards/{card_id}/interactions. Another
user's chat gets a 403, an unknown id a 404.
"""

from fastapi import APIRouter, Depends, status

from manavault.crypto import FieldCipher
from manavault.dependencies import get_cipher, get_current_user, get_repository
from manavault.repository.base import Repository
from manavault.schemas.chat import SavedChatResponse, SavedChatSummary
from manavault.schemas.user import UserRecord
from manavault.services import chat_service

router = APIRouter()


@router.get("", response_model=list[SavedChatSummary], summary="List own saved chats")
async def list_chats(
    user: UserRecord = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    return await chat_service.list_saved_chats(repo, user)


@router.get("/{chat_id}", response_model=SavedChatResponse, summary="Get a saved chat")
async def get_chat(
    chat_id: str,
    user: UserRecord = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
):
    """A history that no configured key can decrypt comes back with readable=false."""
    return await chat_service.get_saved_chat(repo, cipher, user, chat_id)


@router.delete(
    "/{chat_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a saved chat",
)
async def delete_chat(
    chat_id: str,
    user: UserRecord = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    await chat_service.delete_saved_chat(repo, user, chat_id)
