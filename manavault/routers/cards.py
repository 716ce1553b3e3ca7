"""
Cards router — catalog reads and the per-card mana economy.

Endpoints:
  GET  /cards                            — List the catalog
  GET  /cards/{card_id}                  — Get one card
  GET  /cards/{card_id}/mana             — Current and base mana of an owned card
  POST /cards/{card_id}/mana/deplete     — Spend one mana
  POST /cards/{card_id}/mana/reload      — Spend a reload token: back to full
  POST /cards/{card_id}/mana/increase    — Spend an increase token: +1 (up to base)
  POST /cards/{card_id}/interactions     — Save the conversation with the card

Every mana endpoint checks that the card is in the caller's collection
before touching the ledger (403 otherwise).
"""

from fastapi import APIRouter, Depends

from manavault.crypto import FieldCipher
from manavault.dependencies import (
    get_cipher,
    get_current_user,
    get_interaction_detector,
    get_ledger,
    get_repository,
)
from manavault.repository.base import Repository
from manavault.schemas.card import CardResponse
from manavault.schemas.chat import InteractionRequest, InteractionResponse
from manavault.schemas.mana import ManaRedemptionResponse, ManaStatusResponse
from manavault.schemas.user import UserRecord
from manavault.services import catalog_service, chat_service, mana_service
from manavault.services.chat_service import InteractionDetector
from manavault.services.mana_service import ManaLedger

router = APIRouter()


@router.get("", response_model=list[CardResponse], summary="List all cards")
async def list_cards(repo: Repository = Depends(get_repository)):
    return [CardResponse.model_validate(card) for card in await catalog_service.list_cards(repo)]


@router.get("/{card_id}", response_model=CardResponse, summary="Get a card")
async def get_card(card_id: str, repo: Repository = Depends(get_repository)):
    return CardResponse.model_validate(await catalog_service.get_card(repo, card_id))


@router.get(
    "/{card_id}/mana",
    response_model=ManaStatusResponse,
    summary="Get current mana for an owned card",
)
async def get_mana(
    card_id: str,
    user: UserRecord = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    ledger: ManaLedger = Depends(get_ledger),
):
    """
    Current mana recharges to base once per calendar day, on first access.
    Base mana is the card's mana plus one per owned set of the same character.
    """
    return await mana_service.get_mana_status(repo, ledger, user, card_id)


@router.post(
    "/{card_id}/mana/deplete",
    response_model=ManaStatusResponse,
    summary="Spend one mana",
)
async def deplete_mana(
    card_id: str,
    user: UserRecord = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    ledger: ManaLedger = Depends(get_ledger),
):
    return await mana_service.spend_mana(repo, ledger, user, card_id)


@router.post(
    "/{card_id}/mana/reload",
    response_model=ManaRedemptionResponse,
    summary="Redeem a mana reload token",
)
async def reload_mana(
    card_id: str,
    user: UserRecord = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    ledger: ManaLedger = Depends(get_ledger),
):
    return await mana_service.redeem_reload_token(repo, ledger, user, card_id)


@router.post(
    "/{card_id}/mana/increase",
    response_model=ManaRedemptionResponse,
    summary="Redeem a mana increase token",
)
async def increase_mana(
    card_id: str,
    user: UserRecord = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    ledger: ManaLedger = Depends(get_ledger),
):
    return await mana_service.redeem_increase_token(repo, ledger, user, card_id)


@router.post(
    "/{card_id}/interactions",
    response_model=InteractionResponse,
    summary="Save a conversation and check it for a completed interaction",
)
async def record_interaction(
    card_id: str,
    request: InteractionRequest,
    user: UserRecord = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
    ledger: ManaLedger = Depends(get_ledger),
    detector: InteractionDetector = Depends(get_interaction_detector),
):
    """
    Send the whole conversation so far. It replaces the saved copy, and only
    the messages beyond the saved copy are checked: a completed intimate
    interaction among them raises the card's devotion and costs one mana.
    """
    return await chat_service.record_interaction(
        repo, cipher, ledger, user, card_id, request.messages, detector
    )
