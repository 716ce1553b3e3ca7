"""
Sets router.

Endpoints:
  GET /sets — List all card sets
"""

from fastapi import APIRouter, Depends

from manavault.dependencies import get_repository
from manavault.repository.base import Repository
from manavault.schemas.card_set import CardSetResponse
from manavault.services import catalog_service

router = APIRouter()


@router.get("", response_model=list[CardSetResponse], summary="List all sets")
async def list_sets(repo: Repository = Depends(get_repository)):
    return [CardSetResponse.model_validate(s) for s in await catalog_service.list_sets(repo)]
