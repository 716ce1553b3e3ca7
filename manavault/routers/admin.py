"""
Admin router — catalog management, user roles and payment crediting.

All endpoints require the admin role (decrypted is_admin == "true").

Endpoints:
  GET    /admin/users                     — List all users (decrypted)
  PUT    /admin/users/{user_id}/admin     — Grant or revoke admin rights
  POST   /admin/cards                     — Create a card
  PUT    /admin/cards/{card_id}           — Edit a card (partial)
  DELETE /admin/cards/{card_id}           — Delete a card everywhere
  POST   /admin/sets                      — Create a set from existing cards
  POST   /admin/payments/confirm          — Credit a confirmed payment

By consolidating all admin routes in one router, we avoid route-ordering
conflicts with the public /cards and /sets routers.
"""

from fastapi import APIRouter, Depends, status

from manavault.crypto import FieldCipher
from manavault.dependencies import get_cipher, get_ledger, get_repository, require_admin
from manavault.repository.base import Repository
from manavault.schemas.card import CardCreateRequest, CardResponse, CardUpdateRequest
from manavault.schemas.card_set import CardSetCreateRequest, CardSetResponse
from manavault.schemas.payment import PaymentConfirmation
from manavault.schemas.user import AdminFlagRequest, PublicUserView, UserRecord
from manavault.services import catalog_service, payment_service, profile_service
from manavault.services.identity_service import decrypt_user_for_response
from manavault.services.mana_service import ManaLedger

router = APIRouter()


# ---------------------------------------------------------------------------
# User admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/users",
    response_model=list[PublicUserView],
    summary="[Admin] List all users",
)
async def admin_list_users(
    admin: UserRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
):
    return await profile_service.admin_list_users(repo, cipher)


@router.put(
    "/users/{user_id}/admin",
    response_model=PublicUserView,
    summary="[Admin] Grant or revoke admin rights",
)
async def admin_set_admin_flag(
    user_id: str,
    request: AdminFlagRequest,
    admin: UserRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
):
    return await profile_service.admin_set_admin_flag(repo, cipher, user_id, request.is_admin)


# ---------------------------------------------------------------------------
# Catalog admin endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/cards",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Create a card",
)
async def admin_create_card(
    request: CardCreateRequest,
    admin: UserRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository),
):
    return CardResponse.model_validate(await catalog_service.create_card(repo, request))


@router.put(
    "/cards/{card_id}",
    response_model=CardResponse,
    summary="[Admin] Edit a card",
)
async def admin_update_card(
    card_id: str,
    request: CardUpdateRequest,
    admin: UserRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository),
):
    """Only the fields present in the body change; devotion is never edited here."""
    return CardResponse.model_validate(await catalog_service.update_card(repo, card_id, request))


@router.delete(
    "/cards/{card_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a card",
)
async def admin_delete_card(
    card_id: str,
    admin: UserRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository),
):
    """Removes the card from every set and every collection, then deletes it."""
    await catalog_service.delete_card(repo, card_id)


@router.post(
    "/sets",
    response_model=CardSetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Create a set",
)
async def admin_create_set(
    request: CardSetCreateRequest,
    admin: UserRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository),
):
    return CardSetResponse.model_validate(await catalog_service.create_set(repo, request))


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

@router.post(
    "/payments/confirm",
    response_model=PublicUserView,
    summary="[Admin] Credit a confirmed payment",
)
async def admin_confirm_payment(
    confirmation: PaymentConfirmation,
    admin: UserRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
    ledger: ManaLedger = Depends(get_ledger),
):
    """
    Apply one confirmed checkout to the buyer. Not idempotent: confirming the
    same payment twice credits it twice.
    """
    user = await payment_service.apply_payment(repo, ledger, confirmation)
    return decrypt_user_for_response(cipher, user)
