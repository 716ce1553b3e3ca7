"""
Catalog service — cards and sets.

Reads are public. Creating, editing and deleting catalog entries are admin
functions (the router enforces the role).

Deleting a card cascades: the id is removed from every set and every
user's collection first, then the card itself goes. These are independent
writes; if the process stops halfway the card simply still exists with
fewer references, and running the delete again finishes the job. The
card's mana state row is left behind as a harmless orphan.
"""

import logging

from manavault.exceptions import NotFoundError
from manavault.repository.base import Repository
from manavault.schemas.card import CardAttributes, CardCreateRequest, CardRecord, CardUpdateRequest
from manavault.schemas.card_set import CardSetCreateRequest, CardSetRecord

logger = logging.getLogger(__name__)

ATTRIBUTE_FIELDS = ("mana", "resistance", "charm")


async def list_cards(repo: Repository) -> list[CardRecord]:
    return await repo.cards.get_all()


async def get_card(repo: Repository, card_id: str) -> CardRecord:
    card = await repo.cards.get(card_id)
    if card is None:
        raise NotFoundError("card", card_id)
    return card


async def list_sets(repo: Repository) -> list[CardSetRecord]:
    return await repo.sets.get_all()


# ---------------------------------------------------------------------------
# Admin functions
# ---------------------------------------------------------------------------

async def create_card(repo: Repository, request: CardCreateRequest) -> CardRecord:
    card = CardRecord(
        title=request.title,
        image_url=request.image_url,
        description=request.description,
        card_type=request.card_type,
        cost=request.cost,
        character=request.character,
        attributes=CardAttributes(
            mana=request.mana,
            resistance=request.resistance,
            charm=request.charm,
        ),
    )
    return await repo.cards.create(card)


async def update_card(
    repo: Repository,
    card_id: str,
    request: CardUpdateRequest,
) -> CardRecord:
    """Apply an admin edit; only the fields present in the request change."""
    card = await get_card(repo, card_id)
    provided = request.model_fields_set

    # character is the only nullable card field; None elsewhere means "unchanged"
    updates = {
        name: getattr(request, name)
        for name in provided
        if name not in ATTRIBUTE_FIELDS
        and (getattr(request, name) is not None or name == "character")
    }
    attribute_updates = {
        name: getattr(request, name)
        for name in provided
        if name in ATTRIBUTE_FIELDS and getattr(request, name) is not None
    }
    if attribute_updates:
        updates["attributes"] = card.attributes.model_copy(update=attribute_updates)

    return await repo.cards.update(card_id, updates)


async def delete_card(repo: Repository, card_id: str) -> None:
    """
    Delete a card and remove it from every set and collection.

    Raises:
        NotFoundError: If the card does not exist.
    """
    await get_card(repo, card_id)

    for card_set in await repo.sets.get_all():
        if card_id in card_set.card_ids:
            await repo.sets.update(
                card_set.id,
                {"card_ids": [cid for cid in card_set.card_ids if cid != card_id]},
            )

    for user in await repo.users.get_all():
        if card_id in user.collection_card_ids:
            await repo.users.update(
                user.id,
                {"collection_card_ids": [cid for cid in user.collection_card_ids if cid != card_id]},
            )

    await repo.cards.delete(card_id)
    logger.info("Deleted card %s", card_id)


async def create_set(repo: Repository, request: CardSetCreateRequest) -> CardSetRecord:
    """
    Create a set from existing cards.

    Raises:
        NotFoundError: If any listed card does not exist.
    """
    for card_id in request.card_ids:
        await get_card(repo, card_id)

    card_set = CardSetRecord(**request.model_dump())
    return await repo.sets.create(card_set)
