"""
Payment service — applies a confirmed payment to the buyer.

Called once per confirmed checkout with the buyer's id, what was bought and
how many. Kinds:

  card               add the card to the collection
  set                add the set and all of its cards to the collection
  reload             +quantity reload tokens, capped at 10
  increase           +quantity increase tokens, uncapped
  increase_for_card  raise the card's catalog base mana by quantity and add
                     quantity to its current mana (up to the new base)

Nothing here deduplicates: applying the same confirmation twice credits the
user twice. The card and user writes of increase_for_card are separate
(there are no cross-entity transactions); each one is valid on its own.
"""

import logging

from manavault.exceptions import NotFoundError
from manavault.repository.base import Repository
from manavault.schemas.payment import PaymentConfirmation
from manavault.schemas.user import MAX_RELOAD_TOKENS, UserRecord
from manavault.services.mana_service import ManaLedger, catalog_base_mana, get_owned_card

logger = logging.getLogger(__name__)

MAX_QUANTITY = 20


def sanitize_quantity(raw: int | str | None) -> int:
    """Clamp a quantity from payment metadata to 1..MAX_QUANTITY (1 when unusable)."""
    try:
        quantity = int(raw) if raw is not None else 1
    except (TypeError, ValueError):
        return 1
    if quantity <= 0:
        return 1
    return min(MAX_QUANTITY, quantity)


def _append_unique(ids: list[str], *new_ids: str) -> list[str]:
    result = list(ids)
    for item in new_ids:
        if item not in result:
            result.append(item)
    return result


async def apply_payment(
    repo: Repository,
    ledger: ManaLedger,
    confirmation: PaymentConfirmation,
) -> UserRecord:
    """
    Credit a confirmed payment.

    Returns:
        The buyer's updated record.

    Raises:
        NotFoundError: If the user, card or set does not exist.
        OwnershipError: For increase_for_card on a card the user does not own.
    """
    user = await repo.users.get(confirmation.user_id)
    if user is None:
        raise NotFoundError("user", confirmation.user_id)

    quantity = sanitize_quantity(confirmation.quantity)
    kind = confirmation.kind
    updates: dict = {}

    if kind == "card":
        if await repo.cards.get(confirmation.card_id) is None:
            raise NotFoundError("card", confirmation.card_id)
        updates["collection_card_ids"] = _append_unique(
            user.collection_card_ids, confirmation.card_id
        )

    elif kind == "set":
        card_set = await repo.sets.get(confirmation.set_id)
        if card_set is None:
            raise NotFoundError("set", confirmation.set_id)
        updates["collection_set_ids"] = _append_unique(user.collection_set_ids, card_set.id)
        updates["collection_card_ids"] = _append_unique(
            user.collection_card_ids, *card_set.card_ids
        )

    elif kind == "reload":
        updates["mana_reload_tokens"] = min(MAX_RELOAD_TOKENS, user.mana_reload_tokens + quantity)

    elif kind == "increase":
        updates["mana_increase_tokens"] = user.mana_increase_tokens + quantity

    elif kind == "increase_for_card":
        card = await get_owned_card(repo, user, confirmation.card_id)
        new_base = catalog_base_mana(card) + quantity
        attributes = card.attributes.model_copy(update={"mana": new_base})
        await repo.cards.update(card.id, {"attributes": attributes})

        current = await ledger.recharge_if_needed(card.id, new_base)
        new_mana = await ledger.set_current(card.id, min(new_base, current + quantity))
        logger.info(
            "Card %s base mana raised to %d, current mana %d", card.id, new_base, new_mana
        )

    if updates:
        user = await repo.users.update(user.id, updates)
    logger.info("Applied %s payment (x%d) for user %s", kind, quantity, user.id)
    return user
