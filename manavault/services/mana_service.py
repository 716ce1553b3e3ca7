"""
Mana ledger — per-card mana with a lazy daily recharge.

Each card has one mana state row: (last_recharge_date, current_mana). There
is no separate state enum and no scheduler; everything happens on access:

  - recharge_if_needed: if the stored date is not today, reset current mana
    to the base and stamp today. A card untouched for a week recharges once,
    on its next access. A card with no row yet simply reports its base
    (nothing is written until a mutation happens).
  - deplete: recharge first, then spend exactly one mana, never below 0.
  - set_current: force a value (floored, never negative), keeping the
    stored recharge date.

Base mana is user-relative: the card's catalog mana (5 when unset) plus one
for every owned set whose character matches the card's character.

Token redemption and the daily login grant live here too. They read a
counter, check it and write it back with no locking: two concurrent
redemptions for the same user can both pass the check and the last write
wins. Serializing mutations per user/card id (or a compare-and-swap update
in the repository) would close that gap.

"Today" is the host's local calendar date, taken from an injectable clock.
"""

import logging
import math
from datetime import date
from typing import Callable, Sequence

from manavault.exceptions import InsufficientResourceError, NotFoundError, OwnershipError
from manavault.repository.base import Repository
from manavault.schemas.card import CardRecord
from manavault.schemas.card_set import CardSetRecord
from manavault.schemas.mana import ManaRedemptionResponse, ManaStateRecord, ManaStatusResponse
from manavault.schemas.user import UserRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], date]

DEFAULT_BASE_MANA = 5
DAILY_RELOAD_GRANT_CAP = 5


def catalog_base_mana(card: CardRecord) -> int:
    """The card's own base mana, before any collection bonus."""
    return card.attributes.mana or DEFAULT_BASE_MANA


def base_mana(card: CardRecord, user: UserRecord, sets: Sequence[CardSetRecord]) -> int:
    """Catalog base plus one per owned set sharing the card's character."""
    total = catalog_base_mana(card)
    if card.character:
        owned = set(user.collection_set_ids)
        total += sum(1 for s in sets if s.id in owned and s.character == card.character)
    return total


def describe_mana_tier(current_mana: int) -> str:
    if current_mana >= 9:
        return "very_high"
    if current_mana >= 7:
        return "high"
    if current_mana >= 5:
        return "moderate"
    if current_mana >= 3:
        return "low"
    return "very_low"


class ManaLedger:
    """
    Reads and mutates mana state rows.

    Args:
        repo: Repository providing the mana_states and cards stores.
        today: Clock returning the current calendar date.
    """

    def __init__(self, repo: Repository, today: Clock = date.today):
        self.repo = repo
        self.today = today

    def _today(self) -> str:
        return self.today().isoformat()

    async def _write(
        self,
        card_id: str,
        existing: ManaStateRecord | None,
        recharge_date: str,
        current_mana: int,
    ) -> None:
        if existing is None:
            await self.repo.mana_states.create(
                ManaStateRecord(
                    card_id=card_id,
                    last_recharge_date=recharge_date,
                    current_mana=current_mana,
                )
            )
        else:
            await self.repo.mana_states.update(
                card_id,
                {"last_recharge_date": recharge_date, "current_mana": current_mana},
            )

    async def recharge_if_needed(self, card_id: str, base: int) -> int:
        """
        Return the card's current mana, recharging to `base` on a new day.

        Without a stored row the base is returned and nothing is persisted.
        """
        state = await self.repo.mana_states.get(card_id)
        if state is None:
            return base

        today = self._today()
        if state.last_recharge_date != today:
            await self._write(card_id, state, today, base)
            logger.debug("Recharged card %s to %d (last recharge %s)", card_id, base, state.last_recharge_date)
            return base

        return state.current_mana

    async def deplete(self, card_id: str, base: int | None = None) -> int:
        """
        Spend one mana. Recharges first, never goes below 0.

        Args:
            card_id: The card whose mana is spent.
            base: The owner's base mana; defaults to the card's catalog base.

        Raises:
            NotFoundError: If no base is given and the card does not exist.
        """
        if base is None:
            card = await self.repo.cards.get(card_id)
            if card is None:
                raise NotFoundError("card", card_id)
            base = catalog_base_mana(card)

        current = await self.recharge_if_needed(card_id, base)
        new_mana = max(0, current - 1)
        state = await self.repo.mana_states.get(card_id)
        await self._write(card_id, state, self._today(), new_mana)
        return new_mana

    async def set_current(self, card_id: str, value: float) -> int:
        """Force current mana to floor(value), at least 0, keeping the recharge date."""
        new_mana = max(0, math.floor(value))
        state = await self.repo.mana_states.get(card_id)
        recharge_date = state.last_recharge_date if state else self._today()
        await self._write(card_id, state, recharge_date, new_mana)
        return new_mana


# ---------------------------------------------------------------------------
# Owner-facing operations
# ---------------------------------------------------------------------------


async def get_owned_card(repo: Repository, user: UserRecord, card_id: str) -> CardRecord:
    """
    Load a card the user owns.

    Raises:
        NotFoundError: If the card does not exist.
        OwnershipError: If the card is not in the user's collection.
    """
    card = await repo.cards.get(card_id)
    if card is None:
        raise NotFoundError("card", card_id)
    if card_id not in user.collection_card_ids:
        raise OwnershipError(card_id)
    return card


async def user_base_mana(repo: Repository, card: CardRecord, user: UserRecord) -> int:
    sets = await repo.sets.get_all() if card.character else []
    return base_mana(card, user, sets)


def _status(card_id: str, current: int, base: int) -> ManaStatusResponse:
    clamped = min(max(current, 0), base)
    return ManaStatusResponse(
        card_id=card_id,
        current_mana=clamped,
        base_mana=base,
        tier=describe_mana_tier(clamped),
    )


async def get_mana_status(
    repo: Repository,
    ledger: ManaLedger,
    user: UserRecord,
    card_id: str,
) -> ManaStatusResponse:
    """Current and base mana of an owned card, recharging on a new day."""
    card = await get_owned_card(repo, user, card_id)
    base = await user_base_mana(repo, card, user)
    current = await ledger.recharge_if_needed(card_id, base)
    return _status(card_id, current, base)


async def spend_mana(
    repo: Repository,
    ledger: ManaLedger,
    user: UserRecord,
    card_id: str,
) -> ManaStatusResponse:
    """
    Spend one mana on an owned card.

    Raises:
        InsufficientResourceError: If the card has no mana left today.
    """
    card = await get_owned_card(repo, user, card_id)
    base = await user_base_mana(repo, card, user)
    current = await ledger.recharge_if_needed(card_id, base)
    if current <= 0:
        raise InsufficientResourceError("mana", "No mana available")

    new_mana = await ledger.deplete(card_id, base)
    logger.info("Depleted mana for card %s, current mana: %d", card_id, new_mana)
    return _status(card_id, new_mana, base)


async def redeem_reload_token(
    repo: Repository,
    ledger: ManaLedger,
    user: UserRecord,
    card_id: str,
) -> ManaRedemptionResponse:
    """
    Spend one reload token to restore an owned card to full base mana.

    Raises:
        InsufficientResourceError: If the user has no reload tokens.
    """
    card = await get_owned_card(repo, user, card_id)

    # The guard and the decrement use the same read of the counter
    current_user = await repo.users.get(user.id)
    if current_user is None:
        raise NotFoundError("user", user.id)
    tokens = current_user.mana_reload_tokens
    if tokens <= 0:
        raise InsufficientResourceError("mana_reload_tokens", "No mana reloads available")

    remaining = tokens - 1
    await repo.users.update(user.id, {"mana_reload_tokens": remaining})

    base = await user_base_mana(repo, card, current_user)
    new_mana = await ledger.set_current(card_id, base)
    logger.info("Reload token restored card %s to %d", card_id, new_mana)

    return ManaRedemptionResponse(
        card_id=card_id,
        current_mana=new_mana,
        base_mana=base,
        tokens_remaining=remaining,
    )


async def redeem_increase_token(
    repo: Repository,
    ledger: ManaLedger,
    user: UserRecord,
    card_id: str,
) -> ManaRedemptionResponse:
    """
    Spend one increase token for +1 current mana on an owned card, up to base.

    Raises:
        InsufficientResourceError: If the user has no increase tokens.
    """
    card = await get_owned_card(repo, user, card_id)

    current_user = await repo.users.get(user.id)
    if current_user is None:
        raise NotFoundError("user", user.id)
    tokens = current_user.mana_increase_tokens
    if tokens <= 0:
        raise InsufficientResourceError(
            "mana_increase_tokens", "No mana increase tokens available"
        )

    remaining = tokens - 1
    await repo.users.update(user.id, {"mana_increase_tokens": remaining})

    base = await user_base_mana(repo, card, current_user)
    current = await ledger.recharge_if_needed(card_id, base)
    new_mana = await ledger.set_current(card_id, min(base, current + 1))

    return ManaRedemptionResponse(
        card_id=card_id,
        current_mana=new_mana,
        base_mana=base,
        tokens_remaining=remaining,
    )


async def grant_daily_reload(
    repo: Repository,
    user: UserRecord,
    today: Clock = date.today,
) -> UserRecord:
    """
    Grant one reload token on the first login of a calendar day.

    The balance after the grant is min(DAILY_RELOAD_GRANT_CAP, tokens + 1), so
    a larger purchased balance comes down to the cap. The login date is
    stamped either way.
    """
    today_iso = today().isoformat()
    if user.last_login_date == today_iso:
        return user

    tokens = min(DAILY_RELOAD_GRANT_CAP, user.mana_reload_tokens + 1)
    updated = await repo.users.update(
        user.id,
        {"mana_reload_tokens": tokens, "last_login_date": today_iso},
    )
    logger.info("Daily login grant for user %s: %d reload token(s)", user.id, tokens)
    return updated
