"""
Tests for payment crediting (service level).

These tests verify:
  - Each payment kind credits the right thing
  - Quantities are sanitized to 1..20
  - Reload tokens are capped at 10, increase tokens are not
  - increase_for_card raises the catalog base and current mana together
  - Unknown users, cards and sets are rejected
"""

import pytest
import pytest_asyncio
from pydantic import ValidationError

from manavault.exceptions import NotFoundError, OwnershipError
from manavault.schemas.card import CardAttributes, CardRecord
from manavault.schemas.card_set import CardSetRecord
from manavault.schemas.payment import PaymentConfirmation
from manavault.schemas.user import UserRecord
from manavault.services.mana_service import ManaLedger
from manavault.services.payment_service import apply_payment, sanitize_quantity


@pytest.fixture
def ledger(repo, clock):
    return ManaLedger(repo, clock)


@pytest_asyncio.fixture
async def buyer(repo):
    return await repo.users.create(UserRecord(email="buyer@example.com", mana_reload_tokens=1))


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 1), (0, 1), (-4, 1), ("3", 3), ("abc", 1), (7, 7), (20, 20), (99, 20)],
)
def test_sanitize_quantity(raw, expected):
    assert sanitize_quantity(raw) == expected


def test_confirmation_requires_target():
    with pytest.raises(ValidationError):
        PaymentConfirmation(user_id="u", kind="card")
    with pytest.raises(ValidationError):
        PaymentConfirmation(user_id="u", kind="set")
    PaymentConfirmation(user_id="u", kind="reload")


class TestApplyPayment:

    async def test_card(self, repo, ledger, buyer):
        card = await repo.cards.create(CardRecord(title="A"))
        confirmation = PaymentConfirmation(user_id=buyer.id, kind="card", card_id=card.id)

        user = await apply_payment(repo, ledger, confirmation)
        assert user.collection_card_ids == [card.id]

        # Buying it again does not duplicate the id
        user = await apply_payment(repo, ledger, confirmation)
        assert user.collection_card_ids == [card.id]

    async def test_set_adds_its_cards(self, repo, ledger, buyer):
        first = await repo.cards.create(CardRecord(title="A"))
        second = await repo.cards.create(CardRecord(title="B"))
        card_set = await repo.sets.create(
            CardSetRecord(name="Court", card_ids=[first.id, second.id])
        )
        await repo.users.update(buyer.id, {"collection_card_ids": [first.id]})

        user = await apply_payment(
            repo, ledger, PaymentConfirmation(user_id=buyer.id, kind="set", set_id=card_set.id)
        )
        assert user.collection_set_ids == [card_set.id]
        assert user.collection_card_ids == [first.id, second.id]

    async def test_reload_capped_at_ten(self, repo, ledger, buyer):
        user = await apply_payment(
            repo, ledger, PaymentConfirmation(user_id=buyer.id, kind="reload", quantity=4)
        )
        assert user.mana_reload_tokens == 5

        user = await apply_payment(
            repo, ledger, PaymentConfirmation(user_id=buyer.id, kind="reload", quantity="20")
        )
        assert user.mana_reload_tokens == 10

    async def test_increase_uncapped(self, repo, ledger, buyer):
        for _ in range(2):
            user = await apply_payment(
                repo, ledger, PaymentConfirmation(user_id=buyer.id, kind="increase", quantity=20)
            )
        assert user.mana_increase_tokens == 40

    async def test_increase_for_card(self, repo, ledger, buyer):
        card = await repo.cards.create(CardRecord(title="A", attributes=CardAttributes(mana=5)))
        await repo.users.update(buyer.id, {"collection_card_ids": [card.id]})
        for _ in range(3):
            await ledger.deplete(card.id, 5)

        await apply_payment(
            repo,
            ledger,
            PaymentConfirmation(user_id=buyer.id, kind="increase_for_card", card_id=card.id, quantity=2),
        )
        assert (await repo.cards.get(card.id)).attributes.mana == 7
        assert (await repo.mana_states.get(card.id)).current_mana == 4

    async def test_increase_for_card_capped_at_new_base(self, repo, ledger, buyer):
        card = await repo.cards.create(CardRecord(title="A", attributes=CardAttributes(mana=5)))
        await repo.users.update(buyer.id, {"collection_card_ids": [card.id]})

        await apply_payment(
            repo,
            ledger,
            PaymentConfirmation(user_id=buyer.id, kind="increase_for_card", card_id=card.id, quantity=3),
        )
        assert (await repo.mana_states.get(card.id)).current_mana == 8

    async def test_increase_for_unowned_card(self, repo, ledger, buyer):
        card = await repo.cards.create(CardRecord(title="A"))
        with pytest.raises(OwnershipError):
            await apply_payment(
                repo,
                ledger,
                PaymentConfirmation(user_id=buyer.id, kind="increase_for_card", card_id=card.id),
            )
        assert (await repo.cards.get(card.id)).attributes.mana == 5

    async def test_unknown_user(self, repo, ledger):
        with pytest.raises(NotFoundError):
            await apply_payment(repo, ledger, PaymentConfirmation(user_id="nobody", kind="reload"))

    async def test_unknown_set(self, repo, ledger, buyer):
        with pytest.raises(NotFoundError):
            await apply_payment(
                repo, ledger, PaymentConfirmation(user_id=buyer.id, kind="set", set_id="missing")
            )
