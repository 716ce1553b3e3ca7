"""
Tests for the entity repository contract, run against both backends.

These tests verify:
  - get returns None for a missing key
  - update is a partial merge and never changes the key
  - create of an existing key raises DuplicateKeyError and keeps the stored record
  - update/delete of a missing key raise NotFoundError
  - Records returned by the store are copies, not live state
  - The JSON backend's file layout (camelCase lists, legacy manaState object)
  - Existing cards.json and sets.json files keep every field through a rewrite
  - A failed JSON file write leaves both the file and the in-memory records unchanged
"""

import json

import pytest

from manavault.exceptions import DuplicateKeyError, NotFoundError
from manavault.repository.json_file import JsonFileRepository
from manavault.schemas.card import CardAttributes, CardRecord
from manavault.schemas.card_set import CardSetRecord
from manavault.schemas.mana import ManaStateRecord
from manavault.schemas.user import UserRecord


class TestContract:

    async def test_get_missing_returns_none(self, repo):
        assert await repo.cards.get("missing") is None
        assert await repo.mana_states.get("missing") is None

    async def test_create_and_get(self, repo):
        card = await repo.cards.create(
            CardRecord(title="Ember Queen", character="Seraphine", attributes=CardAttributes(mana=6))
        )
        loaded = await repo.cards.get(card.id)
        assert loaded.title == "Ember Queen"
        assert loaded.attributes.mana == 6
        assert loaded.attributes.devotion == 1
        assert [c.id for c in await repo.cards.get_all()] == [card.id]

    async def test_update_is_partial(self, repo):
        user = await repo.users.create(
            UserRecord(email="e", username="u", mana_reload_tokens=3, collection_card_ids=["a"])
        )
        updated = await repo.users.update(user.id, {"mana_reload_tokens": 2})

        assert updated.mana_reload_tokens == 2
        assert updated.username == "u"
        assert updated.collection_card_ids == ["a"]
        assert (await repo.users.get(user.id)).mana_reload_tokens == 2

    async def test_update_cannot_change_key(self, repo):
        card = await repo.cards.create(CardRecord(title="A"))
        updated = await repo.cards.update(card.id, {"id": "other", "title": "B"})
        assert updated.id == card.id
        assert await repo.cards.get("other") is None

    async def test_create_existing_key_raises(self, repo):
        await repo.cards.create(CardRecord(id="c1", title="Original"))
        with pytest.raises(DuplicateKeyError) as exc_info:
            await repo.cards.create(CardRecord(id="c1", title="Impostor"))
        assert exc_info.value.entity == "card"
        assert (await repo.cards.get("c1")).title == "Original"

    async def test_update_missing_raises(self, repo):
        with pytest.raises(NotFoundError) as exc_info:
            await repo.users.update("missing", {"bio": "x"})
        assert exc_info.value.entity == "user"

    async def test_delete(self, repo):
        card = await repo.cards.create(CardRecord(title="A"))
        await repo.cards.delete(card.id)
        assert await repo.cards.get(card.id) is None
        with pytest.raises(NotFoundError):
            await repo.cards.delete(card.id)

    async def test_mana_state_keyed_by_card_id(self, repo):
        await repo.mana_states.create(
            ManaStateRecord(card_id="c1", last_recharge_date="2026-03-14", current_mana=4)
        )
        updated = await repo.mana_states.update("c1", {"current_mana": 3})
        assert updated.card_id == "c1"
        assert updated.last_recharge_date == "2026-03-14"
        assert (await repo.mana_states.get("c1")).current_mana == 3

    async def test_returned_records_are_copies(self, repo):
        user = await repo.users.create(UserRecord(email="e", collection_card_ids=["a"]))
        loaded = await repo.users.get(user.id)
        loaded.collection_card_ids.append("b")
        assert (await repo.users.get(user.id)).collection_card_ids == ["a"]


class TestJsonFiles:

    async def test_files_use_camel_case_lists(self, tmp_path):
        repo = JsonFileRepository(tmp_path)
        await repo.mana_states.create(
            ManaStateRecord(card_id="c1", last_recharge_date="2026-03-14", current_mana=4)
        )
        data = json.loads((tmp_path / "manaState.json").read_text())
        assert data == [{"cardId": "c1", "lastRechargeDate": "2026-03-14", "currentMana": 4}]
        assert not (tmp_path / "manaState.json.tmp").exists()

    async def test_reads_legacy_mana_state_object(self, tmp_path):
        (tmp_path / "manaState.json").write_text(
            json.dumps({"c1": {"lastRechargeDate": "2026-03-13", "currentMana": 2}})
        )
        repo = JsonFileRepository(tmp_path)
        state = await repo.mana_states.get("c1")
        assert state.last_recharge_date == "2026-03-13"
        assert state.current_mana == 2

    async def test_reads_existing_user_file(self, tmp_path):
        (tmp_path / "users.json").write_text(
            json.dumps([{
                "id": "u1",
                "email": "legacy@example.com",
                "isAdmin": True,
                "manaReloadTokens": 4,
                "collectionCardIds": ["c1"],
            }])
        )
        repo = JsonFileRepository(tmp_path)
        user = await repo.users.get("u1")
        assert user.is_admin is True
        assert user.mana_reload_tokens == 4
        assert user.collection_card_ids == ["c1"]

    async def test_existing_catalog_files_round_trip(self, tmp_path):
        (tmp_path / "cards.json").write_text(
            json.dumps([{
                "id": "c1",
                "imageUrl": "/img/c1.png",
                "title": "Ember Queen",
                "description": "",
                "type": "attack",
                "cost": 300,
                "attributes": {"mana": 6, "resistance": 1, "charm": 3, "devotion": 2},
                "character": "Seraphine",
            }])
        )
        (tmp_path / "sets.json").write_text(
            json.dumps([{
                "id": "s1",
                "name": "Ember Court",
                "description": "",
                "imageUrl": "/img/s1.png",
                "coverImageUrl": "/img/s1-cover.png",
                "cardIds": ["c1"],
                "cost": 450,
                "costPerCard": 225,
                "type": "collection",
                "character": "Seraphine",
            }])
        )
        repo = JsonFileRepository(tmp_path)

        card = await repo.cards.get("c1")
        assert card.card_type == "attack"
        card_set = await repo.sets.get("s1")
        assert card_set.cover_image_url == "/img/s1-cover.png"
        assert card_set.cost_per_card == 225
        assert card_set.set_type == "collection"

        await repo.cards.update("c1", {"title": "Ember Queen II"})
        await repo.sets.create(CardSetRecord(id="s2", name="Vows"))

        cards = json.loads((tmp_path / "cards.json").read_text())
        assert cards[0]["type"] == "attack"
        assert "cardType" not in cards[0]
        sets = json.loads((tmp_path / "sets.json").read_text())
        assert sets[0]["coverImageUrl"] == "/img/s1-cover.png"
        assert sets[0]["costPerCard"] == 225
        assert sets[0]["type"] == "collection"

    async def test_state_survives_reload(self, tmp_path):
        first = JsonFileRepository(tmp_path)
        card = await first.cards.create(CardRecord(title="Persisted"))
        second = JsonFileRepository(tmp_path)
        assert (await second.cards.get(card.id)).title == "Persisted"

    async def test_corrupt_file_is_not_overwritten(self, tmp_path):
        (tmp_path / "cards.json").write_text("{not json")
        repo = JsonFileRepository(tmp_path)
        with pytest.raises(json.JSONDecodeError):
            await repo.cards.get_all()
        assert (tmp_path / "cards.json").read_text() == "{not json"

    @pytest.mark.parametrize("operation", ["create", "update", "delete"])
    async def test_failed_write_keeps_previous_state(self, tmp_path, monkeypatch, operation):
        repo = JsonFileRepository(tmp_path)
        user = await repo.users.create(UserRecord(id="u1", email="e", mana_reload_tokens=1))
        on_disk = (tmp_path / "users.json").read_text()

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("manavault.repository.json_file.os.replace", failing_replace)
        with pytest.raises(OSError):
            if operation == "create":
                await repo.users.create(UserRecord(id="u2", email="f"))
            elif operation == "update":
                await repo.users.update(user.id, {"mana_reload_tokens": 0})
            else:
                await repo.users.delete(user.id)

        assert (tmp_path / "users.json").read_text() == on_disk
        assert [u.id for u in await repo.users.get_all()] == ["u1"]
        assert (await repo.users.get("u1")).mana_reload_tokens == 1
