"""
Tests for profile endpoints.

These tests verify:
  - Profiles are readable by id with decrypted PII
  - Partial updates touch only the fields sent; empty strings clear
  - Users cannot edit someone else's profile (403)
  - Changing email to one already in use is rejected (409)
  - Profiles with undecryptable fields still load
  - Legacy plaintext PII is re-encrypted when the owner authenticates
"""

from manavault.crypto import FieldCipher
from manavault.repository.sql import SqlRepository
from manavault.schemas.user import UserRecord

from conftest import OLD_KEY


class TestGetProfile:

    async def test_get_profile(self, client, user):
        response = await client.get(f"/profile/{user['id']}")
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "testuser@example.com"
        assert data["username"] == "tester"

    async def test_unknown_user(self, client):
        response = await client.get("/profile/missing")
        assert response.status_code == 404
        assert response.json()["error_type"] == "user_not_found"

    async def test_undecryptable_fields(self, client, db_session):
        lost = FieldCipher(OLD_KEY)
        user = await SqlRepository(db_session).users.create(
            UserRecord(email=lost.encrypt("ghost@example.com"), bio=lost.encrypt("unreadable"))
        )
        await db_session.commit()

        response = await client.get(f"/profile/{user.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == user.email
        assert data["bio"] is None


class TestUpdateProfile:

    async def test_partial_update(self, client, user):
        response = await client.put(
            f"/profile/{user['id']}",
            json={"bio": "Collects fire decks", "location": "Porto"},
            headers=user["headers"],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["bio"] == "Collects fire decks"
        assert data["location"] == "Porto"
        assert data["username"] == "tester"

        response = await client.put(
            f"/profile/{user['id']}", json={"bio": ""}, headers=user["headers"]
        )
        assert response.json()["bio"] is None
        assert response.json()["location"] == "Porto"

    async def test_update_email(self, client, user):
        response = await client.put(
            f"/profile/{user['id']}",
            json={"email": "Renamed@Example.com"},
            headers=user["headers"],
        )
        assert response.status_code == 200
        assert response.json()["email"] == "renamed@example.com"

        login = await client.post(
            "/auth/login", json={"email": "renamed@example.com", "password": user["password"]}
        )
        assert login.status_code == 200

    async def test_email_taken(self, client, user, second_user):
        response = await client.put(
            f"/profile/{user['id']}",
            json={"email": second_user["email"]},
            headers=user["headers"],
        )
        assert response.status_code == 409

    async def test_same_email_is_not_a_conflict(self, client, user):
        response = await client.put(
            f"/profile/{user['id']}",
            json={"email": user["email"], "bio": "hi"},
            headers=user["headers"],
        )
        assert response.status_code == 200

    async def test_cannot_edit_other_user(self, client, user, second_user):
        response = await client.put(
            f"/profile/{second_user['id']}",
            json={"bio": "hijacked"},
            headers=user["headers"],
        )
        assert response.status_code == 403

    async def test_requires_authentication(self, client, user):
        response = await client.put(f"/profile/{user['id']}", json={"bio": "x"})
        assert response.status_code == 401


class TestLegacyRecords:

    async def test_plaintext_pii_reencrypted_on_login(self, client, db_session, cipher):
        registered = await client.post(
            "/auth/register", json={"email": "legacy@example.com", "password": "LegacyPass123"}
        )
        user_id = registered.json()["user"]["id"]

        # Simulate a record written before encryption was introduced
        repo = SqlRepository(db_session)
        await repo.users.update(user_id, {"email": "Legacy@Example.com", "location": "Oslo"})
        await db_session.commit()

        response = await client.post(
            "/auth/login", json={"email": "legacy@example.com", "password": "LegacyPass123"}
        )
        assert response.status_code == 200
        assert response.json()["user"]["location"] == "Oslo"

        db_session.expire_all()
        stored = await repo.users.get(user_id)
        assert cipher.decrypt(stored.email) == "legacy@example.com"
        assert cipher.decrypt(stored.location) == "Oslo"
