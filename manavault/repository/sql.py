"""
SQL repository backed by SQLAlchemy async sessions.

One SqlRepository wraps one request-scoped AsyncSession. Writes are flushed
immediately; the session dependency (database.get_db) commits at the end of
the request.
"""

from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.exceptions import DuplicateKeyError, NotFoundError
from manavault.models import Card, CardSet, ManaState, SavedChat, User
from manavault.repository.base import EntityStore, RecordT, Repository
from manavault.schemas.card import CardRecord
from manavault.schemas.card_set import CardSetRecord
from manavault.schemas.chat import SavedChatRecord
from manavault.schemas.mana import ManaStateRecord
from manavault.schemas.user import UserRecord


class SqlEntityStore(EntityStore[RecordT]):
    """Maps one ORM model to one record type."""

    def __init__(
        self,
        session: AsyncSession,
        model: type,
        record_type: type[RecordT],
        entity: str,
        key_field: str = "id",
    ):
        super().__init__(record_type, entity, key_field)
        self.session = session
        self.model = model
        self._columns = [column.key for column in model.__table__.columns]

    def _to_record(self, row) -> RecordT:
        return self.record_type.model_validate(
            {name: getattr(row, name) for name in self._columns}
        )

    async def get(self, key: str) -> RecordT | None:
        row = await self.session.get(self.model, key)
        return None if row is None else self._to_record(row)

    async def get_all(self) -> list[RecordT]:
        result = await self.session.execute(select(self.model))
        return [self._to_record(row) for row in result.scalars().all()]

    async def create(self, record: RecordT) -> RecordT:
        key = getattr(record, self.key_field)
        if await self.session.get(self.model, key) is not None:
            raise DuplicateKeyError(self.entity, key)

        data = record.model_dump()
        row = self.model(**{name: data[name] for name in self._columns if name in data})
        self.session.add(row)
        await self.session.flush()
        return self._to_record(row)

    async def update(self, key: str, fields: Mapping[str, Any]) -> RecordT:
        row = await self.session.get(self.model, key)
        if row is None:
            raise NotFoundError(self.entity, key)

        merged = self._merge(self._to_record(row), fields)
        for name, value in merged.model_dump().items():
            if name in self._columns:
                setattr(row, name, value)
        await self.session.flush()
        return merged

    async def delete(self, key: str) -> None:
        row = await self.session.get(self.model, key)
        if row is None:
            raise NotFoundError(self.entity, key)
        await self.session.delete(row)
        await self.session.flush()


class SqlRepository(Repository):
    def __init__(self, session: AsyncSession):
        super().__init__(
            cards=SqlEntityStore(session, Card, CardRecord, "card"),
            users=SqlEntityStore(session, User, UserRecord, "user"),
            sets=SqlEntityStore(session, CardSet, CardSetRecord, "set"),
            mana_states=SqlEntityStore(
                session, ManaState, ManaStateRecord, "mana_state", key_field="card_id"
            ),
            saved_chats=SqlEntityStore(session, SavedChat, SavedChatRecord, "saved_chat"),
        )
        self.session = session
