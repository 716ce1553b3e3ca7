"""
Entity repository contract.

The core (identity codec, mana ledger, services) talks to storage only
through this interface, so the SQL and JSON file backends are
interchangeable. The backend is chosen once at startup from
STORAGE_BACKEND and injected (see dependencies.get_repository).

Contract:
  - get(key) returns None for a missing key, never raises
  - create(record) raises DuplicateKeyError when the key is already stored
  - update(key, fields) is a partial merge: fields not given keep their values
  - update/delete on a missing key raise NotFoundError
  - a write that fails leaves the store as it was before the call
  - each store is independent: there are no transactions spanning several
    entities, so a multi-entity change may stop halfway and every single
    write must leave its own entity valid

Concurrency:
  Nothing here serializes read-modify-write sequences. Two requests that
  read the same user or mana state and then update it race, and the last
  update wins. A stricter implementation would add a version column and an
  update(key, expected_version, fields) compare-and-swap at this boundary.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Mapping, TypeVar

from manavault.schemas.base import Record
from manavault.schemas.card import CardRecord
from manavault.schemas.card_set import CardSetRecord
from manavault.schemas.chat import SavedChatRecord
from manavault.schemas.mana import ManaStateRecord
from manavault.schemas.user import UserRecord

RecordT = TypeVar("RecordT", bound=Record)


class EntityStore(ABC, Generic[RecordT]):
    """CRUD over one entity type, keyed by `key_field`."""

    def __init__(self, record_type: type[RecordT], entity: str, key_field: str = "id"):
        self.record_type = record_type
        self.entity = entity
        self.key_field = key_field

    @abstractmethod
    async def get(self, key: str) -> RecordT | None:
        ...

    @abstractmethod
    async def get_all(self) -> list[RecordT]:
        ...

    @abstractmethod
    async def create(self, record: RecordT) -> RecordT:
        ...

    @abstractmethod
    async def update(self, key: str, fields: Mapping[str, Any]) -> RecordT:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    def _merge(self, current: RecordT, fields: Mapping[str, Any]) -> RecordT:
        """Apply a partial update; the key itself can never change."""
        data = current.model_dump()
        data.update({name: value for name, value in fields.items() if name != self.key_field})
        return self.record_type.model_validate(data)


@dataclass
class Repository:
    """The stores the core depends on, all backed by the same storage."""
    cards: EntityStore[CardRecord]
    users: EntityStore[UserRecord]
    sets: EntityStore[CardSetRecord]
    mana_states: EntityStore[ManaStateRecord]
    saved_chats: EntityStore[SavedChatRecord]
