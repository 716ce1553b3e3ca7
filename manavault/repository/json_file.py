"""
JSON file repository — one file per entity under DATA_DIR.

Files hold a JSON list of camelCase records (cards.json, sets.json,
users.json, manaState.json, savedChats.json). A manaState.json written as
an object keyed by card id
({"<cardId>": {"lastRechargeDate": ..., "currentMana": ...}}) is also
accepted when reading; it is rewritten as a list on the next save.

Each store loads its file once, keeps the records in memory and rewrites the
whole file after every mutation (temp file + os.replace, so a crash never
leaves a half-written file). An asyncio.Lock serializes mutations of one
file within this process; it does not make read-modify-write sequences in
the services atomic.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from manavault.exceptions import DuplicateKeyError, NotFoundError
from manavault.repository.base import EntityStore, RecordT, Repository
from manavault.schemas.card import CardRecord
from manavault.schemas.card_set import CardSetRecord
from manavault.schemas.chat import SavedChatRecord
from manavault.schemas.mana import ManaStateRecord
from manavault.schemas.user import UserRecord

logger = logging.getLogger(__name__)


class JsonFileEntityStore(EntityStore[RecordT]):

    def __init__(
        self,
        path: Path,
        record_type: type[RecordT],
        entity: str,
        key_field: str = "id",
    ):
        super().__init__(record_type, entity, key_field)
        self.path = Path(path)
        self._records: dict[str, RecordT] | None = None
        self._lock = asyncio.Lock()

    @property
    def _key_alias(self) -> str:
        return self.record_type.model_fields[self.key_field].alias or self.key_field

    def _load(self) -> dict[str, RecordT]:
        if self._records is not None:
            return self._records

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raw = []
        except json.JSONDecodeError:
            logger.error("Corrupt data file %s; refusing to overwrite it", self.path)
            raise

        if isinstance(raw, dict):
            items = [{self._key_alias: key, **value} for key, value in raw.items()]
        else:
            items = raw

        records: dict[str, RecordT] = {}
        for item in items:
            if not isinstance(item, dict):
                continue
            record = self.record_type.model_validate(item)
            records[getattr(record, self.key_field)] = record
        self._records = records
        logger.debug("Loaded %d %s record(s) from %s", len(records), self.entity, self.path)
        return records

    def _save(self, records: Mapping[str, RecordT]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        payload = [record.model_dump(mode="json", by_alias=True) for record in records.values()]
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def _commit(self, records: dict[str, RecordT]) -> None:
        # The cache only changes once the file on disk holds the same records
        self._save(records)
        self._records = records

    async def get(self, key: str) -> RecordT | None:
        record = self._load().get(key)
        return None if record is None else record.model_copy(deep=True)

    async def get_all(self) -> list[RecordT]:
        return [record.model_copy(deep=True) for record in self._load().values()]

    async def create(self, record: RecordT) -> RecordT:
        key = getattr(record, self.key_field)
        async with self._lock:
            records = dict(self._load())
            if key in records:
                raise DuplicateKeyError(self.entity, key)
            records[key] = record.model_copy(deep=True)
            self._commit(records)
        return record

    async def update(self, key: str, fields: Mapping[str, Any]) -> RecordT:
        async with self._lock:
            records = dict(self._load())
            current = records.get(key)
            if current is None:
                raise NotFoundError(self.entity, key)
            merged = self._merge(current, fields)
            records[key] = merged
            self._commit(records)
        return merged.model_copy(deep=True)

    async def delete(self, key: str) -> None:
        async with self._lock:
            records = dict(self._load())
            if key not in records:
                raise NotFoundError(self.entity, key)
            del records[key]
            self._commit(records)


class JsonFileRepository(Repository):
    def __init__(self, data_dir: str | os.PathLike):
        base = Path(data_dir)
        super().__init__(
            cards=JsonFileEntityStore(base / "cards.json", CardRecord, "card"),
            users=JsonFileEntityStore(base / "users.json", UserRecord, "user"),
            sets=JsonFileEntityStore(base / "sets.json", CardSetRecord, "set"),
            mana_states=JsonFileEntityStore(
                base / "manaState.json", ManaStateRecord, "mana_state", key_field="card_id"
            ),
            saved_chats=JsonFileEntityStore(base / "savedChats.json", SavedChatRecord, "saved_chat"),
        )
        self.data_dir = base
