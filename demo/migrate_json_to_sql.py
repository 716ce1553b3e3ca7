#!/usr/bin/env python3
"""
Copy a JSON data directory (cards.json, sets.json, users.json,
manaState.json, savedChats.json) into the SQL database at DATABASE_URL.

Records whose key already exists in SQL are skipped, so the script can be
re-run after a partial copy. Values are copied as stored: legacy plaintext
PII stays plaintext until the owner next logs in, when it is re-encrypted
under the active key.

Usage:
    python demo/migrate_json_to_sql.py
    python demo/migrate_json_to_sql.py --data-dir /srv/manavault/data
"""

import argparse
import logging
import asyncio

from manavault.config import settings
from manavault.database import AsyncSessionLocal, Base, engine
from manavault.repository.base import EntityStore
from manavault.repository.json_file import JsonFileRepository
from manavault.repository.sql import SqlRepository

ENTITIES = ("cards", "sets", "users", "mana_states", "saved_chats")


def log(msg: str) -> None:
    print(f"  {msg}")


def prepare(record):
    # Text columns cannot hold the bare booleans of pre-encryption admin flags
    if isinstance(getattr(record, "is_admin", None), bool):
        return record.model_copy(update={"is_admin": "true" if record.is_admin else "false"})
    return record


async def copy_store(source: EntityStore, target: EntityStore) -> tuple[int, int]:
    copied = skipped = 0
    for record in await source.get_all():
        if await target.get(getattr(record, source.key_field)) is not None:
            skipped += 1
            continue
        await target.create(prepare(record))
        copied += 1
    return copied, skipped


async def migrate(data_dir: str) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    source = JsonFileRepository(data_dir)
    async with AsyncSessionLocal() as session:
        target = SqlRepository(session)
        for name in ENTITIES:
            copied, skipped = await copy_store(getattr(source, name), getattr(target, name))
            log(f"{name}: {copied} copied, {skipped} already present")
        await session.commit()

    await engine.dispose()


def main() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL)
    parser = argparse.ArgumentParser(description="Copy JSON data files into SQL")
    parser.add_argument("--data-dir", default=settings.DATA_DIR)
    args = parser.parse_args()

    print(f"\nMigrating {args.data_dir} -> {settings.DATABASE_URL}\n")
    asyncio.run(migrate(args.data_dir))
    print("\nDone.\n")


if __name__ == "__main__":
    main()
