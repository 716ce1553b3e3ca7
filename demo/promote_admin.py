#!/usr/bin/env python3
"""
Promote a user to admin by email. Run on the server.

Admin provisioning is an operator action: the first admin has to be set
directly in storage, after which admins can use PUT /admin/users/{id}/admin.

Usage:
    python demo/promote_admin.py admin@manavault.dev
    python demo/promote_admin.py someone@example.com --revoke
"""

import argparse
import logging
import asyncio
import sys

from manavault.config import settings
from manavault.crypto import FieldCipher
from manavault.database import AsyncSessionLocal, engine
from manavault.repository.base import Repository
from manavault.repository.json_file import JsonFileRepository
from manavault.repository.sql import SqlRepository
from manavault.services import identity_service


async def set_admin(repo: Repository, cipher: FieldCipher, email: str, is_admin: bool) -> bool:
    """Set the admin flag for the user with this email; False when no such user."""
    user = await identity_service.find_user_by_email(repo, cipher, email)
    if user is None:
        return False
    await repo.users.update(user.id, {"is_admin": identity_service.encrypt_is_admin(cipher, is_admin)})
    return True


async def promote(email: str, is_admin: bool = True) -> bool:
    cipher = FieldCipher.from_settings(settings)

    if settings.STORAGE_BACKEND == "json":
        return await set_admin(JsonFileRepository(settings.DATA_DIR), cipher, email, is_admin)

    async with AsyncSessionLocal() as session:
        updated = await set_admin(SqlRepository(session), cipher, email, is_admin)
        await session.commit()
    await engine.dispose()
    return updated


def main() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL)
    parser = argparse.ArgumentParser(description="Grant or revoke admin rights")
    parser.add_argument("email")
    parser.add_argument("--revoke", action="store_true", help="Remove admin rights instead")
    args = parser.parse_args()

    if not asyncio.run(promote(args.email, is_admin=not args.revoke)):
        print(f"No user with email {args.email}")
        sys.exit(1)
    print(f"Admin flag for {args.email} set to {not args.revoke}")


if __name__ == "__main__":
    main()
