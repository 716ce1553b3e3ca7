#!/usr/bin/env python3
"""
Demo seed script — populates a running server with a sample catalog and users.

!! NOT FOR PRODUCTION !!
This script creates users with known passwords. It is intended ONLY for
local demos and frontend development.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

The admin is promoted directly in storage (see promote_admin.py), so run
this on the same machine and with the same configuration as the server.

Login credentials after seeding:
    ┌──────────────────────────────┬───────────────────┬────────┐
    │ Email                        │ Password          │ Role   │
    ├──────────────────────────────┼───────────────────┼────────┤
    │ admin@manavault.dev          │ AdminDemo123!     │ ADMIN  │
    │ alice.chen@example.com       │ AliceDemo123!     │ MEMBER │
    │ bob.martinez@example.com     │ BobDemo123!       │ MEMBER │
    └──────────────────────────────┴───────────────────┴────────┘
"""

import argparse
import asyncio
import sys

import httpx

from promote_admin import promote

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo data
# ---------------------------------------------------------------------------

ADMIN = {"email": "admin@manavault.dev", "password": "AdminDemo123!", "username": "Admin"}

MEMBERS = [
    {
        "email": "alice.chen@example.com",
        "password": "AliceDemo123!",
        "username": "alice",
        "sets": ["Ember Court"],
        "reload_tokens": 3,
    },
    {
        "email": "bob.martinez@example.com",
        "password": "BobDemo123!",
        "username": "bob",
        "cards": ["Tidecaller"],
        "increase_tokens": 2,
    },
]

CARDS = [
    {"title": "Ember Queen", "character": "Seraphine", "mana": 6, "charm": 3, "cost": 300},
    {"title": "Ashen Vow", "character": "Seraphine", "mana": 5, "resistance": 2, "cost": 200},
    {"title": "Tidecaller", "character": "Maren", "mana": 7, "charm": 1, "cost": 400},
    {"title": "Salt and Silver", "character": "Maren", "mana": 4, "resistance": 1, "cost": 150},
]

SETS = [
    {"name": "Ember Court", "character": "Seraphine", "cards": ["Ember Queen", "Ashen Vow"], "cost": 450},
    {"name": "Deep Water", "character": "Maren", "cards": ["Tidecaller", "Salt and Silver"], "cost": 500},
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register(client: httpx.AsyncClient, user: dict) -> dict:
    """Register a user (or log in if they already exist), return the auth response."""
    resp = await client.post(f"{BASE_URL}/auth/register", json={
        "email": user["email"],
        "password": user["password"],
        "username": user["username"],
    })
    if resp.status_code == 409:
        resp = await client.post(f"{BASE_URL}/auth/login", json={
            "email": user["email"],
            "password": user["password"],
        })
    resp.raise_for_status()
    return resp.json()


async def confirm_payment(client: httpx.AsyncClient, token: str, body: dict) -> None:
    resp = await client.post(
        f"{BASE_URL}/admin/payments/confirm",
        json=body,
        headers=auth_header(token),
    )
    resp.raise_for_status()


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn manavault.main:app --reload\n")
            sys.exit(1)

        # --- Admin ---
        print("Creating admin user...")
        admin_token = (await register(client, ADMIN))["token"]
        await promote(ADMIN["email"])
        log(f"Admin: {ADMIN['email']} / {ADMIN['password']}")

        # --- Catalog ---
        print("\nCreating catalog...")
        card_ids: dict[str, str] = {}
        for card in CARDS:
            resp = await client.post(
                f"{BASE_URL}/admin/cards", json=card, headers=auth_header(admin_token)
            )
            resp.raise_for_status()
            card_ids[card["title"]] = resp.json()["id"]
            log(f"Card: {card['title']} ({card['character']}, mana {card['mana']})")

        set_ids: dict[str, str] = {}
        for card_set in SETS:
            body = {
                "name": card_set["name"],
                "character": card_set["character"],
                "cost": card_set["cost"],
                "card_ids": [card_ids[title] for title in card_set["cards"]],
            }
            resp = await client.post(
                f"{BASE_URL}/admin/sets", json=body, headers=auth_header(admin_token)
            )
            resp.raise_for_status()
            set_ids[card_set["name"]] = resp.json()["id"]
            log(f"Set: {card_set['name']} ({len(body['card_ids'])} cards)")

        # --- Members ---
        for member in MEMBERS:
            print(f"\nCreating {member['username']}...")
            user_id = (await register(client, member))["user"]["id"]
            log(f"Login: {member['email']} / {member['password']}")

            for name in member.get("sets", []):
                await confirm_payment(client, admin_token, {
                    "user_id": user_id, "kind": "set", "set_id": set_ids[name],
                })
                log(f"Bought set {name}")
            for title in member.get("cards", []):
                await confirm_payment(client, admin_token, {
                    "user_id": user_id, "kind": "card", "card_id": card_ids[title],
                })
                log(f"Bought card {title}")
            if member.get("reload_tokens"):
                await confirm_payment(client, admin_token, {
                    "user_id": user_id, "kind": "reload", "quantity": member["reload_tokens"],
                })
                log(f"Bought {member['reload_tokens']} reload token(s)")
            if member.get("increase_tokens"):
                await confirm_payment(client, admin_token, {
                    "user_id": user_id, "kind": "increase", "quantity": member["increase_tokens"],
                })
                log(f"Bought {member['increase_tokens']} increase token(s)")

    print("\n========================================")
    print("  Seed complete")
    print("========================================\n")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--base-url", default=BASE_URL)
    args = parser.parse_args()
    asyncio.run(seed(args.base_url))


if __name__ == "__main__":
    main()
