"""
Pydantic schemas for the mana ledger.

ManaStateRecord is keyed by card id and persisted as
{"cardId", "lastRechargeDate", "currentMana"}.
"""

from pydantic import BaseModel

from manavault.schemas.base import Record


class ManaStateRecord(Record):
    card_id: str
    last_recharge_date: str  # YYYY-MM-DD
    current_mana: int


class ManaStatusResponse(BaseModel):
    card_id: str
    current_mana: int
    base_mana: int
    tier: str


class ManaRedemptionResponse(BaseModel):
    card_id: str
    current_mana: int
    base_mana: int
    tokens_remaining: int
