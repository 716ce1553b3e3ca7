"""
Pydantic schemas for card sets.

A set's `character` drives the collection bonus: every owned set whose
character matches a card's character adds one point to that card's base
mana for the owner.
"""

import uuid

from pydantic import BaseModel, Field

from manavault.schemas.base import Record


class CardSetRecord(Record):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    image_url: str = ""
    cover_image_url: str | None = None
    card_ids: list[str] = Field(default_factory=list)
    cost: int = 0
    cost_per_card: int = 0
    set_type: str | None = Field(default=None, alias="type")
    character: str | None = None
    mana: int | None = None


class CardSetCreateRequest(BaseModel):
    """Request body for POST /admin/sets."""
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    image_url: str = ""
    cover_image_url: str | None = None
    card_ids: list[str] = Field(default_factory=list)
    cost: int = Field(default=0, ge=0)
    cost_per_card: int = Field(default=0, ge=0)
    set_type: str | None = None
    character: str | None = None
    mana: int | None = None


class CardSetResponse(BaseModel):
    id: str
    name: str
    description: str
    image_url: str
    cover_image_url: str | None
    card_ids: list[str]
    cost: int
    cost_per_card: int
    set_type: str | None
    character: str | None
    mana: int | None

    model_config = {"from_attributes": True}
