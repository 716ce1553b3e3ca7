"""
Pydantic schemas for cards.

CardRecord is the stored shape. The attributes block carries the catalog
base mana (adjusted by +1 purchases) and devotion, which grows by one for
every completed intimate chat interaction.
"""

import uuid

from pydantic import BaseModel, Field

from manavault.schemas.base import Record


class CardAttributes(Record):
    mana: int = 5
    resistance: int = 0
    charm: int = 0
    devotion: int = 1


class CardRecord(Record):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    image_url: str = ""
    description: str = ""
    # Stored under "type", as in existing cards.json files
    card_type: str = Field(default="spell", alias="type")
    cost: int = 0
    character: str | None = None
    attributes: CardAttributes = Field(default_factory=CardAttributes)


class CardCreateRequest(BaseModel):
    """Request body for POST /admin/cards."""
    title: str = Field(min_length=1, max_length=200)
    image_url: str = ""
    description: str = ""
    card_type: str = "spell"
    cost: int = Field(default=0, ge=0)
    character: str | None = None
    mana: int = Field(default=5, ge=0)
    resistance: int = 0
    charm: int = 0


class CardUpdateRequest(BaseModel):
    """Request body for PUT /admin/cards/{card_id}; omitted fields are unchanged."""
    title: str | None = Field(default=None, min_length=1, max_length=200)
    image_url: str | None = None
    description: str | None = None
    card_type: str | None = None
    cost: int | None = Field(default=None, ge=0)
    character: str | None = None
    mana: int | None = Field(default=None, ge=0)
    resistance: int | None = None
    charm: int | None = None


class CardAttributesResponse(BaseModel):
    mana: int
    resistance: int
    charm: int
    devotion: int

    model_config = {"from_attributes": True}


class CardResponse(BaseModel):
    """Public representation of a card."""
    id: str
    title: str
    image_url: str
    description: str
    card_type: str
    cost: int
    character: str | None
    attributes: CardAttributesResponse

    model_config = {"from_attributes": True}
