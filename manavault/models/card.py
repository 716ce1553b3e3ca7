"""
Card model — a collectible card from the catalog.

`attributes` is a JSON column holding {mana, resistance, charm, devotion}.
`mana` is the catalog base mana (the ledger adds the owner's set bonus on
top), `devotion` grows with completed chat interactions.

Deleting a card is an admin action that also removes the id from every set
and every user's collection (see catalog_service.delete_card); there are no
foreign keys because id lists are stored as JSON.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from manavault.database import Base


class Card(Base):
    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    image_url: Mapped[str] = mapped_column(Text, default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    card_type: Mapped[str] = mapped_column(String(50), default="spell", nullable=False)
    cost: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Matches CardSet.character for the collection bonus
    character: Mapped[str | None] = mapped_column(String(200), nullable=True, index=True)

    attributes: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
