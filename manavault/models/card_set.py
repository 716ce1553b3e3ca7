"""
CardSet model — a purchasable bundle of cards.

Owning a set whose `character` matches a card's character raises that
card's base mana by one for the owner.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from manavault.database import Base


class CardSet(Base):
    __tablename__ = "card_sets"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    image_url: Mapped[str] = mapped_column(Text, default="", nullable=False)
    cover_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    card_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    cost: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_per_card: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    set_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    character: Mapped[str | None] = mapped_column(String(200), nullable=True, index=True)
    mana: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
