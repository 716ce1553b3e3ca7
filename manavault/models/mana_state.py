"""
ManaState model — one row per card, created lazily on first depletion or
explicit set. Rows outlive deleted cards; orphans are harmless.
"""

from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column

from manavault.database import Base


class ManaState(Base):
    __tablename__ = "mana_states"

    card_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # Calendar date of the last recharge, "YYYY-MM-DD"
    last_recharge_date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    current_mana: Mapped[int] = mapped_column(Integer, nullable=False)
