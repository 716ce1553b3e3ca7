"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table
before create_all() runs.
"""

from manavault.models.card import Card  # noqa: F401
from manavault.models.card_set import CardSet  # noqa: F401
from manavault.models.user import User  # noqa: F401
from manavault.models.mana_state import ManaState  # noqa: F401
from manavault.models.saved_chat import SavedChat  # noqa: F401
