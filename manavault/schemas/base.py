"""
Shared base for stored records.

Records are the backend-neutral shape of each entity: both repository
implementations accept and return them. Python code uses snake_case field
names; the JSON file backend persists the camelCase aliases so the files
keep the layout of existing data directories (for example
{"cardId", "lastRechargeDate", "currentMana"} for mana state). A field
whose stored key is not its camelCase name, such as a card's "type", sets
an explicit alias.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    """Base class for every stored entity."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
