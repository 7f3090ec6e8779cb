"""Shared base model for persisted records.

Records are stored with camelCase field names; Python code uses snake_case.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting both snake_case names and camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_record(self, *, exclude: set[str] | None = None) -> dict:
        """Serialize to the persisted (camelCase, JSON-safe) shape."""
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


def dedupe(values: list[str] | None) -> list[str]:
    """Collapse duplicates while preserving first-seen order."""
    if not values:
        return []
    return list(dict.fromkeys(values))
