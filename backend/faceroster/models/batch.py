"""Batch write operation model.

A batch is an ordered list of operations applied atomically by the
persistence layer: either every operation commits or none does.
"""

from typing import Any, Literal

from pydantic import Field, model_validator

from faceroster.models.base import CamelModel

Collection = Literal["people", "connections", "rosters"]


class WriteOperation(CamelModel):
    """Single update or delete inside an atomic batch."""

    op: Literal["update", "delete"]
    collection: Collection
    record_id: str = Field(..., min_length=1)
    data: dict[str, Any] | None = None

    @model_validator(mode="after")
    def update_requires_data(self) -> "WriteOperation":
        if self.op == "update" and self.data is None:
            raise ValueError("update operations require data")
        return self

    @classmethod
    def update(cls, collection: Collection, record_id: str, data: dict[str, Any]) -> "WriteOperation":
        return cls(op="update", collection=collection, record_id=record_id, data=data)

    @classmethod
    def delete(cls, collection: Collection, record_id: str) -> "WriteOperation":
        return cls(op="delete", collection=collection, record_id=record_id)

    def references(self, person_id: str) -> bool:
        """True if this operation's payload still names ``person_id``."""
        if self.op == "delete" or not self.data:
            return False
        if self.collection == "connections":
            return person_id in (self.data.get("fromPersonId"), self.data.get("toPersonId"))
        if self.collection == "rosters":
            embedded = [p.get("id") for p in self.data.get("people") or []]
            return person_id in (self.data.get("peopleIds") or []) or person_id in embedded
        return False
