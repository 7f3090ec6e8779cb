"""Connection models.

A connection is a typed, reason-annotated relationship edge between two
people. Storage is directed (from -> to) but most types read symmetrically.
Category membership (family / professional / social / partner) is derived
from ``types`` by the connection analyzer and never stored.
"""

from datetime import datetime
from enum import Enum

from pydantic import Field, field_validator, model_validator

from faceroster.models.base import CamelModel, dedupe

# =============================================================================
# Constants
# =============================================================================

# Types whose meaning depends on direction (e.g. "manager (of target)")
UNIDIRECTIONAL_TYPES = frozenset({
    "manager", "reports_to", "mentor", "mentee", "parent", "child",
})

MIN_STRENGTH = 1
MAX_STRENGTH = 5


class StrengthLevel(str, Enum):
    """Coarse strength bucket derived from the 1-5 strength score."""

    STRONG = "strong"
    MEDIUM = "medium"
    WEAK = "weak"


# =============================================================================
# Connection Models
# =============================================================================


class Connection(CamelModel):
    """Connection record as persisted in the ``connections`` collection.

    Invariants: ``types`` is non-empty, the endpoints differ, and
    ``strength`` lies in [1, 5] when present.
    """

    id: str = Field(..., min_length=1)
    from_person_id: str = Field(..., min_length=1)
    to_person_id: str = Field(..., min_length=1)
    types: list[str] = Field(..., description="Relationship type tags")
    reasons: list[str] = Field(default_factory=list, description="Free-text justifications")
    strength: int | None = Field(None, ge=MIN_STRENGTH, le=MAX_STRENGTH)
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("types", mode="before")
    @classmethod
    def types_not_empty(cls, v: list[str] | None) -> list[str]:
        types = dedupe([t for t in (v or []) if t])
        if not types:
            raise ValueError("Connection must have at least one type")
        return types

    @field_validator("reasons", mode="before")
    @classmethod
    def coerce_reasons(cls, v: list[str] | None) -> list[str]:
        """Convert None to empty list and collapse duplicates."""
        return dedupe([r for r in (v or []) if r])

    @model_validator(mode="after")
    def endpoints_differ(self) -> "Connection":
        if self.from_person_id == self.to_person_id:
            raise ValueError("Cannot connect a person to themselves")
        return self

    def involves(self, person_id: str) -> bool:
        return self.from_person_id == person_id or self.to_person_id == person_id

    def other_person_id(self, person_id: str) -> str | None:
        """Return the opposite endpoint, or None if the person is not on this edge."""
        if self.from_person_id == person_id:
            return self.to_person_id
        if self.to_person_id == person_id:
            return self.from_person_id
        return None

    def has_type(self, type_: str) -> bool:
        return type_ in self.types

    @property
    def pair_key(self) -> tuple[str, str]:
        """Unordered endpoint pair."""
        return tuple(sorted((self.from_person_id, self.to_person_id)))  # type: ignore[return-value]

    @property
    def is_bidirectional(self) -> bool:
        return not any(t in UNIDIRECTIONAL_TYPES for t in self.types)

    @property
    def strength_level(self) -> StrengthLevel:
        return strength_level(self.strength)


def strength_level(strength: int | None) -> StrengthLevel:
    """Bucket a strength score; unset strength reads as medium."""
    if not strength:
        return StrengthLevel.MEDIUM
    if strength >= 4:
        return StrengthLevel.STRONG
    if strength >= 2:
        return StrengthLevel.MEDIUM
    return StrengthLevel.WEAK


# =============================================================================
# Analysis Models
# =============================================================================


class CategoryCounts(CamelModel):
    """Per-person connection counts by derived category."""

    family: int = 0
    professional: int = 0
    social: int = 0
    partner: int = Field(0, description="Cross-cutting; independent of the primary category")
    total: int = Field(0, description="Distinct edges touching the person")
    by_type: dict[str, int] = Field(default_factory=dict)
    strong: int = 0
    weak: int = 0


class ConnectionCount(CamelModel):
    person_id: str
    connection_count: int


class NetworkAnalysis(CamelModel):
    """Network-level statistics over a user's people and connections."""

    total_connections: int
    unique_people: int
    average_connections_per_person: float
    most_connected_people: list[ConnectionCount] = Field(default_factory=list)
    isolated_people: list[str] = Field(default_factory=list)
    connection_density: float = Field(..., ge=0.0, le=1.0)
