"""Merge and deduplication models.

Covers the merge policy supplied by the user, the pure resolver outputs,
AI/heuristic candidate pairs, and the summaries returned by orchestration.
"""

from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from faceroster.models.base import CamelModel
from faceroster.models.connection import Connection
from faceroster.models.person import Person

# =============================================================================
# Merge Policy
# =============================================================================


class MergeChoice(str, Enum):
    """Per-field merge decision.

    ``keep`` retains the target's value, ``replace`` takes the source's.
    The merge dialog's "person1" / "person2" wording is accepted as an alias.
    """

    KEEP = "keep"
    REPLACE = "replace"

    @classmethod
    def _missing_(cls, value: object) -> "MergeChoice | None":
        aliases = {"person1": cls.KEEP, "person2": cls.REPLACE}
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


class MergePolicy(CamelModel):
    """Field choices for a merge; unspecified fields default to keep."""

    name: MergeChoice = MergeChoice.KEEP
    company: MergeChoice = MergeChoice.KEEP
    hobbies: MergeChoice = MergeChoice.KEEP
    birthday: MergeChoice = MergeChoice.KEEP
    first_met: MergeChoice = MergeChoice.KEEP
    first_met_context: MergeChoice = MergeChoice.KEEP

    primary_face_appearance_path: str | None = Field(
        None, description="Photo chosen as primary for the merged person"
    )

    @field_validator(
        "name", "company", "hobbies", "birthday", "first_met", "first_met_context",
        mode="before",
    )
    @classmethod
    def coerce_choice(cls, v: Any) -> Any:
        """Accept any casing and the person1/person2 aliases."""
        if isinstance(v, str) and not isinstance(v, MergeChoice):
            return MergeChoice(v.strip().lower())
        return v

    def choice_for(self, field: str) -> MergeChoice:
        return getattr(self, field)


class MergeResolution(CamelModel):
    """Output of the merge resolver: the new target and the id to delete."""

    updated_target: Person
    delete_id: str


class MergeConflict(CamelModel):
    """A policy field whose values differ between target and source."""

    field: str
    target_value: Any = None
    source_value: Any = None
    requires_choice: bool = Field(
        ..., description="True only when both sides carry a non-empty value"
    )


# =============================================================================
# Graph Reconciliation
# =============================================================================


class ConnectionReconciliation(CamelModel):
    """Connection delta computed by the graph reconciler."""

    connection_updates: list[Connection] = Field(default_factory=list)
    connection_deletes: list[str] = Field(default_factory=list)


class MergePreview(CamelModel):
    """What a merge would do, computed without writing anything."""

    target_id: str
    source_id: str
    conflicts: list[MergeConflict] = Field(default_factory=list)
    connection_updates: list[Connection] = Field(default_factory=list)
    connection_deletes: list[str] = Field(default_factory=list)
    affected_roster_ids: list[str] = Field(default_factory=list)
    merged_face_appearance_count: int = 0


class MergeSummary(CamelModel):
    """Result of a committed merge."""

    person: Person
    deleted_person_id: str
    connections_updated: int = 0
    connections_deleted: int = 0
    rosters_updated: int = 0


class DeletionSummary(CamelModel):
    """Result of a committed deletion."""

    deleted_person_id: str
    connections_deleted: int = 0
    rosters_updated: int = 0


# =============================================================================
# Candidate Pairs
# =============================================================================


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    ConfidenceTier.HIGH: 3,
    ConfidenceTier.MEDIUM: 2,
    ConfidenceTier.LOW: 1,
}


def confidence_rank(confidence: ConfidenceTier | None) -> int:
    """Rank for ordering; unspecified confidence sorts last."""
    return confidence.rank if confidence is not None else 0


class CandidatePair(CamelModel):
    """A proposed duplicate pair with a reason and an optional confidence."""

    person1_id: str = Field(..., min_length=1)
    person1_name: str = ""
    person2_id: str = Field(..., min_length=1)
    person2_name: str = ""
    reason: str = Field(..., min_length=1)
    confidence: ConfidenceTier | None = None

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("confidence", mode="before")
    @classmethod
    def drop_unknown_confidence(cls, v: Any) -> Any:
        """Unrecognised tiers degrade to unspecified rather than failing."""
        if isinstance(v, ConfidenceTier):
            return v
        if isinstance(v, str):
            normalized = v.strip().lower()
            if normalized in {tier.value for tier in ConfidenceTier}:
                return normalized
        return None

    @property
    def pair_key(self) -> frozenset[str]:
        return frozenset((self.person1_id, self.person2_id))
