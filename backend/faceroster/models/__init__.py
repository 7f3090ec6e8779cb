"""Pydantic models module."""

from faceroster.models.batch import WriteOperation
from faceroster.models.connection import (
    CategoryCounts,
    Connection,
    ConnectionCount,
    NetworkAnalysis,
    StrengthLevel,
)
from faceroster.models.merge import (
    CandidatePair,
    ConfidenceTier,
    ConnectionReconciliation,
    DeletionSummary,
    MergeChoice,
    MergeConflict,
    MergePolicy,
    MergePreview,
    MergeResolution,
    MergeSummary,
)
from faceroster.models.person import FaceAppearance, Person, PersonSummary, Region
from faceroster.models.roster import EmbeddedPerson, ImageSize, Roster

__all__ = [
    # Record models
    "Person",
    "FaceAppearance",
    "Region",
    "PersonSummary",
    "Connection",
    "StrengthLevel",
    "Roster",
    "EmbeddedPerson",
    "ImageSize",
    # Merge models
    "MergeChoice",
    "MergePolicy",
    "MergeResolution",
    "MergeConflict",
    "MergePreview",
    "MergeSummary",
    "DeletionSummary",
    "ConnectionReconciliation",
    "CandidatePair",
    "ConfidenceTier",
    # Analysis models
    "CategoryCounts",
    "ConnectionCount",
    "NetworkAnalysis",
    # Persistence
    "WriteOperation",
]
