"""Merge Resolver.

Field-level policy merge of two person records owned by the same user.
All functions are pure: inputs are never mutated and the merged record is
a freshly validated ``Person``.
"""

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from faceroster.models.connection import Connection
from faceroster.models.merge import (
    MergeChoice,
    MergeConflict,
    MergePolicy,
    MergePreview,
    MergeResolution,
)
from faceroster.models.person import MERGEABLE_FIELDS, FaceAppearance, Person
from faceroster.models.roster import Roster
from faceroster.services.exceptions import ValidationError
from faceroster.services.identity.graph_reconciler import (
    reconcile_on_merge,
    reconcile_rosters_on_merge,
)

logger = structlog.get_logger(__name__)

NOTES_SEPARATOR = "\n\n--- Merged from {name} ---\n"


# =============================================================================
# Validation
# =============================================================================


def validate_merge_pair(target: Person, source: Person) -> None:
    """Reject merges that must never reach the write path.

    Raises:
        ValidationError: Self-merge or records owned by different users.
    """
    if target.id == source.id:
        raise ValidationError(
            "Cannot merge a person with themselves",
            details={"person_id": target.id},
        )
    if target.added_by != source.added_by:
        raise ValidationError(
            "Can only merge people from the same user",
            details={"target_id": target.id, "source_id": source.id},
        )


# =============================================================================
# Field Merging
# =============================================================================


def merge_notes(target: Person, source: Person) -> str | None:
    """Concatenate notes, labelling the source's fragment with its name."""
    if target.notes and source.notes:
        return target.notes + NOTES_SEPARATOR.format(name=source.name) + source.notes
    return target.notes or source.notes


def merge_face_appearances(
    target: Person, source: Person
) -> tuple[list[FaceAppearance], str | None]:
    """Append the source's appearances not already present (by appearance id).

    Returns:
        Tuple of (merged appearances, primary path). When the target had
        neither appearances nor a primary, the first appended appearance
        becomes primary.
    """
    appearances = list(target.face_appearances)
    known_ids = {appearance.id for appearance in appearances}
    primary = target.primary_face_appearance_path
    promote_first = not appearances and primary is None

    for appearance in source.face_appearances:
        if appearance.id in known_ids:
            continue
        appearances.append(appearance)
        known_ids.add(appearance.id)
        if promote_first and primary is None:
            primary = appearance.face_image_storage_path

    return appearances, primary


# =============================================================================
# Public Operations
# =============================================================================


def resolve_merge(
    target: Person,
    source: Person,
    policy: MergePolicy | None = None,
) -> MergeResolution:
    """Merge ``source`` into ``target`` according to ``policy``.

    Args:
        target: Surviving record.
        source: Record to absorb (deleted by the caller).
        policy: Per-field keep/replace choices; defaults to keep everywhere.

    Returns:
        MergeResolution with the updated target and the id to delete.

    Raises:
        ValidationError: Self-merge, cross-owner merge, or a chosen primary
            photo that is not among the merged appearances.
    """
    validate_merge_pair(target, source)
    policy = policy or MergePolicy()

    merged: dict[str, Any] = target.model_dump()
    for field in MERGEABLE_FIELDS:
        if policy.choice_for(field) is MergeChoice.REPLACE:
            merged[field] = getattr(source, field)

    appearances, primary = merge_face_appearances(target, source)
    if policy.primary_face_appearance_path:
        if not any(a.face_image_storage_path == policy.primary_face_appearance_path for a in appearances):
            raise ValidationError(
                "Chosen primary photo is not one of the merged face appearances",
                details={"primary_face_appearance_path": policy.primary_face_appearance_path},
            )
        primary = policy.primary_face_appearance_path

    merged["notes"] = merge_notes(target, source)
    merged["roster_ids"] = list(target.roster_ids) + [
        roster_id for roster_id in source.roster_ids if roster_id not in target.roster_ids
    ]
    merged["face_appearances"] = [a.model_dump() for a in appearances]
    merged["primary_face_appearance_path"] = primary

    try:
        updated_target = Person.model_validate(merged)
    except PydanticValidationError as e:
        raise ValidationError(
            "Merged person failed validation",
            details={"errors": e.errors(include_url=False, include_input=False)},
        ) from e

    logger.debug(
        "merge_resolved",
        target_id=target.id,
        source_id=source.id,
        face_appearance_count=len(appearances),
        roster_count=len(updated_target.roster_ids),
    )

    return MergeResolution(updated_target=updated_target, delete_id=source.id)


def analyze_merge_conflicts(target: Person, source: Person) -> list[MergeConflict]:
    """List policy fields whose values differ between the two records.

    A choice is only required when both sides carry a non-empty value.
    """
    conflicts = []
    for field in MERGEABLE_FIELDS:
        target_value = getattr(target, field)
        source_value = getattr(source, field)
        if target_value != source_value:
            conflicts.append(
                MergeConflict(
                    field=field,
                    target_value=target_value,
                    source_value=source_value,
                    requires_choice=bool(target_value and source_value),
                )
            )
    return conflicts


def preview_merge(
    target: Person,
    source: Person,
    connections: list[Connection],
    rosters: list[Roster] | None = None,
) -> MergePreview:
    """Describe what merging ``source`` into ``target`` would change.

    Nothing is written; the connection delta is the one the graph
    reconciler would produce for the real merge.
    """
    validate_merge_pair(target, source)

    reconciliation = reconcile_on_merge(source.id, target.id, connections)
    roster_updates = reconcile_rosters_on_merge(source.id, target.id, rosters or [])
    appearances, _ = merge_face_appearances(target, source)

    return MergePreview(
        target_id=target.id,
        source_id=source.id,
        conflicts=analyze_merge_conflicts(target, source),
        connection_updates=reconciliation.connection_updates,
        connection_deletes=reconciliation.connection_deletes,
        affected_roster_ids=[roster.id for roster in roster_updates],
        merged_face_appearance_count=len(appearances),
    )
