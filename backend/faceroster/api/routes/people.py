"""People API routes for duplicate detection, merge and deletion.

Provides endpoints for:
- AI and heuristic duplicate suggestions
- Previewing and committing a merge of two people
- Deleting a person with its connections and roster memberships
- Per-person connection category summaries

Authentication is out of scope; the owner is taken from the path.
"""

import structlog
from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel, ConfigDict, Field

from faceroster.core.exceptions import AppException
from faceroster.models.connection import CategoryCounts
from faceroster.models.merge import (
    CandidatePair,
    DeletionSummary,
    MergePolicy,
    MergePreview,
    MergeSummary,
)
from faceroster.services.exceptions import ServiceError
from faceroster.services.people_merge_service import (
    PeopleMergeService,
    get_people_merge_service,
)

# =============================================================================
# Request/Response Models
# =============================================================================


class MergePeopleRequest(BaseModel):
    """Request to merge two people."""

    model_config = ConfigDict(populate_by_name=True)

    target_person_id: str = Field(
        ...,
        alias="targetPersonId",
        min_length=1,
        description="Person that survives the merge",
    )
    source_person_id: str = Field(
        ...,
        alias="sourcePersonId",
        min_length=1,
        description="Person absorbed into the target (will be deleted)",
    )
    policy: MergePolicy = Field(
        default_factory=MergePolicy,
        description="Per-field keep/replace choices and optional primary photo",
    )


class SuggestionsResponse(BaseModel):
    data: list[CandidatePair]


class MergePreviewResponse(BaseModel):
    data: MergePreview


class MergeResultResponse(BaseModel):
    data: MergeSummary


class DeletionResponse(BaseModel):
    data: DeletionSummary


class ConnectionSummaryResponse(BaseModel):
    data: CategoryCounts


router = APIRouter(prefix="/users/{owner_id}/people", tags=["people"])
logger = structlog.get_logger(__name__)


def _get_merge_service() -> PeopleMergeService:
    """Get people merge service instance."""
    return get_people_merge_service()


# =============================================================================
# Suggestions
# =============================================================================


@router.post(
    "/merge-suggestions",
    response_model=SuggestionsResponse,
    response_model_by_alias=True,
)
async def suggest_merges(
    owner_id: str = Path(..., description="Owner user ID"),
    service: PeopleMergeService = Depends(_get_merge_service),
) -> SuggestionsResponse:
    """AI-proposed duplicate pairs among the owner's people.

    Suggestion failures degrade to an empty list; only storage errors
    surface as errors.
    """
    try:
        suggestions = await service.suggest_merges(owner_id)
    except ServiceError as e:
        raise AppException.from_service_error(e) from e

    logger.info(
        "merge_suggestions_served",
        owner_id=owner_id,
        suggestion_count=len(suggestions),
    )
    return SuggestionsResponse(data=suggestions)


@router.get("/similar", response_model=SuggestionsResponse, response_model_by_alias=True)
async def similar_people(
    owner_id: str = Path(..., description="Owner user ID"),
    service: PeopleMergeService = Depends(_get_merge_service),
) -> SuggestionsResponse:
    """Heuristic duplicate pairs (name, company, shared rosters, birthday)."""
    try:
        suggestions = await service.similar_people(owner_id)
    except ServiceError as e:
        raise AppException.from_service_error(e) from e
    return SuggestionsResponse(data=suggestions)


# =============================================================================
# Merge
# =============================================================================


@router.get(
    "/merge-preview",
    response_model=MergePreviewResponse,
    response_model_by_alias=True,
)
async def merge_preview(
    owner_id: str = Path(..., description="Owner user ID"),
    target_id: str = Query(..., alias="targetId", min_length=1),
    source_id: str = Query(..., alias="sourceId", min_length=1),
    service: PeopleMergeService = Depends(_get_merge_service),
) -> MergePreviewResponse:
    """Show conflicts and graph changes a merge would cause."""
    try:
        preview = await service.preview_merge(owner_id, target_id, source_id)
    except ServiceError as e:
        raise AppException.from_service_error(e) from e
    return MergePreviewResponse(data=preview)


@router.post("/merge", response_model=MergeResultResponse, response_model_by_alias=True)
async def merge_people(
    request: MergePeopleRequest,
    owner_id: str = Path(..., description="Owner user ID"),
    service: PeopleMergeService = Depends(_get_merge_service),
) -> MergeResultResponse:
    """Merge the source person into the target person.

    - Field values follow the policy (keep target / replace with source)
    - Notes are concatenated, rosters and face appearances unioned
    - Connections and rosters are re-pointed at the target
    - Source person is deleted

    All writes are committed in one atomic batch.

    Raises:
        HTTPException 400: Self-merge, cross-owner merge or invalid primary photo.
        HTTPException 404: If either person is not found.
        HTTPException 503: If storage is unavailable.
    """
    logger.info(
        "merge_people_request",
        owner_id=owner_id,
        target_id=request.target_person_id,
        source_id=request.source_person_id,
    )

    try:
        summary = await service.merge_people(
            owner_id,
            request.target_person_id,
            request.source_person_id,
            request.policy,
        )
    except ServiceError as e:
        logger.warning(
            "merge_people_rejected",
            owner_id=owner_id,
            target_id=request.target_person_id,
            source_id=request.source_person_id,
            code=e.code,
        )
        raise AppException.from_service_error(e) from e

    return MergeResultResponse(data=summary)


# =============================================================================
# Person
# =============================================================================


@router.delete(
    "/{person_id}",
    response_model=DeletionResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
)
async def delete_person(
    owner_id: str = Path(..., description="Owner user ID"),
    person_id: str = Path(..., description="Person ID"),
    service: PeopleMergeService = Depends(_get_merge_service),
) -> DeletionResponse:
    """Delete a person together with its connections and roster memberships."""
    try:
        summary = await service.delete_person(owner_id, person_id)
    except ServiceError as e:
        raise AppException.from_service_error(e) from e
    return DeletionResponse(data=summary)


@router.get(
    "/{person_id}/connection-summary",
    response_model=ConnectionSummaryResponse,
    response_model_by_alias=True,
)
async def connection_summary(
    owner_id: str = Path(..., description="Owner user ID"),
    person_id: str = Path(..., description="Person ID"),
    service: PeopleMergeService = Depends(_get_merge_service),
) -> ConnectionSummaryResponse:
    """Connection counts by category, type and strength."""
    try:
        counts = await service.connection_summary(owner_id, person_id)
    except ServiceError as e:
        raise AppException.from_service_error(e) from e
    return ConnectionSummaryResponse(data=counts)
