"""People Merge Service.

Orchestrates merge and deletion of person records: read everything first,
compute the full delta with the pure resolver and reconciler, then commit
exactly one atomic batch. A failed read aborts before anything is written;
a failed batch leaves storage untouched.
"""

import asyncio
from functools import lru_cache

import structlog

from faceroster.models.batch import WriteOperation
from faceroster.models.connection import CategoryCounts, Connection
from faceroster.models.merge import (
    CandidatePair,
    DeletionSummary,
    MergePolicy,
    MergePreview,
    MergeSummary,
)
from faceroster.models.person import Person, PersonSummary
from faceroster.services.exceptions import PersonNotFoundError, ValidationError
from faceroster.services.identity.connection_analyzer import analyze_connections
from faceroster.services.identity.graph_reconciler import (
    ensure_no_references,
    reconcile_on_delete,
    reconcile_on_merge,
    reconcile_rosters_on_delete,
    reconcile_rosters_on_merge,
)
from faceroster.services.identity.merge_resolver import preview_merge, resolve_merge
from faceroster.services.identity.merge_suggester import MergeSuggester, get_merge_suggester
from faceroster.services.identity.similarity import suggest_by_similarity
from faceroster.services.people_repository import PeopleRepository, get_people_repository

logger = structlog.get_logger(__name__)

# Stamped by storage, never written from here
_SERVER_FIELDS = {"id", "created_at", "updated_at"}


def _dedupe_connections(*groups: list[Connection]) -> list[Connection]:
    seen: dict[str, Connection] = {}
    for group in groups:
        for connection in group:
            seen.setdefault(connection.id, connection)
    return list(seen.values())


class PeopleMergeService:
    """Service for merging and deleting people with graph reconciliation."""

    def __init__(
        self,
        repository: PeopleRepository | None = None,
        suggester: MergeSuggester | None = None,
    ) -> None:
        self._repository = repository
        self._suggester = suggester

    @property
    def repository(self) -> PeopleRepository:
        if self._repository is None:
            self._repository = get_people_repository()
        return self._repository

    @property
    def suggester(self) -> MergeSuggester:
        if self._suggester is None:
            self._suggester = get_merge_suggester()
        return self._suggester

    # =========================================================================
    # Reads
    # =========================================================================

    async def _get_owned_person(self, owner_id: str, person_id: str) -> Person:
        """Load a person and check it belongs to ``owner_id``.

        Raises:
            PersonNotFoundError: Missing, or owned by someone else.
        """
        person = await self.repository.get_person(person_id)
        if person is None or person.added_by != owner_id:
            logger.info(
                "person_not_found_for_owner",
                person_id=person_id,
                owner_id=owner_id,
                exists=person is not None,
            )
            raise PersonNotFoundError(person_id)
        return person

    async def _load_merge_inputs(self, owner_id: str, target_id: str, source_id: str):
        """Read both people, their connections and the source's rosters.

        A person owned by someone other than ``owner_id`` is reported as
        PersonNotFoundError (404) so callers cannot discover other users'
        records; the cross-owner ValidationError in ``resolve_merge`` still
        guards direct callers of the pure resolver.
        """
        if target_id == source_id:
            raise ValidationError(
                "Cannot merge a person with themselves",
                details={"person_id": target_id},
            )

        target, source = await asyncio.gather(
            self._get_owned_person(owner_id, target_id),
            self._get_owned_person(owner_id, source_id),
        )
        target_connections, source_connections, source_rosters = await asyncio.gather(
            self.repository.get_connections_for_person(target_id),
            self.repository.get_connections_for_person(source_id),
            self.repository.get_rosters_for_person(source_id),
        )
        connections = _dedupe_connections(target_connections, source_connections)
        return target, source, connections, source_rosters

    # =========================================================================
    # Merge
    # =========================================================================

    async def preview_merge(
        self,
        owner_id: str,
        target_id: str,
        source_id: str,
    ) -> MergePreview:
        """Compute what a merge would change without writing anything."""
        target, source, connections, rosters = await self._load_merge_inputs(
            owner_id, target_id, source_id
        )
        return preview_merge(target, source, connections, rosters)

    async def merge_people(
        self,
        owner_id: str,
        target_id: str,
        source_id: str,
        policy: MergePolicy | None = None,
    ) -> MergeSummary:
        """Absorb ``source_id`` into ``target_id`` in one atomic batch.

        Args:
            owner_id: User who owns both people.
            target_id: Surviving person.
            source_id: Person to absorb and delete.
            policy: Field choices; defaults to keeping the target's values.

        Returns:
            MergeSummary describing the committed change.

        Raises:
            ValidationError: Self-merge, cross-owner merge or bad primary photo.
            PersonNotFoundError: Either person missing or not owned.
            PersistenceFailure: A read or the batch failed.
        """
        logger.info(
            "merge_people_started",
            owner_id=owner_id,
            target_id=target_id,
            source_id=source_id,
        )

        target, source, connections, rosters = await self._load_merge_inputs(
            owner_id, target_id, source_id
        )

        resolution = resolve_merge(target, source, policy)
        reconciliation = reconcile_on_merge(source.id, target.id, connections)
        updated_rosters = reconcile_rosters_on_merge(source.id, target.id, rosters)

        operations = [
            WriteOperation.update(
                "people",
                target.id,
                resolution.updated_target.to_record(exclude=_SERVER_FIELDS),
            ),
            *(
                WriteOperation.update("connections", c.id, c.to_record(exclude=_SERVER_FIELDS))
                for c in reconciliation.connection_updates
            ),
            *(
                WriteOperation.delete("connections", connection_id)
                for connection_id in reconciliation.connection_deletes
            ),
            *(
                WriteOperation.update("rosters", r.id, r.to_record(exclude=_SERVER_FIELDS))
                for r in updated_rosters
            ),
            WriteOperation.delete("people", resolution.delete_id),
        ]
        ensure_no_references(source.id, operations)

        await self.repository.batch_write(operations)

        logger.info(
            "merge_people_complete",
            owner_id=owner_id,
            target_id=target.id,
            deleted_person_id=resolution.delete_id,
            connections_updated=len(reconciliation.connection_updates),
            connections_deleted=len(reconciliation.connection_deletes),
            rosters_updated=len(updated_rosters),
        )

        return MergeSummary(
            person=resolution.updated_target,
            deleted_person_id=resolution.delete_id,
            connections_updated=len(reconciliation.connection_updates),
            connections_deleted=len(reconciliation.connection_deletes),
            rosters_updated=len(updated_rosters),
        )

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete_person(self, owner_id: str, person_id: str) -> DeletionSummary:
        """Delete a person with its connections and roster memberships.

        Raises:
            PersonNotFoundError: Person missing or not owned.
            PersistenceFailure: A read or the batch failed.
        """
        person = await self._get_owned_person(owner_id, person_id)
        connections, rosters = await asyncio.gather(
            self.repository.get_connections_for_person(person.id),
            self.repository.get_rosters_for_person(person.id),
        )

        connection_deletes = reconcile_on_delete(person.id, connections)
        updated_rosters = reconcile_rosters_on_delete(person.id, rosters)

        operations = [
            *(WriteOperation.delete("connections", cid) for cid in connection_deletes),
            *(
                WriteOperation.update("rosters", r.id, r.to_record(exclude=_SERVER_FIELDS))
                for r in updated_rosters
            ),
            WriteOperation.delete("people", person.id),
        ]
        ensure_no_references(person.id, operations)

        await self.repository.batch_write(operations)

        logger.info(
            "delete_person_complete",
            owner_id=owner_id,
            person_id=person.id,
            connections_deleted=len(connection_deletes),
            rosters_updated=len(updated_rosters),
        )

        return DeletionSummary(
            deleted_person_id=person.id,
            connections_deleted=len(connection_deletes),
            rosters_updated=len(updated_rosters),
        )

    # =========================================================================
    # Suggestions & Analysis
    # =========================================================================

    async def suggest_merges(self, owner_id: str) -> list[CandidatePair]:
        """AI-proposed duplicate pairs among the owner's people."""
        people = await self.repository.get_all_people(owner_id)
        summaries = [PersonSummary.from_person(person) for person in people]
        return await self.suggester.suggest(summaries)

    async def similar_people(self, owner_id: str) -> list[CandidatePair]:
        """Heuristic duplicate pairs among the owner's people."""
        people = await self.repository.get_all_people(owner_id)
        return suggest_by_similarity(people)

    async def connection_summary(self, owner_id: str, person_id: str) -> CategoryCounts:
        """Category counts for one person's connections."""
        person = await self._get_owned_person(owner_id, person_id)
        connections = await self.repository.get_connections_for_person(person.id)
        return analyze_connections(person.id, connections)


# =============================================================================
# Service Factory
# =============================================================================


@lru_cache(maxsize=1)
def get_people_merge_service() -> PeopleMergeService:
    """Get singleton people merge service instance.

    Returns:
        PeopleMergeService instance.
    """
    return PeopleMergeService()
