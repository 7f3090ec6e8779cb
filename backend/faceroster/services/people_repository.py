"""People Repository.

Persistence gateway over the ``people``, ``connections`` and ``rosters``
tables in Supabase. Column names match the persisted camelCase record shape.

All async methods use asyncio.to_thread() to run synchronous Supabase
client calls without blocking the event loop. Every storage error is raised
as PersistenceFailure.
"""

import asyncio
from collections.abc import Callable
from functools import lru_cache
from typing import Any

import structlog

from faceroster.core.config import get_settings
from faceroster.models.batch import WriteOperation
from faceroster.models.connection import Connection
from faceroster.models.person import Person
from faceroster.models.roster import Roster
from faceroster.services.exceptions import PersistenceFailure
from faceroster.services.supabase.client import get_supabase_client

logger = structlog.get_logger(__name__)

PEOPLE_TABLE = "people"
CONNECTIONS_TABLE = "connections"
ROSTERS_TABLE = "rosters"


class PeopleRepository:
    """Supabase-backed persistence for people, connections and rosters.

    ``batch_write`` applies a list of write operations in a single Postgres
    function call so they commit or roll back together.

    Example:
        >>> repo = get_people_repository()
        >>> person = await repo.get_person("person-123")
    """

    def __init__(self) -> None:
        """Initialize people repository."""
        self._client = None
        self._batch_rpc = get_settings().supabase_batch_rpc

    @property
    def client(self):
        """Get Supabase client.

        Raises:
            PersistenceFailure: If Supabase is not configured.
        """
        if self._client is None:
            self._client = get_supabase_client()
            if self._client is None:
                raise PersistenceFailure(
                    "Supabase not configured",
                    code="SUPABASE_NOT_CONFIGURED",
                )
        return self._client

    async def _execute(self, operation: str, query: Callable[[], Any], **context: Any) -> Any:
        """Run a blocking query in a worker thread, wrapping failures."""
        try:
            return await asyncio.to_thread(query)
        except PersistenceFailure:
            raise
        except Exception as e:
            logger.error(
                f"{operation}_failed",
                error=str(e),
                error_type=type(e).__name__,
                **context,
            )
            raise PersistenceFailure(
                f"{operation.replace('_', ' ').capitalize()} failed",
                details={"operation": operation, **context},
            ) from e

    # =========================================================================
    # People
    # =========================================================================

    async def get_person(self, person_id: str) -> Person | None:
        """Get a single person by id, or None if absent."""
        def _query():
            return (
                self.client.table(PEOPLE_TABLE)
                .select("*")
                .eq("id", person_id)
                .limit(1)
                .execute()
            )

        response = await self._execute("get_person", _query, person_id=person_id)
        if response.data:
            return Person.model_validate(response.data[0])
        return None

    async def get_all_people(self, owner_id: str) -> list[Person]:
        """Get every person owned by ``owner_id``, oldest first."""
        def _query():
            return (
                self.client.table(PEOPLE_TABLE)
                .select("*")
                .eq("addedBy", owner_id)
                .order("createdAt")
                .execute()
            )

        response = await self._execute("get_all_people", _query, owner_id=owner_id)
        return [Person.model_validate(row) for row in (response.data or [])]

    async def create_person(self, person: Person) -> Person:
        """Insert a new person record."""
        def _query():
            return self.client.table(PEOPLE_TABLE).insert(person.to_record()).execute()

        response = await self._execute("create_person", _query, person_id=person.id)
        if not response.data:
            raise PersistenceFailure(
                "Create person returned no data",
                details={"person_id": person.id},
            )
        logger.info("person_created", person_id=person.id, owner_id=person.added_by)
        return Person.model_validate(response.data[0])

    async def update_person(self, person_id: str, fields: dict[str, Any]) -> Person | None:
        """Apply a partial update (camelCase field names) to a person."""
        def _query():
            return (
                self.client.table(PEOPLE_TABLE)
                .update(fields)
                .eq("id", person_id)
                .execute()
            )

        response = await self._execute(
            "update_person", _query, person_id=person_id, fields=sorted(fields)
        )
        if response.data:
            return Person.model_validate(response.data[0])
        return None

    async def delete_person(self, person_id: str) -> None:
        """Delete a single person record (no cascade)."""
        def _query():
            return self.client.table(PEOPLE_TABLE).delete().eq("id", person_id).execute()

        await self._execute("delete_person", _query, person_id=person_id)
        logger.info("person_deleted", person_id=person_id)

    # =========================================================================
    # Connections & Rosters
    # =========================================================================

    async def get_connections_for_person(self, person_id: str) -> list[Connection]:
        """Get every connection where the person is either endpoint."""
        def _query():
            return (
                self.client.table(CONNECTIONS_TABLE)
                .select("*")
                .or_(f"fromPersonId.eq.{person_id},toPersonId.eq.{person_id}")
                .execute()
            )

        response = await self._execute(
            "get_connections_for_person", _query, person_id=person_id
        )
        return [Connection.model_validate(row) for row in (response.data or [])]

    async def get_rosters_for_person(self, person_id: str) -> list[Roster]:
        """Get every roster whose membership lists the person."""
        def _query():
            return (
                self.client.table(ROSTERS_TABLE)
                .select("*")
                .contains("peopleIds", [person_id])
                .execute()
            )

        response = await self._execute("get_rosters_for_person", _query, person_id=person_id)
        return [Roster.model_validate(row) for row in (response.data or [])]

    # =========================================================================
    # Atomic Batch
    # =========================================================================

    async def batch_write(self, operations: list[WriteOperation]) -> None:
        """Apply all operations atomically in one RPC call.

        Raises:
            PersistenceFailure: If the batch is rejected; nothing was applied.
        """
        if not operations:
            return

        payload = [op.to_record() for op in operations]

        def _query():
            return self.client.rpc(self._batch_rpc, {"p_operations": payload}).execute()

        await self._execute(
            "batch_write",
            _query,
            operation_count=len(operations),
        )
        logger.info(
            "batch_write_committed",
            operation_count=len(operations),
            updates=sum(1 for op in operations if op.op == "update"),
            deletes=sum(1 for op in operations if op.op == "delete"),
        )


# =============================================================================
# Service Factory
# =============================================================================


@lru_cache(maxsize=1)
def get_people_repository() -> PeopleRepository:
    """Get singleton people repository instance.

    Returns:
        PeopleRepository instance.
    """
    return PeopleRepository()
