"""Connection Graph Reconciler.

Rewrites the relationship graph and roster membership after a merge or a
deletion so that no record keeps referencing a removed person. Functions are
pure: they take record snapshots and return the delta the caller must apply.

Merge reconciliation:
- edges referencing the absorbed id are re-pointed at the survivor
- an edge that would become a self-loop is deleted
- edges of the same unordered pair whose types overlap are collapsed
  (transitively) into one edge, preferring the survivor's existing edge
"""

import structlog

from faceroster.models.batch import WriteOperation
from faceroster.models.connection import Connection
from faceroster.models.merge import ConnectionReconciliation
from faceroster.models.roster import Roster
from faceroster.services.exceptions import GraphConsistencyError, ValidationError

logger = structlog.get_logger(__name__)

NOTES_JOINER = "\n\n"


# =============================================================================
# Consistency Check
# =============================================================================


def ensure_no_references(removed_id: str, operations: list[WriteOperation]) -> None:
    """Fail loudly if a computed write still names a removed person.

    Raises:
        GraphConsistencyError: If any update payload references ``removed_id``.
    """
    offending = [op.record_id for op in operations if op.references(removed_id)]
    if offending:
        logger.error(
            "graph_consistency_violation",
            removed_id=removed_id,
            record_ids=offending,
        )
        raise GraphConsistencyError(
            "Computed writes still reference a removed person",
            details={"removed_id": removed_id, "record_ids": offending},
        )


def _connection_operations(reconciliation: ConnectionReconciliation) -> list[WriteOperation]:
    return [
        WriteOperation.update("connections", c.id, c.to_record(exclude={"id"}))
        for c in reconciliation.connection_updates
    ]


def _roster_operations(rosters: list[Roster]) -> list[WriteOperation]:
    return [
        WriteOperation.update("rosters", r.id, r.to_record(exclude={"id"}))
        for r in rosters
    ]


# =============================================================================
# Edge Collapsing
# =============================================================================


def _collapse_overlapping(
    edges: list[Connection],
    preferred_ids: set[str],
) -> tuple[list[Connection], list[str]]:
    """Collapse edges of one unordered pair whose type sets overlap.

    Overlap is applied transitively: A~B and B~C puts A, B and C in one
    group even if A and C share no type. Uses Union-Find with path
    compression.

    Args:
        edges: Edges that all join the same two people, in input order.
        preferred_ids: Ids to keep in preference to others in a group.

    Returns:
        Tuple of (surviving edges with merged content, deleted edge ids).
    """
    if len(edges) < 2:
        return edges, []

    parent: dict[str, str] = {}

    def find(x: str) -> str:
        if x not in parent:
            parent[x] = x
        if parent[x] != x:
            parent[x] = find(parent[x])  # Path compression
        return parent[x]

    def union(x: str, y: str) -> None:
        px, py = find(x), find(y)
        if px != py:
            parent[px] = py

    for i, edge_a in enumerate(edges):
        for edge_b in edges[i + 1:]:
            if set(edge_a.types) & set(edge_b.types):
                union(edge_a.id, edge_b.id)

    # Group edges by their root, keeping input order inside each group
    groups: dict[str, list[Connection]] = {}
    for edge in edges:
        groups.setdefault(find(edge.id), []).append(edge)

    survivors: list[Connection] = []
    deleted: list[str] = []
    for group in groups.values():
        if len(group) == 1:
            survivors.append(group[0])
            continue

        kept = next((e for e in group if e.id in preferred_ids), group[0])
        others = [e for e in group if e.id != kept.id]
        ordered = [kept, *others]

        strengths = [e.strength for e in ordered if e.strength is not None]
        notes = list(dict.fromkeys(e.notes for e in ordered if e.notes))

        survivors.append(
            kept.model_copy(
                update={
                    "types": list(dict.fromkeys(t for e in ordered for t in e.types)),
                    "reasons": list(dict.fromkeys(r for e in ordered for r in e.reasons)),
                    "strength": max(strengths) if strengths else None,
                    "notes": NOTES_JOINER.join(notes) if notes else None,
                }
            )
        )
        deleted.extend(e.id for e in others)

    return survivors, deleted


# =============================================================================
# Public Operations
# =============================================================================


def reconcile_on_merge(
    absorbed_id: str,
    survivor_id: str,
    connections: list[Connection],
) -> ConnectionReconciliation:
    """Compute the connection delta for absorbing one person into another.

    Connections touching neither id are ignored.

    Args:
        absorbed_id: Person being merged away.
        survivor_id: Person that remains.
        connections: Snapshot of connections (may include unrelated ones).

    Returns:
        ConnectionReconciliation with edges to update and edge ids to delete.

    Raises:
        ValidationError: If ``absorbed_id == survivor_id``.
        GraphConsistencyError: If a computed update still references
            ``absorbed_id``.
    """
    if absorbed_id == survivor_id:
        raise ValidationError(
            "Cannot reconcile a person into themselves",
            details={"person_id": absorbed_id},
        )

    deletes: list[str] = []
    rewritten_ids: set[str] = set()
    survivor_edge_ids: set[str] = set()
    by_pair: dict[tuple[str, str], list[Connection]] = {}
    seen: set[str] = set()

    for connection in connections:
        if connection.id in seen:
            continue
        seen.add(connection.id)

        if connection.involves(absorbed_id):
            from_id = survivor_id if connection.from_person_id == absorbed_id else connection.from_person_id
            to_id = survivor_id if connection.to_person_id == absorbed_id else connection.to_person_id
            if from_id == to_id:
                deletes.append(connection.id)
                continue
            connection = connection.model_copy(
                update={"from_person_id": from_id, "to_person_id": to_id}
            )
            rewritten_ids.add(connection.id)
        elif connection.involves(survivor_id):
            survivor_edge_ids.add(connection.id)
        else:
            continue

        by_pair.setdefault(connection.pair_key, []).append(connection)

    updates: list[Connection] = []
    for edges in by_pair.values():
        if not any(e.id in rewritten_ids for e in edges):
            # Pair untouched by the merge
            continue
        survivors, collapsed = _collapse_overlapping(edges, survivor_edge_ids)
        deletes.extend(collapsed)
        for edge in survivors:
            original = next(e for e in edges if e.id == edge.id)
            if edge.id in rewritten_ids or edge != original:
                updates.append(edge)

    reconciliation = ConnectionReconciliation(
        connection_updates=updates,
        connection_deletes=deletes,
    )
    ensure_no_references(absorbed_id, _connection_operations(reconciliation))

    logger.debug(
        "connections_reconciled_on_merge",
        absorbed_id=absorbed_id,
        survivor_id=survivor_id,
        updated_count=len(updates),
        deleted_count=len(deletes),
    )
    return reconciliation


def reconcile_on_delete(deleted_id: str, connections: list[Connection]) -> list[str]:
    """Return the ids of every connection referencing ``deleted_id``."""
    return list(dict.fromkeys(c.id for c in connections if c.involves(deleted_id)))


def reconcile_rosters_on_merge(
    absorbed_id: str,
    survivor_id: str,
    rosters: list[Roster],
) -> list[Roster]:
    """Re-point roster membership from the absorbed person to the survivor.

    The absorbed person's embedded override is re-keyed to the survivor,
    or dropped when the survivor already has one in that roster.

    Returns:
        Only the rosters that changed.
    """
    if absorbed_id == survivor_id:
        raise ValidationError(
            "Cannot reconcile a person into themselves",
            details={"person_id": absorbed_id},
        )

    updated: list[Roster] = []
    for roster in rosters:
        embedded = roster.embedded_person(absorbed_id)
        if not roster.contains_person(absorbed_id) and embedded is None:
            continue

        people_ids = [survivor_id if pid == absorbed_id else pid for pid in roster.people_ids]
        people = roster.people
        if embedded is not None:
            survivor_has_override = roster.embedded_person(survivor_id) is not None
            people = [
                p if p.id != absorbed_id else p.model_copy(update={"id": survivor_id})
                for p in roster.people or []
                if not (p.id == absorbed_id and survivor_has_override)
            ]

        updated.append(
            Roster.model_validate(
                {
                    **roster.model_dump(exclude={"people_ids", "people"}),
                    "people_ids": people_ids,
                    "people": [p.model_dump() for p in people] if people is not None else None,
                }
            )
        )

    ensure_no_references(absorbed_id, _roster_operations(updated))
    return updated


def reconcile_rosters_on_delete(deleted_id: str, rosters: list[Roster]) -> list[Roster]:
    """Remove a deleted person (and any embedded override) from rosters.

    Returns:
        Only the rosters that changed.
    """
    updated: list[Roster] = []
    for roster in rosters:
        if not roster.contains_person(deleted_id) and roster.embedded_person(deleted_id) is None:
            continue
        people = roster.people
        if people is not None:
            people = [p for p in people if p.id != deleted_id]
        updated.append(
            roster.model_copy(
                update={
                    "people_ids": [pid for pid in roster.people_ids if pid != deleted_id],
                    "people": people,
                }
            )
        )

    ensure_no_references(deleted_id, _roster_operations(updated))
    return updated
