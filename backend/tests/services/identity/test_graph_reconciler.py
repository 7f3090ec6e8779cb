"""Unit tests for the connection graph reconciler.

Tests edge rewriting, self-loop removal and duplicate-edge collapsing after
a merge, cascade deletes, and roster membership rewrites.
"""

import pytest

from faceroster.models.batch import WriteOperation
from faceroster.services.exceptions import GraphConsistencyError, ValidationError
from faceroster.services.identity.graph_reconciler import (
    ensure_no_references,
    reconcile_on_delete,
    reconcile_on_merge,
    reconcile_rosters_on_delete,
    reconcile_rosters_on_merge,
)
from tests.factories import make_connection, make_roster


def _resulting_edges(connections, reconciliation):
    """Apply a reconciliation to a snapshot, returning the resulting edges."""
    deleted = set(reconciliation.connection_deletes)
    updated = {c.id: c for c in reconciliation.connection_updates}
    return [updated.get(c.id, c) for c in connections if c.id not in deleted]


class TestReconcileOnMerge:
    """Tests for reconcile_on_merge."""

    def test_rejects_same_ids(self) -> None:
        with pytest.raises(ValidationError):
            reconcile_on_merge("a", "a", [])

    def test_direct_edge_between_merged_people_is_dropped(self) -> None:
        """Should delete an edge that would become a self-loop."""
        connections = [make_connection("c1", "a", "b", ["colleague"])]

        result = reconcile_on_merge("b", "a", connections)

        assert result.connection_deletes == ["c1"]
        assert result.connection_updates == []

    def test_rewrites_absorbed_endpoints(self) -> None:
        connections = [
            make_connection("c1", "b", "c", ["friend"]),
            make_connection("c2", "d", "b", ["mentor"]),
        ]

        result = reconcile_on_merge("b", "a", connections)

        updates = {c.id: c for c in result.connection_updates}
        assert (updates["c1"].from_person_id, updates["c1"].to_person_id) == ("a", "c")
        assert (updates["c2"].from_person_id, updates["c2"].to_person_id) == ("d", "a")
        assert result.connection_deletes == []

    def test_ignores_unrelated_connections(self) -> None:
        connections = [
            make_connection("c1", "x", "y"),
            make_connection("c2", "a", "z"),
        ]

        result = reconcile_on_merge("b", "a", connections)

        assert result.connection_updates == []
        assert result.connection_deletes == []

    def test_collapses_overlapping_duplicate_into_survivor_edge(self) -> None:
        """Should union into the survivor's pre-existing edge and delete the other."""
        connections = [
            make_connection(
                "c1", "a", "c", ["friend"], reasons=["gym"], strength=2, notes="from gym"
            ),
            make_connection(
                "c2", "c", "b", ["friend", "colleague"], reasons=["work"], strength=4,
                notes="from work",
            ),
        ]

        result = reconcile_on_merge("b", "a", connections)

        assert result.connection_deletes == ["c2"]
        assert len(result.connection_updates) == 1
        kept = result.connection_updates[0]
        assert kept.id == "c1"
        assert (kept.from_person_id, kept.to_person_id) == ("a", "c")
        assert kept.types == ["friend", "colleague"]
        assert kept.reasons == ["gym", "work"]
        assert kept.strength == 4
        assert kept.notes == "from gym\n\nfrom work"

    def test_keeps_non_overlapping_edges_of_same_pair(self) -> None:
        connections = [
            make_connection("c1", "a", "c", ["friend"]),
            make_connection("c2", "b", "c", ["manager"]),
        ]

        result = reconcile_on_merge("b", "a", connections)

        assert result.connection_deletes == []
        assert [c.id for c in result.connection_updates] == ["c2"]

    def test_collapse_is_transitive(self) -> None:
        """A~B and B~C collapse together even when A and C share no type."""
        connections = [
            make_connection("c1", "a", "c", ["friend"]),
            make_connection("c2", "b", "c", ["friend", "colleague"]),
            make_connection("c3", "c", "b", ["colleague"]),
        ]

        result = reconcile_on_merge("b", "a", connections)

        assert sorted(result.connection_deletes) == ["c2", "c3"]
        assert [c.id for c in result.connection_updates] == ["c1"]
        assert result.connection_updates[0].types == ["friend", "colleague"]

    def test_no_self_loops_or_absorbed_references_remain(self) -> None:
        """Across a mixed graph the result never loops or names the absorbed id."""
        connections = [
            make_connection("c1", "a", "b", ["friend"]),
            make_connection("c2", "b", "a", ["colleague"]),
            make_connection("c3", "b", "c", ["friend"]),
            make_connection("c4", "c", "a", ["friend"]),
            make_connection("c5", "b", "d", ["parent"]),
            make_connection("c6", "d", "e", ["friend"]),
        ]

        result = reconcile_on_merge("b", "a", connections)
        edges = _resulting_edges(connections, result)

        for edge in edges:
            assert edge.from_person_id != edge.to_person_id
            assert not edge.involves("b")

    def test_duplicate_input_ids_are_processed_once(self) -> None:
        connection = make_connection("c1", "b", "c")

        result = reconcile_on_merge("b", "a", [connection, connection])

        assert [c.id for c in result.connection_updates] == ["c1"]


class TestReconcileOnDelete:
    """Tests for reconcile_on_delete."""

    def test_deletes_edges_in_both_directions(self) -> None:
        """Should remove edges referencing the person as from and as to."""
        connections = [
            make_connection("c1", "x", "a"),
            make_connection("c2", "b", "x"),
            make_connection("c3", "a", "b"),
        ]

        deletes = reconcile_on_delete("x", connections)

        assert deletes == ["c1", "c2"]

    def test_nothing_to_delete(self) -> None:
        assert reconcile_on_delete("x", [make_connection("c1", "a", "b")]) == []


class TestRosterReconciliation:
    """Tests for roster membership rewrites."""

    def test_merge_replaces_absorbed_id(self) -> None:
        rosters = [
            make_roster("r1", ["b", "c"]),
            make_roster("r2", ["a", "b"]),
            make_roster("r3", ["c"]),
        ]

        updated = {r.id: r for r in reconcile_rosters_on_merge("b", "a", rosters)}

        assert set(updated) == {"r1", "r2"}
        assert updated["r1"].people_ids == ["a", "c"]
        assert updated["r2"].people_ids == ["a"]

    def test_merge_rekeys_or_drops_embedded_override(self) -> None:
        rosters = [
            make_roster("r1", ["b"], people=[{"id": "b", "label": "Bobby"}]),
            make_roster(
                "r2", ["a", "b"], people=[{"id": "a", "label": "A"}, {"id": "b", "label": "B"}]
            ),
        ]

        updated = {r.id: r for r in reconcile_rosters_on_merge("b", "a", rosters)}

        r1_people = updated["r1"].people
        assert [p.id for p in r1_people] == ["a"]
        assert r1_people[0].model_dump()["label"] == "Bobby"
        assert [p.id for p in updated["r2"].people] == ["a"]
        assert updated["r2"].people[0].model_dump()["label"] == "A"

    def test_delete_removes_id_and_override(self) -> None:
        rosters = [
            make_roster("r1", ["x", "a"], people=[{"id": "x"}, {"id": "a"}]),
            make_roster("r2", ["a"]),
        ]

        updated = reconcile_rosters_on_delete("x", rosters)

        assert len(updated) == 1
        assert updated[0].people_ids == ["a"]
        assert [p.id for p in updated[0].people] == ["a"]


class TestEnsureNoReferences:
    """Tests for the post-condition consistency check."""

    def test_raises_on_leftover_reference(self) -> None:
        stale = make_connection("c1", "b", "c")
        operations = [WriteOperation.update("connections", "c1", stale.to_record())]

        with pytest.raises(GraphConsistencyError) as exc_info:
            ensure_no_references("b", operations)

        assert exc_info.value.details["record_ids"] == ["c1"]

    def test_passes_for_clean_operations(self) -> None:
        operations = [
            WriteOperation.delete("connections", "c1"),
            WriteOperation.update("rosters", "r1", {"peopleIds": ["a"], "people": None}),
        ]

        ensure_no_references("b", operations)
