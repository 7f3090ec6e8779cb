"""Connection Analyzer.

Derives per-person category counts and network statistics from connection
snapshots. Category membership is never stored; it is looked up from a
static ordered table of tag groups checked in fixed priority order.
"""

from collections import deque

from faceroster.models.connection import (
    CategoryCounts,
    Connection,
    ConnectionCount,
    NetworkAnalysis,
    StrengthLevel,
    strength_level,
)

# =============================================================================
# Constants
# =============================================================================

# (category, tag set) pairs; the first matching group wins
CATEGORY_GROUPS: tuple[tuple[str, frozenset[str]], ...] = (
    ("family", frozenset({"parent", "child", "father", "mother", "family_member"})),
    ("professional", frozenset({
        "manager", "reports_to", "subordinate", "mentor", "mentee",
    })),
    ("social", frozenset({
        "colleague", "friend", "club_member", "acquaintance", "fellow_member", "group_member",
    })),
)

DEFAULT_CATEGORY = "social"

# Counted independently of the primary category
PARTNER_TYPES = frozenset({"spouse", "partner"})

KNOWN_CONNECTION_TYPES = frozenset().union(*(tags for _, tags in CATEGORY_GROUPS), PARTNER_TYPES)

MUTUALLY_EXCLUSIVE_PAIRS: tuple[tuple[str, str], ...] = (
    ("parent", "child"),
    ("manager", "reports_to"),
    ("mentor", "mentee"),
    ("spouse", "partner"),
)

MOST_CONNECTED_LIMIT = 5
DEFAULT_MAX_DEGREES = 3


# =============================================================================
# Helpers
# =============================================================================


def categorize(types: list[str]) -> str:
    """Return the primary category for a connection's types."""
    for category, tags in CATEGORY_GROUPS:
        if any(t in tags for t in types):
            return category
    return DEFAULT_CATEGORY


def _related_connections(person_id: str, connections: list[Connection]) -> list[Connection]:
    """Edges touching the person, de-duplicated by id."""
    related: dict[str, Connection] = {}
    for connection in connections:
        if connection.involves(person_id) and connection.id not in related:
            related[connection.id] = connection
    return list(related.values())


def _connected_person_ids(person_id: str, connections: list[Connection]) -> list[str]:
    connected: dict[str, None] = {}
    for connection in connections:
        other = connection.other_person_id(person_id)
        if other is not None:
            connected[other] = None
    return list(connected)


# =============================================================================
# Public Operations
# =============================================================================


def analyze_connections(person_id: str, connections: list[Connection]) -> CategoryCounts:
    """Count a person's connections by category, type and strength.

    Pure and deterministic: the same inputs always yield the same counts.
    """
    counts = CategoryCounts()
    by_type: dict[str, int] = {}

    for connection in _related_connections(person_id, connections):
        category = categorize(connection.types)
        setattr(counts, category, getattr(counts, category) + 1)

        if any(t in PARTNER_TYPES for t in connection.types):
            counts.partner += 1

        for type_ in connection.types:
            by_type[type_] = by_type.get(type_, 0) + 1

        level = strength_level(connection.strength)
        if level is StrengthLevel.STRONG:
            counts.strong += 1
        elif level is StrengthLevel.WEAK:
            counts.weak += 1

        counts.total += 1

    counts.by_type = by_type
    return counts


def analyze_network(person_ids: list[str], connections: list[Connection]) -> NetworkAnalysis:
    """Summarize degree statistics across a set of people."""
    degree: dict[str, int] = {pid: 0 for pid in person_ids}
    for connection in connections:
        if connection.from_person_id in degree:
            degree[connection.from_person_id] += 1
        if connection.to_person_id in degree:
            degree[connection.to_person_id] += 1

    ranked = sorted(degree.items(), key=lambda item: item[1], reverse=True)
    people_count = len(degree)
    possible = people_count * (people_count - 1) / 2

    return NetworkAnalysis(
        total_connections=len(connections),
        unique_people=people_count,
        average_connections_per_person=(
            sum(degree.values()) / people_count if people_count else 0.0
        ),
        most_connected_people=[
            ConnectionCount(person_id=pid, connection_count=count)
            for pid, count in ranked[:MOST_CONNECTED_LIMIT]
        ],
        isolated_people=[pid for pid, count in ranked if count == 0],
        connection_density=min(1.0, len(connections) / possible) if possible else 0.0,
    )


def get_mutual_connections(
    person1_id: str,
    person2_id: str,
    connections: list[Connection],
) -> list[str]:
    """Ids of people connected to both ``person1_id`` and ``person2_id``."""
    second = set(_connected_person_ids(person2_id, connections))
    return [
        pid for pid in _connected_person_ids(person1_id, connections)
        if pid in second and pid not in (person1_id, person2_id)
    ]


def find_connection_path(
    from_person_id: str,
    to_person_id: str,
    connections: list[Connection],
    max_degrees: int = DEFAULT_MAX_DEGREES,
) -> list[str] | None:
    """Shortest path of person ids between two people (BFS).

    Returns:
        The path including both endpoints, or None if the people are not
        linked within ``max_degrees`` hops.
    """
    if from_person_id == to_person_id:
        return [from_person_id]

    adjacency: dict[str, list[str]] = {}
    for connection in connections:
        adjacency.setdefault(connection.from_person_id, []).append(connection.to_person_id)
        adjacency.setdefault(connection.to_person_id, []).append(connection.from_person_id)

    visited = {from_person_id}
    queue: deque[list[str]] = deque([[from_person_id]])
    while queue:
        path = queue.popleft()
        if len(path) > max_degrees:
            continue
        for neighbour in adjacency.get(path[-1], []):
            if neighbour == to_person_id:
                return [*path, neighbour]
            if neighbour not in visited:
                visited.add(neighbour)
                queue.append([*path, neighbour])

    return None


def validate_connection_types(types: list[str]) -> list[str]:
    """Keep only recognised connection types, preserving order."""
    return [t for t in types if t in KNOWN_CONNECTION_TYPES]


def has_mutually_exclusive_types(types: list[str]) -> bool:
    """True if ``types`` holds both sides of an exclusive pair (e.g. parent and child)."""
    present = set(types)
    return any(a in present and b in present for a, b in MUTUALLY_EXCLUSIVE_PAIRS)
