"""Identity deduplication and merge services module.

Proposes duplicate person pairs, resolves field-level merges and keeps the
relationship graph and roster membership consistent afterwards.

Services:
- MergeSuggester: Gemini-backed duplicate suggestions, normalized
- SimilarityScorer: Local name/company/roster/birthday heuristics
- merge_resolver: Pure field-level merge, conflicts and preview
- graph_reconciler: Connection and roster rewrites after merge/delete
- connection_analyzer: Category counts and network statistics
"""

from faceroster.services.identity.connection_analyzer import (
    analyze_connections,
    analyze_network,
    find_connection_path,
    get_mutual_connections,
    has_mutually_exclusive_types,
    validate_connection_types,
)
from faceroster.services.identity.graph_reconciler import (
    reconcile_on_delete,
    reconcile_on_merge,
    reconcile_rosters_on_delete,
    reconcile_rosters_on_merge,
)
from faceroster.services.identity.merge_resolver import (
    analyze_merge_conflicts,
    preview_merge,
    resolve_merge,
)
from faceroster.services.identity.merge_suggester import (
    MergeSuggester,
    get_merge_suggester,
    normalize_candidate_pairs,
    normalize_suggestions,
)
from faceroster.services.identity.similarity import (
    SimilarityScorer,
    get_similarity_scorer,
    suggest_by_similarity,
)

__all__ = [
    "MergeSuggester",
    "SimilarityScorer",
    "analyze_connections",
    "analyze_network",
    "analyze_merge_conflicts",
    "find_connection_path",
    "get_merge_suggester",
    "get_mutual_connections",
    "get_similarity_scorer",
    "has_mutually_exclusive_types",
    "normalize_candidate_pairs",
    "normalize_suggestions",
    "preview_merge",
    "reconcile_on_delete",
    "reconcile_on_merge",
    "reconcile_rosters_on_delete",
    "reconcile_rosters_on_merge",
    "resolve_merge",
    "suggest_by_similarity",
    "validate_connection_types",
]
