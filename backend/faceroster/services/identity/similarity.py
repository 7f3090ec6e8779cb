"""Local duplicate heuristics.

Deterministic, offline scoring of person pairs from their names, company,
shared rosters and birthday. Produces candidate pairs in the same shape and
order as the Gemini-backed suggester so either source can feed the merge UI.
"""

from functools import lru_cache

import structlog
from rapidfuzz.distance import Levenshtein

from faceroster.core.config import get_settings
from faceroster.models.merge import CandidatePair, ConfidenceTier, confidence_rank
from faceroster.models.person import Person

logger = structlog.get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

HIGH_NAME_SCORE = 3
MEDIUM_NAME_SCORE = 2
SAME_COMPANY_SCORE = 2
SAME_BIRTHDAY_SCORE = 2

HIGH_CONFIDENCE_SCORE = 5
MEDIUM_CONFIDENCE_SCORE = 3

REASON_SEPARATOR = "; "


# =============================================================================
# Service Implementation
# =============================================================================


class SimilarityScorer:
    """Score person pairs for likely duplication.

    Example:
        >>> scorer = SimilarityScorer()
        >>> scorer.name_similarity("Jon Smith", "John Smith") > 0.8
        True
    """

    def __init__(
        self,
        high_name_threshold: float | None = None,
        medium_name_threshold: float | None = None,
    ) -> None:
        settings = get_settings()
        self._high = (
            high_name_threshold
            if high_name_threshold is not None
            else settings.similarity_high_name_threshold
        )
        self._medium = (
            medium_name_threshold
            if medium_name_threshold is not None
            else settings.similarity_medium_name_threshold
        )

    def name_similarity(self, name1: str, name2: str) -> float:
        """Case-insensitive normalized Levenshtein similarity (0.0 - 1.0)."""
        n1 = (name1 or "").lower()
        n2 = (name2 or "").lower()
        if n1 == n2:
            return 1.0
        return Levenshtein.normalized_similarity(n1, n2)

    def score_pair(self, person1: Person, person2: Person) -> tuple[int, list[str]]:
        """Return (score, reasons) for one pair."""
        score = 0
        reasons: list[str] = []

        similarity = self.name_similarity(person1.name, person2.name)
        if similarity > self._high:
            reasons.append("Names are very similar")
            score += HIGH_NAME_SCORE
        elif similarity > self._medium:
            reasons.append("Names are somewhat similar")
            score += MEDIUM_NAME_SCORE

        if (
            person1.company
            and person2.company
            and person1.company.lower() == person2.company.lower()
        ):
            reasons.append("Same company")
            score += SAME_COMPANY_SCORE

        shared_rosters = [rid for rid in person1.roster_ids if rid in person2.roster_ids]
        if shared_rosters:
            reasons.append(f"Appear in {len(shared_rosters)} same roster(s)")
            score += len(shared_rosters)

        if person1.birthday and person2.birthday and person1.birthday == person2.birthday:
            reasons.append("Same birthday")
            score += SAME_BIRTHDAY_SCORE

        return score, reasons

    def suggest(self, people: list[Person]) -> list[CandidatePair]:
        """Compare each pair once and return scored candidates, best first."""
        suggestions: list[CandidatePair] = []

        for i, person1 in enumerate(people):
            for person2 in people[i + 1:]:
                if person1.id == person2.id:
                    continue
                score, reasons = self.score_pair(person1, person2)
                if score <= 0:
                    continue
                suggestions.append(
                    CandidatePair(
                        person1_id=person1.id,
                        person1_name=person1.name,
                        person2_id=person2.id,
                        person2_name=person2.name,
                        reason=REASON_SEPARATOR.join(reasons),
                        confidence=_confidence_for(score),
                    )
                )

        suggestions.sort(key=lambda p: -confidence_rank(p.confidence))
        logger.debug(
            "similarity_suggestions_complete",
            people_count=len(people),
            suggestion_count=len(suggestions),
        )
        return suggestions


def _confidence_for(score: int) -> ConfidenceTier:
    if score >= HIGH_CONFIDENCE_SCORE:
        return ConfidenceTier.HIGH
    if score >= MEDIUM_CONFIDENCE_SCORE:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def suggest_by_similarity(people: list[Person]) -> list[CandidatePair]:
    """Heuristic duplicate candidates for ``people``."""
    return get_similarity_scorer().suggest(people)


# =============================================================================
# Service Factory
# =============================================================================


@lru_cache(maxsize=1)
def get_similarity_scorer() -> SimilarityScorer:
    """Get singleton similarity scorer instance.

    Returns:
        SimilarityScorer instance.
    """
    return SimilarityScorer()
