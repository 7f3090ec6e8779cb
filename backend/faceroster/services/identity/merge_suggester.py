"""Duplicate Suggestion Normalizer.

Asks Gemini which of a user's people are likely the same individual, then
normalizes whatever comes back into validated, direction-free candidate
pairs. The capability is advisory: any failure (error, timeout, unparseable
output) degrades to an empty list and is never raised. Cancellation of the
awaiting task propagates normally; nothing here writes.
"""

import asyncio
import base64
import binascii
import json
from functools import lru_cache
from typing import Any

import structlog
from google.api_core.exceptions import ResourceExhausted
from pydantic import ValidationError as PydanticValidationError

from faceroster.core.config import get_settings
from faceroster.models.merge import CandidatePair, confidence_rank
from faceroster.models.person import PersonSummary
from faceroster.services.exceptions import AdvisoryFailure
from faceroster.services.identity.suggestion_prompts import (
    MERGE_SUGGESTION_SYSTEM_PROMPT,
    MERGE_SUGGESTION_USER_PROMPT,
    format_people_for_prompt,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Gemini retry configuration
MAX_RETRIES = 3
INITIAL_RETRY_DELAY = 1.0
MAX_RETRY_DELAY = 30.0

MIN_PEOPLE_FOR_SUGGESTIONS = 2

# Substrings that mark a quota or throttling error from Gemini
RATE_LIMIT_MARKERS = ("429", "rate limit", "rate_limit", "resource_exhausted", "quota")


# =============================================================================
# Normalization (pure)
# =============================================================================


def normalize_candidate_pairs(
    raw_pairs: list[Any],
    people: list[PersonSummary],
) -> list[CandidatePair]:
    """Turn raw capability output into clean candidate pairs.

    - drops self-pairs, malformed entries and ids not in ``people``
    - collapses (a, b) / (b, a), keeping the higher-confidence entry
    - takes display names from ``people``
    - orders by confidence (high, medium, low, unspecified), stable

    Args:
        raw_pairs: Decoded JSON items returned by the capability.
        people: The person summaries that were sent.

    Returns:
        Normalized candidate pairs.
    """
    names = {person.id: person.name for person in people}
    best: dict[frozenset[str], CandidatePair] = {}
    dropped = 0

    for item in raw_pairs:
        if not isinstance(item, dict):
            dropped += 1
            continue
        try:
            pair = CandidatePair.model_validate(item)
        except PydanticValidationError:
            dropped += 1
            continue

        if pair.person1_id == pair.person2_id:
            dropped += 1
            continue
        if pair.person1_id not in names or pair.person2_id not in names:
            dropped += 1
            continue

        pair = pair.model_copy(
            update={
                "person1_name": names[pair.person1_id],
                "person2_name": names[pair.person2_id],
            }
        )

        existing = best.get(pair.pair_key)
        if existing is None:
            best[pair.pair_key] = pair
        elif confidence_rank(pair.confidence) > confidence_rank(existing.confidence):
            # Replace in place so first-seen order is kept for the stable sort
            best[pair.pair_key] = pair

    if dropped:
        logger.debug("merge_suggestions_dropped", dropped_count=dropped)

    return sorted(best.values(), key=lambda p: -confidence_rank(p.confidence))


def _strip_code_fences(response_text: str) -> str:
    """Remove a surrounding markdown code block if present."""
    json_text = response_text.strip()
    if json_text.startswith("```"):
        lines = json_text.split("\n")
        json_lines = []
        in_block = False
        for line in lines:
            if line.strip().startswith("```"):
                in_block = not in_block
                continue
            if in_block:
                json_lines.append(line)
        json_text = "\n".join(json_lines)
    return json_text


def _is_rate_limit(error: Exception) -> bool:
    if isinstance(error, ResourceExhausted):
        return True
    error_str = str(error).lower()
    return any(marker in error_str for marker in RATE_LIMIT_MARKERS)


def _decode_data_uri(uri: str) -> dict[str, Any] | None:
    """Decode ``data:<mime>;base64,<payload>`` into a Gemini inline blob."""
    try:
        header, payload = uri.split(",", 1)
    except ValueError:
        return None
    if not header.endswith(";base64"):
        return None
    mime_type = header[len("data:"):-len(";base64")] or "image/jpeg"
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None
    return {"mime_type": mime_type, "data": data}


# =============================================================================
# Service Implementation
# =============================================================================


class MergeSuggester:
    """Gemini-backed merge suggestion capability with normalization.

    Example:
        >>> suggester = get_merge_suggester()
        >>> pairs = await suggester.suggest(summaries)
    """

    def __init__(self, timeout: float | None = None) -> None:
        settings = get_settings()
        self._timeout = timeout if timeout is not None else settings.merge_suggestion_timeout
        self._max_people = settings.merge_suggestion_max_people
        self._include_images = settings.merge_suggestion_include_images

    async def suggest(self, people: list[PersonSummary]) -> list[CandidatePair]:
        """Propose likely duplicate pairs among ``people``.

        Returns an empty list for fewer than two people (without contacting
        Gemini) and on any capability failure.
        """
        if len(people) < MIN_PEOPLE_FOR_SUGGESTIONS:
            return []

        if len(people) > self._max_people:
            logger.warning(
                "merge_suggestions_truncated",
                people_count=len(people),
                max_people=self._max_people,
            )
            people = people[: self._max_people]

        try:
            raw_pairs = await asyncio.wait_for(
                self._request_suggestions(people),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "merge_suggestions_timeout",
                people_count=len(people),
                timeout=self._timeout,
            )
            return []
        except AdvisoryFailure as e:
            logger.warning("merge_suggestions_unavailable", **e.to_dict())
            return []
        except Exception as e:
            logger.warning(
                "merge_suggestions_failed",
                people_count=len(people),
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        pairs = normalize_candidate_pairs(raw_pairs, people)
        logger.info(
            "merge_suggestions_complete",
            people_count=len(people),
            raw_count=len(raw_pairs),
            suggestion_count=len(pairs),
        )
        return pairs

    # =========================================================================
    # Private Methods - Gemini Integration
    # =========================================================================

    async def _request_suggestions(self, people: list[PersonSummary]) -> list[Any]:
        """Call Gemini with rate-limit retry and return the decoded JSON array.

        Raises:
            AdvisoryFailure: If Gemini is unavailable, keeps failing, or
                returns something other than a JSON array.
        """
        model = self._get_gemini_model()
        if model is None:
            raise AdvisoryFailure("Merge suggestions are not configured")

        contents = self._build_contents(people)

        retry_delay = INITIAL_RETRY_DELAY
        for attempt in range(MAX_RETRIES):
            try:
                response = await model.generate_content_async(contents)
                return self._parse_response(response.text)

            except AdvisoryFailure:
                raise
            except Exception as e:
                if _is_rate_limit(e) and attempt < MAX_RETRIES - 1:
                    logger.warning(
                        "merge_suggestions_rate_limited",
                        attempt=attempt + 1,
                        retry_delay=retry_delay,
                    )
                    await asyncio.sleep(retry_delay)
                    retry_delay = min(retry_delay * 2, MAX_RETRY_DELAY)
                else:
                    raise AdvisoryFailure(
                        "Merge suggestion request failed",
                        details={"error": str(e), "attempts": attempt + 1},
                    ) from e

        raise AdvisoryFailure("Merge suggestion retries exhausted")

    def _build_contents(self, people: list[PersonSummary]) -> list[Any]:
        """Build the prompt parts: text first, then labelled inline images."""
        contents: list[Any] = [
            MERGE_SUGGESTION_USER_PROMPT.format(
                people_text=format_people_for_prompt(people),
            )
        ]
        if not self._include_images:
            return contents

        for person in people:
            if not person.face_image or not person.face_image.startswith("data:"):
                continue
            blob = _decode_data_uri(person.face_image)
            if blob is None:
                logger.debug("merge_suggestions_image_skipped", person_id=person.id)
                continue
            contents.append(f"Face image for Person ID {person.id}:")
            contents.append(blob)
        return contents

    def _get_gemini_model(self):
        """Get Gemini model for merge suggestions.

        Returns:
            Gemini GenerativeModel or None if not configured.
        """
        if not hasattr(self, "_gemini_model"):
            settings = get_settings()
            api_key = settings.gemini_api_key

            if not api_key:
                logger.warning("merge_suggestions_gemini_not_configured")
                self._gemini_model = None
                return None

            try:
                import google.generativeai as genai

                genai.configure(api_key=api_key)
                self._gemini_model = genai.GenerativeModel(
                    settings.gemini_model,
                    system_instruction=MERGE_SUGGESTION_SYSTEM_PROMPT,
                )
                logger.debug("merge_suggestions_gemini_initialized", model=settings.gemini_model)
            except Exception as e:
                logger.error("merge_suggestions_gemini_init_failed", error=str(e))
                self._gemini_model = None

        return self._gemini_model

    def _parse_response(self, response_text: str) -> list[Any]:
        """Parse Gemini's JSON array response.

        Raises:
            AdvisoryFailure: If the text is not a JSON array.
        """
        try:
            parsed = json.loads(_strip_code_fences(response_text or ""))
        except json.JSONDecodeError as e:
            raise AdvisoryFailure(
                "Merge suggestion response was not valid JSON",
                details={
                    "error": str(e),
                    "response_preview": response_text[:100] if response_text else "",
                },
            ) from e

        if not isinstance(parsed, list):
            raise AdvisoryFailure(
                "Merge suggestion response was not a list",
                details={"response_type": type(parsed).__name__},
            )
        return parsed


async def normalize_suggestions(
    people: list[PersonSummary],
    suggester: MergeSuggester | None = None,
) -> list[CandidatePair]:
    """Propose normalized duplicate candidates for ``people``."""
    return await (suggester or get_merge_suggester()).suggest(people)


# =============================================================================
# Service Factory
# =============================================================================


@lru_cache(maxsize=1)
def get_merge_suggester() -> MergeSuggester:
    """Get singleton merge suggester instance.

    Returns:
        MergeSuggester instance.
    """
    return MergeSuggester()
