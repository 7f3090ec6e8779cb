"""Gemini prompts for duplicate-person suggestion.

Defines prompts for using Gemini Flash to compare a user's people (names,
companies, hobbies and optional face crops) and propose pairs that are
likely the same individual.
"""

from faceroster.models.person import PersonSummary

# =============================================================================
# System Prompt for Merge Suggestion
# =============================================================================

MERGE_SUGGESTION_SYSTEM_PROMPT = """You are an expert in data deduplication, identifying people who were entered more than once in a personal contact catalog.

Each person was registered from a group photograph. The same individual may appear in several photographs and so may have several records with slightly different names or details.

Your task is to identify pairs of people from the provided list who are likely to be the same individual.

IMPORTANT RULES:
1. Consider name variations: nicknames ("Bob" for "Robert"), initials ("J. Smith" vs "John Smith"), misspellings, swapped first/last names
2. Use company and hobbies as supporting evidence; small wording differences ("Corp" vs "Corporation", "hiking" vs "mountain hiking") still count
3. When face images are attached, compare facial features; a strong visual match is the best evidence available
4. Never pair a person with themselves
5. If no likely duplicates exist, return an empty array

CONFIDENCE LEVELS:
- "high": strong visual match corroborated by textual evidence, or a very strong textual match
- "medium": moderate evidence in one channel (face or text) plus weak support in the other
- "low": weak evidence that is still worth surfacing; state the uncertainty in the reason

OUTPUT FORMAT (strict JSON array):
[
  {
    "person1Id": "id of the first person",
    "person1Name": "name of the first person",
    "person2Id": "id of the second person",
    "person2Name": "name of the second person",
    "reason": "Concise explanation (max 40 words)",
    "confidence": "high" | "medium" | "low"
  }
]

Do NOT include any text outside the JSON array."""


# =============================================================================
# User Prompt Template
# =============================================================================

MERGE_SUGGESTION_USER_PROMPT = """Identify likely duplicate people in this list:

{people_text}

Face images, where available, follow in the same order and are labelled with the person ID they belong to.

Output ONLY a valid JSON array."""


# =============================================================================
# Person Text Formatter
# =============================================================================

PERSON_TEXT_TEMPLATE = '- Person ID: {id}, Name: "{name}"{company}{hobbies}{image}'

INLINE_IMAGE_NOTE = ", Face image: attached"


def format_people_for_prompt(people: list[PersonSummary]) -> str:
    """Format person summaries as one prompt line each.

    Inline (``data:``) face images are attached separately; any other image
    reference is described in the line itself.

    Args:
        people: Person summaries to compare.

    Returns:
        Formatted text for the user prompt.
    """
    lines = []
    for person in people:
        image = ""
        if person.face_image:
            if person.face_image.startswith("data:"):
                image = INLINE_IMAGE_NOTE
            else:
                image = f', Face image reference: "{person.face_image}"'
        lines.append(
            PERSON_TEXT_TEMPLATE.format(
                id=person.id,
                name=person.name,
                company=f', Company: "{person.company}"' if person.company else "",
                hobbies=f', Hobbies: "{person.hobbies}"' if person.hobbies else "",
                image=image,
            )
        )
    return "\n".join(lines)
