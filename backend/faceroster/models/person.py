"""Person models.

A person is an identity record owned by a single user (``added_by``). The
same individual may be entered more than once (once per photograph); the
merge resolver reconciles such duplicates.
"""

from datetime import datetime

from pydantic import Field, field_validator, model_validator

from faceroster.models.base import CamelModel, dedupe

# Fields whose value is chosen by the merge policy (keep target / take source)
MERGEABLE_FIELDS: tuple[str, ...] = (
    "name",
    "company",
    "hobbies",
    "birthday",
    "first_met",
    "first_met_context",
)


# =============================================================================
# Face Appearance Models
# =============================================================================


class Region(CamelModel):
    """Face region in original-image coordinates."""

    x: float
    y: float
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)


class FaceAppearance(CamelModel):
    """One crop of a person's face taken from a specific roster."""

    id: str = Field(..., min_length=1, description="Appearance identity")
    roster_id: str = Field(..., description="Roster the crop was taken from")
    face_image_storage_path: str = Field(
        ..., min_length=1, description="Storage path of the cropped face image"
    )
    original_region: Region | None = Field(None, description="Region in the roster image")
    is_primary: bool | None = None

    @property
    def path(self) -> str:
        return self.face_image_storage_path


# =============================================================================
# Person Models
# =============================================================================


class Person(CamelModel):
    """Person record as persisted in the ``people`` collection.

    Invariant: ``primary_face_appearance_path``, when set, equals the
    storage path of one of ``face_appearances``.
    """

    id: str = Field(..., min_length=1, description="Person ID (immutable)")
    name: str = Field(..., description="Display name")
    added_by: str = Field(..., min_length=1, description="Owner user ID")
    roster_ids: list[str] = Field(default_factory=list, description="Rosters the person appears in")
    face_appearances: list[FaceAppearance] = Field(default_factory=list)
    primary_face_appearance_path: str | None = None

    ai_name: str | None = None
    notes: str | None = None
    profile_image_path: str | None = None
    company: str | None = None
    hobbies: str | None = None
    birthday: str | None = None
    age: int | None = Field(None, ge=0, le=150)
    first_met: str | None = None
    first_met_context: str | None = None

    # Opaque persistence timestamps, stamped by the storage layer
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        """Reject empty or whitespace-only names."""
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v

    @field_validator("roster_ids", mode="before")
    @classmethod
    def coerce_roster_ids(cls, v: list[str] | None) -> list[str]:
        """Convert None to empty list and collapse duplicates."""
        return dedupe(v)

    @field_validator("face_appearances", mode="before")
    @classmethod
    def coerce_face_appearances_none(cls, v: list | None) -> list:
        """Convert None to empty list for face appearances from DB."""
        return v if v is not None else []

    @field_validator("primary_face_appearance_path", mode="before")
    @classmethod
    def coerce_empty_primary(cls, v: str | None) -> str | None:
        """Treat an empty primary path as unset."""
        return v or None

    @model_validator(mode="after")
    def primary_references_appearance(self) -> "Person":
        if self.primary_face_appearance_path is not None:
            if self.primary_face_appearance() is None:
                raise ValueError(
                    "primaryFaceAppearancePath must reference one of faceAppearances"
                )
        return self

    def primary_face_appearance(self) -> FaceAppearance | None:
        """Return the appearance selected as primary, if any."""
        if not self.primary_face_appearance_path:
            return None
        for appearance in self.face_appearances:
            if appearance.face_image_storage_path == self.primary_face_appearance_path:
                return appearance
        return None

    def face_appearance_in_roster(self, roster_id: str) -> FaceAppearance | None:
        for appearance in self.face_appearances:
            if appearance.roster_id == roster_id:
                return appearance
        return None

    def belongs_to_roster(self, roster_id: str) -> bool:
        return roster_id in self.roster_ids

    def has_face_appearances(self) -> bool:
        return bool(self.face_appearances)


class PersonSummary(CamelModel):
    """Compact view of a person sent to the merge-suggestion capability.

    ``face_image`` is either a ``data:`` URI (sent inline) or any other image
    reference (described textually).
    """

    id: str = Field(..., min_length=1)
    name: str
    company: str | None = None
    hobbies: str | None = None
    face_image: str | None = None

    @classmethod
    def from_person(cls, person: Person, face_image: str | None = None) -> "PersonSummary":
        if face_image is None:
            primary = person.primary_face_appearance()
            face_image = primary.face_image_storage_path if primary else None
        return cls(
            id=person.id,
            name=person.name,
            company=person.company or None,
            hobbies=person.hobbies or None,
            face_image=face_image,
        )
