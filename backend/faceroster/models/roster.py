"""Roster models.

A roster is a single photograph together with the set of people identified
in it.
"""

from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from faceroster.models.base import CamelModel, dedupe


class ImageSize(CamelModel):
    """Original image dimensions in pixels."""

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class EmbeddedPerson(CamelModel):
    """Per-roster person override stored inside the roster document.

    Only ``id`` is interpreted here; any other override fields are carried
    through untouched.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)


class Roster(CamelModel):
    """Roster record as persisted in the ``rosters`` collection."""

    id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    roster_name: str
    original_image_storage_path: str = Field(..., min_length=1)
    original_image_size: ImageSize
    people_ids: list[str] = Field(default_factory=list)
    people: list[EmbeddedPerson] | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("roster_name")
    @classmethod
    def roster_name_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Roster name is required")
        return v

    @field_validator("people_ids", mode="before")
    @classmethod
    def coerce_people_ids(cls, v: list[str] | None) -> list[str]:
        """Convert None to empty list and collapse duplicates."""
        return dedupe(v)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags_none(cls, v: list[str] | None) -> list[str]:
        return v if v is not None else []

    def contains_person(self, person_id: str) -> bool:
        return person_id in self.people_ids

    def embedded_person(self, person_id: str) -> EmbeddedPerson | None:
        for embedded in self.people or []:
            if embedded.id == person_id:
                return embedded
        return None

    @property
    def aspect_ratio(self) -> float:
        return self.original_image_size.width / self.original_image_size.height

    @property
    def is_portrait(self) -> bool:
        return self.aspect_ratio < 1

    @property
    def is_landscape(self) -> bool:
        return self.aspect_ratio > 1
