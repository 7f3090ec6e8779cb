"""Unit tests for person, connection, roster and batch record models."""

import pytest
from pydantic import ValidationError

from faceroster.models.batch import WriteOperation
from faceroster.models.connection import Connection, StrengthLevel
from faceroster.models.merge import CandidatePair, ConfidenceTier, MergeChoice, MergePolicy
from faceroster.models.person import Person, PersonSummary
from faceroster.models.roster import Roster
from tests.factories import make_appearance, make_connection, make_person, make_roster


class TestPerson:
    """Tests for Person record invariants."""

    def test_rejects_blank_name(self) -> None:
        """Should reject names that are empty after trimming."""
        with pytest.raises(ValidationError):
            make_person("a", name="   ")

    def test_collapses_duplicate_roster_ids(self) -> None:
        """Should treat roster ids as a set, keeping first-seen order."""
        person = make_person("a", roster_ids=["r2", "r1", "r2"])

        assert person.roster_ids == ["r2", "r1"]

    def test_accepts_camel_case_record(self) -> None:
        """Should load the persisted camelCase shape."""
        person = Person.model_validate({
            "id": "a",
            "name": "Alice",
            "addedBy": "user-1",
            "rosterIds": None,
            "faceAppearances": [
                {"id": "fa1", "rosterId": "r1", "faceImageStoragePath": "faces/fa1.jpg"}
            ],
            "primaryFaceAppearancePath": "faces/fa1.jpg",
            "firstMetContext": "conference",
        })

        assert person.roster_ids == []
        assert person.first_met_context == "conference"
        assert person.primary_face_appearance().id == "fa1"

    def test_rejects_primary_not_in_appearances(self) -> None:
        """Should reject a primary path that no appearance carries."""
        with pytest.raises(ValidationError):
            make_person(
                "a",
                face_appearances=[make_appearance("fa1")],
                primary_face_appearance_path="faces/other.jpg",
            )

    def test_empty_primary_is_unset(self) -> None:
        """Should treat an empty primary path as no primary."""
        person = make_person("a", primary_face_appearance_path="")

        assert person.primary_face_appearance_path is None

    def test_to_record_uses_camel_case(self) -> None:
        """Should serialize with camelCase keys."""
        record = make_person("a", first_met="2024-01-01").to_record()

        assert record["addedBy"] == "user-1"
        assert record["firstMet"] == "2024-01-01"
        assert "added_by" not in record

    def test_face_appearance_in_roster(self) -> None:
        """Should find the appearance taken from a given roster."""
        person = make_person(
            "a",
            face_appearances=[make_appearance("fa1", "r1"), make_appearance("fa2", "r2")],
        )

        assert person.face_appearance_in_roster("r2").id == "fa2"
        assert person.face_appearance_in_roster("r9") is None


class TestPersonSummary:
    """Tests for PersonSummary.from_person."""

    def test_defaults_face_image_to_primary_path(self) -> None:
        person = make_person(
            "a",
            company="Acme",
            face_appearances=[make_appearance("fa1")],
            primary_face_appearance_path="faces/fa1.jpg",
        )

        summary = PersonSummary.from_person(person)

        assert summary.face_image == "faces/fa1.jpg"
        assert summary.company == "Acme"
        assert summary.hobbies is None


class TestConnection:
    """Tests for Connection record invariants and helpers."""

    def test_rejects_self_loop(self) -> None:
        """Should reject a connection from a person to themselves."""
        with pytest.raises(ValidationError):
            make_connection("c1", "a", "a")

    def test_rejects_empty_types(self) -> None:
        """Should require at least one type."""
        with pytest.raises(ValidationError):
            Connection(id="c1", from_person_id="a", to_person_id="b", types=[])

    @pytest.mark.parametrize("strength", [0, 6])
    def test_rejects_out_of_range_strength(self, strength: int) -> None:
        with pytest.raises(ValidationError):
            make_connection("c1", "a", "b", strength=strength)

    def test_types_and_reasons_have_set_semantics(self) -> None:
        connection = make_connection(
            "c1", "a", "b", types=["friend", "friend", "colleague"], reasons=["gym", "gym"]
        )

        assert connection.types == ["friend", "colleague"]
        assert connection.reasons == ["gym"]

    def test_other_person_id(self) -> None:
        connection = make_connection("c1", "a", "b")

        assert connection.other_person_id("a") == "b"
        assert connection.other_person_id("b") == "a"
        assert connection.other_person_id("c") is None

    def test_directional_types_are_not_bidirectional(self) -> None:
        assert make_connection("c1", "a", "b", types=["friend"]).is_bidirectional
        assert not make_connection("c2", "a", "b", types=["friend", "manager"]).is_bidirectional

    @pytest.mark.parametrize(
        ("strength", "expected"),
        [
            (None, StrengthLevel.MEDIUM),
            (1, StrengthLevel.WEAK),
            (2, StrengthLevel.MEDIUM),
            (3, StrengthLevel.MEDIUM),
            (4, StrengthLevel.STRONG),
            (5, StrengthLevel.STRONG),
        ],
    )
    def test_strength_level(self, strength: int | None, expected: StrengthLevel) -> None:
        assert make_connection("c1", "a", "b", strength=strength).strength_level is expected


class TestRoster:
    """Tests for Roster record invariants and helpers."""

    def test_rejects_non_positive_image_size(self) -> None:
        with pytest.raises(ValidationError):
            make_roster("r1", [], original_image_size={"width": 0, "height": 10})

    def test_rejects_blank_name(self) -> None:
        with pytest.raises(ValidationError):
            make_roster("r1", [], roster_name=" ")

    def test_aspect_ratio_helpers(self) -> None:
        roster = make_roster("r1", ["a"])

        assert roster.aspect_ratio == pytest.approx(1.5)
        assert roster.is_landscape
        assert not roster.is_portrait

    def test_embedded_override_keeps_extra_fields(self) -> None:
        roster = Roster.model_validate({
            "id": "r1",
            "ownerId": "user-1",
            "rosterName": "Team",
            "originalImageStoragePath": "rosters/r1.jpg",
            "originalImageSize": {"width": 10, "height": 20},
            "peopleIds": ["a", "a"],
            "people": [{"id": "a", "nickname": "Al"}],
        })

        assert roster.people_ids == ["a"]
        assert roster.embedded_person("a").model_dump()["nickname"] == "Al"
        assert roster.is_portrait


class TestMergeModels:
    """Tests for merge policy and candidate pair models."""

    def test_merge_choice_accepts_dialog_aliases(self) -> None:
        """Should map person1/person2 to keep/replace."""
        policy = MergePolicy.model_validate({"name": "person2", "company": "person1"})

        assert policy.name is MergeChoice.REPLACE
        assert policy.company is MergeChoice.KEEP
        assert policy.hobbies is MergeChoice.KEEP

    def test_unknown_confidence_becomes_unspecified(self) -> None:
        pair = CandidatePair.model_validate({
            "person1Id": "a",
            "person2Id": "b",
            "reason": "Same name",
            "confidence": "certain",
        })

        assert pair.confidence is None

    def test_confidence_is_case_insensitive(self) -> None:
        pair = CandidatePair(person1_id="a", person2_id="b", reason="x", confidence="HIGH")

        assert pair.confidence is ConfidenceTier.HIGH

    def test_rejects_empty_reason(self) -> None:
        with pytest.raises(ValidationError):
            CandidatePair(person1_id="a", person2_id="b", reason="  ")


class TestWriteOperation:
    """Tests for batch write operations."""

    def test_update_requires_data(self) -> None:
        with pytest.raises(ValidationError):
            WriteOperation(op="update", collection="people", record_id="a")

    def test_serializes_record_id_in_camel_case(self) -> None:
        record = WriteOperation.delete("people", "a").to_record()

        assert record == {"op": "delete", "collection": "people", "recordId": "a", "data": None}

    def test_references_detects_connection_endpoint(self) -> None:
        connection = make_connection("c1", "a", "b")
        op = WriteOperation.update("connections", "c1", connection.to_record())

        assert op.references("b")
        assert not op.references("c")
        assert not WriteOperation.delete("connections", "c1").references("a")
