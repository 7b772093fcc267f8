import pytest

from domain.project.validators import (
    MAX_DELIVERABLES,
    MAX_TAGS,
    MAX_TITLE_LENGTH,
    validate,
)
from domain.shared.value_objects import EntityKind

from .helpers import days, milestone_payload


def fields_of(errors):
    return [e.field for e in errors]


class TestProjectRules:

    def test_valid_payload_has_no_errors(self):
        assert validate(EntityKind.PROJECT, {"title": "Roadmap", "priority": "high"}) == []

    def test_title_is_required_on_create_only(self):
        assert fields_of(validate(EntityKind.PROJECT, {})) == ["title"]
        assert validate(EntityKind.PROJECT, {}, partial=True) == []

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_blank_title_is_rejected_on_update(self, title):
        errors = validate(EntityKind.PROJECT, {"title": title}, partial=True)
        assert [e.message for e in errors] == ["Title is required"]

    def test_title_length_is_measured_after_trimming(self):
        exact = "  " + "x" * MAX_TITLE_LENGTH + "  "
        assert validate(EntityKind.PROJECT, {"title": exact}) == []
        too_long = "x" * (MAX_TITLE_LENGTH + 1)
        assert fields_of(validate(EntityKind.PROJECT, {"title": too_long})) == ["title"]

    def test_collects_every_violation(self):
        errors = validate(EntityKind.PROJECT, {
            "title": "",
            "status": "paused",
            "priority": "whenever",
            "tags": ["t"] * (MAX_TAGS + 1),
            "start_date": days(5),
            "due_date": days(1),
        })
        assert fields_of(errors) == ["title", "status", "priority", "tags", "due_date"]
        assert "Invalid status: paused" in [e.message for e in errors]

    def test_explicit_null_enum_is_invalid(self):
        errors = validate(EntityKind.PROJECT, {"status": None}, partial=True)
        assert [e.message for e in errors] == ["Invalid status: None"]

    def test_metadata_numbers_and_risk_level(self):
        errors = validate(EntityKind.PROJECT, {
            "title": "Roadmap",
            "extended_metadata": {"budget": -1, "estimated_hours": "ten", "risk_level": "extreme"},
        })
        messages = [e.message for e in errors]
        assert "Budget cannot be negative" in messages
        assert "Estimated hours must be a number" in messages
        assert "Invalid risk level: extreme" in messages


class TestMilestoneRules:

    def test_dates_are_required_on_create(self):
        errors = validate(EntityKind.MILESTONE, {"title": "Beta"})
        assert fields_of(errors) == ["start_date", "due_date"]

    def test_progress_bounds(self):
        errors = validate(EntityKind.MILESTONE, milestone_payload(progress=101))
        assert [e.message for e in errors] == ["Progress must be between 0 and 100"]

    def test_deliverable_titles_are_indexed(self):
        payload = milestone_payload(deliverables=[{"title": "Wireframes"}, {"title": " "}])
        assert fields_of(validate(EntityKind.MILESTONE, payload)) == ["deliverables[1].title"]

    def test_deliverable_limit(self):
        payload = milestone_payload(deliverables=[{"title": "d"}] * (MAX_DELIVERABLES + 1))
        assert fields_of(validate(EntityKind.MILESTONE, payload)) == ["deliverables"]

    def test_negative_order(self):
        assert fields_of(validate(EntityKind.MILESTONE, milestone_payload(order=-1))) == ["order"]


class TestTaskRules:

    def test_hours_cannot_be_negative(self):
        errors = validate(EntityKind.TASK, {"title": "Write copy", "estimated_hours": -2})
        assert [e.message for e in errors] == ["Estimated hours cannot be negative"]

    def test_unknown_status(self):
        errors = validate(EntityKind.TASK, {"status": "done"}, partial=True)
        assert [e.message for e in errors] == ["Invalid status: done"]


class TestMemberRules:

    def test_user_is_required(self):
        assert fields_of(validate(EntityKind.PROJECT_MEMBER, {"role": "member"})) == ["user_id"]

    def test_owner_role_cannot_be_assigned(self):
        errors = validate(EntityKind.PROJECT_MEMBER, {"role": "owner"}, partial=True)
        assert [e.message for e in errors] == ["The owner role cannot be assigned"]


def test_error_serialisation():
    error = validate(EntityKind.TASK, {})[0]
    assert error.as_dict() == {"field": "title", "message": "Title is required"}
