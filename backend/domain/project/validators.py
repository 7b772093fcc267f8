"""
Project Domain - Validation Rules.

``validate(kind, payload)`` never raises: it collects every violation so the
caller can report them together as one ``ValidationFailedException``.

Payload keys are the snake_case field names of the entities. With
``partial=True`` (updates) absent keys are not checked for presence.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type

from domain.shared.value_objects import (
    EntityKind,
    MemberRole,
    MemberStatus,
    MilestoneStatus,
    ProjectPriority,
    ProjectStatus,
    ProjectVisibility,
    RiskLevel,
    TaskStatus,
    WorkPriority,
)


MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 5000
MAX_TAGS = 20
MAX_TAG_LENGTH = 50
MAX_DELIVERABLES = 50
MAX_DELIVERABLE_TITLE_LENGTH = 200
MAX_DEPENDENCIES = 50
MAX_ATTACHMENTS = 20
MAX_NOTES_LENGTH = 2000
MAX_JOB_FIELD_LENGTH = 100


@dataclass(frozen=True)
class ValidationError:
    """One field-level rule violation."""

    field: str
    message: str

    def as_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class _Collector:
    """Accumulates errors for one payload."""

    def __init__(self, payload: Mapping[str, Any], partial: bool):
        self.payload = payload
        self.partial = partial
        self.errors: List[ValidationError] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append(ValidationError(field, message))

    def present(self, field: str) -> bool:
        return field in self.payload and self.payload[field] is not None

    # -- rules ----------------------------------------------------------------

    def title(self, field: str = "title") -> None:
        if field not in self.payload:
            if not self.partial:
                self.add(field, "Title is required")
            return
        value = self.payload[field]
        if value is None or not str(value).strip():
            self.add(field, "Title is required")
        elif len(str(value).strip()) > MAX_TITLE_LENGTH:
            self.add(field, f"Title must be {MAX_TITLE_LENGTH} characters or less")

    def max_length(self, field: str, limit: int, label: str) -> None:
        if self.present(field) and len(str(self.payload[field])) > limit:
            self.add(field, f"{label} must be {limit} characters or less")

    def choice(self, field: str, enum_cls: Type[Enum], label: str) -> None:
        if field not in self.payload:
            return
        value = self.payload[field]
        try:
            enum_cls(value)
        except ValueError:
            self.add(field, f"Invalid {label}: {value}")

    def tags(self, field: str = "tags") -> None:
        if not self.present(field):
            return
        tags = self.payload[field]
        if len(tags) > MAX_TAGS:
            self.add(field, f"Maximum {MAX_TAGS} tags allowed")
        if any(len(str(tag)) > MAX_TAG_LENGTH for tag in tags):
            self.add(field, f"Each tag must be {MAX_TAG_LENGTH} characters or less")

    def id_list(self, field: str, label: str) -> None:
        if self.present(field) and len(self.payload[field]) > MAX_DEPENDENCIES:
            self.add(field, f"Maximum {MAX_DEPENDENCIES} {label} allowed")

    def non_negative(self, field: str, label: str, source: Optional[Mapping[str, Any]] = None) -> None:
        source = self.payload if source is None else source
        value = source.get(field)
        if value is None:
            return
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            self.add(field, f"{label} must be a number")
        elif value < 0:
            self.add(field, f"{label} cannot be negative")

    def progress(self, field: str = "progress") -> None:
        if not self.present(field):
            return
        value = self.payload[field]
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            self.add(field, "Progress must be a number")
        elif value < 0 or value > 100:
            self.add(field, "Progress must be between 0 and 100")

    def date_order(self, start_field: str = "start_date", due_field: str = "due_date") -> None:
        start = self.payload.get(start_field)
        due = self.payload.get(due_field)
        if isinstance(start, datetime) and isinstance(due, datetime) and due < start:
            self.add(due_field, "Due date must be after start date")

    def required(self, field: str, message: str) -> None:
        if not self.partial and not self.present(field):
            self.add(field, message)


# =============================================================================
# PER-KIND RULES
# =============================================================================

def _validate_project(c: _Collector) -> None:
    c.title()
    c.max_length("description", MAX_DESCRIPTION_LENGTH, "Description")
    c.choice("status", ProjectStatus, "status")
    c.choice("priority", ProjectPriority, "priority")
    c.choice("visibility", ProjectVisibility, "visibility")
    c.tags()
    c.date_order()

    metadata = c.payload.get("extended_metadata") or {}
    for field, label in (
        ("estimated_hours", "Estimated hours"),
        ("actual_hours", "Actual hours"),
        ("budget", "Budget"),
        ("actual_cost", "Actual cost"),
    ):
        c.non_negative(field, label, source=metadata)
    risk = metadata.get("risk_level")
    if risk is not None:
        try:
            RiskLevel(risk)
        except ValueError:
            c.add("risk_level", f"Invalid risk level: {risk}")


def _validate_deliverables(c: _Collector) -> None:
    if not c.present("deliverables"):
        return
    deliverables = c.payload["deliverables"]
    if len(deliverables) > MAX_DELIVERABLES:
        c.add("deliverables", f"Maximum {MAX_DELIVERABLES} deliverables allowed")
    for index, item in enumerate(deliverables):
        title = item.title if hasattr(item, "title") else (item or {}).get("title")
        field = f"deliverables[{index}].title"
        if not title or not str(title).strip():
            c.add(field, "Deliverable title is required")
        elif len(str(title).strip()) > MAX_DELIVERABLE_TITLE_LENGTH:
            c.add(field, f"Deliverable title must be {MAX_DELIVERABLE_TITLE_LENGTH} characters or less")


def _validate_milestone(c: _Collector) -> None:
    c.title()
    c.max_length("description", MAX_DESCRIPTION_LENGTH, "Description")
    c.choice("status", MilestoneStatus, "status")
    c.choice("priority", WorkPriority, "priority")
    c.required("start_date", "Start date is required")
    c.required("due_date", "Due date is required")
    c.date_order()
    c.progress()
    c.non_negative("order", "Order")
    _validate_deliverables(c)
    c.id_list("dependencies", "dependencies")

    metadata = c.payload.get("metadata") or {}
    c.non_negative("budget", "Budget", source=metadata)
    c.non_negative("actual_cost", "Actual cost", source=metadata)
    if len(metadata.get("attachments") or []) > MAX_ATTACHMENTS:
        c.add("attachments", f"Maximum {MAX_ATTACHMENTS} attachments allowed")
    notes = metadata.get("notes")
    if notes is not None and len(str(notes)) > MAX_NOTES_LENGTH:
        c.add("notes", f"Notes must be {MAX_NOTES_LENGTH} characters or less")


def _validate_task(c: _Collector) -> None:
    c.title()
    c.max_length("description", MAX_DESCRIPTION_LENGTH, "Description")
    c.choice("status", TaskStatus, "status")
    c.choice("priority", WorkPriority, "priority")
    c.tags()
    c.date_order()
    c.non_negative("estimated_hours", "Estimated hours")
    c.non_negative("actual_hours", "Actual hours")
    c.non_negative("order", "Order")
    c.id_list("blocked_by", "blocking tasks")
    c.id_list("depends_on", "task dependencies")

    metadata = c.payload.get("metadata") or {}
    if len(metadata.get("attachments") or []) > MAX_ATTACHMENTS:
        c.add("attachments", f"Maximum {MAX_ATTACHMENTS} attachments allowed")


def _validate_member(c: _Collector) -> None:
    if not c.partial and not c.present("user_id"):
        c.add("user_id", "User is required")
    if c.present("role"):
        c.choice("role", MemberRole, "role")
        if c.payload["role"] == MemberRole.OWNER:
            c.add("role", "The owner role cannot be assigned")
    c.choice("status", MemberStatus, "member status")
    c.max_length("department", MAX_JOB_FIELD_LENGTH, "Department")
    c.max_length("job_title", MAX_JOB_FIELD_LENGTH, "Job title")


_RULES = {
    EntityKind.PROJECT: _validate_project,
    EntityKind.MILESTONE: _validate_milestone,
    EntityKind.TASK: _validate_task,
    EntityKind.PROJECT_MEMBER: _validate_member,
}


def validate(kind: EntityKind, payload: Mapping[str, Any], partial: bool = False) -> List[ValidationError]:
    """
    Check a create (``partial=False``) or update (``partial=True``) payload.

    Returns a possibly empty list; never raises.
    """
    rules = _RULES.get(EntityKind(kind))
    if rules is None:
        return []
    collector = _Collector(payload or {}, partial)
    rules(collector)
    return collector.errors
