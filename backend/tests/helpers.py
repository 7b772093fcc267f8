"""Test data builders shared across modules."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from domain.project.permissions import PERM_PROJECTS_CREATE
from domain.shared.value_objects import Principal, SystemRole

NOW = datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)


def days(n):
    return NOW + timedelta(days=n)


def make_principal(name, role=SystemRole.USER, permissions=(PERM_PROJECTS_CREATE,)):
    return Principal(id=uuid4(), role=role, permissions=frozenset(permissions), name=name)


def milestone_payload(**overrides):
    payload = {"title": "Beta", "start_date": days(-1), "due_date": days(14)}
    payload.update(overrides)
    return payload


def ticking_clock(step=timedelta(seconds=1)):
    """A clock that moves forward on every call."""
    state = {"now": NOW}

    def tick():
        state["now"] += step
        return state["now"]
    return tick
