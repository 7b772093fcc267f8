"""
Shared fixtures.

Service-level tests run against ``InMemoryStorage`` with a fixed clock; only
the persistence and API tests touch the database.
"""

import pytest

from application.services import MilestoneService, ProjectQueries, ProjectService, TaskService
from domain.project.permissions import PERM_PROJECTS_BULK_EDIT, PERM_PROJECTS_CREATE, PERM_PROJECTS_DELETE
from domain.shared.value_objects import SystemRole
from infrastructure.persistence.memory import InMemoryStorage

from .helpers import NOW, make_principal


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def owner():
    return make_principal(
        "Olive Owner",
        permissions=(PERM_PROJECTS_CREATE, PERM_PROJECTS_BULK_EDIT, PERM_PROJECTS_DELETE),
    )


@pytest.fixture
def member():
    return make_principal("Max Member")


@pytest.fixture
def viewer():
    return make_principal("Vera Viewer")


@pytest.fixture
def outsider():
    return make_principal("Oscar Outsider")


@pytest.fixture
def admin():
    return make_principal("Ada Admin", role=SystemRole.ADMIN, permissions=())


@pytest.fixture
def projects(storage, clock):
    return ProjectService(storage, clock=clock)


@pytest.fixture
def milestones(storage, clock):
    return MilestoneService(storage, clock=clock)


@pytest.fixture
def tasks(storage, clock):
    return TaskService(storage, clock=clock)


@pytest.fixture
def queries(storage, clock):
    return ProjectQueries(storage, clock=clock)


@pytest.fixture
def project_id(projects, owner):
    return projects.create(owner, {"title": "Website relaunch"}).id


@pytest.fixture
def team(projects, owner, member, viewer, project_id):
    """Adds ``member`` with the member role and ``viewer`` with the viewer role."""
    projects.add_member(owner, project_id, {"user_id": member.id, "role": "member"})
    projects.add_member(owner, project_id, {"user_id": viewer.id, "role": "viewer"})
    return project_id
