import pytest
from django.contrib.auth import get_user_model

from application.services import MilestoneService, ProjectQueries, ProjectService, TaskService
from application.services.progress import ProgressPropagator
from domain.shared.exceptions import AuditWriteError, ConflictException, ValidationFailedException
from domain.shared.value_objects import MemberRole, MilestoneStatus, ProgressSnapshot, SystemRole, TaskStatus
from infrastructure.persistence import models
from infrastructure.persistence.repositories import DjangoStorage

from .helpers import days, milestone_payload

pytestmark = pytest.mark.django_db

User = get_user_model()


@pytest.fixture
def storage():
    return DjangoStorage()


@pytest.fixture
def owner_user():
    return User.objects.create_user(
        username="olive", email="olive@example.com", password="secret-pass",
        first_name="Olive", last_name="Owner",
    )


@pytest.fixture
def member_user():
    return User.objects.create_user(username="max", email="max@example.com", password="secret-pass")


@pytest.fixture
def owner(owner_user):
    return owner_user.to_principal()


@pytest.fixture
def project_id(projects, owner):
    return projects.create(owner, {"title": "Website relaunch", "tags": ["web"]}).id


def test_user_becomes_principal(owner_user):
    principal = owner_user.to_principal()
    assert principal.id == owner_user.id
    assert principal.role == SystemRole.USER
    assert principal.has_permission("projects.create")
    assert principal.name == "Olive Owner"


def test_superuser_is_superadmin():
    admin = User.objects.create_superuser(username="root", email="root@example.com", password="x")
    assert admin.to_principal().is_system_admin


def test_create_round_trips_through_the_orm(storage, owner, owner_user, project_id):
    row = models.Project.objects.get(pk=project_id)
    assert row.owner_id == owner_user.id
    assert row.tags == ["web"]
    assert row.settings["allow_comments"] is True

    project = storage.projects.get(project_id)
    assert project.owner_id == owner.id
    assert project.progress == ProgressSnapshot.empty()

    membership = storage.members.get_membership(project_id, owner.id)
    assert membership.role == MemberRole.OWNER
    assert models.AuditLog.objects.filter(entity_id=project.public_id, action="project.created").exists()


def test_patch_is_field_scoped_and_versioned(storage, projects, owner, project_id):
    projects.update(owner, project_id, {"description": "New copy"}, expected_version=1)
    row = models.Project.objects.get(pk=project_id)
    assert (row.title, row.description, row.version) == ("Website relaunch", "New copy", 2)

    with pytest.raises(ConflictException):
        projects.update(owner, project_id, {"title": "Stale"}, expected_version=1)


def test_task_mutations_keep_progress_in_sync(storage, tasks, owner, project_id):
    first = tasks.create(owner, project_id, {"title": "A"}).id
    tasks.create(owner, project_id, {"title": "B"})
    tasks.update_status(owner, first, TaskStatus.COMPLETED)

    row = models.Project.objects.get(pk=project_id)
    assert (row.completed_tasks, row.total_tasks, row.progress_percentage) == (1, 2, 50)
    assert storage.tasks.get(first).completed_at is not None


def test_milestone_deliverables_are_stored_as_json(storage, milestones, owner, project_id):
    ref = milestones.create(owner, project_id, milestone_payload(
        deliverables=[{"title": "Wireframes", "completed": True}, {"title": "Build"}],
    ))
    row = models.Milestone.objects.get(pk=ref.id)
    assert row.deliverables[0]["title"] == "Wireframes"
    assert row.progress == 50

    milestone = milestones.update_progress(owner, ref.id, 100)
    assert milestone.status == MilestoneStatus.COMPLETED


def test_soft_delete_hides_from_active_manager(projects, owner, project_id):
    projects.delete(owner, project_id)
    assert not models.Project.active_objects.filter(pk=project_id).exists()
    assert models.Project.objects.get(pk=project_id).deleted_by_id == owner.id


def test_member_records_who_invited_them(storage, projects, owner, owner_user, member_user, project_id):
    ref = projects.add_member(owner, project_id, {"user_id": member_user.id, "role": "member"})

    row = models.ProjectMember.objects.get(pk=ref.id)
    assert row.invited_by_id == owner_user.id
    assert row.settings["can_manage_tasks"] is False

    member = storage.members.get(ref.id)
    assert member.invited_by == owner.id
    assert member.role == MemberRole.MEMBER


def test_membership_and_listing(projects, queries, owner, member_user, project_id):
    projects.add_member(owner, project_id, {"user_id": member_user.id})
    member = member_user.to_principal()

    page = queries.list_projects(member)
    assert [p.id for p in page.items] == [project_id]


def test_validation_failure_writes_nothing(milestones, owner, project_id):
    with pytest.raises(ValidationFailedException):
        milestones.create(owner, project_id, milestone_payload(start_date=days(5), due_date=days(1)))
    assert not models.Milestone.objects.exists()


def test_failed_audit_write_rolls_back(monkeypatch, storage, projects, owner, project_id):
    def broken(entry):
        raise RuntimeError("audit table locked")

    monkeypatch.setattr(storage.audit_log, "append", broken)
    with pytest.raises(AuditWriteError):
        projects.update(owner, project_id, {"title": "Never saved"})
    assert models.Project.objects.get(pk=project_id).title == "Website relaunch"


def test_hard_delete_removes_rows(projects, tasks, owner, project_id):
    tasks.create(owner, project_id, {"title": "A"})
    admin = User.objects.create_user(
        username="ada", email="ada@example.com", password="x", role=SystemRole.ADMIN.value,
    ).to_principal()

    projects.delete(admin, project_id, hard=True)

    assert not models.Project.objects.filter(pk=project_id).exists()
    assert not models.Task.objects.filter(project_id=project_id).exists()
    assert not models.ProjectMember.objects.filter(project_id=project_id).exists()


def test_project_lock_is_taken_inside_a_transaction(storage, tasks, owner, project_id):
    task_id = tasks.create(owner, project_id, {"title": "A"}).id
    with storage.atomic():
        storage.lock_project(project_id)
        storage.tasks.patch(task_id, {"status": TaskStatus.COMPLETED})
        snapshot = ProgressPropagator(storage).refresh_project(project_id)

    assert snapshot == ProgressSnapshot(1, 1, 100)
    assert models.Project.objects.get(pk=project_id).completed_tasks == 1


@pytest.fixture
def projects(storage):
    return ProjectService(storage)


@pytest.fixture
def milestones(storage):
    return MilestoneService(storage)


@pytest.fixture
def tasks(storage):
    return TaskService(storage)


@pytest.fixture
def queries(storage):
    return ProjectQueries(storage)
