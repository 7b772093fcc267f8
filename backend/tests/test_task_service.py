from datetime import timedelta
from uuid import uuid4

import pytest

from application.services import TaskService
from domain.shared.exceptions import (
    EntityNotFoundException,
    InvalidStateException,
    PermissionDeniedException,
    ValidationFailedException,
)
from domain.shared.value_objects import ProgressSnapshot, TaskStatus, WorkPriority

from .helpers import NOW, days, milestone_payload, ticking_clock


def progress_of(storage, project_id):
    return storage.projects.get(project_id).progress


class TestCreate:

    def test_defaults(self, tasks, storage, owner, project_id):
        ref = tasks.create(owner, project_id, {"title": " Write copy "})

        task = storage.tasks.get(ref.id)
        assert ref.public_id.startswith("tsk_")
        assert task.title == "Write copy"
        assert task.status == TaskStatus.TODO
        assert task.priority == WorkPriority.MEDIUM
        assert task.order == 0
        assert task.completed_at is None
        assert progress_of(storage, project_id) == ProgressSnapshot(0, 1, 0)

    def test_order_is_per_column(self, tasks, storage, owner, project_id):
        tasks.create(owner, project_id, {"title": "A"})
        tasks.create(owner, project_id, {"title": "B"})
        done = tasks.create(owner, project_id, {"title": "C", "status": "completed"})
        todo = tasks.create(owner, project_id, {"title": "D"})

        assert storage.tasks.get(done.id).order == 0
        assert storage.tasks.get(done.id).completed_at == NOW
        assert storage.tasks.get(todo.id).order == 2

    def test_member_can_create(self, tasks, storage, member, team):
        ref = tasks.create(member, team, {"title": "Member task"})
        assert storage.tasks.get(ref.id).created_by == member.id

    def test_viewer_cannot_create(self, tasks, viewer, team):
        with pytest.raises(PermissionDeniedException):
            tasks.create(viewer, team, {"title": "Viewer task"})

    def test_milestone_must_belong_to_project(self, tasks, projects, milestones, owner, project_id):
        other_project = projects.create(owner, {"title": "Other"}).id
        foreign = milestones.create(owner, other_project, milestone_payload()).id
        with pytest.raises(EntityNotFoundException):
            tasks.create(owner, project_id, {"title": "Linked", "milestone_id": foreign})

    def test_unknown_project(self, tasks, owner):
        with pytest.raises(EntityNotFoundException):
            tasks.create(owner, uuid4(), {"title": "Orphan"})


class TestStatus:

    @pytest.fixture
    def task_id(self, tasks, owner, project_id):
        tasks.create(owner, project_id, {"title": "Other"})
        return tasks.create(owner, project_id, {"title": "Ship it"}).id

    def test_completion_updates_project_progress(self, tasks, storage, owner, project_id, task_id):
        before = progress_of(storage, project_id)
        tasks.update_status(owner, task_id, TaskStatus.COMPLETED)
        after = progress_of(storage, project_id)

        assert after.completed_tasks == before.completed_tasks + 1
        assert after == ProgressSnapshot(1, 2, 50)

    def test_completing_twice_keeps_timestamp(self, storage, owner, project_id, task_id):
        first = TaskService(storage, clock=lambda: NOW)
        later = TaskService(storage, clock=lambda: NOW + timedelta(hours=5))

        first.update_status(owner, task_id, "completed")
        task = later.update_status(owner, task_id, "completed")

        assert task.completed_at == NOW

    def test_reopening_clears_timestamp(self, tasks, owner, task_id):
        tasks.update_status(owner, task_id, "completed")
        assert tasks.update_status(owner, task_id, "in_review").completed_at is None

    def test_cancel_keeps_timestamp(self, tasks, owner, task_id):
        tasks.update_status(owner, task_id, "completed")
        assert tasks.update_status(owner, task_id, "cancelled").completed_at == NOW

    def test_unknown_status(self, tasks, owner, task_id):
        with pytest.raises(ValidationFailedException):
            tasks.update_status(owner, task_id, "done")


class TestUpdate:

    def test_member_edits_unassigned_task(self, tasks, owner, member, team):
        ref = tasks.create(owner, team, {"title": "Owner's task", "assignee_id": owner.id})
        task = tasks.update(member, ref.id, {"description": "Picked up", "tags": ["copy"]})
        assert task.description == "Picked up"
        assert task.tags == ["copy"]
        assert task.assignee_id == owner.id

    def test_status_through_update_refreshes_progress(self, tasks, storage, owner, project_id):
        ref = tasks.create(owner, project_id, {"title": "A"})
        tasks.update(owner, ref.id, {"status": "completed", "actual_hours": 3})
        assert progress_of(storage, project_id) == ProgressSnapshot(1, 1, 100)

    def test_completion_uses_the_update_timestamp(self, storage, owner, project_id):
        service = TaskService(storage, clock=ticking_clock())
        ref = service.create(owner, project_id, {"title": "A"})

        task = service.update(owner, ref.id, {"status": "completed"})
        assert task.completed_at == task.updated_at
        assert storage.projects.get(project_id).last_activity_at == task.updated_at

    def test_negative_hours(self, tasks, owner, project_id):
        ref = tasks.create(owner, project_id, {"title": "A"})
        with pytest.raises(ValidationFailedException):
            tasks.update(owner, ref.id, {"estimated_hours": -1})

    def test_due_before_start(self, tasks, owner, project_id):
        ref = tasks.create(owner, project_id, {"title": "A", "start_date": days(2)})
        with pytest.raises(ValidationFailedException):
            tasks.update(owner, ref.id, {"due_date": days(1)})

    def test_reorder_into_another_column(self, tasks, owner, project_id):
        ref = tasks.create(owner, project_id, {"title": "A"})
        task = tasks.update_order(owner, ref.id, 3, status=TaskStatus.IN_PROGRESS)
        assert (task.order, task.status) == (3, TaskStatus.IN_PROGRESS)


class TestDeleteRestore:

    def test_delete_and_restore_refresh_progress(self, tasks, storage, owner, project_id):
        done = tasks.create(owner, project_id, {"title": "A", "status": "completed"})
        tasks.create(owner, project_id, {"title": "B"})

        tasks.delete(owner, done.id)
        assert progress_of(storage, project_id) == ProgressSnapshot(0, 1, 0)

        tasks.restore(owner, done.id)
        assert progress_of(storage, project_id) == ProgressSnapshot(1, 2, 50)

    def test_member_cannot_delete(self, tasks, owner, member, team):
        ref = tasks.create(owner, team, {"title": "A"})
        with pytest.raises(PermissionDeniedException):
            tasks.delete(member, ref.id)

    def test_deleted_task_is_read_only(self, tasks, owner, project_id):
        ref = tasks.create(owner, project_id, {"title": "A"})
        tasks.delete(owner, ref.id)
        with pytest.raises(InvalidStateException):
            tasks.update_status(owner, ref.id, "completed")

    def test_restore_requires_deleted_task(self, tasks, owner, project_id):
        ref = tasks.create(owner, project_id, {"title": "A"})
        with pytest.raises(InvalidStateException):
            tasks.restore(owner, ref.id)


def test_progress_matches_task_set_after_every_mutation(tasks, storage, owner, project_id):
    ids = [tasks.create(owner, project_id, {"title": f"T{i}"}).id for i in range(3)]
    steps = [
        lambda: tasks.update_status(owner, ids[0], "completed"),
        lambda: tasks.update_status(owner, ids[1], "completed"),
        lambda: tasks.delete(owner, ids[2]),
        lambda: tasks.update_status(owner, ids[0], "blocked"),
        lambda: tasks.restore(owner, ids[2]),
    ]
    for step in steps:
        step()
        live = storage.tasks.get_by_project(project_id)
        completed = sum(1 for t in live if t.status == TaskStatus.COMPLETED)
        expected = round(completed / len(live) * 100) if live else 0
        assert progress_of(storage, project_id).percentage == expected


def test_status_change_locks_project_before_writing(monkeypatch, tasks, storage, owner, project_id):
    task_id = tasks.create(owner, project_id, {"title": "A"}).id
    events = []
    write_task = storage.tasks.patch

    def recording_patch(entity_id, changes, expected_version=None):
        events.append("task written")
        return write_task(entity_id, changes, expected_version=expected_version)

    monkeypatch.setattr(storage, "lock_project", lambda pid: events.append(("locked", pid)))
    monkeypatch.setattr(storage.tasks, "patch", recording_patch)

    tasks.update_status(owner, task_id, TaskStatus.COMPLETED)

    assert events[0] == ("locked", project_id)
    assert events.index("task written") > 0
    assert events.count(("locked", project_id)) == 2
