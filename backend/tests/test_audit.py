from unittest import mock
from uuid import uuid4

import pytest

from application.services import AuditRecorder
from domain.shared.exceptions import AuditWriteError
from domain.shared.value_objects import Principal

from .helpers import NOW, milestone_payload


def test_every_mutation_appends_one_entry(projects, milestones, tasks, storage, owner, project_id):
    milestone_id = milestones.create(owner, project_id, milestone_payload()).id
    task_id = tasks.create(owner, project_id, {"title": "A"}).id
    tasks.update_status(owner, task_id, "completed")
    milestones.update_progress(owner, milestone_id, 40)
    projects.archive(owner, project_id)

    recorded = {e.action for e in storage.audit_log.all()}
    assert recorded == {
        "project.created",
        "milestone.created",
        "task.created",
        "task.status_updated",
        "milestone.progress_updated",
        "project.archived",
    }
    assert len(storage.audit_log.all()) == 6


def test_entry_carries_actor_and_target(tasks, storage, owner, project_id):
    ref = tasks.create(owner, project_id, {"title": "Write copy"})
    entry = storage.audit_log.get_by_entity(ref.public_id)[0]

    assert entry.public_id.startswith("aud_")
    assert entry.user_id == owner.id
    assert entry.user_name == "Olive Owner"
    assert entry.entity_type == "task"
    assert entry.entity_title == "Write copy"
    assert entry.created_at == NOW
    assert entry.metadata["project_id"] == str(project_id)


def test_status_change_records_transition(tasks, storage, owner, project_id):
    ref = tasks.create(owner, project_id, {"title": "A"})
    tasks.update_status(owner, ref.id, "in_progress")
    entry = [e for e in storage.audit_log.get_by_entity(ref.public_id) if e.action == "task.status_updated"][0]
    assert entry.metadata == {"old_status": "todo", "new_status": "in_progress"}


def test_failed_audit_write_rolls_back_the_mutation(projects, storage, owner, project_id):
    with mock.patch.object(storage.audit_log, "append", side_effect=RuntimeError("disk full")):
        with pytest.raises(AuditWriteError) as excinfo:
            projects.update(owner, project_id, {"title": "Never saved"})

    assert "disk full" in excinfo.value.message
    project = storage.projects.get(project_id)
    assert project.title == "Website relaunch"
    assert project.version == 1


def test_failed_audit_write_rolls_back_create(tasks, storage, owner, project_id):
    with mock.patch.object(storage.audit_log, "append", side_effect=RuntimeError("down")):
        with pytest.raises(AuditWriteError):
            tasks.create(owner, project_id, {"title": "Lost"})

    assert storage.tasks.get_by_project(project_id) == []
    assert storage.projects.get(project_id).progress.total_tasks == 0


def test_recorder_without_name_uses_placeholder(storage, clock):
    recorder = AuditRecorder(storage.audit_log, clock=clock)
    entry = recorder.record(Principal(id=uuid4()), "project.updated", "project", "prj_x")

    assert entry.user_name == "Unknown User"
    stored = storage.audit_log.get_by_entity("prj_x")
    assert [e.public_id for e in stored] == [entry.public_id]
