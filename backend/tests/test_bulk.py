from uuid import uuid4

import pytest

from domain.shared.exceptions import PermissionDeniedException, ValidationFailedException
from domain.shared.value_objects import MilestoneStatus, ProgressSnapshot, ProjectPriority, TaskStatus

from .helpers import milestone_payload


class TestProjectBulk:

    def test_missing_id_is_reported_and_batch_continues(self, projects, storage, owner):
        first = projects.create(owner, {"title": "One"}).id
        second = projects.create(owner, {"title": "Two"}).id
        ghost = uuid4()
        audit_before = len(storage.audit_log.all())

        result = projects.bulk_delete(owner, [first, ghost, second])

        assert result.as_dict("deleted") == {
            "deleted": 2,
            "failed": 1,
            "failures": [{"id": str(ghost), "reason": "Not found"}],
        }
        assert storage.projects.get(first).is_deleted
        assert storage.projects.get(second).is_deleted

        entries = storage.audit_log.all()[audit_before:]
        assert len(entries) == 1
        assert entries[0].action == "project.bulk_deleted"
        assert entries[0].entity_id == "bulk"
        assert entries[0].metadata == {"successful": 2, "failed": 1}

    def test_foreign_project_reports_no_permission(self, projects, owner, outsider):
        mine = projects.create(owner, {"title": "Mine"}).id
        theirs = projects.create(outsider, {"title": "Theirs"}).id

        result = projects.bulk_update(owner, [mine, theirs], {"priority": "urgent"})

        assert result.succeeded == [mine]
        assert [(f.id, f.reason) for f in result.failed] == [(theirs, "No permission")]
        assert projects.storage.projects.get(mine).priority == ProjectPriority.URGENT
        assert projects.storage.projects.get(theirs).priority == ProjectPriority.MEDIUM

    def test_deleted_project_counts_as_missing(self, projects, owner):
        project_id = projects.create(owner, {"title": "Gone"}).id
        projects.delete(owner, project_id)
        result = projects.bulk_update(owner, [project_id], {"status": "on_hold"})
        assert result.failed[0].reason == "Not found"

    def test_requires_bulk_grant(self, projects, member):
        with pytest.raises(PermissionDeniedException):
            projects.bulk_update(member, [uuid4()], {"priority": "low"})
        with pytest.raises(PermissionDeniedException):
            projects.bulk_delete(member, [uuid4()])

    def test_invalid_updates_abort_before_any_write(self, projects, storage, owner, project_id):
        audit_before = len(storage.audit_log.all())
        with pytest.raises(ValidationFailedException):
            projects.bulk_update(owner, [project_id], {"status": "paused"})
        assert len(storage.audit_log.all()) == audit_before

    def test_only_bulk_fields_are_applied(self, projects, storage, owner, project_id):
        projects.bulk_update(owner, [project_id], {"title": "Renamed", "visibility": "team"})
        project = storage.projects.get(project_id)
        assert project.title == "Website relaunch"
        assert project.visibility.value == "team"


class TestMilestoneBulk:

    def test_bulk_status_and_delete(self, milestones, storage, owner, project_id):
        ids = [milestones.create(owner, project_id, milestone_payload(title=f"M{i}")).id for i in range(2)]

        updated = milestones.bulk_update(owner, ids + [uuid4()], {"status": "completed"})
        assert len(updated.succeeded) == 2
        assert all(storage.milestones.get(i).status == MilestoneStatus.COMPLETED for i in ids)
        assert all(storage.milestones.get(i).progress == 100 for i in ids)

        deleted = milestones.bulk_delete(owner, ids)
        assert deleted.as_dict("deleted")["deleted"] == 2


class TestTaskBulk:

    def test_bulk_update_refreshes_each_project_once(self, tasks, projects, storage, owner):
        first = projects.create(owner, {"title": "One"}).id
        second = projects.create(owner, {"title": "Two"}).id
        ids = [
            tasks.create(owner, first, {"title": "A"}).id,
            tasks.create(owner, first, {"title": "B"}).id,
            tasks.create(owner, second, {"title": "C"}).id,
        ]

        result = tasks.bulk_update(owner, ids, {"status": "completed"})

        assert len(result.succeeded) == 3
        assert storage.projects.get(first).progress == ProgressSnapshot(2, 2, 100)
        assert storage.projects.get(second).progress == ProgressSnapshot(1, 1, 100)
        assert all(storage.tasks.get(i).status == TaskStatus.COMPLETED for i in ids)

    def test_bulk_delete_needs_delete_rights(self, tasks, storage, owner, member, team):
        task_id = tasks.create(member, team, {"title": "Mine"}).id

        denied = tasks.bulk_delete(member, [task_id])
        assert [f.reason for f in denied.failed] == ["No permission"]
        assert not storage.tasks.get(task_id).is_deleted

        allowed = tasks.bulk_delete(owner, [task_id, uuid4()])
        assert allowed.as_dict("deleted")["deleted"] == 1
        assert storage.tasks.get(task_id).is_deleted
        assert storage.projects.get(team).progress == ProgressSnapshot(0, 0, 0)
