from uuid import uuid4

import pytest

from application.services import ProjectService
from domain.shared.exceptions import (
    ConflictException,
    EntityNotFoundException,
    InvalidStateException,
    PermissionDeniedException,
    UnauthenticatedException,
    ValidationFailedException,
)
from domain.shared.value_objects import (
    MemberRole,
    MemberStatus,
    ProgressSnapshot,
    ProjectStatus,
    ProjectVisibility,
)

from .helpers import NOW, days, make_principal, milestone_payload, ticking_clock


class TestCreate:

    def test_creator_becomes_owner_member(self, projects, storage, owner):
        ref = projects.create(owner, {"title": "  Website relaunch  ", "tags": [" web "]})

        project = storage.projects.get(ref.id)
        assert ref.public_id.startswith("prj_")
        assert project.public_id == ref.public_id
        assert project.title == "Website relaunch"
        assert project.tags == ["web"]
        assert project.owner_id == owner.id
        assert project.status == ProjectStatus.ACTIVE
        assert project.visibility == ProjectVisibility.PRIVATE
        assert project.progress == ProgressSnapshot(0, 0, 0)
        assert project.created_at == NOW
        assert project.version == 1

        membership = storage.members.get_membership(ref.id, owner.id)
        assert membership.role == MemberRole.OWNER
        assert membership.status == MemberStatus.ACTIVE
        assert membership.settings.can_edit_project

    def test_public_ids_are_unique(self, projects, owner):
        first = projects.create(owner, {"title": "One"})
        second = projects.create(owner, {"title": "Two"})
        assert first.public_id != second.public_id

    def test_created_completed_project_is_stamped(self, projects, storage, owner):
        ref = projects.create(owner, {"title": "Done already", "status": "completed"})
        assert storage.projects.get(ref.id).completed_at == NOW

    def test_requires_principal(self, projects):
        with pytest.raises(UnauthenticatedException):
            projects.create(None, {"title": "Nobody"})

    def test_requires_create_grant(self, projects, storage):
        nobody = make_principal("No Grants", permissions=())
        with pytest.raises(PermissionDeniedException):
            projects.create(nobody, {"title": "Nope"})
        assert storage.projects.rows == {}

    def test_invalid_payload_writes_nothing(self, projects, storage, owner):
        with pytest.raises(ValidationFailedException) as excinfo:
            projects.create(owner, {"title": "", "priority": "asap"})
        assert [e.field for e in excinfo.value.errors] == ["title", "priority"]
        assert storage.projects.rows == {}
        assert storage.audit_log.all() == []


class TestUpdate:

    def test_patch_touches_only_given_fields(self, projects, storage, owner, project_id):
        project = projects.update(owner, project_id, {"description": "Refresh the site"})

        assert project.description == "Refresh the site"
        assert project.title == "Website relaunch"
        assert project.version == 2
        assert project.updated_by == owner.id

    def test_completion_stamps_and_reopening_clears(self, projects, owner, project_id):
        completed = projects.update(owner, project_id, {"status": "completed"})
        assert completed.completed_at == NOW

        resaved = projects.update(owner, project_id, {"status": "completed", "title": "Relaunch"})
        assert resaved.completed_at == NOW

        reopened = projects.update(owner, project_id, {"status": "active"})
        assert reopened.completed_at is None

    def test_completion_uses_the_update_timestamp(self, storage, owner, project_id):
        service = ProjectService(storage, clock=ticking_clock())
        project = service.update(owner, project_id, {"status": "completed"})
        assert project.completed_at == project.updated_at

    def test_progress_is_not_writable_through_update(self, projects, owner, project_id):
        project = projects.update(owner, project_id, {"progress": {"percentage": 90}})
        assert project.progress == ProgressSnapshot.empty()

    def test_settings_and_metadata_merge(self, projects, owner, project_id):
        projects.update(owner, project_id, {"extended_metadata": {"budget": 100}})
        project = projects.update(owner, project_id, {
            "settings": {"require_approval": True},
            "extended_metadata": {"client": "ACME"},
        })
        assert project.settings.require_approval
        assert project.settings.allow_comments
        assert project.extended_metadata == {"budget": 100, "client": "ACME"}

    def test_due_date_checked_against_stored_start(self, projects, owner, project_id):
        projects.update(owner, project_id, {"start_date": days(10)})
        with pytest.raises(ValidationFailedException):
            projects.update(owner, project_id, {"due_date": days(1)})

    def test_stale_version_conflicts(self, projects, owner, project_id):
        projects.update(owner, project_id, {"title": "First"}, expected_version=1)
        with pytest.raises(ConflictException):
            projects.update(owner, project_id, {"title": "Second"}, expected_version=1)

    def test_member_without_grant_cannot_update(self, projects, member, team):
        with pytest.raises(PermissionDeniedException):
            projects.update(member, team, {"title": "Hijacked"})

    def test_permission_is_checked_before_validation(self, projects, outsider, project_id):
        with pytest.raises(PermissionDeniedException):
            projects.update(outsider, project_id, {"title": ""})

    def test_missing_project(self, projects, owner):
        with pytest.raises(EntityNotFoundException):
            projects.update(owner, uuid4(), {"title": "Ghost"})

    def test_deleted_project_is_read_only(self, projects, owner, project_id):
        projects.delete(owner, project_id)
        with pytest.raises(InvalidStateException):
            projects.update(owner, project_id, {"title": "Zombie"})


class TestArchive:

    def test_archive_sets_status(self, projects, owner, project_id):
        assert projects.archive(owner, project_id).status == ProjectStatus.ARCHIVED


class TestProgress:

    def test_recompute_from_tasks(self, projects, tasks, storage, owner, project_id):
        tasks.create(owner, project_id, {"title": "A", "status": "completed"})
        tasks.create(owner, project_id, {"title": "B"})
        tasks.create(owner, project_id, {"title": "C"})
        # Drift the snapshot by hand, then recompute
        storage.projects.patch(project_id, {"progress": ProgressSnapshot(0, 0, 0)})

        snapshot = projects.update_progress(owner, project_id)

        assert snapshot == ProgressSnapshot(1, 3, 33)
        assert storage.projects.get(project_id).progress == snapshot

    def test_explicit_counts(self, projects, owner, project_id):
        assert projects.update_progress(owner, project_id, 1, 8) == ProgressSnapshot(1, 8, 13)

    @pytest.mark.parametrize("completed, total", [(5, 3), (-1, 2)])
    def test_inconsistent_counts_are_rejected(self, projects, owner, project_id, completed, total):
        with pytest.raises(ValidationFailedException):
            projects.update_progress(owner, project_id, completed, total)


class TestDeleteRestore:

    def test_soft_delete_only_sets_marker(self, projects, storage, owner, project_id):
        before = storage.projects.get(project_id)
        projects.delete(owner, project_id)
        after = storage.projects.get(project_id)

        assert after.deleted_at == NOW
        assert after.deleted_by == owner.id
        assert after.status == before.status
        assert after.updated_at == before.updated_at

    def test_delete_twice_is_invalid(self, projects, owner, project_id):
        projects.delete(owner, project_id)
        with pytest.raises(InvalidStateException):
            projects.delete(owner, project_id)

    def test_member_cannot_delete(self, projects, member, team):
        with pytest.raises(PermissionDeniedException):
            projects.delete(member, team)

    def test_restore_is_exact_inverse(self, projects, storage, owner, project_id):
        before = storage.projects.get(project_id)
        projects.delete(owner, project_id)
        restored = projects.restore(owner, project_id)

        assert restored.deleted_at is None
        assert restored.deleted_by is None
        assert (restored.title, restored.status, restored.updated_at) == (
            before.title, before.status, before.updated_at
        )

    def test_restore_requires_deleted_project(self, projects, owner, project_id):
        with pytest.raises(InvalidStateException):
            projects.restore(owner, project_id)

    def test_hard_delete_cascades(self, projects, milestones, tasks, storage, owner, admin, team):
        milestones.create(owner, team, milestone_payload())
        tasks.create(owner, team, {"title": "A"})

        projects.delete(admin, team, hard=True)

        assert storage.projects.get(team) is None
        assert storage.members.filter(lambda m: m.project_id == team, include_deleted=True) == []
        assert storage.tasks.get_by_project(team, include_deleted=True) == []
        assert storage.milestones.get_by_project(team, include_deleted=True) == []

    def test_hard_delete_needs_system_admin(self, projects, owner, project_id):
        with pytest.raises(PermissionDeniedException):
            projects.delete(owner, project_id, hard=True)


class TestTeam:

    def test_add_member_defaults(self, projects, storage, owner, project_id):
        user_id = uuid4()
        ref = projects.add_member(owner, project_id, {"user_id": user_id, "job_title": " Designer "})

        membership = storage.members.get(ref.id)
        assert ref.public_id.startswith("mem_")
        assert membership.role == MemberRole.MEMBER
        assert membership.invited_by == owner.id
        assert membership.job_title == "Designer"
        assert not membership.settings.can_edit_project

    def test_duplicate_member_is_rejected(self, projects, owner, member, team):
        with pytest.raises(InvalidStateException):
            projects.add_member(owner, team, {"user_id": member.id})

    def test_admin_member_cannot_add_admins(self, projects, owner, team):
        lead = make_principal("Lea Lead")
        projects.add_member(owner, team, {"user_id": lead.id, "role": "admin"})

        projects.add_member(lead, team, {"user_id": uuid4(), "role": "viewer"})
        with pytest.raises(PermissionDeniedException):
            projects.add_member(lead, team, {"user_id": uuid4(), "role": "admin"})

    def test_owner_role_cannot_be_granted(self, projects, owner, project_id):
        with pytest.raises(ValidationFailedException):
            projects.add_member(owner, project_id, {"user_id": uuid4(), "role": "owner"})

    def test_update_member_role_and_grants(self, projects, storage, owner, member, team):
        membership = storage.members.get_membership(team, member.id)
        updated = projects.update_member(owner, membership.id, {
            "role": "admin",
            "settings": {"can_invite_members": True},
        })
        assert updated.role == MemberRole.ADMIN
        assert updated.settings.can_invite_members

    def test_owner_membership_is_fixed(self, projects, storage, owner, project_id):
        membership = storage.members.get_membership(project_id, owner.id)
        with pytest.raises(InvalidStateException):
            projects.update_member(owner, membership.id, {"role": "viewer"})
        with pytest.raises(InvalidStateException):
            projects.remove_member(owner, membership.id)

    def test_remove_member_revokes_access(self, projects, queries, storage, owner, member, team):
        membership = storage.members.get_membership(team, member.id)
        projects.remove_member(owner, membership.id)

        removed = storage.members.get(membership.id)
        assert removed.status == MemberStatus.REMOVED
        assert removed.is_deleted
        with pytest.raises(PermissionDeniedException):
            queries.get_project(member, team)

    def test_removed_user_can_be_added_again(self, projects, storage, owner, member, team):
        membership = storage.members.get_membership(team, member.id)
        projects.remove_member(owner, membership.id)
        ref = projects.add_member(owner, team, {"user_id": member.id})
        assert storage.members.get_membership(team, member.id).id == ref.id
