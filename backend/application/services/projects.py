"""
Project Lifecycle Controller.

Create/update/delete/restore/archive for projects, the dedicated progress
operation, bulk operations and team membership management.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional
from uuid import UUID

from domain.project.aggregates import Project
from domain.project.entities import ProjectMember
from domain.project.permissions import (
    PERM_PROJECTS_BULK_EDIT,
    PERM_PROJECTS_CREATE,
    PERM_PROJECTS_DELETE,
)
from domain.project.progress import project_progress
from domain.project.validators import ValidationError
from domain.shared.exceptions import (
    EntityNotFoundException,
    InvalidStateException,
    PermissionDeniedException,
    ValidationFailedException,
)
from domain.shared.value_objects import (
    EntityKind,
    MemberRole,
    MemberSettings,
    MemberStatus,
    Principal,
    ProgressSnapshot,
    ProjectPriority,
    ProjectSettings,
    ProjectStatus,
    ProjectVisibility,
)

from .base import (
    BulkResult,
    CreatedRef,
    LifecycleService,
    enum_or_none,
    require_principal,
    strip_or_none,
)

logger = logging.getLogger(__name__)


# Fields a regular update may touch; progress is derived and excluded
UPDATABLE_FIELDS = (
    "title", "description", "status", "priority", "visibility", "tags",
    "category", "start_date", "due_date", "settings", "extended_metadata",
)
BULK_UPDATABLE_FIELDS = ("status", "priority", "visibility", "tags")
MEMBER_UPDATABLE_FIELDS = ("role", "status", "settings", "department", "job_title")


def _role_of(payload: Mapping[str, Any]) -> MemberRole:
    """Requested role for the rank check; unknown values are left to validation."""
    try:
        return MemberRole(payload.get("role") or MemberRole.MEMBER)
    except ValueError:
        return MemberRole.MEMBER


class ProjectService(LifecycleService):
    """Lifecycle controller for projects and their memberships."""

    kind = EntityKind.PROJECT

    # =========================================================================
    # CREATE
    # =========================================================================

    def create(self, principal: Optional[Principal], payload: Mapping[str, Any]) -> CreatedRef:
        """
        Create a project owned by the principal.

        The creator is enrolled as an active ``owner`` member with every
        member grant switched on.
        """
        principal = require_principal(principal)
        self.permissions.require_permission(principal, PERM_PROJECTS_CREATE, "projects")
        self._validate(payload)

        now = self.clock()
        title = payload["title"].strip()
        project = Project(
            public_id=self.ids.generate(EntityKind.PROJECT),
            title=title,
            description=strip_or_none(payload.get("description")),
            status=enum_or_none(ProjectStatus, payload.get("status")) or ProjectStatus.ACTIVE,
            priority=enum_or_none(ProjectPriority, payload.get("priority")) or ProjectPriority.MEDIUM,
            visibility=(
                enum_or_none(ProjectVisibility, payload.get("visibility"))
                or ProjectVisibility.PRIVATE
            ),
            tags=[t.strip() for t in payload.get("tags") or []],
            category=strip_or_none(payload.get("category")),
            owner_id=principal.id,
            progress=ProgressSnapshot.empty(),
            start_date=payload.get("start_date"),
            due_date=payload.get("due_date"),
            settings=ProjectSettings().merged(payload.get("settings")),
            extended_metadata=dict(payload.get("extended_metadata") or {}),
            created_at=now,
            created_by=principal.id,
            updated_at=now,
            updated_by=principal.id,
            last_activity_at=now,
        )
        if project.status == ProjectStatus.COMPLETED:
            project.completed_at = now

        with self.storage.atomic():
            project_id = self.storage.projects.insert(project)
            self.storage.members.insert(ProjectMember(
                public_id=self.ids.generate(EntityKind.PROJECT_MEMBER),
                project_id=project_id,
                user_id=principal.id,
                role=MemberRole.OWNER,
                status=MemberStatus.ACTIVE,
                settings=MemberSettings.for_role(MemberRole.OWNER),
                joined_at=now,
                created_at=now,
                created_by=principal.id,
                updated_at=now,
                updated_by=principal.id,
            ))
            self.audit.record(
                principal, "project.created", EntityKind.PROJECT.value, project.public_id,
                entity_title=title,
                description=f"Created project: {title}",
                metadata={"priority": project.priority.value, "visibility": project.visibility.value},
            )

        logger.info("Project %s created by %s", project.public_id, principal.id)
        return CreatedRef(project_id, project.public_id)

    # =========================================================================
    # UPDATE
    # =========================================================================

    def _update_patch(self, project: Project, changes: Mapping[str, Any], now: datetime) -> Dict[str, Any]:
        patch: Dict[str, Any] = {}
        for key in UPDATABLE_FIELDS:
            if key not in changes:
                continue
            value = changes[key]
            if key == "title":
                patch["title"] = value.strip()
            elif key in ("description", "category"):
                patch[key] = strip_or_none(value)
            elif key == "tags":
                patch["tags"] = [t.strip() for t in value or []]
            elif key == "priority":
                patch["priority"] = ProjectPriority(value)
            elif key == "visibility":
                patch["visibility"] = ProjectVisibility(value)
            elif key == "status":
                patch.update(project.status_change_patch(ProjectStatus(value), now))
            elif key == "settings":
                patch["settings"] = project.merged_settings(value)
            elif key == "extended_metadata":
                patch["extended_metadata"] = project.merged_metadata(value)
            else:
                patch[key] = value
        return patch

    def update(
        self,
        principal: Optional[Principal],
        project_id: UUID,
        changes: Mapping[str, Any],
        expected_version: Optional[int] = None
    ) -> Project:
        principal = require_principal(principal)
        project = self._load_live(self.storage.projects, project_id)
        self.permissions.require_edit(principal, project)
        self._validate(self._with_dates(project, changes), partial=True)

        now = self.clock()
        patch = self._update_patch(project, changes, now)
        patch.update(project.touch_patch(principal.id, now))
        patch["last_activity_at"] = now

        with self.storage.atomic():
            self.storage.projects.patch(project_id, patch, expected_version=expected_version)
            self.audit.record(
                principal, "project.updated", EntityKind.PROJECT.value, project.public_id,
                entity_title=patch.get("title", project.title),
                description=f"Updated project: {patch.get('title', project.title)}",
                metadata={"fields": sorted(k for k in changes if k in UPDATABLE_FIELDS)},
            )

        logger.info("Project %s updated by %s", project.public_id, principal.id)
        return self.storage.projects.get(project_id)

    def archive(self, principal: Optional[Principal], project_id: UUID) -> Project:
        principal = require_principal(principal)
        project = self._load_live(self.storage.projects, project_id)
        self.permissions.require_edit(principal, project)

        now = self.clock()
        patch = project.status_change_patch(ProjectStatus.ARCHIVED, now)
        patch.update(project.touch_patch(principal.id, now))
        patch["last_activity_at"] = now

        with self.storage.atomic():
            self.storage.projects.patch(project_id, patch)
            self.audit.record(
                principal, "project.archived", EntityKind.PROJECT.value, project.public_id,
                entity_title=project.title,
                description=f"Archived project: {project.title}",
            )
        return self.storage.projects.get(project_id)

    def update_progress(
        self,
        principal: Optional[Principal],
        project_id: UUID,
        completed_tasks: Optional[int] = None,
        total_tasks: Optional[int] = None
    ) -> ProgressSnapshot:
        """
        The dedicated progress operation.

        Without counts the snapshot is recomputed from the task set; with
        counts the caller's figures are stored as given.
        """
        principal = require_principal(principal)
        project = self._load_live(self.storage.projects, project_id)
        self.permissions.require_edit(principal, project)

        now = self.clock()
        with self.storage.atomic():
            if completed_tasks is None and total_tasks is None:
                snapshot = self.propagator.refresh_project(project_id, now)
            else:
                snapshot = self._explicit_snapshot(completed_tasks, total_tasks)
                self.storage.projects.patch(project_id, {
                    "progress": snapshot,
                    "updated_at": now,
                    "last_activity_at": now,
                })
            self.audit.record(
                principal, "project.progress_updated", EntityKind.PROJECT.value, project.public_id,
                entity_title=project.title,
                description=f"Updated progress of {project.title} to {snapshot.percentage}%",
                metadata=snapshot.as_dict(),
            )
        return snapshot

    @staticmethod
    def _explicit_snapshot(completed_tasks: Optional[int], total_tasks: Optional[int]) -> ProgressSnapshot:
        completed_tasks = completed_tasks or 0
        total_tasks = total_tasks or 0
        errors = []
        if completed_tasks < 0 or total_tasks < 0:
            errors.append(ValidationError("progress", "Task counts cannot be negative"))
        elif completed_tasks > total_tasks:
            errors.append(ValidationError("progress", "Completed tasks cannot exceed total tasks"))
        if errors:
            raise ValidationFailedException(errors)
        return project_progress(completed_tasks, total_tasks)

    # =========================================================================
    # DELETE / RESTORE
    # =========================================================================

    def delete(self, principal: Optional[Principal], project_id: UUID, hard: bool = False) -> None:
        """
        Soft delete, or for system admins a hard delete that removes the
        memberships, tasks and milestones before the project itself.
        """
        principal = require_principal(principal)
        project = self._load(self.storage.projects, project_id)

        if hard:
            if not principal.is_system_admin:
                raise PermissionDeniedException("projects.hard_delete", "projects")
            with self.storage.atomic():
                self._cascade_delete(project_id)
                self.storage.projects.delete(project_id)
                self.audit.record(
                    principal, "project.hard_deleted", EntityKind.PROJECT.value, project.public_id,
                    entity_title=project.title,
                    description=f"Permanently deleted project: {project.title}",
                )
            logger.warning("Project %s hard-deleted by %s", project.public_id, principal.id)
            return

        if project.is_deleted:
            raise InvalidStateException("Project is already deleted", current_state="deleted")
        self.permissions.require_delete(principal, project)

        with self.storage.atomic():
            self.storage.projects.patch(project_id, project.soft_delete_patch(principal.id, self.clock()))
            self.audit.record(
                principal, "project.deleted", EntityKind.PROJECT.value, project.public_id,
                entity_title=project.title,
                description=f"Deleted project: {project.title}",
            )
        logger.info("Project %s deleted by %s", project.public_id, principal.id)

    def _cascade_delete(self, project_id: UUID) -> None:
        for member in self.storage.members.filter(
            lambda m: m.project_id == project_id, include_deleted=True
        ):
            self.storage.members.delete(member.id)
        for task in self.storage.tasks.get_by_project(project_id, include_deleted=True):
            self.storage.tasks.delete(task.id)
        for milestone in self.storage.milestones.get_by_project(project_id, include_deleted=True):
            self.storage.milestones.delete(milestone.id)

    def restore(self, principal: Optional[Principal], project_id: UUID) -> Project:
        principal = require_principal(principal)
        project = self._load(self.storage.projects, project_id)
        if not project.is_deleted:
            raise InvalidStateException("Project is not deleted", current_state=project.status.value)
        self.permissions.require_restore(principal, project)

        with self.storage.atomic():
            self.storage.projects.patch(project_id, project.restore_patch())
            self.audit.record(
                principal, "project.restored", EntityKind.PROJECT.value, project.public_id,
                entity_title=project.title,
                description=f"Restored project: {project.title}",
            )
        return self.storage.projects.get(project_id)

    # =========================================================================
    # BULK
    # =========================================================================

    def _load_for_bulk(self, project_id: UUID) -> Project:
        """Deleted projects count as missing in bulk operations."""
        project = self.storage.projects.get(project_id)
        if project is None or project.is_deleted:
            raise EntityNotFoundException("project", project_id)
        return project

    def bulk_update(
        self,
        principal: Optional[Principal],
        project_ids: Iterable[UUID],
        updates: Mapping[str, Any]
    ) -> BulkResult:
        principal = require_principal(principal)
        self.permissions.require_permission(principal, PERM_PROJECTS_BULK_EDIT, "projects")
        updates = {k: v for k, v in updates.items() if k in BULK_UPDATABLE_FIELDS}
        self._validate(updates, partial=True)

        now = self.clock()

        def apply(project_id: UUID) -> None:
            project = self._load_for_bulk(project_id)
            self.permissions.require_edit(principal, project)
            patch = self._update_patch(project, updates, now)
            patch.update(project.touch_patch(principal.id, now))
            patch["last_activity_at"] = now
            self.storage.projects.patch(project_id, patch)

        with self.storage.atomic():
            result = self._run_bulk(project_ids, apply)
            self.audit.record(
                principal, "project.bulk_updated", EntityKind.PROJECT.value, "bulk",
                entity_title=f"{len(result.succeeded)} projects",
                description=f"Bulk updated {len(result.succeeded)} projects",
                metadata={
                    "successful": len(result.succeeded),
                    "failed": len(result.failed),
                    "fields": sorted(updates),
                },
            )
        logger.info(
            "Bulk project update by %s: %s ok, %s failed",
            principal.id, len(result.succeeded), len(result.failed)
        )
        return result

    def bulk_delete(self, principal: Optional[Principal], project_ids: Iterable[UUID]) -> BulkResult:
        principal = require_principal(principal)
        self.permissions.require_permission(principal, PERM_PROJECTS_DELETE, "projects")
        now = self.clock()

        def apply(project_id: UUID) -> None:
            project = self._load_for_bulk(project_id)
            self.permissions.require_delete(principal, project)
            self.storage.projects.patch(project_id, project.soft_delete_patch(principal.id, now))

        with self.storage.atomic():
            result = self._run_bulk(project_ids, apply)
            self.audit.record(
                principal, "project.bulk_deleted", EntityKind.PROJECT.value, "bulk",
                entity_title=f"{len(result.succeeded)} projects",
                description=f"Bulk deleted {len(result.succeeded)} projects",
                metadata={"successful": len(result.succeeded), "failed": len(result.failed)},
            )
        logger.info(
            "Bulk project delete by %s: %s ok, %s failed",
            principal.id, len(result.succeeded), len(result.failed)
        )
        return result

    # =========================================================================
    # TEAM
    # =========================================================================

    def add_member(
        self,
        principal: Optional[Principal],
        project_id: UUID,
        payload: Mapping[str, Any]
    ) -> CreatedRef:
        principal = require_principal(principal)
        project = self._load_live(self.storage.projects, project_id)
        self.permissions.require_manage_team(principal, project, ProjectMember(role=_role_of(payload)))
        self._validate(payload, kind=EntityKind.PROJECT_MEMBER)
        role = MemberRole(payload.get("role") or MemberRole.MEMBER)

        user_id = payload["user_id"]
        if self.storage.members.get_membership(project_id, user_id) is not None:
            raise InvalidStateException("User is already a member of this project")

        now = self.clock()
        member = ProjectMember(
            public_id=self.ids.generate(EntityKind.PROJECT_MEMBER),
            project_id=project_id,
            user_id=user_id,
            role=role,
            status=MemberStatus(payload.get("status") or MemberStatus.ACTIVE),
            settings=MemberSettings.for_role(role).merged(payload.get("settings")),
            joined_at=now,
            invited_by=principal.id,
            department=strip_or_none(payload.get("department")),
            job_title=strip_or_none(payload.get("job_title")),
            created_at=now,
            created_by=principal.id,
            updated_at=now,
            updated_by=principal.id,
        )
        with self.storage.atomic():
            member_id = self.storage.members.insert(member)
            self.audit.record(
                principal, "project.member_added", EntityKind.PROJECT_MEMBER.value, member.public_id,
                entity_title=project.title,
                description=f"Added member to {project.title} as {role.value}",
                metadata={"project_id": str(project_id), "user_id": str(user_id), "role": role.value},
            )
        return CreatedRef(member_id, member.public_id)

    def _load_team_target(self, principal: Principal, member_id: UUID):
        member = self._load_live(self.storage.members, member_id)
        project = self._load(self.storage.projects, member.project_id)
        if member.role == MemberRole.OWNER:
            raise InvalidStateException("The owner membership cannot be changed", current_state="owner")
        self.permissions.require_manage_team(principal, project, member)
        return member, project

    def update_member(
        self,
        principal: Optional[Principal],
        member_id: UUID,
        changes: Mapping[str, Any]
    ) -> ProjectMember:
        principal = require_principal(principal)
        member, project = self._load_team_target(principal, member_id)
        if changes.get("role") is not None:
            # Promotion is bounded by the acting principal's own rank
            self.permissions.require_manage_team(principal, project, ProjectMember(role=_role_of(changes)))
        self._validate(changes, partial=True, kind=EntityKind.PROJECT_MEMBER)

        now = self.clock()
        patch: Dict[str, Any] = {}
        for key in MEMBER_UPDATABLE_FIELDS:
            if key not in changes:
                continue
            value = changes[key]
            if key == "role":
                patch["role"] = MemberRole(value)
            elif key == "status":
                patch["status"] = MemberStatus(value)
            elif key == "settings":
                patch["settings"] = member.settings.merged(value)
            else:
                patch[key] = strip_or_none(value)
        patch.update(member.touch_patch(principal.id, now))

        with self.storage.atomic():
            self.storage.members.patch(member_id, patch)
            self.audit.record(
                principal, "project.member_updated", EntityKind.PROJECT_MEMBER.value, member.public_id,
                entity_title=project.title,
                description=f"Updated member of {project.title}",
                metadata={"fields": sorted(k for k in changes if k in MEMBER_UPDATABLE_FIELDS)},
            )
        return self.storage.members.get(member_id)

    def remove_member(self, principal: Optional[Principal], member_id: UUID) -> None:
        principal = require_principal(principal)
        member, project = self._load_team_target(principal, member_id)

        now = self.clock()
        patch = member.soft_delete_patch(principal.id, now)
        patch["status"] = MemberStatus.REMOVED
        with self.storage.atomic():
            self.storage.members.patch(member_id, patch)
            self.audit.record(
                principal, "project.member_removed", EntityKind.PROJECT_MEMBER.value, member.public_id,
                entity_title=project.title,
                description=f"Removed member from {project.title}",
                metadata={"user_id": str(member.user_id)},
            )
