"""
Task Lifecycle Controller.

Every task mutation re-runs the progress propagator for the owning project
inside the same transaction, so the project snapshot never lags its tasks.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Set
from uuid import UUID

from domain.project.entities import Task
from domain.shared.exceptions import (
    EntityNotFoundException,
    InvalidStateException,
)
from domain.shared.value_objects import (
    EntityKind,
    Principal,
    TaskStatus,
    WorkPriority,
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


UPDATABLE_FIELDS = (
    "title", "description", "status", "priority", "assignee_id", "milestone_id",
    "tags", "start_date", "due_date", "estimated_hours", "actual_hours", "order",
    "blocked_by", "depends_on", "metadata",
)
BULK_UPDATABLE_FIELDS = ("status", "priority", "assignee_id")


class TaskService(LifecycleService):
    """Lifecycle controller for tasks."""

    kind = EntityKind.TASK

    def _next_order(self, project_id: UUID, status: TaskStatus) -> int:
        column = self.storage.tasks.get_by_project_and_status(project_id, status)
        return max(t.order for t in column) + 1 if column else 0

    def _check_milestone(self, project_id: UUID, milestone_id: Optional[UUID]) -> None:
        """A linked milestone must be a live milestone of the same project."""
        if milestone_id is None:
            return
        milestone = self.storage.milestones.get(milestone_id)
        if milestone is None or milestone.is_deleted or milestone.project_id != project_id:
            raise EntityNotFoundException("milestone", milestone_id)

    # =========================================================================
    # CREATE
    # =========================================================================

    def create(
        self,
        principal: Optional[Principal],
        project_id: UUID,
        payload: Mapping[str, Any]
    ) -> CreatedRef:
        principal = require_principal(principal)
        project = self.storage.projects.get(project_id)
        if project is None or project.is_deleted:
            raise EntityNotFoundException("project", project_id)
        self.permissions.require_edit(principal, Task(project_id=project_id))
        self._validate(payload)
        self._check_milestone(project_id, payload.get("milestone_id"))

        now = self.clock()
        title = payload["title"].strip()
        status = enum_or_none(TaskStatus, payload.get("status")) or TaskStatus.TODO

        with self.storage.atomic():
            self.storage.lock_project(project_id)
            task = Task(
                public_id=self.ids.generate(EntityKind.TASK),
                project_id=project_id,
                milestone_id=payload.get("milestone_id"),
                title=title,
                description=strip_or_none(payload.get("description")),
                status=status,
                priority=enum_or_none(WorkPriority, payload.get("priority")) or WorkPriority.MEDIUM,
                assignee_id=payload.get("assignee_id"),
                tags=[t.strip() for t in payload.get("tags") or []],
                start_date=payload.get("start_date"),
                due_date=payload.get("due_date"),
                completed_at=now if status == TaskStatus.COMPLETED else None,
                estimated_hours=payload.get("estimated_hours"),
                actual_hours=payload.get("actual_hours"),
                order=(
                    payload["order"] if payload.get("order") is not None
                    else self._next_order(project_id, status)
                ),
                blocked_by=list(payload.get("blocked_by") or []),
                depends_on=list(payload.get("depends_on") or []),
                metadata=dict(payload.get("metadata") or {}),
                created_at=now,
                created_by=principal.id,
                updated_at=now,
                updated_by=principal.id,
            )
            task_id = self.storage.tasks.insert(task)
            self.propagator.refresh_project(project_id, now)
            self.audit.record(
                principal, "task.created", EntityKind.TASK.value, task.public_id,
                entity_title=title,
                description=f"Created task: {title}",
                metadata={"project_id": str(project_id), "priority": task.priority.value},
            )

        logger.info("Task %s created in project %s", task.public_id, project_id)
        return CreatedRef(task_id, task.public_id)

    # =========================================================================
    # UPDATE
    # =========================================================================

    def _update_patch(self, task: Task, changes: Mapping[str, Any], now: datetime) -> Dict[str, Any]:
        patch: Dict[str, Any] = {}
        for key in UPDATABLE_FIELDS:
            if key not in changes:
                continue
            value = changes[key]
            if key == "title":
                patch["title"] = value.strip()
            elif key == "description":
                patch["description"] = strip_or_none(value)
            elif key == "priority":
                patch["priority"] = WorkPriority(value)
            elif key == "status":
                patch.update(task.status_change_patch(TaskStatus(value), now))
            elif key == "tags":
                patch["tags"] = [t.strip() for t in value or []]
            elif key in ("blocked_by", "depends_on"):
                patch[key] = list(value or [])
            elif key == "metadata":
                merged = dict(task.metadata or {})
                merged.update(value or {})
                patch["metadata"] = merged
            else:
                patch[key] = value
        return patch

    def update(
        self,
        principal: Optional[Principal],
        task_id: UUID,
        changes: Mapping[str, Any],
        expected_version: Optional[int] = None
    ) -> Task:
        """
        Edit rights come from project membership; being the assignee is not
        required.
        """
        principal = require_principal(principal)
        task = self._load_live(self.storage.tasks, task_id)
        self.permissions.require_edit(principal, task)
        self._validate(self._with_dates(task, changes), partial=True)
        if "milestone_id" in changes:
            self._check_milestone(task.project_id, changes["milestone_id"])

        now = self.clock()
        patch = self._update_patch(task, changes, now)
        patch.update(task.touch_patch(principal.id, now))

        with self.storage.atomic():
            self.storage.lock_project(task.project_id)
            self.storage.tasks.patch(task_id, patch, expected_version=expected_version)
            self.propagator.refresh_project(task.project_id, now)
            self.audit.record(
                principal, "task.updated", EntityKind.TASK.value, task.public_id,
                entity_title=patch.get("title", task.title),
                description=f"Updated task: {patch.get('title', task.title)}",
                metadata={"fields": sorted(k for k in changes if k in UPDATABLE_FIELDS)},
            )
        return self.storage.tasks.get(task_id)

    def update_status(self, principal: Optional[Principal], task_id: UUID, status: TaskStatus) -> Task:
        principal = require_principal(principal)
        task = self._load_live(self.storage.tasks, task_id)
        self.permissions.require_edit(principal, task)
        self._validate({"status": status}, partial=True)

        now = self.clock()
        new_status = TaskStatus(status)
        patch = task.status_change_patch(new_status, now)
        patch.update(task.touch_patch(principal.id, now))

        with self.storage.atomic():
            self.storage.lock_project(task.project_id)
            self.storage.tasks.patch(task_id, patch)
            self.propagator.refresh_project(task.project_id, now)
            self.audit.record(
                principal, "task.status_updated", EntityKind.TASK.value, task.public_id,
                entity_title=task.title,
                description=f"Changed task status from {task.status.value} to {new_status.value}",
                metadata={"old_status": task.status.value, "new_status": new_status.value},
            )

        logger.info("Task %s moved %s -> %s", task.public_id, task.status.value, new_status.value)
        return self.storage.tasks.get(task_id)

    def update_order(
        self,
        principal: Optional[Principal],
        task_id: UUID,
        order: int,
        status: Optional[TaskStatus] = None
    ) -> Task:
        """Move a task within its column, or into another column when ``status`` is given."""
        principal = require_principal(principal)
        task = self._load_live(self.storage.tasks, task_id)
        self.permissions.require_edit(principal, task)
        payload: Dict[str, Any] = {"order": order}
        if status is not None:
            payload["status"] = status
        self._validate(payload, partial=True)

        now = self.clock()
        patch = self._update_patch(task, payload, now)
        patch.update(task.touch_patch(principal.id, now))

        with self.storage.atomic():
            self.storage.lock_project(task.project_id)
            self.storage.tasks.patch(task_id, patch)
            self.propagator.refresh_project(task.project_id, now)
            self.audit.record(
                principal, "task.reordered", EntityKind.TASK.value, task.public_id,
                entity_title=task.title,
                description=f"Moved task {task.title} to position {order}",
                metadata={"order": order, "status": patch.get("status", task.status).value},
            )
        return self.storage.tasks.get(task_id)

    # =========================================================================
    # DELETE / RESTORE
    # =========================================================================

    def delete(self, principal: Optional[Principal], task_id: UUID) -> None:
        principal = require_principal(principal)
        task = self._load(self.storage.tasks, task_id)
        if task.is_deleted:
            raise InvalidStateException("Task is already deleted", current_state="deleted")
        self.permissions.require_delete(principal, task)

        now = self.clock()
        with self.storage.atomic():
            self.storage.lock_project(task.project_id)
            self.storage.tasks.patch(task_id, task.soft_delete_patch(principal.id, now))
            self.propagator.refresh_project(task.project_id, now)
            self.audit.record(
                principal, "task.deleted", EntityKind.TASK.value, task.public_id,
                entity_title=task.title,
                description=f"Deleted task: {task.title}",
            )
        logger.info("Task %s deleted by %s", task.public_id, principal.id)

    def restore(self, principal: Optional[Principal], task_id: UUID) -> Task:
        principal = require_principal(principal)
        task = self._load(self.storage.tasks, task_id)
        if not task.is_deleted:
            raise InvalidStateException("Task is not deleted", current_state=task.status.value)
        self.permissions.require_restore(principal, task)

        now = self.clock()
        with self.storage.atomic():
            self.storage.lock_project(task.project_id)
            self.storage.tasks.patch(task_id, task.restore_patch())
            self.propagator.refresh_project(task.project_id, now)
            self.audit.record(
                principal, "task.restored", EntityKind.TASK.value, task.public_id,
                entity_title=task.title,
                description=f"Restored task: {task.title}",
            )
        return self.storage.tasks.get(task_id)

    # =========================================================================
    # BULK
    # =========================================================================

    def _load_for_bulk(self, task_id: UUID) -> Task:
        task = self.storage.tasks.get(task_id)
        if task is None or task.is_deleted:
            raise EntityNotFoundException("task", task_id)
        return task

    def _refresh_all(self, project_ids: Set[UUID]) -> None:
        now = self.clock()
        for project_id in project_ids:
            self.propagator.refresh_project(project_id, now)

    def bulk_update(
        self,
        principal: Optional[Principal],
        task_ids: Iterable[UUID],
        updates: Mapping[str, Any]
    ) -> BulkResult:
        principal = require_principal(principal)
        updates = {k: v for k, v in updates.items() if k in BULK_UPDATABLE_FIELDS}
        self._validate(updates, partial=True)
        now = self.clock()
        touched: Set[UUID] = set()

        def apply(task_id: UUID) -> None:
            task = self._load_for_bulk(task_id)
            self.permissions.require_edit(principal, task)
            patch = self._update_patch(task, updates, now)
            patch.update(task.touch_patch(principal.id, now))
            self.storage.tasks.patch(task_id, patch)
            touched.add(task.project_id)

        with self.storage.atomic():
            result = self._run_bulk(task_ids, apply)
            self._refresh_all(touched)
            self.audit.record(
                principal, "task.bulk_updated", EntityKind.TASK.value, "bulk",
                entity_title=f"{len(result.succeeded)} tasks",
                description=f"Bulk updated {len(result.succeeded)} tasks",
                metadata={
                    "successful": len(result.succeeded),
                    "failed": len(result.failed),
                    "fields": sorted(updates),
                },
            )
        return result

    def bulk_delete(self, principal: Optional[Principal], task_ids: Iterable[UUID]) -> BulkResult:
        principal = require_principal(principal)
        now = self.clock()
        touched: Set[UUID] = set()

        def apply(task_id: UUID) -> None:
            task = self._load_for_bulk(task_id)
            self.permissions.require_delete(principal, task)
            self.storage.tasks.patch(task_id, task.soft_delete_patch(principal.id, now))
            touched.add(task.project_id)

        with self.storage.atomic():
            result = self._run_bulk(task_ids, apply)
            self._refresh_all(touched)
            self.audit.record(
                principal, "task.bulk_deleted", EntityKind.TASK.value, "bulk",
                entity_title=f"{len(result.succeeded)} tasks",
                description=f"Bulk deleted {len(result.succeeded)} tasks",
                metadata={"successful": len(result.succeeded), "failed": len(result.failed)},
            )
        return result
