"""
Milestone Lifecycle Controller.

Milestone progress comes from its deliverables whenever they are supplied;
an explicit move to ``completed`` forces it to 100.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional
from uuid import UUID

from domain.project.entities import Milestone
from domain.project.progress import milestone_progress
from domain.project.validators import ValidationError
from domain.shared.exceptions import (
    EntityNotFoundException,
    InvalidStateException,
    ValidationFailedException,
)
from domain.shared.value_objects import (
    Deliverable,
    EntityKind,
    MilestoneStatus,
    Principal,
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
    "title", "description", "priority", "start_date", "due_date", "progress",
    "deliverables", "dependencies", "order", "assignee_id", "color", "metadata",
    "status",
)
BULK_UPDATABLE_FIELDS = ("status", "priority", "assignee_id")


class MilestoneService(LifecycleService):
    """Lifecycle controller for milestones."""

    kind = EntityKind.MILESTONE

    def _next_order(self, project_id: UUID) -> int:
        orders = [m.order for m in self.storage.milestones.get_by_project(project_id)]
        return max(orders) + 1 if orders else 0

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
        self.permissions.require_edit(principal, Milestone(project_id=project_id))
        self._validate(payload)

        now = self.clock()
        title = payload["title"].strip()
        deliverables = [Deliverable.from_value(d) for d in payload.get("deliverables") or []]
        start_date = payload.get("start_date")

        milestone = Milestone(
            public_id=self.ids.generate(EntityKind.MILESTONE),
            project_id=project_id,
            title=title,
            description=strip_or_none(payload.get("description")),
            status=Milestone.initial_status(start_date, now),
            priority=enum_or_none(WorkPriority, payload.get("priority")) or WorkPriority.MEDIUM,
            start_date=start_date,
            due_date=payload.get("due_date"),
            progress=milestone_progress(deliverables),
            deliverables=deliverables,
            dependencies=list(payload.get("dependencies") or []),
            order=payload["order"] if payload.get("order") is not None else self._next_order(project_id),
            assignee_id=payload.get("assignee_id"),
            color=payload.get("color"),
            metadata=dict(payload.get("metadata") or {}),
            created_at=now,
            created_by=principal.id,
            updated_at=now,
            updated_by=principal.id,
        )

        with self.storage.atomic():
            milestone_id = self.storage.milestones.insert(milestone)
            self.storage.projects.patch(project_id, {"last_activity_at": now})
            self.audit.record(
                principal, "milestone.created", EntityKind.MILESTONE.value, milestone.public_id,
                entity_title=title,
                description=f"Created milestone: {title}",
                metadata={"project_id": str(project_id), "priority": milestone.priority.value},
            )

        logger.info("Milestone %s created in project %s", milestone.public_id, project_id)
        return CreatedRef(milestone_id, milestone.public_id)

    # =========================================================================
    # UPDATE
    # =========================================================================

    def _update_patch(self, milestone: Milestone, changes: Mapping[str, Any], now: datetime) -> Dict[str, Any]:
        patch: Dict[str, Any] = {}
        for key in UPDATABLE_FIELDS:
            if key not in changes or key == "status":
                continue
            value = changes[key]
            if key == "title":
                patch["title"] = value.strip()
            elif key == "description":
                patch["description"] = strip_or_none(value)
            elif key == "priority":
                patch["priority"] = WorkPriority(value)
            elif key == "deliverables":
                deliverables = [Deliverable.from_value(d) for d in value or []]
                patch["deliverables"] = deliverables
                patch["progress"] = milestone_progress(deliverables)
            elif key == "progress":
                # Direct progress never moves the status
                if "deliverables" not in changes:
                    patch["progress"] = int(value)
            elif key == "dependencies":
                patch[key] = list(value or [])
            elif key == "metadata":
                merged = dict(milestone.metadata or {})
                merged.update(value or {})
                patch["metadata"] = merged
            else:
                patch[key] = value

        if changes.get("status") is not None:
            patch.update(milestone.status_change_patch(MilestoneStatus(changes["status"]), now))
        if patch.get("status", milestone.status) == MilestoneStatus.COMPLETED:
            patch["progress"] = 100
        return patch

    def update(
        self,
        principal: Optional[Principal],
        milestone_id: UUID,
        changes: Mapping[str, Any],
        expected_version: Optional[int] = None
    ) -> Milestone:
        principal = require_principal(principal)
        milestone = self._load_live(self.storage.milestones, milestone_id)
        self.permissions.require_edit(principal, milestone)
        self._validate(self._with_dates(milestone, changes), partial=True)

        now = self.clock()
        patch = self._update_patch(milestone, changes, now)
        patch.update(milestone.touch_patch(principal.id, now))

        with self.storage.atomic():
            self.storage.milestones.patch(milestone_id, patch, expected_version=expected_version)
            self.storage.projects.patch(milestone.project_id, {"last_activity_at": now})
            self.audit.record(
                principal, "milestone.updated", EntityKind.MILESTONE.value, milestone.public_id,
                entity_title=patch.get("title", milestone.title),
                description=f"Updated milestone: {patch.get('title', milestone.title)}",
                metadata={"fields": sorted(k for k in changes if k in UPDATABLE_FIELDS)},
            )
        return self.storage.milestones.get(milestone_id)

    def update_status(
        self,
        principal: Optional[Principal],
        milestone_id: UUID,
        status: MilestoneStatus
    ) -> Milestone:
        principal = require_principal(principal)
        milestone = self._load_live(self.storage.milestones, milestone_id)
        self.permissions.require_edit(principal, milestone)
        self._validate({"status": status}, partial=True)

        now = self.clock()
        new_status = MilestoneStatus(status)
        patch = milestone.status_change_patch(new_status, now)
        patch.update(milestone.touch_patch(principal.id, now))

        with self.storage.atomic():
            self.storage.milestones.patch(milestone_id, patch)
            self.storage.projects.patch(milestone.project_id, {"last_activity_at": now})
            self.audit.record(
                principal, "milestone.status_updated", EntityKind.MILESTONE.value, milestone.public_id,
                entity_title=milestone.title,
                description=(
                    f"Changed milestone status from {milestone.status.value} to {new_status.value}"
                ),
                metadata={"old_status": milestone.status.value, "new_status": new_status.value},
            )
        return self.storage.milestones.get(milestone_id)

    def update_progress(self, principal: Optional[Principal], milestone_id: UUID, progress: int) -> Milestone:
        """
        The dedicated progress operation.

        Unlike a plain update, reaching 100 completes the milestone and
        dropping below 100 reopens a completed one.
        """
        principal = require_principal(principal)
        milestone = self._load_live(self.storage.milestones, milestone_id)
        self.permissions.require_edit(principal, milestone)
        if not isinstance(progress, (int, float)) or progress < 0 or progress > 100:
            raise ValidationFailedException([
                ValidationError("progress", "Progress must be between 0 and 100")
            ])

        now = self.clock()
        patch: Dict[str, Any] = {"progress": int(progress)}
        if progress == 100 and not milestone.is_completed:
            patch.update(milestone.status_change_patch(MilestoneStatus.COMPLETED, now))
        elif progress < 100 and milestone.is_completed:
            patch.update(milestone.status_change_patch(MilestoneStatus.IN_PROGRESS, now))
        patch.update(milestone.touch_patch(principal.id, now))

        with self.storage.atomic():
            self.storage.milestones.patch(milestone_id, patch)
            self.audit.record(
                principal, "milestone.progress_updated", EntityKind.MILESTONE.value, milestone.public_id,
                entity_title=milestone.title,
                description=f"Updated milestone progress to {int(progress)}%",
                metadata={"old_progress": milestone.progress, "new_progress": int(progress)},
            )
        return self.storage.milestones.get(milestone_id)

    # =========================================================================
    # DELETE / RESTORE
    # =========================================================================

    def delete(self, principal: Optional[Principal], milestone_id: UUID) -> None:
        principal = require_principal(principal)
        milestone = self._load(self.storage.milestones, milestone_id)
        if milestone.is_deleted:
            raise InvalidStateException("Milestone is already deleted", current_state="deleted")
        self.permissions.require_delete(principal, milestone)

        with self.storage.atomic():
            self.storage.milestones.patch(
                milestone_id, milestone.soft_delete_patch(principal.id, self.clock())
            )
            self.audit.record(
                principal, "milestone.deleted", EntityKind.MILESTONE.value, milestone.public_id,
                entity_title=milestone.title,
                description=f"Deleted milestone: {milestone.title}",
            )
        logger.info("Milestone %s deleted by %s", milestone.public_id, principal.id)

    def restore(self, principal: Optional[Principal], milestone_id: UUID) -> Milestone:
        principal = require_principal(principal)
        milestone = self._load(self.storage.milestones, milestone_id)
        if not milestone.is_deleted:
            raise InvalidStateException("Milestone is not deleted", current_state=milestone.status.value)
        self.permissions.require_restore(principal, milestone)

        with self.storage.atomic():
            self.storage.milestones.patch(milestone_id, milestone.restore_patch())
            self.audit.record(
                principal, "milestone.restored", EntityKind.MILESTONE.value, milestone.public_id,
                entity_title=milestone.title,
                description=f"Restored milestone: {milestone.title}",
            )
        return self.storage.milestones.get(milestone_id)

    # =========================================================================
    # BULK
    # =========================================================================

    def _load_for_bulk(self, milestone_id: UUID) -> Milestone:
        milestone = self.storage.milestones.get(milestone_id)
        if milestone is None or milestone.is_deleted:
            raise EntityNotFoundException("milestone", milestone_id)
        return milestone

    def bulk_update(
        self,
        principal: Optional[Principal],
        milestone_ids: Iterable[UUID],
        updates: Mapping[str, Any]
    ) -> BulkResult:
        principal = require_principal(principal)
        updates = {k: v for k, v in updates.items() if k in BULK_UPDATABLE_FIELDS}
        self._validate(updates, partial=True)
        now = self.clock()

        def apply(milestone_id: UUID) -> None:
            milestone = self._load_for_bulk(milestone_id)
            self.permissions.require_edit(principal, milestone)
            patch = self._update_patch(milestone, updates, now)
            patch.update(milestone.touch_patch(principal.id, now))
            self.storage.milestones.patch(milestone_id, patch)

        with self.storage.atomic():
            result = self._run_bulk(milestone_ids, apply)
            self.audit.record(
                principal, "milestone.bulk_updated", EntityKind.MILESTONE.value, "bulk",
                entity_title=f"{len(result.succeeded)} milestones",
                description=f"Bulk updated {len(result.succeeded)} milestones",
                metadata={
                    "successful": len(result.succeeded),
                    "failed": len(result.failed),
                    "fields": sorted(updates),
                },
            )
        return result

    def bulk_delete(self, principal: Optional[Principal], milestone_ids: Iterable[UUID]) -> BulkResult:
        principal = require_principal(principal)
        now = self.clock()

        def apply(milestone_id: UUID) -> None:
            milestone = self._load_for_bulk(milestone_id)
            self.permissions.require_delete(principal, milestone)
            self.storage.milestones.patch(milestone_id, milestone.soft_delete_patch(principal.id, now))

        with self.storage.atomic():
            result = self._run_bulk(milestone_ids, apply)
            self.audit.record(
                principal, "milestone.bulk_deleted", EntityKind.MILESTONE.value, "bulk",
                entity_title=f"{len(result.succeeded)} milestones",
                description=f"Bulk deleted {len(result.succeeded)} milestones",
                metadata={"successful": len(result.succeeded), "failed": len(result.failed)},
            )
        return result
