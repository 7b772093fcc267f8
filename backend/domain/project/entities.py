"""
Project Domain - Entities.

Entities that live under a project: memberships, milestones and tasks.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from domain.shared.base_entity import AuditableEntity
from domain.shared.value_objects import (
    Deliverable,
    MemberRole,
    MemberSettings,
    MemberStatus,
    MilestoneStatus,
    TaskStatus,
    WorkPriority,
)


@dataclass(eq=False)
class ProjectMember(AuditableEntity):
    """
    Link between a user and a project, with a role and per-member grants.
    """

    project_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    role: MemberRole = MemberRole.MEMBER
    status: MemberStatus = MemberStatus.ACTIVE
    settings: MemberSettings = field(default_factory=MemberSettings)

    joined_at: Optional[datetime] = None
    invited_by: Optional[UUID] = None
    department: Optional[str] = None
    job_title: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE and not self.is_deleted

    @property
    def can_edit_project(self) -> bool:
        """Edit rights come from an owner/admin role or an explicit grant."""
        if not self.is_active:
            return False
        return self.role in (MemberRole.OWNER, MemberRole.ADMIN) or self.settings.can_edit_project

    @property
    def can_manage_tasks(self) -> bool:
        """Task edits: project edit rights, any non-viewer role, or the task grant."""
        if not self.is_active:
            return False
        if self.can_edit_project or self.settings.can_manage_tasks:
            return True
        return self.role != MemberRole.VIEWER

    def outranks(self, other: ProjectMember) -> bool:
        return self.role.weight > other.role.weight


@dataclass(eq=False)
class Milestone(AuditableEntity):
    """
    A dated checkpoint of a project with a deliverables checklist.

    ``progress`` is derived from deliverables whenever they are supplied;
    completing the milestone forces it to 100.
    """

    project_id: Optional[UUID] = None
    title: str = ""
    description: Optional[str] = None

    status: MilestoneStatus = MilestoneStatus.UPCOMING
    priority: WorkPriority = WorkPriority.MEDIUM

    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None

    progress: int = 0
    deliverables: List[Deliverable] = field(default_factory=list)
    dependencies: List[UUID] = field(default_factory=list)

    order: int = 0
    assignee_id: Optional[UUID] = None
    color: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_completed(self) -> bool:
        return self.status == MilestoneStatus.COMPLETED

    def is_overdue(self, now: datetime) -> bool:
        if self.is_completed or self.status == MilestoneStatus.CANCELLED:
            return False
        return self.due_date is not None and self.due_date < now

    @staticmethod
    def initial_status(start_date: Optional[datetime], now: datetime) -> MilestoneStatus:
        """Future start means upcoming, otherwise work is already under way."""
        if start_date is not None and start_date > now:
            return MilestoneStatus.UPCOMING
        return MilestoneStatus.IN_PROGRESS

    def status_change_patch(self, new_status: MilestoneStatus, now: datetime) -> Dict[str, Any]:
        """
        Entering ``completed`` stamps the date and forces progress to 100.
        Leaving it clears the date but keeps progress until deliverables are
        recomputed.
        """
        patch: Dict[str, Any] = {"status": new_status}
        if new_status == MilestoneStatus.COMPLETED:
            if self.status != MilestoneStatus.COMPLETED:
                patch["completed_date"] = now
                patch["progress"] = 100
        elif self.status == MilestoneStatus.COMPLETED:
            patch["completed_date"] = None
        return patch


@dataclass(eq=False)
class Task(AuditableEntity):
    """
    A unit of work on the project board.

    ``completed_at`` is set exactly while the task is completed. A move to
    ``cancelled`` keeps whatever value it already had.
    """

    project_id: Optional[UUID] = None
    milestone_id: Optional[UUID] = None
    title: str = ""
    description: Optional[str] = None

    status: TaskStatus = TaskStatus.TODO
    priority: WorkPriority = WorkPriority.MEDIUM

    assignee_id: Optional[UUID] = None
    tags: List[str] = field(default_factory=list)

    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None

    order: int = 0
    blocked_by: List[UUID] = field(default_factory=list)
    depends_on: List[UUID] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def is_overdue(self, now: datetime) -> bool:
        if self.status.is_terminal:
            return False
        return self.due_date is not None and self.due_date < now

    def status_change_patch(self, new_status: TaskStatus, now: datetime) -> Dict[str, Any]:
        patch: Dict[str, Any] = {"status": new_status}
        if new_status == TaskStatus.COMPLETED:
            patch["completed_at"] = self.completed_at or now
        elif new_status != TaskStatus.CANCELLED:
            patch["completed_at"] = None
        return patch
