"""
Shared Value Objects used across multiple domains.

Value Objects are immutable objects that describe characteristics of a thing.
Two value objects are equal if all their properties are equal.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional
from uuid import UUID


# =============================================================================
# ENUMERATIONS
# =============================================================================

class EntityKind(str, Enum):
    """Kinds of records the core writes."""

    PROJECT = "project"
    MILESTONE = "milestone"
    TASK = "task"
    PROJECT_MEMBER = "project_member"
    AUDIT_LOG = "audit_log"

    @property
    def public_id_prefix(self) -> str:
        return {
            EntityKind.PROJECT: "prj",
            EntityKind.MILESTONE: "mil",
            EntityKind.TASK: "tsk",
            EntityKind.PROJECT_MEMBER: "mem",
            EntityKind.AUDIT_LOG: "aud",
        }[self]


class SystemRole(str, Enum):
    """System-wide role of a principal."""

    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @property
    def is_admin(self) -> bool:
        return self in (SystemRole.ADMIN, SystemRole.SUPERADMIN)


class ProjectStatus(str, Enum):
    """Status of a project."""

    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class ProjectPriority(str, Enum):
    """Priority of a project."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def weight(self) -> int:
        """Rank used when sorting by priority."""
        return {
            ProjectPriority.LOW: 1,
            ProjectPriority.MEDIUM: 2,
            ProjectPriority.HIGH: 3,
            ProjectPriority.URGENT: 4,
        }[self]


class ProjectVisibility(str, Enum):
    """Who can see a project."""

    PRIVATE = "private"
    TEAM = "team"
    PUBLIC = "public"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class MilestoneStatus(str, Enum):
    """Status of a milestone."""

    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskStatus(str, Enum):
    """Status of a task (board column)."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Terminal for completed_at bookkeeping; reopening is still allowed."""
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)


class WorkPriority(str, Enum):
    """Priority shared by milestones and tasks."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"
    CRITICAL = "critical"

    @property
    def weight(self) -> int:
        """Rank used when sorting by priority."""
        return {
            WorkPriority.LOW: 1,
            WorkPriority.MEDIUM: 2,
            WorkPriority.HIGH: 3,
            WorkPriority.URGENT: 4,
            WorkPriority.CRITICAL: 5,
        }[self]


MilestonePriority = WorkPriority
TaskPriority = WorkPriority


class MemberRole(str, Enum):
    """Role of a user inside a project."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"

    @property
    def weight(self) -> int:
        """Numeric ordering used for who-may-manage-whom decisions."""
        return {
            MemberRole.OWNER: 4,
            MemberRole.ADMIN: 3,
            MemberRole.MEMBER: 2,
            MemberRole.VIEWER: 1,
        }[self]


class MemberStatus(str, Enum):
    """Status of a project membership."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    INVITED = "invited"
    REMOVED = "removed"


# =============================================================================
# VALUE OBJECTS
# =============================================================================

@dataclass(frozen=True)
class Principal:
    """
    The authenticated actor performing an operation.

    Produced by the identity provider; ``permissions`` holds explicit grants
    such as ``projects.create``. ``*`` grants everything.
    """

    id: UUID
    role: SystemRole = SystemRole.USER
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    name: str = ""

    @property
    def is_system_admin(self) -> bool:
        return self.role.is_admin

    def has_permission(self, permission: str) -> bool:
        return "*" in self.permissions or permission in self.permissions

    @property
    def display_name(self) -> str:
        return self.name or "Unknown User"


@dataclass(frozen=True)
class ProgressSnapshot:
    """Derived completion triple stored on a project."""

    completed_tasks: int = 0
    total_tasks: int = 0
    percentage: int = 0

    @classmethod
    def empty(cls) -> ProgressSnapshot:
        return cls(0, 0, 0)

    def as_dict(self) -> Dict[str, int]:
        return {
            "completed_tasks": self.completed_tasks,
            "total_tasks": self.total_tasks,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class Deliverable:
    """A checklist item of a milestone."""

    title: str
    completed: bool = False
    completed_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "completed": self.completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_value(cls, value: Any) -> Deliverable:
        """Build from a dict payload (ISO strings or datetimes) or pass through."""
        if isinstance(value, Deliverable):
            return value
        completed_at = value.get("completed_at")
        if isinstance(completed_at, str):
            completed_at = datetime.fromisoformat(completed_at)
        return cls(
            title=str(value.get("title", "")).strip(),
            completed=bool(value.get("completed", False)),
            completed_at=completed_at,
        )


@dataclass(frozen=True)
class ProjectSettings:
    """Feature toggles of a project."""

    allow_comments: bool = True
    require_approval: bool = False
    auto_archive: bool = False
    email_notifications: bool = True

    def merged(self, overrides: Optional[Dict[str, Any]]) -> ProjectSettings:
        if not overrides:
            return self
        known = {k: bool(v) for k, v in overrides.items() if k in self.as_dict()}
        return replace(self, **known)

    def as_dict(self) -> Dict[str, bool]:
        return {
            "allow_comments": self.allow_comments,
            "require_approval": self.require_approval,
            "auto_archive": self.auto_archive,
            "email_notifications": self.email_notifications,
        }


@dataclass(frozen=True)
class MemberSettings:
    """Per-member grants inside a project."""

    email_notifications: bool = True
    can_manage_tasks: bool = False
    can_invite_members: bool = False
    can_edit_project: bool = False

    @classmethod
    def for_role(cls, role: MemberRole) -> MemberSettings:
        """Default grants that come with a role."""
        if role in (MemberRole.OWNER, MemberRole.ADMIN):
            return cls(True, True, True, True)
        return cls()

    def merged(self, overrides: Optional[Dict[str, Any]]) -> MemberSettings:
        if not overrides:
            return self
        known = {k: bool(v) for k, v in overrides.items() if k in self.as_dict()}
        return replace(self, **known)

    def as_dict(self) -> Dict[str, bool]:
        return {
            "email_notifications": self.email_notifications,
            "can_manage_tasks": self.can_manage_tasks,
            "can_invite_members": self.can_invite_members,
            "can_edit_project": self.can_edit_project,
        }
