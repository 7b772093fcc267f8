"""
Read-side query layer.

Every listing follows the same pipeline: non-deleted records, access filter,
field filters, free-text search, sort, then slice.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Sequence, TypeVar
from uuid import UUID

from domain.project.aggregates import Project
from domain.project.entities import Milestone, ProjectMember, Task
from domain.project.permissions import Authorizable, PermissionEvaluator
from domain.project.progress import (
    MilestoneStats,
    ProjectStats,
    milestone_stats,
    project_stats,
)
from domain.project.repositories import Storage
from domain.project.validators import ValidationError
from domain.shared.audit import AuditLogEntry
from domain.shared.base_entity import utcnow
from domain.shared.exceptions import (
    EntityNotFoundException,
    PermissionDeniedException,
    ValidationFailedException,
)
from domain.shared.value_objects import (
    MemberStatus,
    MilestoneStatus,
    Principal,
    ProgressSnapshot,
    ProjectStatus,
)

from .base import require_principal

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

PROJECT_FILTERS = ("status", "priority", "visibility", "category", "owner_id")
MILESTONE_FILTERS = ("status", "priority", "assignee_id")
TASK_FILTERS = ("status", "priority", "assignee_id", "milestone_id")

PROJECT_SORT_FIELDS = (
    "title", "status", "priority", "created_at", "updated_at", "due_date",
    "start_date", "last_activity_at", "progress",
)
MILESTONE_SORT_FIELDS = ("order", "title", "status", "priority", "due_date", "start_date", "progress")
TASK_SORT_FIELDS = ("order", "title", "status", "priority", "due_date", "created_at", "updated_at")


@dataclass
class ListOptions:
    """Paging, sorting and filtering for a listing."""

    limit: int = DEFAULT_LIMIT
    offset: int = 0
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    search: Optional[str] = None
    filters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    has_more: bool


# =============================================================================
# PIPELINE HELPERS
# =============================================================================

def _field_value(entity: Any, name: str) -> Any:
    value = getattr(entity, name, None)
    if isinstance(value, ProgressSnapshot):
        return value.percentage
    return value


def _matches(entity: Any, filters: Dict[str, Any], allowed: Sequence[str]) -> bool:
    for key in allowed:
        wanted = filters.get(key)
        if wanted is None or wanted == [] or wanted == "":
            continue
        value = _field_value(entity, key)
        if isinstance(wanted, (list, tuple, set, frozenset)):
            if value not in wanted and str(value) not in {str(w) for w in wanted}:
                return False
        elif value != wanted and str(value) != str(wanted):
            return False
    return True


def _search(entity: Any, term: str) -> bool:
    term = term.lower()
    haystack = [getattr(entity, "title", "") or "", getattr(entity, "description", "") or ""]
    haystack.extend(getattr(entity, "tags", []) or [])
    return any(term in str(text).lower() for text in haystack)


def _sort_key(entity: Any, name: str) -> Any:
    value = _field_value(entity, name)
    # priorities order by rank, not alphabetically
    return getattr(value, "weight", value)


def _sort(items: List[T], sort_by: str, descending: bool) -> List[T]:
    """Records without a value for the sort field always go last."""
    present = [i for i in items if _field_value(i, sort_by) is not None]
    missing = [i for i in items if _field_value(i, sort_by) is None]
    present.sort(key=lambda i: _sort_key(i, sort_by), reverse=descending)
    return present + missing


class _ListingMixin:
    """Shared filter/search/sort/slice pipeline."""

    max_limit: int = MAX_LIMIT

    def _page(
        self,
        items: Iterable[T],
        options: ListOptions,
        allowed_filters: Sequence[str],
        sort_fields: Sequence[str],
        default_sort: str,
        default_order: str
    ) -> Page[T]:
        sort_by = options.sort_by or default_sort
        sort_order = (options.sort_order or default_order).lower()
        errors = []
        if sort_by not in sort_fields:
            errors.append(ValidationError("sort_by", f"Cannot sort by {sort_by}"))
        if sort_order not in ("asc", "desc"):
            errors.append(ValidationError("sort_order", "Sort order must be asc or desc"))
        if options.limit is None or options.limit < 1 or (options.offset or 0) < 0:
            errors.append(ValidationError("limit", "Limit must be positive and offset non-negative"))
        if errors:
            raise ValidationFailedException(errors)

        filtered = [i for i in items if _matches(i, options.filters or {}, allowed_filters)]
        if options.search and options.search.strip():
            filtered = [i for i in filtered if _search(i, options.search.strip())]
        ordered = _sort(filtered, sort_by, sort_order == "desc")

        limit = min(options.limit, self.max_limit)
        offset = options.offset or 0
        total = len(ordered)
        return Page(items=ordered[offset:offset + limit], total=total, has_more=offset + limit < total)


# =============================================================================
# QUERIES
# =============================================================================

class ProjectQueries(_ListingMixin):
    """Read operations for projects, milestones, tasks and memberships."""

    def __init__(
        self,
        storage: Storage,
        permissions: Optional[Authorizable] = None,
        clock: Callable[[], datetime] = utcnow,
        at_risk_days: int = 7,
        max_limit: int = MAX_LIMIT
    ):
        self.storage = storage
        self.permissions = permissions or PermissionEvaluator(storage.projects, storage.members)
        self.clock = clock
        self.at_risk_days = at_risk_days
        self.max_limit = max_limit

    def _visible_project(self, principal: Principal, project_id: UUID) -> Project:
        project = self.storage.projects.get(project_id)
        if project is None or project.is_deleted:
            raise EntityNotFoundException("project", project_id)
        self.permissions.require_view(principal, project)
        return project

    # -- projects -------------------------------------------------------------

    def list_projects(self, principal: Optional[Principal], options: Optional[ListOptions] = None) -> Page[Project]:
        principal = require_principal(principal)
        options = options or ListOptions()
        projects = self.storage.projects.filter(lambda p: True)
        visible = self.permissions.filter_by_access(principal, projects)
        return self._page(
            visible, options, PROJECT_FILTERS, PROJECT_SORT_FIELDS,
            default_sort="last_activity_at", default_order="desc"
        )

    def get_project(self, principal: Optional[Principal], project_id: UUID) -> Project:
        principal = require_principal(principal)
        return self._visible_project(principal, project_id)

    def get_by_public_id(self, principal: Optional[Principal], public_id: str) -> Project:
        principal = require_principal(principal)
        project = self.storage.projects.get_by_public_id(public_id)
        if project is None or project.is_deleted:
            raise EntityNotFoundException("project", public_id)
        self.permissions.require_view(principal, project)
        return project

    def user_projects(
        self,
        principal: Optional[Principal],
        user_id: Optional[UUID] = None,
        include_archived: bool = False
    ) -> Dict[str, Any]:
        """
        Projects a user owns and projects they collaborate on.

        Only system admins may look at another user's projects.
        """
        principal = require_principal(principal)
        user_id = user_id or principal.id
        if user_id != principal.id and not principal.is_system_admin:
            raise PermissionDeniedException("projects.view", "projects")

        def keep(project: Optional[Project]) -> bool:
            if project is None or project.is_deleted:
                return False
            if include_archived:
                return True
            return project.status not in (ProjectStatus.CANCELLED, ProjectStatus.COMPLETED)

        owned = [p for p in self.storage.projects.get_by_owner(user_id) if keep(p)]
        collaborated = []
        for membership in self.storage.members.get_by_user(user_id):
            if membership.status != MemberStatus.ACTIVE:
                continue
            project = self.storage.projects.get(membership.project_id)
            if keep(project) and project.owner_id != user_id:
                collaborated.append(project)

        return {
            "owned": owned,
            "collaborated": collaborated,
            "stats": {
                "total_owned": len(owned),
                "total_collaborated": len(collaborated),
                "active_owned": sum(1 for p in owned if p.status == ProjectStatus.ACTIVE),
                "active_collaborated": sum(1 for p in collaborated if p.status == ProjectStatus.ACTIVE),
            },
        }

    def project_stats(self, principal: Optional[Principal]) -> ProjectStats:
        principal = require_principal(principal)
        projects = self.permissions.filter_by_access(principal, self.storage.projects.filter(lambda p: True))
        return project_stats(projects, self.clock(), self.at_risk_days)

    def project_members(self, principal: Optional[Principal], project_id: UUID) -> List[ProjectMember]:
        principal = require_principal(principal)
        self._visible_project(principal, project_id)
        return self.storage.members.get_by_project(project_id)

    def history(self, principal: Optional[Principal], entity: Any) -> List[AuditLogEntry]:
        """Audit entries of one project, milestone or task, newest first."""
        principal = require_principal(principal)
        self.permissions.require_view(principal, entity)
        entries = self.storage.audit_log.get_by_entity(entity.public_id)
        return sorted(entries, key=lambda e: e.created_at, reverse=True)

    # -- milestones -----------------------------------------------------------

    def list_milestones(
        self,
        principal: Optional[Principal],
        project_id: UUID,
        options: Optional[ListOptions] = None
    ) -> Page[Milestone]:
        principal = require_principal(principal)
        self._visible_project(principal, project_id)
        return self._page(
            self.storage.milestones.get_by_project(project_id), options or ListOptions(),
            MILESTONE_FILTERS, MILESTONE_SORT_FIELDS,
            default_sort="order", default_order="asc"
        )

    def get_milestone(self, principal: Optional[Principal], milestone_id: UUID) -> Milestone:
        principal = require_principal(principal)
        milestone = self.storage.milestones.get(milestone_id)
        if milestone is None or milestone.is_deleted:
            raise EntityNotFoundException("milestone", milestone_id)
        self.permissions.require_view(principal, milestone)
        return milestone

    def milestone_stats(self, principal: Optional[Principal], project_id: Optional[UUID] = None) -> MilestoneStats:
        principal = require_principal(principal)
        if project_id is not None:
            self._visible_project(principal, project_id)
            milestones = self.storage.milestones.get_by_project(project_id)
        else:
            milestones = self.permissions.filter_by_access(
                principal, self.storage.milestones.filter(lambda m: True)
            )
        return milestone_stats(milestones, self.clock())

    def upcoming_milestones(self, principal: Optional[Principal], days: int = 30, limit: int = 10) -> List[Milestone]:
        """Open milestones due between now and ``days`` from now, soonest first."""
        principal = require_principal(principal)
        now = self.clock()
        horizon = now + timedelta(days=days)
        open_milestones = self.storage.milestones.filter(
            lambda m: m.status not in (MilestoneStatus.COMPLETED, MilestoneStatus.CANCELLED)
            and m.due_date is not None
            and now <= m.due_date <= horizon
        )
        visible = self.permissions.filter_by_access(principal, open_milestones)
        return sorted(visible, key=lambda m: m.due_date)[:limit]

    # -- tasks ----------------------------------------------------------------

    def list_tasks(
        self,
        principal: Optional[Principal],
        project_id: UUID,
        options: Optional[ListOptions] = None
    ) -> Page[Task]:
        principal = require_principal(principal)
        self._visible_project(principal, project_id)
        return self._page(
            self.storage.tasks.get_by_project(project_id), options or ListOptions(),
            TASK_FILTERS, TASK_SORT_FIELDS,
            default_sort="order", default_order="asc"
        )

    def get_task(self, principal: Optional[Principal], task_id: UUID) -> Task:
        principal = require_principal(principal)
        task = self.storage.tasks.get(task_id)
        if task is None or task.is_deleted:
            raise EntityNotFoundException("task", task_id)
        self.permissions.require_view(principal, task)
        return task
