"""
Project Domain - Permission Evaluator.

Milestones, tasks and memberships have no access rules of their own: each is
resolved to its parent project and judged by the project's rules.

Rules:
- system ``admin``/``superadmin`` principals pass every check
- view: public visibility, ownership, or any active membership
- edit: ownership, an active ``owner``/``admin`` membership, or a
  membership whose settings grant ``can_edit_project``; tasks are also
  editable by any active non-viewer member or a ``can_manage_tasks`` grant
- delete: ownership or system admin (not delegable to ``admin`` members)
- team management: ownership, or an active ``owner``/``admin`` member whose
  role weight is strictly greater than the target member's
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Protocol, Union
from uuid import UUID

from domain.shared.exceptions import EntityNotFoundException, PermissionDeniedException
from domain.shared.value_objects import MemberRole, Principal

from .aggregates import Project
from .entities import Milestone, ProjectMember, Task
from .repositories import ProjectMemberRepository, ProjectRepository


Guarded = Union[Project, Milestone, Task, ProjectMember]

# Permission keys for explicit grants on the principal
PERM_PROJECTS_CREATE = "projects.create"
PERM_PROJECTS_BULK_EDIT = "projects.bulk_edit"
PERM_PROJECTS_DELETE = "projects.delete"

_MODULES = {
    Project: "projects",
    Milestone: "milestones",
    Task: "tasks",
    ProjectMember: "team",
}


def module_for(entity: Guarded) -> str:
    return _MODULES.get(type(entity), "projects")


class Authorizable(Protocol):
    """Capability interface every lifecycle service depends on."""

    def can_view(self, principal: Principal, entity: Guarded) -> bool: ...

    def can_edit(self, principal: Principal, entity: Guarded) -> bool: ...

    def can_delete(self, principal: Principal, entity: Guarded) -> bool: ...

    def can_manage_team(
        self,
        principal: Principal,
        project: Project,
        target: Optional[ProjectMember] = None
    ) -> bool: ...

    def require_view(self, principal: Principal, entity: Guarded) -> None: ...

    def require_edit(self, principal: Principal, entity: Guarded) -> None: ...

    def require_delete(self, principal: Principal, entity: Guarded) -> None: ...

    def require_manage_team(
        self,
        principal: Principal,
        project: Project,
        target: Optional[ProjectMember] = None
    ) -> None: ...

    def require_permission(self, principal: Principal, permission: str, module: str) -> None: ...

    def filter_by_access(self, principal: Principal, entities: Iterable[Guarded]) -> List[Guarded]: ...


class PermissionEvaluator:
    """The single ``Authorizable`` implementation."""

    def __init__(self, projects: ProjectRepository, members: ProjectMemberRepository):
        self._projects = projects
        self._members = members

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def _project_of(self, entity: Guarded) -> Optional[Project]:
        if isinstance(entity, Project):
            return entity
        if entity.project_id is None:
            return None
        return self._projects.get(entity.project_id)

    def _require_project_of(self, entity: Guarded) -> Project:
        project = self._project_of(entity)
        if project is None:
            raise EntityNotFoundException("project", getattr(entity, "project_id", None))
        return project

    def _membership(self, project: Project, user_id: UUID) -> Optional[ProjectMember]:
        if project.id is None:
            return None
        member = self._members.get_membership(project.id, user_id)
        if member is None or not member.is_active:
            return None
        return member

    # =========================================================================
    # CHECKS
    # =========================================================================

    def can_view(self, principal: Principal, entity: Guarded) -> bool:
        if principal.is_system_admin:
            return True
        project = self._project_of(entity)
        if project is None:
            return False
        if project.is_public or project.is_owned_by(principal.id):
            return True
        return self._membership(project, principal.id) is not None

    def can_edit(self, principal: Principal, entity: Guarded) -> bool:
        if principal.is_system_admin:
            return True
        project = self._project_of(entity)
        if project is None:
            return False
        if project.is_owned_by(principal.id):
            return True
        member = self._membership(project, principal.id)
        if member is None:
            return False
        if isinstance(entity, Task):
            return member.can_manage_tasks
        return member.can_edit_project

    def can_delete(self, principal: Principal, entity: Guarded) -> bool:
        if principal.is_system_admin:
            return True
        project = self._project_of(entity)
        return project is not None and project.is_owned_by(principal.id)

    def can_manage_team(
        self,
        principal: Principal,
        project: Project,
        target: Optional[ProjectMember] = None
    ) -> bool:
        if principal.is_system_admin or project.is_owned_by(principal.id):
            return True
        acting = self._membership(project, principal.id)
        if acting is None or acting.role not in (MemberRole.OWNER, MemberRole.ADMIN):
            return False
        if target is None:
            return True
        return acting.outranks(target)

    def can_restore(self, principal: Principal, entity: Guarded) -> bool:
        """Owner of the project, creator of the record, or system admin."""
        if principal.is_system_admin:
            return True
        if not isinstance(entity, Project) and entity.created_by == principal.id:
            return True
        project = self._project_of(entity)
        return project is not None and project.is_owned_by(principal.id)

    # =========================================================================
    # REQUIRE VARIANTS
    # =========================================================================

    def require_view(self, principal: Principal, entity: Guarded) -> None:
        self._require_project_of(entity)
        if not self.can_view(principal, entity):
            module = module_for(entity)
            raise PermissionDeniedException(f"{module}.view", module)

    def require_edit(self, principal: Principal, entity: Guarded) -> None:
        self._require_project_of(entity)
        if not self.can_edit(principal, entity):
            module = module_for(entity)
            raise PermissionDeniedException(f"{module}.edit", module)

    def require_delete(self, principal: Principal, entity: Guarded) -> None:
        self._require_project_of(entity)
        if not self.can_delete(principal, entity):
            module = module_for(entity)
            raise PermissionDeniedException(f"{module}.delete", module)

    def require_restore(self, principal: Principal, entity: Guarded) -> None:
        if not self.can_restore(principal, entity):
            module = module_for(entity)
            raise PermissionDeniedException(f"{module}.restore", module)

    def require_manage_team(
        self,
        principal: Principal,
        project: Project,
        target: Optional[ProjectMember] = None
    ) -> None:
        if not self.can_manage_team(principal, project, target):
            raise PermissionDeniedException("team.manage", "team")

    def require_permission(self, principal: Principal, permission: str, module: str) -> None:
        """Explicit grant check; system admins are allowed through."""
        if principal.is_system_admin or principal.has_permission(permission):
            return
        raise PermissionDeniedException(permission, module)

    # =========================================================================
    # BATCH
    # =========================================================================

    def filter_by_access(self, principal: Principal, entities: Iterable[Guarded]) -> List[Guarded]:
        """
        Keep only what the principal may view.

        Memberships are read once per call and parent projects are resolved
        at most once each.
        """
        entities = list(entities)
        if principal.is_system_admin:
            return entities

        member_of = {
            m.project_id for m in self._members.get_by_user(principal.id) if m.is_active
        }
        resolved: Dict[UUID, Optional[Project]] = {}

        def visible(entity: Guarded) -> bool:
            if isinstance(entity, Project):
                project: Optional[Project] = entity
            else:
                if entity.project_id not in resolved:
                    resolved[entity.project_id] = self._projects.get(entity.project_id)
                project = resolved[entity.project_id]
            if project is None:
                return False
            return (
                project.is_public
                or project.is_owned_by(principal.id)
                or project.id in member_of
            )

        return [e for e in entities if visible(e)]
